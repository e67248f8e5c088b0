"""
Watch the Stills/Motion inputs and rebuild on change.

The watched inputs and the generated outputs are disjoint by name:

    inputs   .order  .cover  *.cover  image files  the registry file
    outputs  manifest.json  .images  .folders  .videos  <covers dir>/*

so a rebuild's own writes never schedule another rebuild.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchfiles import Change, DefaultFilter, awatch

from .config import BuildContext
from .models import MANIFEST_NAME
from .motion import VIDEOS_FILE
from .scan import COVER_REF_FILE, ORDER_FILE
from .stills import FOLDERS_FILE, IMAGES_FILE
from .utils import is_cover_filename, is_image_name, log
from .writer import ensure_dir

INPUT_BASENAMES = frozenset({ORDER_FILE, COVER_REF_FILE})
OUTPUT_BASENAMES = frozenset({MANIFEST_NAME, IMAGES_FILE, FOLDERS_FILE, VIDEOS_FILE})
TEMP_SUFFIX = ".tmp"

IDLE = "idle"
DEBOUNCING = "debouncing"
REBUILDING = "rebuilding"


class InputFilter(DefaultFilter):
    """watchfiles filter accepting only generator inputs."""

    def __init__(self, ctx: BuildContext) -> None:
        super().__init__()
        self.ctx = ctx

    def is_input(self, path: Path, change: Optional[Change] = None) -> bool:
        if path == self.ctx.registry:
            return True
        if path.is_relative_to(self.ctx.covers_out):
            return False
        if not (path.is_relative_to(self.ctx.stills_root) or path.is_relative_to(self.ctx.motion_root)):
            return False
        name = path.name
        if name in OUTPUT_BASENAMES or name.endswith(TEMP_SUFFIX):
            return False
        if name in INPUT_BASENAMES:
            return True
        if name.startswith("."):
            return False
        if is_cover_filename(name) or is_image_name(name):
            return True
        # a deleted path can no longer be checked, and may have been a folder
        if change == Change.deleted:
            return True
        return path.is_dir()

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        return self.is_input(Path(path), change)


class ManifestWatcher:
    """
    Debounced rebuild loop: idle -> debouncing -> rebuilding -> idle.

    ``notify()`` may be called any number of times; events closer together
    than ``window`` seconds collapse into one rebuild. Events arriving during
    a rebuild schedule exactly one more. A failing rebuild is logged and the
    loop keeps running.
    """

    def __init__(self, rebuild: Callable[[], Awaitable[object]], *, window: float = 0.15) -> None:
        self._rebuild = rebuild
        self.window = window
        self.state = IDLE
        self.rebuilds = 0
        self.failures = 0
        self.last_error: Optional[str] = None
        self._event = asyncio.Event()
        self._stop = asyncio.Event()

    def notify(self) -> None:
        self._event.set()

    def stop(self) -> None:
        self._stop.set()
        self._event.set()

    async def _debounce(self) -> None:
        self.state = DEBOUNCING
        while True:
            self._event.clear()
            try:
                await asyncio.wait_for(self._event.wait(), timeout=self.window)
            except asyncio.TimeoutError:
                return
            if self._stop.is_set():
                return

    async def run(self) -> None:
        while not self._stop.is_set():
            self.state = IDLE
            await self._event.wait()
            if self._stop.is_set():
                break
            await self._debounce()
            if self._stop.is_set():
                break
            self.state = REBUILDING
            try:
                await self._rebuild()
                self.last_error = None
            except Exception as e:  # noqa: BLE001
                self.failures += 1
                self.last_error = str(e)
                log("watch", "rebuild failed: %s", e, level=logging.ERROR, exc_info=True)
            finally:
                self.rebuilds += 1
        self.state = IDLE


def watch_paths(ctx: BuildContext) -> list[Path]:
    paths = [ctx.stills_root, ctx.motion_root]
    if ctx.registry.parent.exists():
        paths.append(ctx.registry.parent)
    return paths


async def watch(
    ctx: BuildContext,
    rebuild: Callable[[], Awaitable[object]],
    *,
    stop_event: Optional[asyncio.Event] = None,
    initial: bool = True,
    watcher: Optional[ManifestWatcher] = None,
) -> None:
    """Run ``rebuild`` once, then again after every debounced burst of input changes."""
    watcher = watcher or ManifestWatcher(rebuild, window=ctx.debounce_ms / 1000.0)
    stop_event = stop_event or asyncio.Event()
    # awatch refuses paths that do not exist yet
    for d in (ctx.stills_root, ctx.motion_root):
        ensure_dir(d)
    if initial:
        watcher.notify()
    loop_task = asyncio.create_task(watcher.run())
    log("watch", "watching %s", ", ".join(str(p) for p in watch_paths(ctx)))
    try:
        async for changes in awatch(
            *watch_paths(ctx),
            watch_filter=InputFilter(ctx),
            stop_event=stop_event,
            step=50,
        ):
            log("watch", "%d input change(s)", len(changes), level=logging.DEBUG)
            watcher.notify()
    finally:
        watcher.stop()
        await loop_task
