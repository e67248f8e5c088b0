#!/usr/bin/env python3
"""
Generate Stills/Motion manifests.

Usage:
  gen-manifests            one full regeneration, exit 0 on success
  gen-manifests --watch    regenerate, then again whenever an input changes

Configuration comes from the environment (see BuildContext.from_env):
PUBLIC_ROOT, STILLS_DIR, MOTION_DIR, COVERS_DIR, VIDEO_REGISTRY,
IMAGE_META_DISABLE, BLUR_WIDTH, MANIFEST_DEBOUNCE_MS, LOG_ALL, LOG_<CAT>.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .config import BuildContext
from .imagemeta import make_meta_reader
from .orchestrator import run
from .watcher import watch


def _setup_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")


async def _watch(ctx: BuildContext) -> None:
    meta_reader = make_meta_reader(enabled=ctx.image_meta, blur_width=ctx.blur_width)
    await watch(ctx, lambda: run(ctx, meta_reader))


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="gen-manifests", description="Generate Stills/Motion manifests")
    ap.add_argument("--watch", action="store_true", help="Keep running and rebuild when inputs change")
    args = ap.parse_args(argv)
    _setup_logging()

    ctx = BuildContext.from_env()
    if args.watch:
        try:
            asyncio.run(_watch(ctx))
        except KeyboardInterrupt:
            pass
        return 0

    try:
        asyncio.run(run(ctx))
    except Exception as e:  # noqa: BLE001
        print(f"[gen] ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
