import asyncio

import pytest
from watchfiles import Change

from manifestgen.orchestrator import build_plan
from manifestgen.utils import is_cover_filename, is_image_name
from manifestgen.watcher import (
    IDLE,
    INPUT_BASENAMES,
    OUTPUT_BASENAMES,
    REBUILDING,
    InputFilter,
    ManifestWatcher,
    watch,
)

from .helpers import make_image, no_meta, write_order


@pytest.mark.parametrize("rel", [
    "Portfolio/Cats/a.jpg",
    "Portfolio/Cats/B.WEBP",
    "Portfolio/Cats/.order",
    "Portfolio/Cats/.cover",
    "Portfolio/Cats/hero.jpg.cover",
    "Motion/Reel/.order",
])
def test_filter_accepts_inputs(ctx, rel):
    assert InputFilter(ctx).is_input(ctx.public_root / rel)


@pytest.mark.parametrize("rel", [
    "Portfolio/Cats",
    "Portfolio/2024.06 Trip",
    "Portfolio/Travel/Vol.2",
    "Motion/Reel.v2",
])
def test_filter_accepts_folders_with_any_name(ctx, rel):
    folder = ctx.public_root / rel
    folder.mkdir(parents=True)
    f = InputFilter(ctx)
    assert f.is_input(folder, Change.added)
    folder.rmdir()
    # gone from disk, so only the event kind says it may have been a folder
    assert f.is_input(folder, Change.deleted)
    assert not f.is_input(folder, Change.added)


def test_filter_ignores_deleted_outputs_and_hidden_names(ctx):
    f = InputFilter(ctx)
    assert not f.is_input(ctx.stills_root / "Cats" / "manifest.json", Change.deleted)
    assert not f.is_input(ctx.stills_root / ".Drafts", Change.deleted)


def test_input_and_output_names_are_disjoint():
    assert not INPUT_BASENAMES & OUTPUT_BASENAMES
    assert not any(is_cover_filename(n) or is_image_name(n) for n in OUTPUT_BASENAMES)


@pytest.mark.parametrize("rel", [
    "Portfolio/Cats/manifest.json",
    "Portfolio/Cats/.images",
    "Portfolio/.folders",
    "Motion/Reel/.videos",
    "Portfolio/Cats/manifest.json.tmp",
    "Portfolio/Cats/.images.tmp",
    "Portfolio/Cats/notes.txt",
    "_covers/0123abcd-hero.jpg",
    "elsewhere/a.jpg",
])
def test_filter_rejects_outputs_and_strays(ctx, rel):
    assert not InputFilter(ctx).is_input(ctx.public_root / rel)


def test_filter_accepts_registry_and_applies_default_ignores(ctx):
    f = InputFilter(ctx)
    assert f(Change.modified, str(ctx.registry))
    assert not f(Change.added, str(ctx.stills_root / ".git" / "a.jpg"))


def test_no_planned_write_is_a_watched_input(ctx, stills, motion):
    make_image(stills / "A" / "x.jpg")
    make_image(stills / "A" / "x.jpg.cover", fmt="JPEG")
    make_image(stills / "B" / "Inner" / "y.png")
    write_order(motion / "Reel", "v1")

    plan, _ = asyncio.run(build_plan(ctx, no_meta))

    f = InputFilter(ctx)
    targets = plan.targets()
    assert any(t.is_relative_to(ctx.covers_out) for t in targets)
    for target in targets:
        assert not f.is_input(target), target
        assert not f.is_input(target.with_name(target.name + ".tmp")), target


def test_burst_of_events_collapses_into_one_rebuild():
    calls = []

    async def rebuild():
        calls.append(1)

    async def scenario():
        w = ManifestWatcher(rebuild, window=0.05)
        task = asyncio.create_task(w.run())
        for _ in range(6):
            w.notify()
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.3)
        w.stop()
        await task
        return w

    w = asyncio.run(scenario())
    assert len(calls) == 1
    assert w.rebuilds == 1
    assert w.state == IDLE


def test_failed_rebuild_keeps_watching():
    calls = []

    async def rebuild():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("registry exploded")

    async def scenario():
        w = ManifestWatcher(rebuild, window=0.02)
        task = asyncio.create_task(w.run())
        w.notify()
        await asyncio.sleep(0.2)
        assert w.failures == 1
        assert w.last_error == "registry exploded"
        w.notify()
        await asyncio.sleep(0.2)
        w.stop()
        await task
        return w

    w = asyncio.run(scenario())
    assert len(calls) == 2
    assert w.failures == 1
    assert w.last_error is None


def test_events_during_rebuild_schedule_exactly_one_more():
    calls = []

    async def scenario():
        started = asyncio.Event()
        release = asyncio.Event()

        async def rebuild():
            calls.append(1)
            if len(calls) == 1:
                started.set()
                await release.wait()

        w = ManifestWatcher(rebuild, window=0.02)
        task = asyncio.create_task(w.run())
        w.notify()
        await started.wait()
        assert w.state == REBUILDING
        for _ in range(4):
            w.notify()
        release.set()
        await asyncio.sleep(0.3)
        w.stop()
        await task

    asyncio.run(scenario())
    assert len(calls) == 2


def test_watch_runs_initial_build_and_honors_stop_event(ctx):
    calls = []

    async def scenario():
        stop = asyncio.Event()

        async def rebuild():
            calls.append(1)
            stop.set()

        await asyncio.wait_for(watch(ctx, rebuild, stop_event=stop), timeout=10)

    asyncio.run(scenario())
    assert calls == [1]
