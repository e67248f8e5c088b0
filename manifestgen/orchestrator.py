"""One full, non-incremental regeneration of both trees."""
from __future__ import annotations

import asyncio
import time
from typing import Optional

from pydantic import BaseModel

from .config import BuildContext
from .imagemeta import MetaReader, make_meta_reader
from .motion import build_motion, load_registry
from .scan import scan_tree
from .stills import build_stills
from .writer import FlushReport, WritePlan, ensure_dir, flush
from .utils import log


class RunReport(BaseModel):
    stills_folders: int
    motion_projects: int
    leaf_videos: int
    registry_entries: int
    flush: FlushReport
    seconds: float


async def build_plan(ctx: BuildContext, meta_reader: MetaReader) -> tuple[WritePlan, dict]:
    """Snapshot both roots and derive every manifest into a single plan."""
    exclude = (ctx.covers_out,)
    registry = await asyncio.to_thread(load_registry, ctx.registry)
    stills_root, motion_root = await asyncio.gather(
        scan_tree(ctx.stills_root, exclude=exclude),
        scan_tree(ctx.motion_root, exclude=exclude),
    )
    plan = WritePlan()
    portfolio = await build_stills(stills_root, ctx, plan, meta_reader)
    motion = build_motion(motion_root, ctx, registry, plan)
    stats = {
        "stills_folders": len(portfolio.folders),
        "motion_projects": len(motion.projects),
        "leaf_videos": len(motion.leafVideos),
        "registry_entries": len(registry),
    }
    return plan, stats


async def run(ctx: BuildContext, meta_reader: Optional[MetaReader] = None) -> RunReport:
    started = time.monotonic()
    if meta_reader is None:
        meta_reader = make_meta_reader(enabled=ctx.image_meta, blur_width=ctx.blur_width)
    for d in (ctx.public_root, ctx.covers_out, ctx.stills_root, ctx.motion_root):
        ensure_dir(d)
    plan, stats = await build_plan(ctx, meta_reader)
    report = await flush(plan)
    elapsed = round(time.monotonic() - started, 3)
    log(
        "gen",
        "manifests updated (%d written, %d unchanged, %d covers copied) in %.2fs",
        report.written, report.unchanged, report.copied, elapsed,
    )
    return RunReport(flush=report, seconds=elapsed, **stats)


def run_once(ctx: BuildContext, meta_reader: Optional[MetaReader] = None) -> RunReport:
    return asyncio.run(run(ctx, meta_reader))
