"""
Cover resolution for Stills folders and Motion projects.

Stills priority:
  1. ``<image>.cover`` marker file  -> copied to the covers dir under a
     path-hashed name
  2. ``.cover`` reference file      -> first line names an image in the folder
  3. first child folder with a cover (folder-index) / first image (leaf)
"""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote

from .config import BuildContext
from .imagemeta import ImageMeta, MetaReader
from .models import FolderCard, ImageItem
from .scan import DirNode
from .utils import is_cover_filename, is_image_name, resolve_case_insensitive, strip_cover, url_from_abs
from .writer import WritePlan

Cover = Tuple[Optional[str], Optional[ImageMeta]]


def cover_marker_files(node: DirNode) -> List[str]:
    return [
        f for f in node.visible_files
        if is_cover_filename(f) and is_image_name(strip_cover(f))
    ]


def copied_cover_name(ctx: BuildContext, source: Path) -> str:
    """``<md5(public-relative path)[:8]>-<basename without .cover>``."""
    try:
        ident = source.relative_to(ctx.public_root).as_posix()
    except ValueError:
        ident = source.as_posix()
    digest = hashlib.md5(ident.encode("utf-8")).hexdigest()[:8]
    return f"{digest}-{strip_cover(source.name)}"


async def explicit_stills_cover(
    node: DirNode, ctx: BuildContext, plan: WritePlan, meta_reader: MetaReader
) -> Cover:
    markers = cover_marker_files(node)
    if markers:
        source = node.path / markers[0]
        name = copied_cover_name(ctx, source)
        plan.copy(source, ctx.covers_out / name)
        meta = await meta_reader(source)
        if meta is None:
            sibling = resolve_case_insensitive(node.files, strip_cover(markers[0]))
            if sibling:
                meta = await meta_reader(node.path / sibling)
        return ctx.covers_url(quote(name)), meta

    if node.cover_lines:
        found = resolve_case_insensitive(node.visible_files, node.cover_lines[0])
        if found:
            abs_path = node.path / found
            return url_from_abs(ctx.public_root, abs_path), await meta_reader(abs_path)

    return None, None


def fallback_from_children(children: Iterable[FolderCard]) -> Cover:
    for card in children:
        if card.cover:
            return card.cover, card.coverMeta
    return None, None


def fallback_from_items(items: List[ImageItem]) -> Cover:
    if not items:
        return None, None
    first = items[0]
    meta = None
    if first.w and first.h:
        meta = ImageMeta(w=first.w, h=first.h, blurDataURL=first.blurDataURL)
    return first.src, meta


def motion_cover_poster(node: DirNode, first_clip_poster: Optional[str]) -> Optional[str]:
    if node.cover_lines:
        return node.cover_lines[0]
    return first_clip_poster or None
