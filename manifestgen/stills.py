"""
Stills (portfolio) manifests.

A folder with at least one visible subfolder is a folder-index; otherwise it
is a leaf gallery of its images. Children build concurrently, and every
child's writes are planned before its parent's.
"""
from __future__ import annotations

import asyncio
from typing import List

from .config import BuildContext
from .covers import explicit_stills_cover, fallback_from_children, fallback_from_items
from .directives import OrderFile, read_order, resolve_order
from .imagemeta import MetaReader
from .models import (
    MANIFEST_NAME,
    Counts,
    FolderCard,
    FolderIndexManifest,
    FolderManifest,
    ImageItem,
    LeafGalleryManifest,
    PortfolioRootManifest,
    manifest_dict,
)
from .scan import DirNode
from .utils import humanize, is_cover_filename, is_image_name, url_from_abs
from .writer import WritePlan

FOLDERS_FILE = ".folders"
IMAGES_FILE = ".images"

IMAGES_HEADER = [
    "max_columns = 3   # overrides the maximum columns for this gallery (1-8)",
    "aspect_ratio = 0  # 0 = respect each image's original aspect; or use 4/5, 1/1, 3/2, etc",
    "title_display = 0 # 0 = hide titles, 1 = show titles",
    "",
    "------------ Overrides above --------------",
]


def visible_subdirs(node: DirNode, order_file: OrderFile, ctx: BuildContext) -> List[DirNode]:
    return [
        d for d in node.dirs
        if not order_file.is_hidden(d.name) and d.path != ctx.covers_out
    ]


def counts_for(m: FolderManifest) -> Counts:
    if isinstance(m, FolderIndexManifest):
        return Counts(images=0, folders=len(m.children))
    return Counts(images=len(m.items), folders=0)


def folder_card(ctx: BuildContext, node: DirNode, m: FolderManifest) -> FolderCard:
    return FolderCard(
        name=node.name,
        displayName=humanize(node.name),
        path=url_from_abs(ctx.public_root, node.path),
        cover=m.cover,
        coverMeta=m.coverMeta if m.cover else None,
        counts=counts_for(m),
    )


async def _build_cards(
    nodes: List[DirNode], ctx: BuildContext, plan: WritePlan, meta_reader: MetaReader
) -> List[FolderCard]:
    # each child gets its own plan so concurrent builds cannot interleave ops
    subplans = [WritePlan() for _ in nodes]
    manifests = await asyncio.gather(
        *(build_stills_folder(n, ctx, p, meta_reader) for n, p in zip(nodes, subplans))
    )
    cards = []
    for node, sub, m in zip(nodes, subplans, manifests):
        plan.ops.extend(sub.ops)
        if node.error is None:
            plan.json(node.path / MANIFEST_NAME, manifest_dict(m))
        cards.append(folder_card(ctx, node, m))
    return cards


def _ordered_cards(cards: List[FolderCard], order_file: OrderFile) -> List[FolderCard]:
    by_name = {c.name: c for c in cards}
    return [by_name[n] for n in resolve_order(by_name, order_file)]


async def build_stills_folder(
    node: DirNode, ctx: BuildContext, plan: WritePlan, meta_reader: MetaReader
) -> FolderManifest:
    """Manifest for one folder; the folder's own ``manifest.json`` is planned by the caller."""
    if node.error is not None:
        # listed as empty to the parent; nothing is written into it
        return LeafGalleryManifest(items=[])
    order_file = read_order(node)
    d = order_file.directives
    cover, cover_meta = await explicit_stills_cover(node, ctx, plan, meta_reader)

    subdirs = visible_subdirs(node, order_file, ctx)
    if subdirs:
        cards = _ordered_cards(await _build_cards(subdirs, ctx, plan, meta_reader), order_file)
        plan.text(node.path / FOLDERS_FILE, [], [c.name for c in cards])
        if cover is None:
            cover, cover_meta = fallback_from_children(cards)
        return FolderIndexManifest(
            cover=cover,
            coverMeta=cover_meta if cover else None,
            children=cards,
            maxColumns=d.maxColumns,
            aspectRatio=d.aspectRatio,
            titleDisplay=d.titleDisplay,
        )

    images = [
        f for f in node.visible_files
        if is_image_name(f) and not is_cover_filename(f)
    ]
    final = resolve_order(images, order_file)
    metas = await asyncio.gather(*(meta_reader(node.path / name) for name in final))
    items = []
    for name, meta in zip(final, metas):
        item = ImageItem(src=url_from_abs(ctx.public_root, node.path / name))
        if meta is not None:
            item.w, item.h, item.blurDataURL = meta.w or None, meta.h or None, meta.blurDataURL
        items.append(item)
    plan.text(node.path / IMAGES_FILE, IMAGES_HEADER, final)
    if cover is None:
        cover, cover_meta = fallback_from_items(items)
    return LeafGalleryManifest(
        cover=cover,
        coverMeta=cover_meta if cover else None,
        items=items,
        maxColumns=d.maxColumns,
        aspectRatio=d.aspectRatio,
        titleDisplay=d.titleDisplay,
    )


async def build_stills(
    root: DirNode, ctx: BuildContext, plan: WritePlan, meta_reader: MetaReader
) -> PortfolioRootManifest:
    """Build every first-level folder, then the ``portfolio-root`` index."""
    order_file = read_order(root)
    folders = _ordered_cards(
        await _build_cards(visible_subdirs(root, order_file, ctx), ctx, plan, meta_reader),
        order_file,
    )
    plan.text(root.path / FOLDERS_FILE, [], [c.name for c in folders])
    m = PortfolioRootManifest(folders=folders)
    plan.json(root.path / MANIFEST_NAME, manifest_dict(m))
    return m
