"""
Motion manifests: named projects that claim entries of the video registry.

Registry entries that no project claims become the root's ``leafVideos``.
The claimed set is the union over every project's resolved clips, computed
after all projects resolve, so project order never changes the partition.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, ValidationError

from .config import BuildContext
from .covers import motion_cover_poster
from .directives import OrderFile, rank_by_keys, read_order
from .errors import RegistryError
from .models import (
    MANIFEST_NAME,
    MotionProjectManifest,
    MotionRootManifest,
    ProjectCard,
    VideoItem,
    manifest_dict,
)
from .scan import DirNode
from .stills import FOLDERS_FILE
from .utils import humanize, log, natural_key, url_from_abs
from .writer import WritePlan

VIDEOS_FILE = ".videos"


class VideoEntry(BaseModel):
    key: str
    url: str
    displayName: Optional[str] = None
    poster: Optional[str] = None

    def item(self) -> VideoItem:
        return VideoItem(
            key=self.key,
            displayName=self.displayName or self.key,
            url=self.url,
            poster=self.poster or None,
        )


class Registry:
    """Registry entries, deduplicated case-insensitively by key (first wins)."""

    def __init__(self, entries: List[VideoEntry]):
        self.entries: List[VideoEntry] = []
        self._by_key: Dict[str, VideoEntry] = {}
        for e in entries:
            k = e.key.lower()
            if k in self._by_key:
                log("registry", "duplicate key %r ignored", e.key, level=logging.WARNING)
                continue
            self._by_key[k] = e
            self.entries.append(e)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Optional[VideoEntry]:
        return self._by_key.get(str(key).lower())


def parse_registry(data) -> Registry:
    # {"key": {...}} maps are accepted too; the map key fills a missing "key"
    if isinstance(data, dict):
        data = [
            {"key": k, **v} if isinstance(v, dict) and "key" not in v else v
            for k, v in data.items()
        ]
    if not isinstance(data, list):
        raise RegistryError("registry must be a JSON list of video records")
    entries = []
    for i, rec in enumerate(data):
        try:
            entries.append(VideoEntry.model_validate(rec))
        except ValidationError as e:
            log("registry", "skipping record %d: %s", i, e.errors()[0].get("msg"), level=logging.WARNING)
            continue
        if not entries[-1].key.strip():
            entries.pop()
    return Registry(entries)


def load_registry(path: Path) -> Registry:
    """A missing or unreadable registry is an empty one; a malformed one is fatal."""
    try:
        txt = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        log("registry", "no registry at %s", path)
        return Registry([])
    except OSError as e:
        log("registry", "cannot read registry %s: %s", path, e, level=logging.WARNING)
        return Registry([])
    except UnicodeDecodeError as e:
        raise RegistryError(f"malformed registry {path}: {e}") from e
    try:
        data = json.loads(txt)
    except json.JSONDecodeError as e:
        raise RegistryError(f"malformed registry {path}: {e}") from e
    return parse_registry(data)


class ProjectResult(BaseModel):
    card: ProjectCard
    manifest: MotionProjectManifest
    keys: List[str]


def resolve_clips(order_file: OrderFile, registry: Registry) -> List[VideoEntry]:
    clips: List[VideoEntry] = []
    seen: Set[str] = set()
    for key in order_file.order:
        if key.lower() in order_file.hidden:
            continue
        entry = registry.get(key)
        if entry is None or entry.key.lower() in seen:
            continue
        seen.add(entry.key.lower())
        clips.append(entry)
    return clips


def build_project(node: DirNode, ctx: BuildContext, registry: Registry, plan: WritePlan) -> ProjectResult:
    order_file = read_order(node)
    d = order_file.directives
    clips = resolve_clips(order_file, registry)
    items = [c.item() for c in clips]
    manifest = MotionProjectManifest(
        name=node.name,
        displayName=humanize(node.name),
        items=items,
        maxColumns=d.maxColumns,
        aspectRatio=d.aspectRatio,
        titleDisplay=d.titleDisplay,
    )
    if node.error is None:
        plan.text(node.path / VIDEOS_FILE, [], [c.key for c in clips])
        plan.json(node.path / MANIFEST_NAME, manifest_dict(manifest))
    card = ProjectCard(
        name=node.name,
        displayName=humanize(node.name),
        path=url_from_abs(ctx.public_root, node.path),
        coverPoster=motion_cover_poster(node, items[0].poster if items else None),
        count={"videos": len(items)},
    )
    return ProjectResult(card=card, manifest=manifest, keys=[c.key for c in clips])


def build_motion(root: DirNode, ctx: BuildContext, registry: Registry, plan: WritePlan) -> MotionRootManifest:
    root_order = read_order(root)
    projects = [
        n for n in root.dirs
        if not root_order.is_hidden(n.name) and n.path != ctx.covers_out
    ]
    results = [build_project(n, ctx, registry, plan) for n in projects]

    claimed = {k.lower() for r in results for k in r.keys}
    unclaimed = [
        e for e in registry.entries
        if e.key.lower() not in claimed and e.key.lower() not in root_order.hidden
    ]
    # key order first so equal display names still land deterministically
    unclaimed.sort(key=lambda e: natural_key(e.key))

    cards = rank_by_keys([r.card for r in results], root_order.order, lambda c: c.name, lambda c: c.name)
    leaf = rank_by_keys(unclaimed, root_order.order, lambda e: e.key, lambda e: e.displayName or e.key)

    plan.text(root.path / FOLDERS_FILE, [], [c.name for c in cards])
    plan.text(root.path / VIDEOS_FILE, [], [e.key for e in leaf])
    m = MotionRootManifest(projects=cards, leafVideos=[e.item() for e in leaf])
    plan.json(root.path / MANIFEST_NAME, manifest_dict(m))
    return m
