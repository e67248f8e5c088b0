"""Canonical manifest schema (version 1).

One model per ``kind``. Optional display overrides and metadata fields are
omitted from the JSON when unset; ``cover``/``poster`` style fields are
always present and may be ``null``.
"""
from __future__ import annotations

from typing import Any, ClassVar, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, model_serializer

from .imagemeta import ImageMeta

MANIFEST_VERSION = 1
MANIFEST_NAME = "manifest.json"

_OVERRIDES = frozenset({"maxColumns", "aspectRatio", "titleDisplay"})


class _Schema(BaseModel):
    omit_when_none: ClassVar[FrozenSet[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _drop_unset(self, handler) -> dict[str, Any]:
        data = handler(self)
        for key in self.omit_when_none:
            if data.get(key) is None:
                data.pop(key, None)
        return data


class Counts(_Schema):
    images: int = 0
    folders: int = 0


class FolderCard(_Schema):
    omit_when_none: ClassVar[FrozenSet[str]] = frozenset({"coverMeta"})

    name: str
    displayName: str
    path: str
    cover: Optional[str] = None
    coverMeta: Optional[ImageMeta] = None
    counts: Counts


class ImageItem(_Schema):
    omit_when_none: ClassVar[FrozenSet[str]] = frozenset({"w", "h", "blurDataURL"})

    src: str
    w: Optional[int] = None
    h: Optional[int] = None
    blurDataURL: Optional[str] = None


class VideoItem(_Schema):
    key: str
    displayName: str
    url: str
    poster: Optional[str] = None


class ProjectCard(_Schema):
    name: str
    displayName: str
    path: str
    coverPoster: Optional[str] = None
    count: dict[str, int]


class FolderIndexManifest(_Schema):
    omit_when_none: ClassVar[FrozenSet[str]] = _OVERRIDES

    kind: Literal["folder-index"] = "folder-index"
    version: int = MANIFEST_VERSION
    cover: Optional[str] = None
    coverMeta: Optional[ImageMeta] = None
    children: List[FolderCard]
    maxColumns: Optional[int] = None
    aspectRatio: Optional[str] = None
    titleDisplay: Optional[int] = None


class LeafGalleryManifest(_Schema):
    omit_when_none: ClassVar[FrozenSet[str]] = _OVERRIDES

    kind: Literal["leaf-gallery"] = "leaf-gallery"
    version: int = MANIFEST_VERSION
    cover: Optional[str] = None
    coverMeta: Optional[ImageMeta] = None
    items: List[ImageItem]
    maxColumns: Optional[int] = None
    aspectRatio: Optional[str] = None
    titleDisplay: Optional[int] = None


class PortfolioRootManifest(_Schema):
    kind: Literal["portfolio-root"] = "portfolio-root"
    version: int = MANIFEST_VERSION
    folders: List[FolderCard]


class MotionProjectManifest(_Schema):
    omit_when_none: ClassVar[FrozenSet[str]] = _OVERRIDES

    kind: Literal["motion-project"] = "motion-project"
    version: int = MANIFEST_VERSION
    name: str
    displayName: str
    items: List[VideoItem]
    maxColumns: Optional[int] = None
    aspectRatio: Optional[str] = None
    titleDisplay: Optional[int] = None


class MotionRootManifest(_Schema):
    kind: Literal["motion-root"] = "motion-root"
    version: int = MANIFEST_VERSION
    projects: List[ProjectCard]
    leafVideos: List[VideoItem]


FolderManifest = Union[FolderIndexManifest, LeafGalleryManifest]


def manifest_dict(m: BaseModel) -> dict[str, Any]:
    return m.model_dump(mode="json")
