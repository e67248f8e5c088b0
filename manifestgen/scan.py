"""Phase one: read a root directory into an in-memory tree.

Builders never touch the filesystem for directory structure or the
``.order`` / ``.cover`` inputs; they work from ``DirNode`` values, which tests
can construct directly.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .utils import is_hidden, log

ORDER_FILE = ".order"
COVER_REF_FILE = ".cover"


class DirNode(BaseModel):
    path: Path
    files: List[str] = Field(default_factory=list)
    dirs: List["DirNode"] = Field(default_factory=list)
    order_lines: List[str] = Field(default_factory=list)
    cover_lines: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def visible_files(self) -> List[str]:
        return [f for f in self.files if not is_hidden(f)]


def read_lines(path: Path) -> List[str]:
    """Trimmed, non-empty lines of a text file; a missing file reads as empty."""
    try:
        txt = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []
    return [s.strip() for s in txt.splitlines() if s.strip()]


def _list_dir(path: Path) -> tuple[list[str], list[str]]:
    files: list[str] = []
    dirs: list[str] = []
    with os.scandir(path) as it:
        for entry in it:
            try:
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(entry.name)
                elif entry.is_file():
                    files.append(entry.name)
            except OSError:
                continue
    # scandir order is filesystem-dependent; sort so "first match" is stable
    return sorted(files), sorted(dirs)


def _read_node(path: Path) -> tuple[DirNode, list[str]]:
    files, dirs = _list_dir(path)
    node = DirNode(
        path=path,
        files=files,
        order_lines=read_lines(path / ORDER_FILE) if ORDER_FILE in files else [],
        cover_lines=read_lines(path / COVER_REF_FILE) if COVER_REF_FILE in files else [],
    )
    return node, dirs


async def scan_tree(path: Path, *, exclude: tuple[Path, ...] = ()) -> DirNode:
    """Snapshot ``path`` and every non-hidden subdirectory below it.

    An unreadable root raises ``OSError``. Below the root, a folder that
    cannot be listed is logged and recorded as empty so siblings still build.
    """
    node, dirs = await asyncio.to_thread(_read_node, path)
    children = [path / d for d in dirs if not is_hidden(d) and (path / d) not in exclude]
    node.dirs = list(await asyncio.gather(*(_scan_child(c, exclude) for c in children)))
    return node


async def _scan_child(path: Path, exclude: tuple[Path, ...]) -> DirNode:
    try:
        return await scan_tree(path, exclude=exclude)
    except OSError as e:
        log("scan", "unreadable folder %s: %s", path, e, level=logging.WARNING)
        return DirNode(path=path, error=str(e))
