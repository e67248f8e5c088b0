"""
Output writer.

Builders append to a ``WritePlan`` instead of writing as they go; the
orchestrator flushes the whole plan once the in-memory manifest tree is
complete. Operations run in the order they were planned, which places every
child manifest before its parent.
"""
from __future__ import annotations

import asyncio
import filecmp
import json
import shutil
from pathlib import Path
from typing import Any, Iterable, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from .errors import OutputError
from .utils import strip_leading_dot


class WriteOp(BaseModel):
    kind: Literal["json", "text", "copy"]
    path: Path
    data: Optional[str] = None
    source: Optional[Path] = None


class FlushReport(BaseModel):
    written: int = 0
    unchanged: int = 0
    copied: int = 0
    paths: List[str] = Field(default_factory=list)


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def helper_text(header: Sequence[str], names: Iterable[str]) -> str:
    """Body of a convenience listing: optional header, blank line, one name per line."""
    names = [strip_leading_dot(n) for n in names]
    out = ""
    if header:
        out += "\n".join(header) + "\n\n"
    if names:
        out += "\n".join(names) + "\n"
    return out


class WritePlan:
    def __init__(self) -> None:
        self.ops: List[WriteOp] = []

    def __len__(self) -> int:
        return len(self.ops)

    def json(self, path: Path, data: Any) -> None:
        self.ops.append(WriteOp(kind="json", path=path, data=dump_json(data)))

    def text(self, path: Path, header: Sequence[str], names: Iterable[str]) -> None:
        self.ops.append(WriteOp(kind="text", path=path, data=helper_text(header, names)))

    def copy(self, source: Path, dest: Path) -> None:
        for op in self.ops:
            if op.kind == "copy" and op.path == dest:
                return
        self.ops.append(WriteOp(kind="copy", path=dest, source=source))

    def targets(self) -> List[Path]:
        return [op.path for op in self.ops]


def _write_if_changed(path: Path, data: str) -> bool:
    """
    Replace ``path`` with ``data`` via a temp file. Returns False when the
    file already holds exactly these bytes.
    """
    encoded = data.encode("utf-8")
    try:
        if path.is_file() and path.read_bytes() == encoded:
            return False
    except OSError:
        pass
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_bytes(encoded)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink()
    return True


def _apply(op: WriteOp) -> str:
    if op.kind == "copy":
        assert op.source is not None
        if op.path.is_file() and filecmp.cmp(op.source, op.path, shallow=False):
            return "unchanged"
        op.path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(op.source, op.path)
        return "copied"
    assert op.data is not None
    return "written" if _write_if_changed(op.path, op.data) else "unchanged"


def flush_sync(plan: WritePlan) -> FlushReport:
    report = FlushReport()
    for op in plan.ops:
        try:
            outcome = _apply(op)
        except OSError as e:
            raise OutputError(f"failed to write {op.path}: {e}") from e
        setattr(report, outcome, getattr(report, outcome) + 1)
        if outcome != "unchanged":
            report.paths.append(str(op.path))
    return report


async def flush(plan: WritePlan) -> FlushReport:
    return await asyncio.to_thread(flush_sync, plan)


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"cannot create {path}: {e}") from e
