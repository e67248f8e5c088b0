"""
Per-folder ``.order`` files: directives, hide-by-dot markers and ordering.

A ``.order`` file looks like::

    max_columns = 3       # leading directive block
    aspect_ratio = 4/5
    ---------- Overrides above ----------
    sunrise.jpg           # explicit position
    .outtake.jpg          # hidden
    Night/                # folders may carry a trailing slash

Directives are honored only in the leading block; once a separator or any
other line is seen, later directive lines are dropped from the order but not
applied.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from .scan import DirNode
from .utils import is_hidden, natural_key, natural_sorted, resolve_case_insensitive

MAX_COLUMNS_MIN = 1
MAX_COLUMNS_MAX = 8
NATIVE_ASPECT = "native"

_MAX_COLUMNS_RE = re.compile(r"^max_columns\s*=\s*(\d+)\s*$", re.I)
_ASPECT_RE = re.compile(r"^aspect_ratio\s*=\s*(?:(0)|(\d+)\s*/\s*(\d+))\s*$", re.I)
_TITLE_RE = re.compile(r"^title_display\s*=\s*(0|1|true|false)\s*$", re.I)
_DIRECTIVE_RE = re.compile(r"^(max_columns|aspect_ratio|title_display)\s*=", re.I)
_SEPARATOR_RE = re.compile(r"^[-=]{3,}")
_OVERRIDE_ABOVE_RE = re.compile(r"override above", re.I)
_COMMENT_RE = re.compile(r"(^|\s+)#.*$")


class Directives(BaseModel):
    maxColumns: Optional[int] = None
    aspectRatio: Optional[str] = None
    titleDisplay: Optional[int] = None

    def merged(self, other: "Directives") -> "Directives":
        """Fields set on ``other`` win."""
        return Directives(
            maxColumns=other.maxColumns if other.maxColumns is not None else self.maxColumns,
            aspectRatio=other.aspectRatio if other.aspectRatio is not None else self.aspectRatio,
            titleDisplay=other.titleDisplay if other.titleDisplay is not None else self.titleDisplay,
        )


class OrderFile(BaseModel):
    order: List[str] = Field(default_factory=list)
    directives: Directives = Field(default_factory=Directives)
    hidden: Set[str] = Field(default_factory=set)

    def is_hidden(self, name: str) -> bool:
        return is_hidden(name) or _basename(name).lower() in self.hidden


def parse_directive(line: str) -> Directives:
    """Parse one directive line. Unrecognized input yields an empty set."""
    out = Directives()
    s = (line or "").strip()
    if not s:
        return out
    m = _MAX_COLUMNS_RE.match(s)
    if m:
        out.maxColumns = min(MAX_COLUMNS_MAX, max(MAX_COLUMNS_MIN, int(m.group(1))))
        return out
    m = _ASPECT_RE.match(s)
    if m:
        if m.group(1) is not None:
            out.aspectRatio = NATIVE_ASPECT
        else:
            w, h = int(m.group(2)), int(m.group(3))
            if w > 0 and h > 0:
                out.aspectRatio = f"{w}/{h}"
        return out
    m = _TITLE_RE.match(s)
    if m:
        out.titleDisplay = 1 if m.group(1).lower() in ("1", "true") else 0
    return out


def is_separator(line: str) -> bool:
    return bool(_SEPARATOR_RE.match(line) or _OVERRIDE_ABOVE_RE.search(line))


def is_directive(line: str) -> bool:
    return bool(_DIRECTIVE_RE.match(line))


def normalize_line(line: str) -> str:
    s = _COMMENT_RE.sub("", line)
    s = s.rstrip().rstrip("/")
    return s.strip()


def _basename(s: str) -> str:
    return s.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def parse_order(lines: Iterable[str]) -> OrderFile:
    norm = [n for n in (normalize_line(l) for l in lines) if n]

    directives = Directives()
    idx = 0
    while idx < len(norm):
        line = norm[idx]
        if is_separator(line):
            idx += 1
            break
        if not is_directive(line):
            break
        directives = directives.merged(parse_directive(line))
        idx += 1

    hidden = {_basename(l[1:]).lower() for l in norm if l.startswith(".")}
    hidden.discard("")

    order = [
        l for l in norm[idx:]
        if not l.startswith(".") and not is_separator(l) and not is_directive(l)
    ]
    return OrderFile(order=order, directives=directives, hidden=hidden)


def read_order(node: DirNode) -> OrderFile:
    return parse_order(node.order_lines)


def resolve_order(candidates: Iterable[str], order_file: OrderFile) -> List[str]:
    """Visible candidates: explicitly ordered ones first, the rest naturally sorted."""
    visible = [c for c in candidates if not order_file.is_hidden(c)]
    ranked: List[str] = []
    seen: Set[str] = set()
    for key in order_file.order:
        name = resolve_case_insensitive(visible, key)
        if name is None or name in seen:
            continue
        ranked.append(name)
        seen.add(name)
    tail = natural_sorted(c for c in visible if c not in seen)
    return ranked + tail


def rank_by_keys(items: list, order: List[str], key, fallback) -> list:
    """Order arbitrary records by case-insensitive ``order`` keys.

    ``key(item)`` is matched against the order list; unlisted items follow,
    sorted with ``fallback(item)`` as a natural-sort key.
    """
    index: dict[str, int] = {}
    for i, k in enumerate(order):
        index.setdefault(k.lower(), i)
    ranked = sorted(
        (it for it in items if key(it).lower() in index),
        key=lambda it: index[key(it).lower()],
    )
    rest = sorted(
        (it for it in items if key(it).lower() not in index),
        key=lambda it: natural_key(fallback(it)),
    )
    return ranked + rest
