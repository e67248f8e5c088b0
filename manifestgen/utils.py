"""Small helpers shared by the Stills and Motion builders."""
from __future__ import annotations

import logging
import os
import re
import unicodedata
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import quote

logger = logging.getLogger("manifestgen")

IMG_EXT = {".jpg", ".jpeg", ".png", ".webp", ".avif", ".gif", ".svg"}
COVER_SUFFIX = ".cover"

# Characters encodeURI leaves untouched besides the unreserved set
_URI_SAFE = "/;,?:@&=+$!*'()#~"


# ------------------------------------------------------------
# Logging categories (coarse grained, opt-in / opt-out)
#   LOG_ALL=0 disables every category unless explicitly enabled.
#   Per-category overrides: LOG_GEN, LOG_SCAN, LOG_META, LOG_WATCH,
#   LOG_REGISTRY, LOG_SERVER. Values: 1 enable, 0 disable.
# ------------------------------------------------------------
def log_enabled(cat: str) -> bool:
    base = os.environ.get("LOG_ALL", "1")
    base_on = str(base).lower() not in ("0", "false", "no")
    specific = os.environ.get(f"LOG_{cat.upper()}")
    if specific is not None:
        return str(specific).lower() in ("1", "true", "yes")
    return base_on


def log(cat: str, msg: str, *args, level: int = logging.INFO, exc_info: bool = False) -> None:
    """Emit an application log line for a given category."""
    if not log_enabled(cat):
        return
    logger.log(level, f"[{cat}] {msg}", *args, exc_info=exc_info)


def env_on(name: str, default: bool = False) -> bool:
    v = os.environ.get(name)
    if v is None:
        return default
    return str(v).lower() in ("1", "true", "yes")


def env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def is_cover_filename(name: str) -> bool:
    return name.lower().endswith(COVER_SUFFIX)


def strip_cover(name: str) -> str:
    if is_cover_filename(name):
        return name[: -len(COVER_SUFFIX)]
    return name


def strip_leading_dot(name: str) -> str:
    return name[1:] if name.startswith(".") else name


def is_image_name(name: str) -> bool:
    return Path(name).suffix.lower() in IMG_EXT


def humanize(name: str) -> str:
    """``"street_photos-2024"`` -> ``"Street Photos 2024"``."""
    s = re.sub(r"[-_]+", " ", name)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), s)


def _fold(s: str) -> str:
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.casefold()


def natural_key(name: str) -> tuple:
    """Sort key: case/accent-insensitive, digit runs compared as numbers.

    re.split with a capture group always alternates text/digits starting with
    text, so positions line up between any two keys.
    """
    parts = re.split(r"(\d+)", name)
    folded = [int(p) if i % 2 else _fold(p) for i, p in enumerate(parts)]
    return (folded, name)


def natural_sorted(names: Iterable[str]) -> list[str]:
    return sorted(names, key=natural_key)


def url_from_abs(public_root: Path, abs_path: Path) -> str:
    rel = Path(abs_path).relative_to(public_root).as_posix()
    return quote("/" + rel, safe=_URI_SAFE)


def resolve_case_insensitive(names: Iterable[str], requested: str) -> Optional[str]:
    """Map a requested basename onto the on-disk spelling, exact match first."""
    base = requested.replace("\\", "/").rsplit("/", 1)[-1]
    names = list(names)
    if base in names:
        return base
    lower = base.lower()
    for n in names:
        if n.lower() == lower:
            return n
    return None
