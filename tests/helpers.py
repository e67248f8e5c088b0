import json
from pathlib import Path
from typing import Optional

from PIL import Image

_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".gif": "GIF", ".webp": "WEBP"}


def make_image(path: Path, size=(40, 30), color=(200, 80, 40), fmt: Optional[str] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = fmt or _FORMATS.get(path.suffix.lower(), "JPEG")
    Image.new("RGB", size, color).save(path, format=fmt)
    return path


def write_order(folder: Path, *lines: str) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    p = folder / ".order"
    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return p


def write_registry(path: Path, records) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")
    return path


def read_manifest(folder: Path) -> dict:
    return json.loads((folder / "manifest.json").read_text(encoding="utf-8"))


def video(key: str, display: Optional[str] = None, poster: Optional[str] = None) -> dict:
    rec = {"key": key, "url": f"https://player.example.com/{key}"}
    if display is not None:
        rec["displayName"] = display
    if poster is not None:
        rec["poster"] = poster
    return rec


async def no_meta(path: Path):
    return None
