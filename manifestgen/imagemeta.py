"""
Image metadata collaborator: dimensions plus a tiny blurred preview.

Pillow does the work in a worker thread. Any failure (unsupported format,
corrupt file, Pillow missing a codec) degrades to ``None`` so the item is
still emitted without metadata.
"""
from __future__ import annotations

import asyncio
import base64
import io
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from .utils import log

BLUR_QUALITY = 40


class ImageMeta(BaseModel):
    w: int
    h: int
    blurDataURL: Optional[str] = None


MetaReader = Callable[[Path], Awaitable[Optional[ImageMeta]]]


def _blur_data_url(img: Image.Image, width: int) -> str:
    im = img.copy()
    im.thumbnail((width, width * 8))
    if im.mode not in ("RGB", "L"):
        im = im.convert("RGBA")
        bg = Image.new("RGB", im.size, (255, 255, 255))
        bg.paste(im, mask=im.getchannel("A"))
        im = bg
    buf = io.BytesIO()
    im.save(buf, format="JPEG", quality=BLUR_QUALITY, optimize=True)
    return "data:image/jpeg;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def read_image_meta_sync(path: Path, *, blur_width: int = 24) -> Optional[ImageMeta]:
    if path.suffix.lower() == ".svg":
        return None
    try:
        with Image.open(path) as img:
            w, h = img.size
            if not w or not h:
                return None
            img.load()
            return ImageMeta(w=w, h=h, blurDataURL=_blur_data_url(img, blur_width))
    except (OSError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as e:
        log("meta", "no metadata for %s: %s", path, e, level=logging.DEBUG)
        return None


def make_meta_reader(*, enabled: bool = True, blur_width: int = 24) -> MetaReader:
    async def read(path: Path) -> Optional[ImageMeta]:
        if not enabled:
            return None
        return await asyncio.to_thread(read_image_meta_sync, path, blur_width=blur_width)

    return read
