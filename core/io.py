from __future__ import annotations

import io
import logging
import mimetypes
import re
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.compositor import pil_to_np_rgba
from core.errors import DecodeFailure, InvalidFileType
from core.state import ExportSize

logger = logging.getLogger(__name__)

_EXT_RE = re.compile(r"\.[^.]+$")

# Not every platform mime.types table knows these
for _mime, _ext in (("image/webp", ".webp"), ("image/tiff", ".tif"), ("image/tiff", ".tiff")):
    mimetypes.add_type(_mime, _ext)


def guess_mime_type(name: str) -> Optional[str]:
    mime, _ = mimetypes.guess_type(name)
    return mime


def check_image_mime(mime_type: Optional[str]) -> None:
    if not mime_type or not mime_type.startswith("image"):
        raise InvalidFileType(mime_type)


def decode_image(data: bytes) -> np.ndarray:
    try:
        with Image.open(io.BytesIO(data)) as img:
            # Convert to RGBA for consistent alpha work
            return pil_to_np_rgba(img)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeFailure(str(e)) from e


def load_image_rgba(path: str, mime_type: Optional[str] = None) -> np.ndarray:
    p = Path(path)
    check_image_mime(mime_type or guess_mime_type(p.name))
    try:
        data = p.read_bytes()
    except OSError as e:
        raise DecodeFailure(str(e)) from e
    return decode_image(data)


def save_image(path: str, img_rgba: Image.Image) -> None:
    # Saving as PNG preserves alpha
    img_rgba.save(path, format="PNG")


def strip_extension(name: str) -> str:
    return _EXT_RE.sub("", name)


def export_filename(original: Optional[str], size: ExportSize, fallback: str = "pixelstretch_image") -> str:
    base = strip_extension(Path(original).name) if original else ""
    if not base:
        base = fallback
    return f"{base}_{size.width}x{size.height}.png"


def truncate_name(name: str, max_len: int = 25) -> str:
    if len(name) <= max_len:
        return name
    m = _EXT_RE.search(name)
    ext = m.group(0) if m else ""
    base = name[: len(name) - len(ext)]
    return base[:10] + "…" + base[-6:] + ext
