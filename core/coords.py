from __future__ import annotations

import math
from typing import Tuple

from core.state import ExportSize


def view_to_local(
    px: float,
    py: float,
    zoom: float,
    offset: Tuple[float, float],
) -> Tuple[float, float]:
    """
    Convert a pointer position in view px to image-local px.
    Zoom is a pure rendering scale, so it is divided out before the
    image placement is subtracted.
    """
    if zoom <= 0:
        raise ValueError("zoom must be positive")
    off_x, off_y = offset
    return (px / zoom - off_x, py / zoom - off_y)


def local_to_view(
    lx: float,
    ly: float,
    zoom: float,
    offset: Tuple[float, float],
) -> Tuple[float, float]:
    off_x, off_y = offset
    return ((lx + off_x) * zoom, (ly + off_y) * zoom)


def in_canvas(px: float, py: float, export_size: ExportSize) -> bool:
    # Checked in view space, before zoom is divided out.
    return 0 <= px <= export_size.width and 0 <= py <= export_size.height


def in_image(lx: float, ly: float, image_size: Tuple[int, int]) -> bool:
    w, h = image_size
    return 0 <= lx < w and 0 <= ly < h


def line_index(value: float) -> int:
    # Round half up, so -0.5 -> 0 and 2.5 -> 3.
    return int(math.floor(value + 0.5))


def clamp_line(index: int, length: int) -> int:
    return max(0, min(int(index), int(length) - 1))


def pan_offsets(
    start_offset: Tuple[float, float],
    start_pointer: Tuple[float, float],
    pointer: Tuple[float, float],
    zoom: float,
) -> Tuple[float, float]:
    if zoom <= 0:
        raise ValueError("zoom must be positive")
    dx = pointer[0] - start_pointer[0]
    dy = pointer[1] - start_pointer[1]
    return (start_offset[0] + dx / zoom, start_offset[1] + dy / zoom)
