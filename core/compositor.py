from __future__ import annotations

import io
import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from core.coords import clamp_line
from core.errors import EmptySampleGuard
from core.state import AXIS_HORIZONTAL, ExportSize, normalize_axis

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def pil_to_np_rgba(img: Image.Image) -> np.ndarray:
    arr = np.array(img.convert("RGBA"), dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError("Expected RGBA image")
    return arr


def np_rgba_to_pil(arr: np.ndarray) -> Image.Image:
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError("Expected HxWx4 array")
    return Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8))


def new_buffer(size: Tuple[int, int], rgba: Tuple[int, int, int, int] = TRANSPARENT) -> np.ndarray:
    w, h = size
    buf = np.empty((int(h), int(w), 4), dtype=np.uint8)
    buf[...] = rgba
    return buf


def buffer_size(buf: np.ndarray) -> Tuple[int, int]:
    return (int(buf.shape[1]), int(buf.shape[0]))


def snap(v: float) -> int:
    """Real canvas position -> integer pixel (round half up)."""
    return int(math.floor(float(v) + 0.5))


def _blend_pixels(base: np.ndarray, top: np.ndarray) -> np.ndarray:
    """Source-over for (..., 4) pixel arrays."""
    base_rgb = base[..., :3].astype(np.float32) / 255.0
    top_rgb = top[..., :3].astype(np.float32) / 255.0
    base_a = base[..., 3:4].astype(np.float32) / 255.0
    top_a = top[..., 3:4].astype(np.float32) / 255.0

    out_a = top_a + base_a * (1.0 - top_a)
    premul_top = top_rgb * top_a
    premul_base = base_rgb * base_a
    out_premul = premul_top + premul_base * (1.0 - top_a)
    out_rgb = np.where(out_a > 0, out_premul / np.maximum(out_a, 1e-6), 0.0)

    out = np.empty_like(base)
    out[..., :3] = np.clip(np.rint(out_rgb * 255.0), 0, 255).astype(np.uint8)
    out[..., 3] = np.clip(np.rint(out_a[..., 0] * 255.0), 0, 255).astype(np.uint8)
    return out


def _copy_suffices(base: np.ndarray, top: np.ndarray) -> bool:
    # Opaque source or empty destination: source-over is a plain copy
    return bool(np.all(top[..., 3] == 255) or not np.any(base[..., 3]))


def _blend_over(base: np.ndarray, top: np.ndarray) -> np.ndarray:
    if _copy_suffices(base, top):
        return top.copy()
    out = base.copy()
    # Only the mixed pixels go through float math
    exact = (top[..., 3] == 255) | (base[..., 3] == 0)
    out[exact] = top[exact]
    mixed = ~exact & (top[..., 3] > 0)
    if np.any(mixed):
        out[mixed] = _blend_pixels(base[mixed], top[mixed])
    return out


def _stretch_nearest(buf: np.ndarray, width: int, height: int) -> np.ndarray:
    h, w = buf.shape[:2]
    if (w, h) == (width, height):
        return buf
    ys = (np.arange(height) * h) // height
    xs = (np.arange(width) * w) // width
    return buf[ys][:, xs]


class Surface:
    """
    RGBA drawing surface (the visible render target or an offscreen
    compositing buffer). Positions are canvas px; real values are snapped.
    """

    def __init__(self, size: Tuple[int, int], fill: Tuple[int, int, int, int] = TRANSPARENT):
        self.pixels = new_buffer(size, fill)

    @property
    def size(self) -> Tuple[int, int]:
        return buffer_size(self.pixels)

    def resize(self, size: Tuple[int, int], fill: Tuple[int, int, int, int] = TRANSPARENT) -> None:
        if tuple(size) != self.size:
            self.pixels = new_buffer(size, fill)

    def clear(self, rgba: Tuple[int, int, int, int]) -> None:
        self.pixels[...] = rgba

    def blit(
        self,
        buf: np.ndarray,
        x: float,
        y: float,
        width: Optional[int] = None,
        height: Optional[int] = None,
        mode: str = "over",
    ) -> None:
        src_h, src_w = buf.shape[:2]
        tw = src_w if width is None else int(width)
        th = src_h if height is None else int(height)
        if src_w == 0 or src_h == 0 or tw <= 0 or th <= 0:
            return

        out_w, out_h = self.size
        ix, iy = snap(x), snap(y)
        x0 = max(0, ix)
        y0 = max(0, iy)
        x1 = min(out_w, ix + tw)
        y1 = min(out_h, iy + th)
        if x1 <= x0 or y1 <= y0:
            return

        src = _stretch_nearest(buf, tw, th)
        sx0 = x0 - ix
        sy0 = y0 - iy
        region = src[sy0:sy0 + (y1 - y0), sx0:sx0 + (x1 - x0)]
        if mode == "copy":
            self.pixels[y0:y1, x0:x1] = region
        elif mode == "over":
            dest = self.pixels[y0:y1, x0:x1]
            if _copy_suffices(dest, region):
                dest[...] = region
            else:
                self.pixels[y0:y1, x0:x1] = _blend_over(dest, region)
        else:
            raise ValueError(f"Unknown blit mode: {mode!r}")

    def to_pil(self) -> Image.Image:
        return np_rgba_to_pil(self.pixels)

    def to_png_bytes(self) -> bytes:
        bio = io.BytesIO()
        self.to_pil().save(bio, format="PNG")
        return bio.getvalue()


def line_length(buf: np.ndarray, axis: str) -> int:
    h, w = buf.shape[:2]
    return int(h) if normalize_axis(axis) == AXIS_HORIZONTAL else int(w)


def sample_line(buf: np.ndarray, axis: str, source: int) -> np.ndarray:
    """
    Copy of the full row (1 x w) or column (h x 1) at `source`, clamped
    into the image.
    """
    axis = normalize_axis(axis)
    h, w = buf.shape[:2]
    if w == 0 or h == 0:
        raise EmptySampleGuard(f"cannot sample a {w}x{h} image")
    idx = clamp_line(source, line_length(buf, axis))
    if axis == AXIS_HORIZONTAL:
        strip = buf[idx:idx + 1, :, :]
    else:
        strip = buf[:, idx:idx + 1, :]
    if strip.size == 0:
        raise EmptySampleGuard("sampled strip is empty")
    return strip.copy()


def stretch_band(
    surface: Surface,
    buf: np.ndarray,
    offset: Tuple[float, float],
    axis: str,
    source: int,
    target: int,
) -> int:
    """
    Replicate the sampled line of `buf` onto every line in
    [min(source, target), max(source, target)], placed at `offset` and
    clipped to the surface. Returns the number of canvas lines written.
    """
    axis = normalize_axis(axis)
    strip = sample_line(buf, axis, source)
    lo, hi = min(source, target), max(source, target)

    ix, iy = snap(offset[0]), snap(offset[1])
    out_w, out_h = surface.size
    h, w = buf.shape[:2]
    if axis == AXIS_HORIZONTAL:
        start = max(0, iy + lo)
        end = min(out_h - 1, iy + hi)
        if end < start:
            return 0
        surface.blit(strip, ix, start, width=w, height=end - start + 1, mode="copy")
    else:
        start = max(0, ix + lo)
        end = min(out_w - 1, ix + hi)
        if end < start:
            return 0
        surface.blit(strip, start, iy, width=end - start + 1, height=h, mode="copy")
    return end - start + 1


def render_base(
    surface: Surface,
    buf: Optional[np.ndarray],
    offset: Tuple[float, float],
    background: Tuple[int, int, int, int],
) -> None:
    surface.clear(background)
    if buf is not None:
        surface.blit(buf, offset[0], offset[1])


def preview_stretch(
    surface: Surface,
    buf: np.ndarray,
    offset: Tuple[float, float],
    axis: str,
    source: int,
    target: int,
    background: Tuple[int, int, int, int],
) -> bool:
    # Always redraw the base first so the previous preview frame is erased.
    render_base(surface, buf, offset, background)
    try:
        stretch_band(surface, buf, offset, axis, source, target)
    except EmptySampleGuard as e:
        logger.debug("Preview skipped: %s", e)
        return False
    return True


def commit_stretch(
    buf: np.ndarray,
    offset: Tuple[float, float],
    export_size: ExportSize,
    axis: str,
    source: int,
    target: int,
) -> np.ndarray:
    """
    Render the stretch into a fresh export-sized buffer. Raises
    EmptySampleGuard without producing anything on degenerate input.
    """
    h, w = buf.shape[:2]
    if w == 0 or h == 0:
        raise EmptySampleGuard(f"cannot stretch a {w}x{h} image")
    scratch = Surface(export_size.as_tuple())
    scratch.blit(buf, offset[0], offset[1])
    stretch_band(scratch, buf, offset, axis, source, target)
    return scratch.pixels


def fit_within(buf: np.ndarray, export_size: ExportSize) -> np.ndarray:
    """Uniform downscale (never upscale) so `buf` fits the export bounds."""
    h, w = buf.shape[:2]
    if w == 0 or h == 0:
        return buf.copy()
    scale = min(export_size.width / w, export_size.height / h, 1.0)
    if scale >= 1.0:
        return buf.copy()
    new_w = max(1, int(math.floor(w * scale)))
    new_h = max(1, int(math.floor(h * scale)))
    resized = np_rgba_to_pil(buf).resize((new_w, new_h), resample=Image.Resampling.LANCZOS)
    return pil_to_np_rgba(resized)


def flatten_to_canvas(
    buf: np.ndarray,
    offset: Tuple[float, float],
    export_size: ExportSize,
) -> Image.Image:
    canvas = Surface(export_size.as_tuple())
    canvas.blit(buf, offset[0], offset[1])
    return canvas.to_pil()
