from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from core import compositor
from core.errors import EmptySampleGuard, NoImageLoaded
from core.history import SnapshotHistory
from core.io import export_filename, load_image_rgba, save_image, truncate_name
from core.state import (
    AXIS_HORIZONTAL,
    DEFAULT_PRESET_ID,
    EditorConfig,
    ExportSize,
    SelectionLine,
    ViewState,
    clamp_zoom,
    normalize_axis,
    resolve_export_size,
    validate_presets,
)

logger = logging.getLogger(__name__)


class EditorSession:
    """
    One editing session: the current image, its placement and zoom, the
    export canvas size and the undo/redo history.
    """

    def __init__(self, config: Optional[EditorConfig] = None, export_size: "ExportSize | str" = DEFAULT_PRESET_ID):
        validate_presets()
        self.config = config or EditorConfig()
        self.export_size: ExportSize = resolve_export_size(export_size)
        self.view = ViewState()
        self.axis: str = AXIS_HORIZONTAL
        self.history = SnapshotHistory(self.config.max_history)
        self.filename: Optional[str] = None
        self._image: Optional[np.ndarray] = None

    # ---------------------------
    # Image state
    # ---------------------------
    @property
    def image(self) -> Optional[np.ndarray]:
        return self._image

    @property
    def has_image(self) -> bool:
        return self._image is not None

    @property
    def image_size(self) -> Tuple[int, int]:
        if self._image is None:
            return (0, 0)
        return compositor.buffer_size(self._image)

    def require_image(self) -> np.ndarray:
        if self._image is None:
            raise NoImageLoaded("no image loaded")
        return self._image

    def load(self, buf: np.ndarray, filename: Optional[str] = None) -> None:
        self._image = compositor.fit_within(buf, self.export_size)
        self.filename = filename
        self.history.start(self._image)
        self.center()
        logger.info(
            "Loaded %s (%dx%d -> %dx%d)",
            filename or "<buffer>",
            buf.shape[1], buf.shape[0],
            self._image.shape[1], self._image.shape[0],
        )

    def load_file(self, path: str, mime_type: Optional[str] = None) -> None:
        # Decode first; a failure leaves the session untouched.
        buf = load_image_rgba(path, mime_type=mime_type)
        self.load(buf, filename=Path(path).name)

    def commit(self, buf: np.ndarray) -> None:
        self._image = buf
        self.history.push(buf)
        self.center()
        logger.info("Committed %dx%d (history %d)", buf.shape[1], buf.shape[0], len(self.history))

    def undo(self) -> bool:
        prev = self.history.undo()
        if prev is None:
            return False
        self._image = prev
        self.center()
        return True

    def redo(self) -> bool:
        nxt = self.history.redo()
        if nxt is None:
            return False
        self._image = nxt
        self.center()
        return True

    def reset(self) -> bool:
        first = self.history.reset()
        if first is None:
            return False
        self._image = first
        self.center()
        return True

    # ---------------------------
    # View
    # ---------------------------
    def center(self) -> None:
        if self._image is None:
            return
        w, h = self.image_size
        self.view.set_offset(
            (self.export_size.width - w) / 2,
            (self.export_size.height - h) / 2,
        )

    def set_export_size(self, value: "ExportSize | str") -> None:
        self.export_size = resolve_export_size(value)
        self.center()

    def set_zoom(self, zoom: float) -> float:
        self.view.zoom = clamp_zoom(zoom)
        return self.view.zoom

    def set_axis(self, axis: str) -> None:
        self.axis = normalize_axis(axis)

    def set_offset(self, off_x: float, off_y: float) -> None:
        self.view.set_offset(off_x, off_y)

    # ---------------------------
    # Rendering / stretching
    # ---------------------------
    def render(self, surface: compositor.Surface) -> None:
        surface.resize(self.export_size.as_tuple())
        compositor.render_base(surface, self._image, self.view.offset, self.config.background_rgba)

    def preview_stretch(self, surface: compositor.Surface, line: SelectionLine, target: int) -> bool:
        surface.resize(self.export_size.as_tuple())
        if self._image is None:
            compositor.render_base(surface, None, self.view.offset, self.config.background_rgba)
            return False
        return compositor.preview_stretch(
            surface,
            self._image,
            self.view.offset,
            line.axis,
            line.position,
            target,
            self.config.background_rgba,
        )

    def commit_stretch(self, line: SelectionLine, target: int) -> bool:
        buf = self.require_image()
        try:
            out = compositor.commit_stretch(
                buf, self.view.offset, self.export_size, line.axis, line.position, target
            )
        except EmptySampleGuard as e:
            logger.debug("Stretch ignored: %s", e)
            return False
        self.commit(out)
        return True

    # ---------------------------
    # Export
    # ---------------------------
    def file_label(self) -> str:
        if not self.filename:
            return "No file"
        return truncate_name(self.filename, self.config.label_max_len)

    def export_filename(self) -> str:
        return export_filename(self.filename, self.export_size, self.config.fallback_basename)

    def export_image(self) -> Image.Image:
        buf = self.require_image()
        return compositor.flatten_to_canvas(buf, self.view.offset, self.export_size)

    def save_as(self, path: str) -> Path:
        img = self.export_image()
        save_image(str(path), img)
        logger.info("Saved %s", path)
        return Path(path)

    def save(self, directory: str) -> Path:
        return self.save_as(str(Path(directory) / self.export_filename()))
