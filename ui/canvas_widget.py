from __future__ import annotations
from typing import Optional, Callable, Tuple

from PySide6.QtCore import Qt, QRectF, QSize
from PySide6.QtGui import QPainter, QImage, QColor, QPen
from PySide6.QtWidgets import QWidget

class CanvasWidget(QWidget):
    """
    Shows the render surface at the current zoom, anchored at the
    widget's top-left corner. Pointer positions are reported in view px
    (widget coords), zoom is divided out by the core mapper.
      - left-drag: stretch the selected row/column
      - shift+left-drag: pan the image
    """
    def __init__(
        self,
        on_press: Callable[[float, float, bool], bool],
        on_move: Callable[[float, float], bool],
        on_release: Callable[[float, float], bool],
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self.setFocusPolicy(Qt.StrongFocus)

        self._frame: Optional[QImage] = None
        self._out_size: Tuple[int, int] = (1080, 1080)
        self._zoom = 1.0
        self._dragging = False

        self._on_press = on_press
        self._on_move = on_move
        self._on_release = on_release

        self._apply_size()

    def set_frame(self, qimg: Optional[QImage], out_size: Tuple[int, int]) -> None:
        self._frame = qimg
        if out_size != self._out_size:
            self._out_size = out_size
            self._apply_size()
        self.update()

    def set_zoom(self, zoom: float) -> None:
        self._zoom = float(zoom)
        self._apply_size()
        self.update()

    def _apply_size(self) -> None:
        out_w, out_h = self._out_size
        self.setFixedSize(QSize(max(1, int(out_w * self._zoom)), max(1, int(out_h * self._zoom))))

    def paintEvent(self, _) -> None:
        p = QPainter(self)
        out_w, out_h = self._out_size
        draw_w = out_w * self._zoom
        draw_h = out_h * self._zoom
        target = QRectF(0, 0, draw_w, draw_h)

        if self._frame is None:
            p.fillRect(target, QColor(239, 239, 239))
        else:
            p.drawImage(target, self._frame)

        # Canvas border
        p.setPen(QPen(QColor(204, 204, 204), 1))
        p.drawRect(QRectF(0, 0, draw_w - 1, draw_h - 1))

    def mousePressEvent(self, e) -> None:
        if e.button() != Qt.LeftButton:
            return
        pos = e.position()
        shift = bool(e.modifiers() & Qt.ShiftModifier)
        self._dragging = True
        if self._on_press(pos.x(), pos.y(), shift):
            self.update()

    def mouseMoveEvent(self, e) -> None:
        if not self._dragging:
            return
        pos = e.position()
        if self._on_move(pos.x(), pos.y()):
            self.update()

    def mouseReleaseEvent(self, e) -> None:
        if e.button() != Qt.LeftButton:
            return
        self._dragging = False
        pos = e.position()
        if self._on_release(pos.x(), pos.y()):
            self.update()

