from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QImage, QKeySequence
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QFileDialog, QVBoxLayout, QHBoxLayout, QLabel,
    QSlider, QPushButton, QComboBox, QRadioButton, QButtonGroup, QScrollArea
)

from core.compositor import Surface
from core.editor import EditorSession
from core.errors import DecodeFailure, InvalidFileType, NoImageLoaded
from core.interaction import InteractionController
from core.io import guess_mime_type
from core.state import (
    AXIS_HORIZONTAL, AXIS_VERTICAL, DEFAULT_PRESET_ID, EXPORT_PRESETS,
    ZOOM_MAX, ZOOM_MIN, ZOOM_STEP,
)
from ui.canvas_widget import CanvasWidget

logger = logging.getLogger(__name__)

# Zoom slider works in integer ticks of ZOOM_STEP
_ZOOM_TICKS = int(round(1.0 / ZOOM_STEP))


def surface_to_qimage(surface: Surface) -> QImage:
    h, w = surface.pixels.shape[:2]
    data = surface.pixels.tobytes()
    qimg = QImage(data, w, h, 4 * w, QImage.Format_RGBA8888)
    # Important: keep a copy because Python-owned bytes may be freed
    return qimg.copy()

class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("PixelStretch")

        self.session = EditorSession(export_size=DEFAULT_PRESET_ID)
        self.controller = InteractionController(self.session)
        self._last_dir = ""

        self._act_undo: Optional[QAction] = None
        self._act_redo: Optional[QAction] = None

        # Central
        self.canvas = CanvasWidget(
            on_press=self._pointer_down,
            on_move=self._pointer_move,
            on_release=self._pointer_up,
        )
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setAlignment(Qt.AlignLeft | Qt.AlignTop)

        central = QWidget()
        lay = QVBoxLayout(central)
        lay.addLayout(self._build_toolbar())
        lay.addWidget(scroll, 1)
        self.setCentralWidget(central)

        # Menu
        self._build_menu()

        self.resize(1200, 900)
        self._rerender()

    # ---------------------------
    # Menu / Actions
    # ---------------------------
    def _build_menu(self) -> None:
        open_act = QAction("Open…", self)
        open_act.setShortcut(QKeySequence.StandardKey.Open)
        open_act.triggered.connect(self.open_file)

        save_act = QAction("Save…", self)
        save_act.setShortcut(QKeySequence.StandardKey.Save)
        save_act.triggered.connect(self.save_image)

        self._act_undo = QAction("Undo", self)
        self._act_undo.setShortcut(QKeySequence.StandardKey.Undo)
        self._act_undo.triggered.connect(self._undo)

        self._act_redo = QAction("Redo", self)
        self._act_redo.setShortcuts([QKeySequence(QKeySequence.StandardKey.Redo), QKeySequence("Ctrl+Y")])
        self._act_redo.triggered.connect(self._redo)

        reset_act = QAction("Reset Image", self)
        reset_act.triggered.connect(self._reset)

        center_act = QAction("Center Image", self)
        center_act.setShortcut("C")
        center_act.triggered.connect(self._center_image)

        quit_act = QAction("Quit", self)
        quit_act.setShortcut(QKeySequence.StandardKey.Quit)
        quit_act.triggered.connect(self.close)

        mfile = self.menuBar().addMenu("File")
        mfile.addAction(open_act)
        mfile.addAction(save_act)
        mfile.addSeparator()
        mfile.addAction(quit_act)

        medit = self.menuBar().addMenu("Edit")
        medit.addAction(self._act_undo)
        medit.addAction(self._act_redo)
        medit.addAction(reset_act)

        mview = self.menuBar().addMenu("View")
        mview.addAction(center_act)

    # ---------------------------
    # Toolbar
    # ---------------------------
    def _build_toolbar(self) -> QHBoxLayout:
        row = QHBoxLayout()

        open_btn = QPushButton("Open…")
        open_btn.clicked.connect(self.open_file)
        row.addWidget(open_btn)

        self.file_label = QLabel(self.session.file_label())
        self.file_label.setStyleSheet("font-style: italic; color: #555;")
        row.addWidget(self.file_label)

        row.addWidget(QLabel("Size:"))
        self.size_combo = QComboBox()
        for preset in EXPORT_PRESETS.values():
            self.size_combo.addItem(preset.label, preset.preset_id)
        self.size_combo.setCurrentIndex(self.size_combo.findData(DEFAULT_PRESET_ID))
        self.size_combo.currentIndexChanged.connect(self._on_size_changed)
        row.addWidget(self.size_combo)

        row.addWidget(QLabel("Zoom:"))
        self.zoom_slider = QSlider(Qt.Horizontal)
        self.zoom_slider.setRange(int(round(ZOOM_MIN * _ZOOM_TICKS)), int(round(ZOOM_MAX * _ZOOM_TICKS)))
        self.zoom_slider.setValue(_ZOOM_TICKS)
        self.zoom_slider.setFixedWidth(100)
        self.zoom_slider.valueChanged.connect(self._on_zoom_changed)
        row.addWidget(self.zoom_slider)
        self.zoom_label = QLabel("100%")
        self.zoom_label.setMinimumWidth(36)
        self.zoom_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        row.addWidget(self.zoom_label)

        row.addWidget(QLabel("Axis:"))
        self.axis_group = QButtonGroup(self)
        for text, axis in (("Hor", AXIS_HORIZONTAL), ("Ver", AXIS_VERTICAL)):
            rb = QRadioButton(text)
            rb.setProperty("axis", axis)
            rb.setChecked(axis == self.session.axis)
            self.axis_group.addButton(rb)
            row.addWidget(rb)
        self.axis_group.buttonToggled.connect(self._on_axis_toggled)

        center_btn = QPushButton("⌖")
        center_btn.setToolTip("Center Image")
        center_btn.clicked.connect(self._center_image)
        row.addWidget(center_btn)

        reset_btn = QPushButton("⟳")
        reset_btn.setToolTip("Reset")
        reset_btn.clicked.connect(self._reset)
        row.addWidget(reset_btn)

        self.undo_btn = QPushButton("↶")
        self.undo_btn.setToolTip("Undo")
        self.undo_btn.clicked.connect(self._undo)
        row.addWidget(self.undo_btn)

        self.redo_btn = QPushButton("↷")
        self.redo_btn.setToolTip("Redo")
        self.redo_btn.clicked.connect(self._redo)
        row.addWidget(self.redo_btn)

        save_btn = QPushButton("💾")
        save_btn.setToolTip("Save")
        save_btn.clicked.connect(self.save_image)
        row.addWidget(save_btn)

        row.addStretch(1)
        return row

    # ---------------------------
    # File IO
    # ---------------------------
    def open_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", self._last_dir, "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp *.tif *.tiff);;All files (*)"
        )
        if not path:
            return
        self.load_path(path)

    def load_path(self, path: str) -> None:
        self.controller.cancel()
        try:
            self.session.load_file(path, mime_type=guess_mime_type(path))
        except InvalidFileType as e:
            logger.warning("Rejected %s: %s", path, e)
            self.file_label.setText("Invalid file type")
            self.statusBar().showMessage(str(e), 4000)
            return
        except DecodeFailure as e:
            logger.warning("Could not decode %s: %s", path, e)
            self.file_label.setText("Error loading image")
            self.statusBar().showMessage(f"Error loading image: {e}", 4000)
            return

        self._last_dir = str(Path(path).parent)
        self.file_label.setText(self.session.file_label())
        self.file_label.setToolTip(self.session.filename or "")
        self._rerender()

    def save_image(self) -> None:
        try:
            self.session.require_image()
        except NoImageLoaded:
            return

        default = str(Path(self._last_dir) / self.session.export_filename())
        path, _ = QFileDialog.getSaveFileName(self, "Save Image", default, "PNG (*.png)")
        if not path:
            return
        try:
            self.session.save_as(path)
        except OSError as e:
            logger.error("Save failed: %s", e)
            self.statusBar().showMessage(f"Save failed: {e}", 4000)
            return
        self.statusBar().showMessage(f"Saved {Path(path).name}", 3000)

    # ---------------------------
    # Controls
    # ---------------------------
    def _on_size_changed(self, _) -> None:
        self.controller.cancel()
        self.session.set_export_size(str(self.size_combo.currentData()))
        self._rerender()

    def _on_zoom_changed(self, value: int) -> None:
        zoom = self.session.set_zoom(value / _ZOOM_TICKS)
        self.zoom_label.setText(f"{round(zoom * 100)}%")
        self.canvas.set_zoom(zoom)

    def _on_axis_toggled(self, button, checked: bool) -> None:
        if checked:
            self.session.set_axis(button.property("axis"))

    def _center_image(self) -> None:
        self.controller.cancel()
        self.session.center()
        self._rerender()

    def _reset(self) -> None:
        self.controller.cancel()
        if self.session.reset():
            self._rerender()

    def _undo(self) -> None:
        self.controller.cancel()
        if self.session.undo():
            self._rerender()

    def _redo(self) -> None:
        self.controller.cancel()
        if self.session.redo():
            self._rerender()

    def _update_undo_redo_actions(self) -> None:
        can_undo = self.session.history.can_undo()
        can_redo = self.session.history.can_redo()
        self.undo_btn.setEnabled(can_undo)
        self.redo_btn.setEnabled(can_redo)
        if self._act_undo is not None:
            self._act_undo.setEnabled(can_undo)
        if self._act_redo is not None:
            self._act_redo.setEnabled(can_redo)

    # ---------------------------
    # Pointer
    # ---------------------------
    def _pointer_down(self, x: float, y: float, shift: bool) -> bool:
        return self.controller.pointer_down(x, y, modifier=shift)

    def _pointer_move(self, x: float, y: float) -> bool:
        changed = self.controller.pointer_move(x, y)
        if changed:
            self._show_surface()
        return changed

    def _pointer_up(self, x: float, y: float) -> bool:
        changed = self.controller.pointer_up(x, y)
        if changed:
            self._show_surface()
            self._update_undo_redo_actions()
        return changed

    # ---------------------------
    # Rendering
    # ---------------------------
    def _rerender(self) -> None:
        self.controller.redraw()
        self._show_surface()
        self._update_undo_redo_actions()

    def _show_surface(self) -> None:
        surface = self.controller.surface
        self.canvas.set_frame(surface_to_qimage(surface), surface.size)
