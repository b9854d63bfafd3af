from __future__ import annotations

import logging
from typing import Optional, Tuple

from core.compositor import Surface, line_length
from core.coords import clamp_line, in_canvas, in_image, line_index, pan_offsets, view_to_local
from core.editor import EditorSession
from core.state import AXIS_HORIZONTAL, SelectionLine

logger = logging.getLogger(__name__)

IDLE = "idle"
PANNING = "panning"
STRETCHING = "stretching"


class InteractionController:
    """
    Pointer state machine: idle -> panning (modifier held) or
    idle -> stretching (press inside the image), back to idle on release.
    Handlers return True when the surface was redrawn.
    """

    def __init__(self, session: EditorSession, surface: Optional[Surface] = None):
        self.session = session
        self.surface = surface or Surface(session.export_size.as_tuple())
        self.state = IDLE
        self.line: Optional[SelectionLine] = None
        self._pan_start_pointer: Tuple[float, float] = (0.0, 0.0)
        self._pan_start_offset: Tuple[float, float] = (0.0, 0.0)

    def redraw(self) -> None:
        self.session.render(self.surface)

    def _target_for_line(self, line: SelectionLine, x: float, y: float) -> int:
        lx, ly = view_to_local(x, y, self.session.view.zoom, self.session.view.offset)
        return line_index(ly if line.axis == AXIS_HORIZONTAL else lx)

    def pointer_down(self, x: float, y: float, modifier: bool = False) -> bool:
        if self.state != IDLE:
            return False
        session = self.session
        if not in_canvas(x, y, session.export_size):
            logger.debug("Press outside canvas at (%.1f, %.1f)", x, y)
            return False
        if not session.has_image:
            return False

        if modifier:
            self.state = PANNING
            self._pan_start_pointer = (x, y)
            self._pan_start_offset = session.view.offset
            return False

        lx, ly = view_to_local(x, y, session.view.zoom, session.view.offset)
        if not in_image(lx, ly, session.image_size):
            return False

        axis = session.axis
        raw = line_index(ly if axis == AXIS_HORIZONTAL else lx)
        self.line = SelectionLine(axis, clamp_line(raw, line_length(session.image, axis)))
        self.state = STRETCHING
        return False

    def pointer_move(self, x: float, y: float) -> bool:
        if self.state == PANNING:
            off = pan_offsets(self._pan_start_offset, self._pan_start_pointer, (x, y), self.session.view.zoom)
            self.session.set_offset(*off)
            self.redraw()
            return True
        if self.state == STRETCHING and self.session.has_image:
            self.session.preview_stretch(self.surface, self.line, self._target_for_line(self.line, x, y))
            return True
        return False

    def pointer_up(self, x: float, y: float) -> bool:
        if self.state == PANNING:
            self.state = IDLE
            return False
        if self.state != STRETCHING:
            return False

        line = self.line
        self.state = IDLE
        self.line = None
        if self.session.has_image:
            target = self._target_for_line(line, x, y)
            self.session.commit_stretch(line, target)
        self.redraw()
        return True

    def cancel(self) -> bool:
        if self.state == IDLE:
            return False
        was_stretching = self.state == STRETCHING
        self.state = IDLE
        self.line = None
        if was_stretching:
            self.redraw()
        return was_stretching
