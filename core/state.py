from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


AXIS_HORIZONTAL = "horizontal"
AXIS_VERTICAL = "vertical"
AXES = (AXIS_HORIZONTAL, AXIS_VERTICAL)

ZOOM_MIN = 0.1
ZOOM_MAX = 3.0
ZOOM_STEP = 0.01

MAX_HISTORY_SIZE = 30


def normalize_axis(axis: str) -> str:
    value = str(axis).strip().lower()
    if value not in AXES:
        raise ValueError(f"Unknown axis: {axis!r}")
    return value


def clamp_zoom(zoom: float) -> float:
    return max(ZOOM_MIN, min(ZOOM_MAX, float(zoom)))


@dataclass(frozen=True)
class ExportSize:
    width: int
    height: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class ExportPreset:
    preset_id: str
    label: str
    size: ExportSize


# Canvas/export presets, in the order the size selector lists them.
EXPORT_PRESETS: Dict[str, ExportPreset] = {
    p.preset_id: p
    for p in (
        ExportPreset("1080x1080", "1080×1080", ExportSize(1080, 1080)),
        ExportPreset("1920x1080", "1920×1080", ExportSize(1920, 1080)),
        ExportPreset("1080x1920", "1080×1920", ExportSize(1080, 1920)),
        ExportPreset("1200x628", "1200×628", ExportSize(1200, 628)),
        ExportPreset("1000x1500", "1000×1500", ExportSize(1000, 1500)),
    )
}
DEFAULT_PRESET_ID = "1080x1080"


def validate_presets(presets: Dict[str, ExportPreset] = EXPORT_PRESETS) -> None:
    if not presets:
        raise ValueError("No export presets configured")
    for key, preset in presets.items():
        if key != preset.preset_id:
            raise ValueError(f"Preset key {key!r} does not match id {preset.preset_id!r}")
        w, h = preset.size.width, preset.size.height
        if not isinstance(w, int) or not isinstance(h, int) or w <= 0 or h <= 0:
            raise ValueError(f"Preset {key!r} has invalid size {w}x{h}")
    if DEFAULT_PRESET_ID not in presets:
        raise ValueError(f"Default preset {DEFAULT_PRESET_ID!r} missing")


def resolve_export_size(value: "ExportSize | str") -> ExportSize:
    if isinstance(value, ExportSize):
        return value
    try:
        return EXPORT_PRESETS[str(value)].size
    except KeyError:
        raise ValueError(f"Unknown export preset: {value!r}") from None


@dataclass
class ViewState:
    # Image placement on the canvas (unzoomed canvas px)
    off_x: float = 0.0
    off_y: float = 0.0
    # Rendering-time scale only
    zoom: float = 1.0

    @property
    def offset(self) -> Tuple[float, float]:
        return (self.off_x, self.off_y)

    def set_offset(self, off_x: float, off_y: float) -> None:
        self.off_x = float(off_x)
        self.off_y = float(off_y)


@dataclass(frozen=True)
class SelectionLine:
    axis: str
    position: int


@dataclass
class EditorConfig:
    max_history: int = MAX_HISTORY_SIZE
    background_gray: int = 239
    fallback_basename: str = "pixelstretch_image"
    label_max_len: int = 25

    @property
    def background_rgba(self) -> Tuple[int, int, int, int]:
        g = int(self.background_gray)
        return (g, g, g, 255)
