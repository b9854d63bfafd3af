from __future__ import annotations


class PixelStretchError(Exception):
    """Base class for editor errors."""


class InvalidFileType(PixelStretchError):
    """The selected file is not an image."""

    def __init__(self, mime_type: str | None):
        super().__init__(f"Invalid file type: {mime_type or 'unknown'}")
        self.mime_type = mime_type


class DecodeFailure(PixelStretchError):
    """The image bytes could not be decoded."""


class NoImageLoaded(PixelStretchError):
    """An action needing an image was attempted before any image was loaded."""


class EmptySampleGuard(PixelStretchError):
    """Zero-dimension image or degenerate sampled strip during a stretch."""
