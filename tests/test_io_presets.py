from __future__ import annotations

import io
import unittest

import numpy as np
from PIL import Image

from core.errors import DecodeFailure, InvalidFileType, PixelStretchError
from core.io import check_image_mime, decode_image, export_filename, guess_mime_type, truncate_name
from core.state import (
    DEFAULT_PRESET_ID,
    EXPORT_PRESETS,
    ExportPreset,
    ExportSize,
    ViewState,
    clamp_zoom,
    resolve_export_size,
    validate_presets,
)


class FileIOTests(unittest.TestCase):
    def test_mime_check(self) -> None:
        check_image_mime("image/png")
        check_image_mime("image/webp")
        for bad in (None, "", "text/plain", "application/pdf"):
            with self.assertRaises(InvalidFileType):
                check_image_mime(bad)

    def test_guess_mime_type_covers_open_dialog_extensions(self) -> None:
        for name in ("a.png", "b.JPG", "c.jpeg", "d.bmp", "e.gif", "f.webp", "g.tif", "h.tiff"):
            mime = guess_mime_type(name)
            self.assertIsNotNone(mime, name)
            check_image_mime(mime)
        self.assertEqual(guess_mime_type("photo.webp"), "image/webp")
        self.assertIsNone(guess_mime_type("no_extension"))

    def test_decode_png_bytes_to_rgba(self) -> None:
        bio = io.BytesIO()
        Image.new("LA", (3, 2), (128, 200)).save(bio, format="PNG")
        arr = decode_image(bio.getvalue())
        self.assertEqual(arr.shape, (2, 3, 4))
        self.assertEqual(arr.dtype, np.uint8)
        np.testing.assert_array_equal(arr[1, 2], (128, 128, 128, 200))

    def test_decode_failure_is_distinct(self) -> None:
        with self.assertRaises(DecodeFailure) as ctx:
            decode_image(b"\x00\x01garbage")
        self.assertIsInstance(ctx.exception, PixelStretchError)
        self.assertNotIsInstance(ctx.exception, InvalidFileType)

    def test_export_filename(self) -> None:
        size = ExportSize(1920, 1080)
        self.assertEqual(export_filename("cat.png", size), "cat_1920x1080.png")
        self.assertEqual(export_filename("/tmp/dir/my.cat.JPG", size), "my.cat_1920x1080.png")
        self.assertEqual(export_filename("noext", size), "noext_1920x1080.png")
        self.assertEqual(export_filename(None, size), "pixelstretch_image_1920x1080.png")
        self.assertEqual(export_filename("", size, fallback="img"), "img_1920x1080.png")

    def test_truncate_name(self) -> None:
        self.assertEqual(truncate_name("short.png"), "short.png")
        name = "0123456789abcdefghijklmnopqrstuvwxyz.jpeg"
        self.assertEqual(truncate_name(name), "0123456789…uvwxyz.jpeg")
        self.assertEqual(truncate_name("x" * 30), "xxxxxxxxxx…xxxxxx")


class PresetTableTests(unittest.TestCase):
    def test_presets(self) -> None:
        validate_presets()
        self.assertEqual(
            [(p.size.width, p.size.height) for p in EXPORT_PRESETS.values()],
            [(1080, 1080), (1920, 1080), (1080, 1920), (1200, 628), (1000, 1500)],
        )
        self.assertIn(DEFAULT_PRESET_ID, EXPORT_PRESETS)

    def test_resolve(self) -> None:
        self.assertEqual(resolve_export_size("1080x1920"), ExportSize(1080, 1920))
        size = ExportSize(7, 9)
        self.assertIs(resolve_export_size(size), size)
        with self.assertRaises(ValueError):
            resolve_export_size("1080×1080")

    def test_invalid_tables_rejected(self) -> None:
        bad_size = {"1080x1080": ExportPreset("1080x1080", "x", ExportSize(0, 10))}
        with self.assertRaises(ValueError):
            validate_presets(bad_size)
        mismatched = {"a": ExportPreset("b", "x", ExportSize(1, 1))}
        with self.assertRaises(ValueError):
            validate_presets(mismatched)
        with self.assertRaises(ValueError):
            validate_presets({})

    def test_zoom_clamp_and_view_defaults(self) -> None:
        self.assertEqual(clamp_zoom(0.0), 0.1)
        self.assertEqual(clamp_zoom(9), 3.0)
        view = ViewState()
        self.assertEqual((view.offset, view.zoom), ((0.0, 0.0), 1.0))


if __name__ == "__main__":
    unittest.main()
