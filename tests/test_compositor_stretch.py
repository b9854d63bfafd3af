from __future__ import annotations

import unittest
from unittest import mock

import numpy as np

from core import compositor
from core.compositor import (
    Surface,
    commit_stretch,
    fit_within,
    flatten_to_canvas,
    preview_stretch,
    sample_line,
    snap,
    stretch_band,
)
from core.errors import EmptySampleGuard
from core.state import AXIS_HORIZONTAL, AXIS_VERTICAL, ExportSize

BG = (239, 239, 239, 255)


def _row_image(w: int, h: int) -> np.ndarray:
    # Every row a distinct opaque color, every column inside a row slightly different
    buf = np.zeros((h, w, 4), dtype=np.uint8)
    for y in range(h):
        for x in range(w):
            buf[y, x] = (y * 20 % 256, 255 - y * 20 % 256, x * 7 % 256, 255)
    return buf


class PixelStretchTests(unittest.TestCase):
    def test_horizontal_example_rows_3_to_6(self) -> None:
        buf = _row_image(10, 10)
        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 3, 6)
        for y in range(3, 7):
            np.testing.assert_array_equal(out[y], buf[3])
        np.testing.assert_array_equal(out[:3], buf[:3])
        np.testing.assert_array_equal(out[7:], buf[7:])

    def test_drag_direction_does_not_matter(self) -> None:
        buf = _row_image(10, 10)
        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 6, 3)
        for y in range(3, 7):
            np.testing.assert_array_equal(out[y], buf[6])
        np.testing.assert_array_equal(out[:3], buf[:3])
        np.testing.assert_array_equal(out[7:], buf[7:])

    def test_commit_does_not_mutate_input(self) -> None:
        buf = _row_image(10, 10)
        before = buf.copy()
        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 0, 9)
        np.testing.assert_array_equal(buf, before)
        self.assertFalse(np.shares_memory(buf, out))

    def test_zero_length_drag_is_identity(self) -> None:
        buf = _row_image(8, 6)
        size = ExportSize(20, 16)
        offset = (5.0, 3.0)
        expected = np.array(flatten_to_canvas(buf, offset, size), dtype=np.uint8)
        for axis, line in ((AXIS_HORIZONTAL, 4), (AXIS_VERTICAL, 2)):
            out = commit_stretch(buf, offset, size, axis, line, line)
            np.testing.assert_array_equal(out, expected)

    def test_axis_symmetry_on_transposed_input(self) -> None:
        buf = _row_image(7, 9)
        size = ExportSize(16, 16)
        rows = commit_stretch(buf, (2.0, 3.0), size, AXIS_HORIZONTAL, 2, 6)
        cols = commit_stretch(buf.transpose(1, 0, 2), (3.0, 2.0), size, AXIS_VERTICAL, 2, 6)
        np.testing.assert_array_equal(cols, rows.transpose(1, 0, 2))

    def test_vertical_stretch_replicates_column(self) -> None:
        buf = _row_image(10, 10)
        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_VERTICAL, 7, 2)
        for x in range(2, 8):
            np.testing.assert_array_equal(out[:, x], buf[:, 7])
        np.testing.assert_array_equal(out[:, :2], buf[:, :2])
        np.testing.assert_array_equal(out[:, 8:], buf[:, 8:])

    def test_band_is_clipped_to_canvas(self) -> None:
        buf = _row_image(10, 10)
        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 8, 100)
        np.testing.assert_array_equal(out[8], buf[8])
        np.testing.assert_array_equal(out[9], buf[8])
        np.testing.assert_array_equal(out[:8], buf[:8])

        out = commit_stretch(buf, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 2, -50)
        for y in range(0, 3):
            np.testing.assert_array_equal(out[y], buf[2])
        np.testing.assert_array_equal(out[3:], buf[3:])

    def test_band_extends_past_image_within_canvas(self) -> None:
        buf = _row_image(4, 4)
        out = commit_stretch(buf, (3.0, 2.0), ExportSize(10, 10), AXIS_HORIZONTAL, 3, 6)
        # local rows 3..6 -> canvas rows 5..8, image columns 3..6
        for y in range(5, 9):
            np.testing.assert_array_equal(out[y, 3:7], buf[3])
        self.assertEqual(int(out[9, 3, 3]), 0)
        self.assertEqual(int(out[6, 0, 3]), 0)

    def test_source_is_clamped_into_image(self) -> None:
        buf = _row_image(10, 10)
        strip = sample_line(buf, AXIS_HORIZONTAL, 50)
        np.testing.assert_array_equal(strip[0], buf[9])
        strip = sample_line(buf, AXIS_VERTICAL, -4)
        self.assertEqual(strip.shape, (10, 1, 4))
        np.testing.assert_array_equal(strip[:, 0], buf[:, 0])

    def test_half_pixel_offset_keeps_band_aligned(self) -> None:
        buf = _row_image(10, 10)
        out = commit_stretch(buf, (0.5, 0.5), ExportSize(12, 12), AXIS_HORIZONTAL, 3, 4)
        base = snap(0.5)
        self.assertEqual(base, 1)
        np.testing.assert_array_equal(out[base + 0, 1:11], buf[0])
        np.testing.assert_array_equal(out[base + 3, 1:11], buf[3])
        np.testing.assert_array_equal(out[base + 4, 1:11], buf[3])
        np.testing.assert_array_equal(out[base + 5, 1:11], buf[5])

    def test_empty_image_raises_guard(self) -> None:
        empty = np.zeros((0, 5, 4), dtype=np.uint8)
        with self.assertRaises(EmptySampleGuard):
            commit_stretch(empty, (0.0, 0.0), ExportSize(10, 10), AXIS_HORIZONTAL, 0, 3)
        with self.assertRaises(EmptySampleGuard):
            sample_line(empty, AXIS_VERTICAL, 0)

    def test_preview_redraws_base_then_band(self) -> None:
        buf = _row_image(10, 10)
        before = buf.copy()
        surface = Surface((12, 12))

        self.assertTrue(preview_stretch(surface, buf, (1.0, 1.0), AXIS_HORIZONTAL, 3, 6, BG))
        for y in range(4, 8):
            np.testing.assert_array_equal(surface.pixels[y, 1:11], buf[3])
        np.testing.assert_array_equal(surface.pixels[0, 0], BG)

        # Shorter drag: the previous frame's rows 5..6 must be gone
        self.assertTrue(preview_stretch(surface, buf, (1.0, 1.0), AXIS_HORIZONTAL, 3, 4, BG))
        np.testing.assert_array_equal(surface.pixels[6, 1:11], buf[5])
        np.testing.assert_array_equal(surface.pixels[7, 1:11], buf[6])
        np.testing.assert_array_equal(buf, before)

    def test_preview_of_empty_image_is_noop(self) -> None:
        surface = Surface((4, 4))
        empty = np.zeros((3, 0, 4), dtype=np.uint8)
        self.assertFalse(preview_stretch(surface, empty, (0.0, 0.0), AXIS_VERTICAL, 0, 2, BG))
        self.assertTrue(np.all(surface.pixels == np.array(BG, dtype=np.uint8)))

    def test_stretch_band_reports_lines_written(self) -> None:
        buf = _row_image(5, 5)
        surface = Surface((5, 5))
        self.assertEqual(stretch_band(surface, buf, (0.0, 0.0), AXIS_HORIZONTAL, 1, 3), 3)
        self.assertEqual(stretch_band(surface, buf, (0.0, 20.0), AXIS_HORIZONTAL, 1, 3), 0)


class SurfaceTests(unittest.TestCase):
    def test_blit_over_blends_translucent_pixels(self) -> None:
        surface = Surface((2, 1), fill=(255, 255, 255, 255))
        top = np.array([[[255, 0, 0, 128], [0, 0, 255, 255]]], dtype=np.uint8)
        surface.blit(top, 0, 0)
        r, g, b, a = (int(v) for v in surface.pixels[0, 0])
        self.assertEqual((r, a), (255, 255))
        self.assertLess(abs(g - 127), 3)
        self.assertLess(abs(b - 127), 3)
        np.testing.assert_array_equal(surface.pixels[0, 1], (0, 0, 255, 255))

    def test_opaque_over_blit_takes_copy_path(self) -> None:
        surface = Surface((1920, 1080), fill=BG)
        image = np.zeros((1080, 1920, 4), dtype=np.uint8)
        image[..., 0] = 90
        image[..., 3] = 255
        with mock.patch.object(compositor, "_blend_pixels", side_effect=AssertionError("blended")):
            surface.blit(image, 0, 0)
            # Translucent image onto a fresh transparent surface is also a copy
            Surface((64, 64)).blit(np.full((64, 64, 4), 40, dtype=np.uint8), 0, 0)
        np.testing.assert_array_equal(surface.pixels, image)

    def test_over_blit_blends_only_mixed_pixels(self) -> None:
        surface = Surface((3, 1), fill=(0, 0, 0, 0))
        surface.pixels[0, 1:] = (255, 255, 255, 255)
        top = np.array([[[10, 20, 30, 128], [0, 0, 255, 0], [255, 0, 0, 128]]], dtype=np.uint8)
        with mock.patch.object(compositor, "_blend_pixels", wraps=compositor._blend_pixels) as blend:
            surface.blit(top, 0, 0)
        self.assertEqual(blend.call_count, 1)
        self.assertEqual(blend.call_args[0][0].shape, (1, 4))
        # Empty destination: copied as is
        np.testing.assert_array_equal(surface.pixels[0, 0], (10, 20, 30, 128))
        # Fully transparent source leaves the destination alone
        np.testing.assert_array_equal(surface.pixels[0, 1], (255, 255, 255, 255))
        r, g, b, a = (int(v) for v in surface.pixels[0, 2])
        self.assertEqual((r, a), (255, 255))
        self.assertLess(abs(g - 127), 3)

    def test_blit_stretches_to_target_rect(self) -> None:
        surface = Surface((4, 3))
        strip = np.array([[[1, 2, 3, 255], [4, 5, 6, 255]]], dtype=np.uint8)
        surface.blit(strip, 0, 0, width=4, height=3, mode="copy")
        np.testing.assert_array_equal(surface.pixels[2, 0], (1, 2, 3, 255))
        np.testing.assert_array_equal(surface.pixels[2, 1], (1, 2, 3, 255))
        np.testing.assert_array_equal(surface.pixels[0, 3], (4, 5, 6, 255))

    def test_blit_clips_outside_surface(self) -> None:
        surface = Surface((3, 3))
        block = np.full((2, 2, 4), 200, dtype=np.uint8)
        surface.blit(block, 2, -1)
        self.assertEqual(int(surface.pixels[0, 2, 0]), 200)
        self.assertEqual(int(surface.pixels[1, 2, 0]), 0)
        surface.blit(block, 10, 10)

    def test_png_bytes(self) -> None:
        surface = Surface((3, 2), fill=BG)
        data = surface.to_png_bytes()
        self.assertTrue(data.startswith(b"\x89PNG"))


class FitWithinTests(unittest.TestCase):
    def test_downscales_preserving_aspect(self) -> None:
        buf = np.zeros((1080, 2160, 4), dtype=np.uint8)
        out = fit_within(buf, ExportSize(1080, 1080))
        self.assertEqual(out.shape, (540, 1080, 4))

    def test_never_upscales_and_copies(self) -> None:
        buf = _row_image(40, 30)
        out = fit_within(buf, ExportSize(1080, 1080))
        np.testing.assert_array_equal(out, buf)
        self.assertFalse(np.shares_memory(out, buf))


if __name__ == "__main__":
    unittest.main()
