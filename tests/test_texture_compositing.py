"""
Tests for the Texture Compositing Engine.

Tests cover:
- Tile scaling and tiling with wraparound
- Destination-in mask clipping
- Over blending
- Invariants: untouched pixels, full coverage, idempotence
- Error handling (dimension mismatch, empty tile, bad types)
"""

import unittest

import numpy as np

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, Point, TextureTile
from FV_Libs.ImageEditingLib.texture_compositing import (
    apply_mask_clip,
    blend_over,
    composite,
    scale_tile,
    tile_fill,
)
from FV_Libs.MaskingLib.polygon_rasterizer import rasterize_polygon
from FV_Libs.errors import DimensionMismatchError, EmptyTileError

from conftest import random_bitmap


class TestScaleTile(unittest.TestCase):
    """Test tile scaling."""

    def test_default_factor_is_four(self):
        """Tiles are enlarged 4x by default."""
        tile = TextureTile(random_bitmap(3, 2))
        scaled = scale_tile(tile)

        self.assertEqual(scaled.size, (12, 8))

    def test_custom_factor(self):
        """Any positive integer factor is accepted."""
        tile = TextureTile(random_bitmap(3, 2))

        self.assertEqual(scale_tile(tile, 2).size, (6, 4))

    def test_factor_one_returns_tile_bitmap(self):
        """Factor 1 leaves the tile untouched."""
        tile = TextureTile(random_bitmap(3, 2))

        self.assertEqual(scale_tile(tile, 1), tile.bitmap)

    def test_solid_tile_stays_solid(self):
        """Resampling a single-color tile does not change the color."""
        tile = TextureTile(Bitmap.blank(2, 2, (40, 80, 120, 255)))
        scaled = scale_tile(tile)

        self.assertTrue(np.all(scaled.pixels == np.array([40, 80, 120, 255], dtype=np.uint8)))

    def test_invalid_factor(self):
        """Non-positive factors are rejected."""
        tile = TextureTile(random_bitmap(3, 2))

        with self.assertRaises(ValueError):
            scale_tile(tile, 0)

    def test_empty_tile(self):
        """Empty tiles cannot be scaled."""
        tile = TextureTile(Bitmap(np.zeros((0, 3, 4), dtype=np.uint8)))

        with self.assertRaises(EmptyTileError):
            scale_tile(tile)


class TestTileFill(unittest.TestCase):
    """Test tiling with wraparound."""

    def test_output_size(self):
        """The canvas has exactly the requested size."""
        tiled = tile_fill(random_bitmap(5, 3), 17, 11)

        self.assertEqual(tiled.size, (17, 11))

    def test_wraparound_from_origin(self):
        """Every pixel equals the tile pixel at (x mod w, y mod h)."""
        tile = random_bitmap(5, 3, seed=4)
        tiled = tile_fill(tile, 17, 11)

        for y in range(11):
            for x in range(17):
                self.assertEqual(tiled.getpixel(x, y), tile.getpixel(x % 5, y % 3))

    def test_canvas_smaller_than_tile(self):
        """A small canvas is the top-left crop of the tile."""
        tile = random_bitmap(8, 8, seed=2)
        tiled = tile_fill(tile, 3, 2)

        self.assertTrue(np.array_equal(tiled.pixels, tile.pixels[:2, :3]))


class TestApplyMaskClip(unittest.TestCase):
    """Test destination-in clipping."""

    def setUp(self):
        self.layer = Bitmap.blank(4, 1, (10, 20, 30, 255))
        self.mask = Mask(np.array([[0, 128, 255, 64]], dtype=np.uint8))

    def test_alpha_scaled_by_coverage(self):
        """Alpha becomes alpha * coverage / 255 (rounded)."""
        clipped = apply_mask_clip(self.layer, self.mask)

        self.assertEqual([int(a) for a in clipped.pixels[0, :, 3]], [0, 128, 255, 64])

    def test_color_channels_unchanged(self):
        """Only alpha is affected."""
        clipped = apply_mask_clip(self.layer, self.mask)

        self.assertTrue(np.all(clipped.pixels[:, :, :3] == self.layer.pixels[:, :, :3]))

    def test_input_not_modified(self):
        """The source layer keeps its alpha."""
        apply_mask_clip(self.layer, self.mask)

        self.assertTrue(np.all(self.layer.pixels[:, :, 3] == 255))

    def test_size_mismatch(self):
        """Layer and mask must align."""
        with self.assertRaises(DimensionMismatchError):
            apply_mask_clip(self.layer, Mask.full(3, 1))


class TestBlendOver(unittest.TestCase):
    """Test over compositing."""

    def test_transparent_layer_keeps_base(self):
        """Alpha 0 keeps the base pixel."""
        base = random_bitmap(6, 6, seed=3, opaque=False)
        layer = Bitmap.blank(6, 6, (255, 255, 255, 0))

        self.assertEqual(blend_over(base, layer), base)

    def test_opaque_layer_replaces_base(self):
        """Alpha 255 replaces the base pixel."""
        base = random_bitmap(6, 6, seed=3)
        layer = random_bitmap(6, 6, seed=9)

        self.assertEqual(blend_over(base, layer), layer)

    def test_half_alpha_on_opaque_base(self):
        """Partial alpha mixes colors and stays opaque."""
        base = Bitmap.blank(1, 1, (0, 0, 0, 255))
        layer = Bitmap.blank(1, 1, (255, 255, 255, 128))

        self.assertEqual(blend_over(base, layer).getpixel(0, 0), (128, 128, 128, 255))

    def test_size_mismatch(self):
        """Base and layer must align."""
        with self.assertRaises(DimensionMismatchError):
            blend_over(Bitmap.blank(2, 2), Bitmap.blank(2, 3))


class TestComposite(unittest.TestCase):
    """Test the full compositing pipeline."""

    def setUp(self):
        self.original = random_bitmap(40, 30, seed=1)
        self.tile = TextureTile(random_bitmap(3, 2, seed=2))
        coverage = np.zeros((30, 40), dtype=np.uint8)
        coverage[10:25, 5:30] = 255
        coverage[0:5, 0:5] = 100
        self.mask = Mask(coverage)

    def test_output_size_matches_original(self):
        """The result has the original's dimensions."""
        result = composite(self.original, self.mask, self.tile)

        self.assertEqual(result.size, self.original.size)

    def test_uncovered_pixels_identical(self):
        """Coverage 0 leaves the original pixel bit-identical."""
        result = composite(self.original, self.mask, self.tile)
        uncovered = self.mask.coverage == 0

        self.assertTrue(np.array_equal(result.pixels[uncovered], self.original.pixels[uncovered]))

    def test_fully_covered_pixels_show_texture(self):
        """Coverage 255 shows the tiled texture alone."""
        result = composite(self.original, self.mask, self.tile)
        expected = tile_fill(scale_tile(self.tile), 40, 30)
        covered = self.mask.coverage == 255

        self.assertTrue(np.array_equal(result.pixels[covered], expected.pixels[covered]))

    def test_partial_coverage_blends(self):
        """Partially covered pixels lie between original and texture."""
        solid_tile = TextureTile(Bitmap.blank(2, 2, (255, 255, 255, 255)))
        original = Bitmap.blank(40, 30, (0, 0, 0, 255))

        result = composite(original, self.mask, solid_tile)

        self.assertEqual(result.getpixel(0, 0), (100, 100, 100, 255))

    def test_idempotent(self):
        """Identical inputs give identical bytes."""
        first = composite(self.original, self.mask, self.tile)
        second = composite(self.original, self.mask, self.tile)

        self.assertEqual(first.tobytes(), second.tobytes())

    def test_inputs_unchanged(self):
        """Compositing never writes into its inputs."""
        before = self.original.tobytes()
        composite(self.original, self.mask, self.tile)

        self.assertEqual(self.original.tobytes(), before)

    def test_dimension_mismatch(self):
        """A mask of a different size is rejected."""
        with self.assertRaises(DimensionMismatchError):
            composite(self.original, Mask.full(41, 30), self.tile)

    def test_empty_tile(self):
        """A zero-width tile is rejected."""
        empty = TextureTile(Bitmap(np.zeros((4, 0, 4), dtype=np.uint8)))

        with self.assertRaises(EmptyTileError):
            composite(self.original, self.mask, empty)

    def test_wrong_types(self):
        """Inputs must be model types."""
        with self.assertRaises(TypeError):
            composite(self.original.to_image(), self.mask, self.tile)

    def test_square_floor_scenario(self):
        """A polygon mask on a 200x200 image textures only the square."""
        original = random_bitmap(200, 200, seed=5)
        tile = TextureTile(random_bitmap(3, 3, seed=6))
        square = [Point(10, 10), Point(100, 10), Point(100, 100), Point(10, 100)]
        mask = rasterize_polygon(square, 200, 200)

        result = composite(original, mask, tile)

        inside = np.zeros((200, 200), dtype=bool)
        inside[10:100, 10:100] = True
        expected = tile_fill(scale_tile(tile), 200, 200)
        self.assertTrue(np.array_equal(result.pixels[~inside], original.pixels[~inside]))
        self.assertTrue(np.array_equal(result.pixels[inside], expected.pixels[inside]))

        # pattern repeats every 12 pixels (3 px tile x 4)
        self.assertTrue(np.array_equal(result.pixels[10:40, 12:24], result.pixels[10:40, 24:36]))


if __name__ == "__main__":
    unittest.main()
