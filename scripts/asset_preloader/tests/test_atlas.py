"""
Tests for atlas slicing.
"""

import unittest
from PIL import Image

from ..processing.atlas import AtlasSlicer, SliceResult
from ..schema import AtlasEntry
from ..utils.image import ImageUtils
from .samples import atlas_png_bytes


class TestAtlasSlicer(unittest.TestCase):
    """Test AtlasSlicer class functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.slicer = AtlasSlicer()
        self.sheet = ImageUtils.load_image(atlas_png_bytes())

    def test_one_image_per_entry(self):
        entries = [
            AtlasEntry("red", 0, 0, 16, 8),
            AtlasEntry("green", 16, 0, 16, 8),
            AtlasEntry("blue", 0, 8, 32, 8),
        ]

        result = self.slicer.slice(self.sheet, entries)

        self.assertIsInstance(result, SliceResult)
        self.assertEqual(len(result), 3)
        self.assertEqual(result.images["red"].size, (16, 8))
        self.assertEqual(result.images["blue"].size, (32, 8))
        self.assertEqual(result.images["red"].getpixel((0, 0)), (255, 0, 0, 255))
        self.assertEqual(result.images["green"].getpixel((15, 7)), (0, 255, 0, 255))
        self.assertEqual(result.images["blue"].getpixel((31, 0)), (0, 0, 255, 255))
        self.assertEqual(result.skipped, [])

    def test_pieces_are_independent(self):
        """Test that modifying a piece does not touch the sheet."""
        result = self.slicer.slice(self.sheet, [AtlasEntry("red", 0, 0, 16, 8)])

        result.images["red"].putpixel((0, 0), (1, 2, 3, 4))

        self.assertEqual(self.sheet.getpixel((0, 0)), (255, 0, 0, 255))

    def test_out_of_bounds_entry_skipped(self):
        entries = [AtlasEntry("ok", 0, 0, 8, 8), AtlasEntry("outside", 24, 8, 16, 16)]

        with self.assertLogs("asset_preloader.processing.atlas", level="WARNING"):
            result = self.slicer.slice(self.sheet, entries)

        self.assertEqual(list(result.images), ["ok"])
        self.assertEqual(result.skipped, ["outside"])
        self.assertIn("exceeds atlas bounds", result.warnings[0])

    def test_invalid_size_skipped(self):
        result = self.slicer.slice(self.sheet, [AtlasEntry("empty", 0, 0, 0, 8)])

        self.assertEqual(len(result), 0)
        self.assertIn("invalid size", result.warnings[0])

    def test_duplicate_names_keep_first(self):
        entries = [AtlasEntry("tile", 0, 0, 16, 8), AtlasEntry("tile", 16, 0, 16, 8)]

        result = self.slicer.slice(self.sheet, entries)

        self.assertEqual(len(result), 1)
        self.assertEqual(result.images["tile"].getpixel((0, 0)), (255, 0, 0, 255))

    def test_converts_to_rgba(self):
        sheet = Image.new('RGB', (8, 8), (10, 20, 30))

        result = self.slicer.slice(sheet, [AtlasEntry("a", 0, 0, 4, 4)])

        self.assertEqual(result.images["a"].mode, 'RGBA')


class TestImageUtils(unittest.TestCase):

    def test_load_image_rejects_garbage(self):
        with self.assertRaises(ValueError):
            ImageUtils.load_image(b"not an image")

    def test_fully_transparent(self):
        self.assertTrue(ImageUtils.is_fully_transparent(Image.new('RGBA', (4, 4), (0, 0, 0, 0))))
        self.assertFalse(ImageUtils.is_fully_transparent(Image.new('RGBA', (4, 4), (0, 0, 0, 1))))
        self.assertFalse(ImageUtils.is_fully_transparent(Image.new('RGB', (4, 4))))

    def test_fits(self):
        image = Image.new('RGBA', (10, 10))
        self.assertTrue(ImageUtils.fits(image, (0, 0, 10, 10)))
        self.assertFalse(ImageUtils.fits(image, (5, 5, 11, 10)))
        self.assertFalse(ImageUtils.fits(image, (5, 5, 5, 10)))


if __name__ == '__main__':
    unittest.main()
