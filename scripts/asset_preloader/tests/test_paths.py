"""
Tests for URL and path helpers.
"""

import unittest

from ..utils.paths import (
    base_directory, is_absolute_reference, resolve_reference, strip_extension,
    url_extension, url_scheme,
)


class TestUrlExtension(unittest.TestCase):

    def test_plain_path(self):
        self.assertEqual(url_extension("maps/level1.tmj"), ".tmj")

    def test_query_and_fragment(self):
        self.assertEqual(url_extension("https://cdn.example.com/a/b.TMX?v=1#x"), ".tmx")
        self.assertEqual(url_extension("a/b.tsj?cache=no"), ".tsj")

    def test_no_extension(self):
        self.assertEqual(url_extension("assets/maps"), "")
        self.assertEqual(url_extension("maps.d/level"), "")


class TestBaseDirectory(unittest.TestCase):
    """Test directory resolution for sibling references."""

    def test_strips_file_name(self):
        self.assertEqual(base_directory("maps/level1.tmj"), "maps/")
        self.assertEqual(base_directory("https://cdn.example.com/a/b.tmx?v=1"), "https://cdn.example.com/a/")

    def test_absolute_path(self):
        self.assertEqual(base_directory("/srv/maps/level1.tmx"), "/srv/maps/")
        self.assertEqual(base_directory("/level1.tmx"), "/")

    def test_bare_file_name(self):
        self.assertEqual(base_directory("level1.tmj"), "")

    def test_unrecognized_extension_is_directory(self):
        """Test that a URL without a known extension is used as the directory."""
        self.assertEqual(base_directory("assets/maps"), "assets/maps/")
        self.assertEqual(base_directory("assets/maps/"), "assets/maps/")


class TestResolveReference(unittest.TestCase):

    def test_relative(self):
        self.assertEqual(resolve_reference("maps/", "terrain.tsx"), "maps/terrain.tsx")
        self.assertEqual(resolve_reference("maps/", "../tiles/t.png"), "maps/../tiles/t.png")

    def test_empty_base(self):
        self.assertEqual(resolve_reference("", "terrain.tsx"), "terrain.tsx")

    def test_absolute_references_untouched(self):
        self.assertEqual(resolve_reference("maps/", "/abs/t.png"), "/abs/t.png")
        self.assertEqual(resolve_reference("maps/", "https://cdn/t.png"), "https://cdn/t.png")
        self.assertTrue(is_absolute_reference("file:///tmp/t.png"))
        self.assertFalse(is_absolute_reference("tiles/t.png"))


class TestHelpers(unittest.TestCase):

    def test_strip_extension(self):
        self.assertEqual(strip_extension("hero.png"), "hero")
        self.assertEqual(strip_extension("hero.idle.png"), "hero.idle")
        self.assertEqual(strip_extension("hero"), "hero")

    def test_url_scheme(self):
        self.assertEqual(url_scheme("HTTPS://example.com/a.png"), "https")
        self.assertEqual(url_scheme("file:///tmp/a.png"), "file")
        self.assertIsNone(url_scheme("maps/a.tmj"))
        self.assertIsNone(url_scheme("C://maps/a.tmj"))


if __name__ == '__main__':
    unittest.main()
