"""
Tests for the loader registry.
"""

import unittest
from unittest.mock import Mock

from ..errors import DuplicateKeyError, InvalidInputError, UnregisteredLoaderError
from ..loaders.base import LoaderHandle, LoaderRegistry, ResourceRecord


async def echo_url(key, url, *args):
    return url


async def upper_url(key, url, *args):
    return url.upper()


class TestRegisterLoaderType(unittest.TestCase):
    """Test loader type registration."""

    def setUp(self):
        self.registry = LoaderRegistry(default_upload_function=echo_url)

    def test_register_with_default(self):
        loader_type = self.registry.register_loader_type("Text")

        self.assertIs(loader_type.upload_function, echo_url)
        self.assertEqual(self.registry.loader_names, ["Text"])

    def test_reregistration_keeps_first_function(self):
        """Test that registering an existing name never replaces its upload function."""
        first = self.registry.register_loader_type("Text", echo_url)
        self.registry.add_file("Text", "a", "a.txt")

        with self.assertLogs("asset_preloader.loaders.base", level="WARNING"):
            second = self.registry.register_loader_type("Text", upper_url)

        self.assertIs(first, second)
        self.assertIs(second.upload_function, echo_url)
        self.assertTrue(self.registry.is_file_in_queue("Text", "a"))

    def test_is_registered(self):
        self.assertFalse(self.registry.is_registered("Text"))

        self.registry.register_loader_type("Text")

        self.assertTrue(self.registry.is_registered("Text"))

    def test_no_default_function(self):
        registry = LoaderRegistry()

        with self.assertRaises(ValueError):
            registry.register_loader_type("Text")

    def test_not_callable(self):
        with self.assertRaises(ValueError):
            self.registry.register_loader_type("Text", "not a function")

    def test_blank_name(self):
        with self.assertRaises(InvalidInputError):
            self.registry.register_loader_type("  ")


class TestQueueOperations(unittest.TestCase):
    """Test enqueue and lookup operations."""

    def setUp(self):
        self.on_duplicate = Mock()
        self.registry = LoaderRegistry(default_upload_function=echo_url, on_duplicate=self.on_duplicate)
        self.registry.register_loader_type("Image")
        self.registry.register_loader_type("Audio")

    def test_add_file(self):
        self.assertTrue(self.registry.add_file("Image", "hero", "hero.png", 1, "x"))

        self.assertTrue(self.registry.is_file_in_queue("Image", "hero"))
        record = self.registry.get_loader_type("Image").pending["hero"]
        self.assertEqual(record, ResourceRecord("hero", "hero.png", (1, "x")))

    def test_unregistered_type(self):
        with self.assertRaises(UnregisteredLoaderError) as ctx:
            self.registry.add_file("Video", "intro", "intro.mp4")
        self.assertIn("Available", str(ctx.exception))

        with self.assertRaises(UnregisteredLoaderError):
            self.registry.get_file("Video", "intro")

        with self.assertRaises(UnregisteredLoaderError):
            self.registry.is_file_in_queue("Video", "intro")

    def test_blank_key_or_url(self):
        for key, url in (("", "a.png"), ("   ", "a.png"), ("a", ""), ("a", " \t"), (None, "a.png"), ("a", 3)):
            with self.subTest(key=key, url=url):
                with self.assertRaises(InvalidInputError):
                    self.registry.add_file("Image", key, url)

        self.assertEqual(self.registry.total_pending(), 0)

    def test_duplicate_keeps_first(self):
        self.registry.add_file("Image", "hero", "first.png")

        with self.assertLogs("asset_preloader.loaders.base", level="WARNING"):
            added = self.registry.add_file("Image", "hero", "second.png")

        self.assertFalse(added)
        self.assertEqual(self.registry.get_loader_type("Image").pending["hero"].url, "first.png")
        self.on_duplicate.assert_called_once()
        error = self.on_duplicate.call_args[0][0]
        self.assertIsInstance(error, DuplicateKeyError)
        self.assertTrue(error.recoverable)
        self.assertEqual(error.key, "hero")

    def test_duplicate_of_completed_key(self):
        self.registry.add_file("Image", "hero", "hero.png")
        self.registry.complete("Image", "hero", "result")

        self.assertFalse(self.registry.add_file("Image", "hero", "again.png"))
        self.assertFalse(self.registry.is_file_in_queue("Image", "hero"))

    def test_same_key_different_types(self):
        self.assertTrue(self.registry.add_file("Image", "intro", "intro.png"))
        self.assertTrue(self.registry.add_file("Audio", "intro", "intro.ogg"))
        self.assertEqual(self.registry.total_pending(), 2)

    def test_complete_moves_key(self):
        self.registry.add_file("Image", "hero", "hero.png")

        self.registry.complete("Image", "hero", "pixels")

        self.assertFalse(self.registry.is_file_in_queue("Image", "hero"))
        self.assertEqual(self.registry.get_file("Image", "hero"), "pixels")
        self.assertEqual(self.registry.total_pending(), 0)

    def test_discard(self):
        self.registry.add_file("Image", "hero", "hero.png")

        self.registry.discard("Image", "hero")

        self.assertFalse(self.registry.has_file("Image", "hero"))

    def test_get_missing_file(self):
        with self.assertLogs("asset_preloader.loaders.base", level="WARNING"):
            self.assertIsNone(self.registry.get_file("Image", "missing"))

    def test_store_result_does_not_overwrite(self):
        self.assertTrue(self.registry.store_result("Image", "piece", 1))
        self.registry.add_file("Image", "queued", "queued.png")

        self.assertFalse(self.registry.store_result("Image", "piece", 2))
        self.assertFalse(self.registry.store_result("Image", "queued", 3))
        self.assertEqual(self.registry.get_file("Image", "piece"), 1)
        self.assertTrue(self.registry.is_file_in_queue("Image", "queued"))

    def test_pending_snapshot_is_a_copy(self):
        self.registry.add_file("Image", "a", "a.png")
        self.registry.add_file("Audio", "b", "b.ogg")

        snapshot = self.registry.pending_snapshot()
        self.registry.add_file("Image", "c", "c.png")

        self.assertEqual([record.key for _, record in snapshot], ["a", "b"])
        self.assertEqual(self.registry.total_pending(), 3)


class TestLoaderHandle(unittest.TestCase):

    def setUp(self):
        self.registry = LoaderRegistry(default_upload_function=echo_url)
        self.registry.register_loader_type("Image")
        self.handle = LoaderHandle(self.registry, "Image")

    def test_operations(self):
        self.assertTrue(self.handle.add("hero", "hero.png"))
        self.assertTrue(self.handle.is_in_queue("hero"))
        self.assertEqual(self.handle.pending_count, 1)

        self.registry.complete("Image", "hero", "pixels")

        self.assertEqual(self.handle.get("hero"), "pixels")
        self.assertEqual(self.handle.loaded_count, 1)

    def test_unregistered(self):
        with self.assertRaises(UnregisteredLoaderError):
            LoaderHandle(self.registry, "Video")


if __name__ == '__main__':
    unittest.main()
