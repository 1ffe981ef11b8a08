"""
Tests for preloader configuration and manifests.
"""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from ..config import PreloaderConfig, PreloadManifest


class TestPreloaderConfig(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_defaults(self):
        config = PreloaderConfig()

        self.assertEqual(config.base_dir, ".")
        self.assertEqual(config.max_upload_passes, 5)
        self.assertIsNone(config.request_timeout)
        self.assertTrue(config.verify_ssl)
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(config.validate(), [])

    def test_from_toml(self):
        path = Path(self.temp_dir, "preloader.toml")
        path.write_text(
            '[paths]\nbase_dir = "assets"\n\n'
            '[scheduler]\nmax_upload_passes = 8\n\n'
            '[network]\nrequest_timeout = 10.0\nverify_ssl = false\n\n'
            '[logging]\nlevel = "DEBUG"\n'
        )

        config = PreloaderConfig.from_file(path)

        self.assertEqual(config.base_dir, "assets")
        self.assertEqual(config.max_upload_passes, 8)
        self.assertEqual(config.request_timeout, 10.0)
        self.assertFalse(config.verify_ssl)
        self.assertEqual(config.user_agent, "AssetPreloader/1.0")
        self.assertEqual(config.log_level, "DEBUG")

    def test_from_json(self):
        path = Path(self.temp_dir, "preloader.json")
        path.write_text(json.dumps({"scheduler": {"max_upload_passes": 3}}))

        config = PreloaderConfig.from_file(path)

        self.assertEqual(config.max_upload_passes, 3)
        self.assertEqual(config.base_dir, ".")

    def test_unsupported_format(self):
        path = Path(self.temp_dir, "preloader.yaml")
        path.write_text("scheduler: {}")

        with self.assertRaises(ValueError):
            PreloaderConfig.from_file(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            PreloaderConfig.from_file(Path(self.temp_dir, "missing.toml"))

    @patch.dict(os.environ, {
        'ASSET_PRELOADER_MAX_UPLOAD_PASSES': '9',
        'ASSET_PRELOADER_REQUEST_TIMEOUT': '4.5',
        'ASSET_PRELOADER_VERIFY_SSL': 'false',
        'ASSET_PRELOADER_LOG_LEVEL': 'warning',
    })
    def test_env_overrides(self):
        config = PreloaderConfig.from_env()

        self.assertEqual(config.max_upload_passes, 9)
        self.assertEqual(config.request_timeout, 4.5)
        self.assertFalse(config.verify_ssl)
        self.assertEqual(config.log_level, "WARNING")

    @patch.dict(os.environ, {'ASSET_PRELOADER_BASE_DIR': 'assets'})
    def test_default_applies_env(self):
        config = PreloaderConfig.default()

        self.assertEqual(config.base_dir, "assets")
        self.assertEqual(config.max_upload_passes, 5)

    def test_validate(self):
        not_a_dir = Path(self.temp_dir, "file.txt")
        not_a_dir.write_text("x")
        config = PreloaderConfig(
            base_dir=str(not_a_dir),
            max_upload_passes=0,
            request_timeout=-1,
            user_agent="",
            log_level="LOUD",
        )

        errors = config.validate()

        self.assertEqual(len(errors), 5)
        self.assertTrue(any("max_upload_passes" in e for e in errors))
        self.assertTrue(any("not a directory" in e for e in errors))


class TestPreloadManifest(unittest.TestCase):

    def test_from_dict(self):
        manifest = PreloadManifest.from_dict({
            "Image": {"hero": "sprites/hero.png", "tree": "sprites/tree.png"},
            "TileMap": {"level1": "maps/level1.tmj"},
        })

        self.assertEqual(len(manifest), 3)
        self.assertEqual(list(manifest), [
            ("Image", "hero", "sprites/hero.png"),
            ("Image", "tree", "sprites/tree.png"),
            ("TileMap", "level1", "maps/level1.tmj"),
        ])

    def test_invalid_section(self):
        with self.assertRaises(ValueError):
            PreloadManifest.from_dict({"Image": "hero.png"})

    def test_from_toml_file(self):
        temp_dir = tempfile.mkdtemp()
        try:
            path = Path(temp_dir, "manifest.toml")
            path.write_text('[Audio]\ntheme = "music/theme.ogg"\n')

            manifest = PreloadManifest.from_file(path)

            self.assertEqual(list(manifest), [("Audio", "theme", "music/theme.ogg")])
        finally:
            shutil.rmtree(temp_dir)


if __name__ == '__main__':
    unittest.main()
