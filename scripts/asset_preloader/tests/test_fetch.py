"""
Tests for byte fetching over HTTP and the local filesystem.
"""

import shutil
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from ..config import PreloaderConfig
from ..errors import NetworkError, ResourceNotFoundError
from ..loaders.fetch import ResourceFetcher


class TestLocalFetch(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.fetcher = ResourceFetcher(PreloaderConfig(base_dir=self.temp_dir))
        Path(self.temp_dir, "data").mkdir()
        Path(self.temp_dir, "data", "level.bin").write_bytes(b"\x01\x02")

    def tearDown(self):
        self.fetcher.close()
        shutil.rmtree(self.temp_dir)

    def test_relative_path_uses_base_dir(self):
        self.assertEqual(self.fetcher.fetch("data/level.bin"), b"\x01\x02")

    def test_query_string_ignored(self):
        self.assertEqual(self.fetcher.fetch("data/level.bin?v=3"), b"\x01\x02")

    def test_absolute_path_and_file_url(self):
        path = Path(self.temp_dir, "data", "level.bin").resolve()

        self.assertEqual(self.fetcher.fetch(str(path)), b"\x01\x02")
        self.assertEqual(self.fetcher.fetch(path.as_uri()), b"\x01\x02")

    def test_missing_file(self):
        with self.assertRaises(ResourceNotFoundError) as ctx:
            self.fetcher.fetch("data/missing.bin")

        self.assertTrue(ctx.exception.recoverable)
        self.assertEqual(ctx.exception.url, "data/missing.bin")

    def test_unsupported_scheme(self):
        with self.assertRaises(NetworkError):
            self.fetcher.fetch("ftp://example.com/level.bin")


class TestHttpFetch(unittest.TestCase):

    def setUp(self):
        self.config = PreloaderConfig(request_timeout=2.5, user_agent="TestAgent/2.0", verify_ssl=False)
        self.fetcher = ResourceFetcher(self.config)

    def tearDown(self):
        self.fetcher.close()

    def test_session_settings(self):
        self.assertEqual(self.fetcher.session.headers['User-Agent'], "TestAgent/2.0")
        self.assertFalse(self.fetcher.session.verify)

    def test_session_per_thread(self):
        sessions = []
        worker = threading.Thread(target=lambda: sessions.append(self.fetcher.session))
        worker.start()
        worker.join()

        self.assertIs(self.fetcher.session, self.fetcher.session)
        self.assertIsNot(sessions[0], self.fetcher.session)
        self.assertEqual(sessions[0].headers['User-Agent'], "TestAgent/2.0")
        self.assertFalse(sessions[0].verify)

    def test_close_closes_every_session(self):
        sessions = [self.fetcher.session]
        worker = threading.Thread(target=lambda: sessions.append(self.fetcher.session))
        worker.start()
        worker.join()

        with patch.object(sessions[0], 'close') as close_main, patch.object(sessions[1], 'close') as close_worker:
            self.fetcher.close()

        close_main.assert_called_once()
        close_worker.assert_called_once()
        self.assertIsNot(self.fetcher.session, sessions[0])

    def test_successful_get(self):
        response = MagicMock()
        response.content = b"payload"

        with patch.object(self.fetcher.session, 'get', return_value=response) as mock_get:
            data = self.fetcher.fetch("https://cdn.example.com/hero.png")

        self.assertEqual(data, b"payload")
        mock_get.assert_called_once_with("https://cdn.example.com/hero.png", timeout=2.5)
        response.raise_for_status.assert_called_once()

    def test_http_error(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")

        with patch.object(self.fetcher.session, 'get', return_value=response):
            with self.assertRaises(NetworkError) as ctx:
                self.fetcher.fetch("https://cdn.example.com/missing.png")

        self.assertTrue(ctx.exception.recoverable)
        self.assertIn("Network error", str(ctx.exception))

    def test_connection_error(self):
        with patch.object(self.fetcher.session, 'get', side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(NetworkError):
                self.fetcher.fetch("http://localhost:1/hero.png")


class TestAsyncFetch(unittest.IsolatedAsyncioTestCase):

    async def test_fetch_async(self):
        fetcher = ResourceFetcher()
        with patch.object(fetcher, 'fetch', return_value=b"bytes") as mock_fetch:
            data = await fetcher.fetch_async("hero.png")

        self.assertEqual(data, b"bytes")
        mock_fetch.assert_called_once_with("hero.png")
        fetcher.close()


if __name__ == '__main__':
    unittest.main()
