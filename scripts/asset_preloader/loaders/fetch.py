"""
Byte-level resource fetching over HTTP(S) and the local filesystem.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import requests

from ..config import PreloaderConfig
from ..errors import NetworkError, ResourceLoadError, ResourceNotFoundError
from ..utils.paths import url_scheme

logger = logging.getLogger(__name__)


class ResourceFetcher:
    """
    Fetches raw bytes for a URL.

    ``http``/``https`` URLs go through a ``requests.Session`` per thread. Plain
    paths and ``file://`` URLs are read from disk, relative paths being
    resolved against ``config.base_dir``.
    """

    def __init__(self, config: Optional[PreloaderConfig] = None):
        self.config = config or PreloaderConfig()
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """
        Session of the calling thread.

        ``fetch_async`` runs on worker threads and ``requests.Session`` is not
        documented as thread-safe, so every thread gets its own session.
        """
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({
                'User-Agent': self.config.user_agent
            })
            session.verify = self.config.verify_ssl
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def fetch(self, url: str) -> bytes:
        """
        Fetch the bytes of a resource.

        Raises:
            NetworkError: If an HTTP request fails or the scheme is unsupported
            ResourceNotFoundError: If a local file does not exist
        """
        scheme = url_scheme(url)
        if scheme in ("http", "https"):
            return self._fetch_http(url)
        if scheme is None or scheme == "file":
            return self._read_local(url)
        raise NetworkError(f"Unsupported URL scheme '{scheme}'", url)

    async def fetch_async(self, url: str) -> bytes:
        """Fetch the bytes of a resource without blocking the event loop."""
        return await asyncio.to_thread(self.fetch, url)

    def resolve_local_path(self, url: str) -> Path:
        """Map a plain path or ``file://`` URL to a filesystem path."""
        if url_scheme(url) == "file":
            path = Path(url2pathname(unquote(urlsplit(url).path)))
        else:
            path = Path(url.split("?", 1)[0].split("#", 1)[0])

        if not path.is_absolute():
            path = Path(self.config.base_dir) / path
        return path

    def close(self) -> None:
        """Close the sessions of every thread that fetched over HTTP."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()

    def _fetch_http(self, url: str) -> bytes:
        try:
            logger.debug(f"GET {url}")
            response = self.session.get(url, timeout=self.config.request_timeout)
            response.raise_for_status()
            return response.content
        except requests.RequestException as e:
            raise NetworkError(f"Failed to fetch {url}: {e}", url)

    def _read_local(self, url: str) -> bytes:
        path = self.resolve_local_path(url)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ResourceNotFoundError(url)
        except OSError as e:
            raise ResourceLoadError(f"Failed to read {path}: {e}", url)
