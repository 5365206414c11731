"""Three-tier team logo cache: memory, then disk, then network.

Logos are treated as immutable once published, so records never expire. A
failed lookup anywhere in the chain returns ``None`` and the renderer draws
its fallback badge instead.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import urljoin

import requests

from config import LOGO_MAX_REDIRECTS, LOGO_TIMEOUT_SECONDS
from utils import write_file_atomic

_LOGGER = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
MAX_FILENAME_LENGTH = 120
KNOWN_EXTENSIONS = (".png", ".svg", ".jpg", ".jpeg")
DEFAULT_EXTENSION = ".png"
REDIRECT_CODES = {301, 302, 303, 307, 308}
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) led-sports-ticker/1.0"


def url_to_filename(url: str) -> str:
    """Map a logo URL to a filesystem-safe, bounded-length filename."""

    safe = _UNSAFE_CHARS.sub("_", url)
    trimmed = safe[-MAX_FILENAME_LENGTH:]
    if trimmed.lower().endswith(KNOWN_EXTENSIONS):
        return trimmed
    return trimmed + DEFAULT_EXTENSION


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Accept": "image/*,*/*;q=0.8"})
    return session


class LogoResolver:
    """Resolve logo URLs to raw image bytes.

    Memory hits return immediately. Disk hits populate memory. Network hits are
    written to disk and memory before being returned. Concurrent lookups of the
    same URL share a single in-flight fetch.
    """

    def __init__(
        self,
        logos_dir: os.PathLike | str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = LOGO_TIMEOUT_SECONDS,
        max_redirects: int = LOGO_MAX_REDIRECTS,
    ):
        self._dir = Path(logos_dir)
        self._session = session if session is not None else build_session()
        self._timeout = timeout
        self._max_redirects = max(0, int(max_redirects))
        self._memory: Dict[str, bytes] = {}
        self._pending: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self.fetch_count = 0

    @property
    def directory(self) -> Path:
        return self._dir

    def initialize(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    def clear_memory(self) -> None:
        with self._lock:
            self._memory.clear()

    def resolve(self, url: Optional[str]) -> Optional[bytes]:
        if not url or not url.strip():
            return None
        return self._resolve(url, ())

    # ─── Tiers ────────────────────────────────────────────────────────────────
    def _resolve(self, url: str, chain: Tuple[str, ...]) -> Optional[bytes]:
        cached = self._memory.get(url)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._memory.get(url)
            if cached is not None:
                return cached
            waiter = self._pending.get(url)
            leader = waiter is None
            if leader:
                waiter = threading.Event()
                self._pending[url] = waiter

        if not leader and chain:
            # A redirect hop must not wait on another leader: two URLs
            # redirecting to each other would block both threads.
            return self._resolve_uncached(url, chain)
        if not leader:
            # Another caller is already fetching this URL; share its result.
            waiter.wait(self._timeout * (self._max_redirects + 1) + 1)
            return self._memory.get(url)

        try:
            return self._resolve_uncached(url, chain)
        finally:
            with self._lock:
                self._pending.pop(url, None)
            waiter.set()

    def _resolve_uncached(self, url: str, chain: Tuple[str, ...]) -> Optional[bytes]:
        path = self._dir / url_to_filename(url)
        data = self._read_disk(path)
        if data is not None:
            self._remember(url, data)
            return data

        data = self._download(url, chain + (url,))
        if data is None:
            return None
        self._write_disk(path, data)
        self._remember(url, data)
        return data

    def _remember(self, url: str, data: bytes) -> None:
        with self._lock:
            self._memory[url] = data

    @staticmethod
    def _read_disk(path: Path) -> Optional[bytes]:
        try:
            data = path.read_bytes()
        except OSError:
            return None
        return data or None

    @staticmethod
    def _write_disk(path: Path, data: bytes) -> None:
        try:
            write_file_atomic(path, data)
        except OSError as exc:
            _LOGGER.warning("Could not persist logo %s: %s", path.name, exc)

    def _download(self, url: str, chain: Tuple[str, ...]) -> Optional[bytes]:
        with self._lock:
            self.fetch_count += 1
        try:
            with self._session.get(
                url, timeout=self._timeout, allow_redirects=False
            ) as response:
                status = response.status_code
                if status in REDIRECT_CODES:
                    location = response.headers.get("Location")
                    if location:
                        return self._follow_redirect(url, urljoin(url, location), chain)
                if not 200 <= status < 300:
                    _LOGGER.warning("Failed to download logo %s: HTTP %s", url, status)
                    return None
                content = response.content
        except requests.RequestException as exc:
            _LOGGER.warning("Failed to download logo %s: %s", url, exc)
            return None

        if not content:
            _LOGGER.warning("Failed to download logo %s: empty response", url)
            return None
        return content

    def _follow_redirect(
        self, url: str, target: str, chain: Tuple[str, ...]
    ) -> Optional[bytes]:
        hops = len(chain)
        if hops > self._max_redirects:
            _LOGGER.warning(
                "Failed to download logo %s: more than %d redirect(s)",
                chain[0],
                self._max_redirects,
            )
            return None
        if target in chain:
            _LOGGER.warning("Failed to download logo %s: redirect loop via %s", chain[0], url)
            return None
        _LOGGER.debug("Logo %s redirected to %s", url, target)
        return self._resolve(target, chain)
