"""In-memory cache of rendered ticker images, mirrored to disk."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional
from urllib.parse import quote

from config import IMAGE_TTL_SECONDS
from utils import write_file_atomic

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    game_id: str
    data: bytes
    fingerprint: str
    generated_at: float


def image_filename(game_id: str) -> str:
    """Percent-encode ``game_id`` so distinct ids never share a file."""

    return f"{quote(game_id, safe='')}.png"


class ImageCache:
    """Map game identifiers to their most recently rendered PNG bytes.

    ``is_stale`` is the only freshness check: an entry is served while its
    fingerprint matches the game's and it is younger than ``ttl`` seconds.
    Disk copies are written on every ``set`` but only read back through
    ``load_from_disk``.
    """

    def __init__(
        self,
        images_dir: os.PathLike | str,
        ttl: float = IMAGE_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._dir = Path(images_dir)
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def ttl(self) -> float:
        return self._ttl

    def initialize(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    def get(self, game_id: str) -> Optional[bytes]:
        entry = self._entries.get(game_id)
        return entry.data if entry is not None else None

    def is_stale(self, game_id: str, fingerprint: str) -> bool:
        entry = self._entries.get(game_id)
        if entry is None:
            return True
        if entry.fingerprint != fingerprint:
            return True
        return self._clock() - entry.generated_at > self._ttl

    def set(self, game_id: str, data: bytes, fingerprint: str) -> None:
        entry = CacheEntry(
            game_id=game_id,
            data=data,
            fingerprint=fingerprint,
            generated_at=self._clock(),
        )
        with self._lock:
            self._entries[game_id] = entry
        self._persist(game_id, data)

    def load_from_disk(self, game_id: str) -> Optional[bytes]:
        path = self._dir / image_filename(game_id)
        try:
            data = path.read_bytes()
        except OSError:
            return None
        return data or None

    def get_all(self) -> Dict[str, CacheEntry]:
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def retain(self, game_ids: Iterable[str]) -> int:
        """Drop memory entries not in ``game_ids``; disk copies stay. Returns the count dropped."""

        keep = set(game_ids)
        with self._lock:
            dropped = [game_id for game_id in self._entries if game_id not in keep]
            for game_id in dropped:
                del self._entries[game_id]
        return len(dropped)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._entries

    def _persist(self, game_id: str, data: bytes) -> None:
        path = self._dir / image_filename(game_id)
        try:
            write_file_atomic(path, data)
        except OSError as exc:
            _LOGGER.warning("Could not persist image for %s: %s", game_id, exc)
