"""Glue between the game provider, the renderer and the two caches.

``TickerService`` owns the current game list and answers the two questions the
web layer asks: "give me the image for this game" and "bring every cached
image up to date".
"""

from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from data_fetch import ProviderError
from image_cache import ImageCache
from logos import LogoResolver
from models import Game
from screens.ticker import render_ticker_image

_LOGGER = logging.getLogger(__name__)

Renderer = Callable[[Game, LogoResolver], bytes]


class GameNotFoundError(LookupError):
    """No game (and no persisted image) exists for the requested identifier."""

    def __init__(self, game_id: str):
        super().__init__(f"No game with id {game_id!r}")
        self.game_id = game_id


class RenderError(RuntimeError):
    """Drawing a game failed unexpectedly."""

    def __init__(self, game_id: str, cause: BaseException):
        super().__init__(f"Failed to render {game_id!r}: {cause}")
        self.game_id = game_id


@dataclass(frozen=True)
class RefreshResult:
    regenerated: int
    untouched: int
    total: int


class TickerService:
    def __init__(
        self,
        provider,
        image_cache: ImageCache,
        logos: LogoResolver,
        *,
        renderer: Renderer = render_ticker_image,
    ):
        self._provider = provider
        self._cache = image_cache
        self._logos = logos
        self._renderer = renderer
        self._games: Dict[str, Game] = {}
        self._lock = threading.Lock()
        self.last_update: Optional[datetime.datetime] = None
        self.refresh_count = 0

    @property
    def games(self) -> List[Game]:
        with self._lock:
            return list(self._games.values())

    @property
    def image_cache(self) -> ImageCache:
        return self._cache

    def initialize(self) -> None:
        self._cache.initialize()
        self._logos.initialize()

    def find_game(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def render(self, game: Game) -> bytes:
        try:
            return self._renderer(game, self._logos)
        except Exception as exc:
            raise RenderError(game.id, exc) from exc

    def _ensure_fresh(self, game: Game) -> bool:
        """Render ``game`` into the cache when stale. Returns True if it rendered."""

        fingerprint = game.fingerprint
        if not self._cache.is_stale(game.id, fingerprint):
            return False
        data = self.render(game)
        self._cache.set(game.id, data, fingerprint)
        return True

    def refresh_games(self, games: Iterable[Game]) -> RefreshResult:
        games = list(games)
        regenerated = 0
        for game in games:
            try:
                if self._ensure_fresh(game):
                    regenerated += 1
            except RenderError:
                _LOGGER.exception("Render failed for game %s; keeping previous image", game.id)

        with self._lock:
            self._games = {game.id: game for game in games}
            self.last_update = datetime.datetime.now(datetime.timezone.utc)
            self.refresh_count += 1
            count = self.refresh_count
        dropped = self._cache.retain(game.id for game in games)
        if dropped:
            _LOGGER.debug("Evicted %d image(s) for games no longer listed", dropped)

        result = RefreshResult(
            regenerated=regenerated,
            untouched=len(games) - regenerated,
            total=len(games),
        )
        if regenerated:
            _LOGGER.info(
                "[Refresh #%d] Regenerated %d/%d images", count, regenerated, len(games)
            )
        else:
            _LOGGER.info("[Refresh #%d] %d games up-to-date", count, len(games))
        return result

    def refresh(self) -> Optional[RefreshResult]:
        """Fetch a fresh game list and refresh the cache; ``None`` on provider failure."""

        try:
            games = self._provider.fetch_games()
        except ProviderError as exc:
            _LOGGER.error("Failed to refresh data: %s", exc)
            return None
        return self.refresh_games(games)

    def image_for(self, game_id: str) -> bytes:
        """Return PNG bytes for ``game_id``.

        Raises :class:`GameNotFoundError` when nothing is known about the id and
        :class:`RenderError` when drawing a known game fails.
        """

        game = self.find_game(game_id)
        if game is not None:
            self._ensure_fresh(game)

        data = self._cache.get(game_id)
        if data is not None:
            return data

        data = self._cache.load_from_disk(game_id)
        if data is not None:
            return data
        raise GameNotFoundError(game_id)

    def start_refresh_loop(
        self, interval: float, stop_event: threading.Event
    ) -> threading.Thread:
        def _loop() -> None:
            while not stop_event.wait(interval):
                try:
                    self.refresh()
                except Exception:
                    _LOGGER.exception("Refresh loop iteration failed")
            _LOGGER.debug("Refresh loop exiting.")

        thread = threading.Thread(target=_loop, name="ticker-refresh", daemon=True)
        thread.start()
        return thread
