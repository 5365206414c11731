#!/usr/bin/env python3
"""
data_fetch.py

Game-list providers feeding the ticker: a JSON-file mock provider and an API
provider stub that delegates to the mock data until a real feed is wired in.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from typing import Dict, List, Optional

from config import DATA_PROVIDER, MOCK_GAMES_PATH, SPORTS_API_KEY
from models import Game, Team, games_from_payload

_LOGGER = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Raised when a provider cannot produce a game list."""


# ─── League logo CDN lookups ──────────────────────────────────────────────────
ESPN_LOGO_URL = "https://a.espncdn.com/i/teamlogos/{league}/500/{code}.png"

NBA_CODES: Dict[str, str] = {
    "ATL": "atl", "BOS": "bos", "BKN": "bkn", "CHA": "cha", "CHI": "chi",
    "CLE": "cle", "DAL": "dal", "DEN": "den", "DET": "det", "GSW": "gs",
    "HOU": "hou", "IND": "ind", "LAC": "lac", "LAL": "lal", "MEM": "mem",
    "MIA": "mia", "MIL": "mil", "MIN": "min", "NOP": "no", "NYK": "ny",
    "OKC": "okc", "ORL": "orl", "PHI": "phi", "PHX": "phx", "POR": "por",
    "SAC": "sac", "SAS": "sa", "TOR": "tor", "UTA": "uta", "WAS": "wsh",
}

NHL_CODES: Dict[str, str] = {
    "ANA": "ana", "BOS": "bos", "BUF": "buf", "CGY": "cgy", "CAR": "car",
    "CHI": "chi", "COL": "col", "CBJ": "cbj", "DAL": "dal", "DET": "det",
    "EDM": "edm", "FLA": "fla", "LAK": "la", "MIN": "min", "MTL": "mtl",
    "NSH": "nsh", "NJD": "nj", "NYI": "nyi", "NYR": "nyr", "OTT": "ott",
    "PHI": "phi", "PIT": "pit", "SJS": "sj", "SEA": "sea", "STL": "stl",
    "TBL": "tb", "TOR": "tor", "UTA": "utah", "VAN": "van", "VGK": "vgk",
    "WSH": "wsh", "WPG": "wpg",
}

_LEAGUE_CODES = {"nba": NBA_CODES, "nhl": NHL_CODES}


def league_logo_url(league: str, abbr: str) -> Optional[str]:
    """Return the CDN logo URL for a team abbreviation, if the league is known."""

    codes = _LEAGUE_CODES.get((league or "").strip().lower())
    if not codes:
        return None
    code = codes.get((abbr or "").strip().upper())
    if not code:
        return None
    return ESPN_LOGO_URL.format(league=league.strip().lower(), code=code)


def _with_default_logo(team: Team, league: str) -> Team:
    if team.logo_url:
        return team
    url = league_logo_url(league, team.abbr)
    return dataclasses.replace(team, logo_url=url) if url else team


def fill_default_logos(game: Game) -> Game:
    return dataclasses.replace(
        game,
        home=_with_default_logo(game.home, game.league),
        away=_with_default_logo(game.away, game.league),
    )


# ─── Providers ────────────────────────────────────────────────────────────────
class MockProvider:
    """Read games from a JSON array on disk."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or MOCK_GAMES_PATH

    def fetch_games(self) -> List[Game]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except OSError as exc:
            raise ProviderError(f"Could not read {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProviderError(f"Malformed game data in {self.path}: {exc}") from exc

        if not isinstance(payload, list):
            raise ProviderError(f"{self.path} must contain a JSON array of games")
        return [fill_default_logos(game) for game in games_from_payload(payload)]


class ApiProvider:
    """Live sports API provider.

    Until a real API mapping is configured this serves the mock data, so the
    service keeps running without credentials.
    """

    def __init__(self, api_key: Optional[str] = None, fallback: Optional[MockProvider] = None):
        self.api_key = api_key if api_key is not None else SPORTS_API_KEY
        self.fallback = fallback or MockProvider()
        if not self.api_key:
            _LOGGER.warning(
                "No SPORTS_API_KEY set; falling back to mock data. "
                "Set DATA_PROVIDER=mock or provide an API key."
            )

    def fetch_games(self) -> List[Game]:
        if self.api_key:
            _LOGGER.info("Fetching live data from sports API…")
        return self.fallback.fetch_games()


def build_provider(kind: Optional[str] = None, *, mock_path: Optional[str] = None):
    kind = (kind or DATA_PROVIDER).strip().lower()
    mock = MockProvider(mock_path) if mock_path else MockProvider()
    if kind == "api":
        return ApiProvider(fallback=mock)
    if kind != "mock":
        _LOGGER.warning("Unknown provider %r; using mock data", kind)
    return mock


def mock_games_path_exists(path: Optional[str] = None) -> bool:
    return os.path.isfile(path or MOCK_GAMES_PATH)
