"""Game records consumed by the ticker renderer and caches.

Every value here is an immutable snapshot produced by a data provider. A new
:class:`Game` with the same ``id`` replaces the previous one; nothing mutates
in place.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from PIL import ImageColor

from config import FALLBACK_TEAM_COLOR

RGB = Tuple[int, int, int]

_LOGGER = logging.getLogger(__name__)


class StatusState(enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


# Provider spellings mapped onto the closed set of states.
_STATE_ALIASES = {
    "pre": StatusState.SCHEDULED,
    "scheduled": StatusState.SCHEDULED,
    "upcoming": StatusState.SCHEDULED,
    "in_progress": StatusState.IN_PROGRESS,
    "in": StatusState.IN_PROGRESS,
    "live": StatusState.IN_PROGRESS,
    "final": StatusState.FINAL,
    "post": StatusState.FINAL,
}


@dataclass(frozen=True)
class Team:
    name: str
    abbr: str
    color: RGB = FALLBACK_TEAM_COLOR
    record: Optional[str] = None
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class Score:
    home: int = 0
    away: int = 0


@dataclass(frozen=True)
class Status:
    state: StatusState = StatusState.SCHEDULED
    period: Optional[int] = None
    clock: Optional[str] = None
    detail: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return self.state is StatusState.SCHEDULED

    @property
    def is_in_progress(self) -> bool:
        return self.state is StatusState.IN_PROGRESS

    @property
    def is_final(self) -> bool:
        return self.state is StatusState.FINAL


@dataclass(frozen=True)
class Game:
    id: str
    league: str
    home: Team
    away: Team
    score: Score = field(default_factory=Score)
    status: Status = field(default_factory=Status)
    updated_at: str = ""

    @property
    def fingerprint(self) -> str:
        """Cache fingerprint: the provider's update stamp, namespaced by league."""

        return f"{self.league}:{self.updated_at}"

    def winner(self) -> Optional[str]:
        """Return ``"home"``/``"away"`` for a decided final game, else ``None``."""

        if not self.status.is_final:
            return None
        if self.score.home > self.score.away:
            return "home"
        if self.score.away > self.score.home:
            return "away"
        return None


# ─── Parsing ──────────────────────────────────────────────────────────────────
def parse_color(value: Any) -> RGB:
    if isinstance(value, (tuple, list)) and len(value) >= 3:
        try:
            return tuple(max(0, min(255, int(c))) for c in value[:3])  # type: ignore[return-value]
        except (TypeError, ValueError):
            return FALLBACK_TEAM_COLOR
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if not text.startswith("#") and len(text) in (3, 6):
            text = f"#{text}"
        try:
            return ImageColor.getrgb(text)[:3]
        except ValueError:
            _LOGGER.debug("Unparseable team colour %r", value)
    return FALLBACK_TEAM_COLOR


def parse_state(value: Any) -> StatusState:
    if isinstance(value, StatusState):
        return value
    key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    return _STATE_ALIASES.get(key, StatusState.SCHEDULED)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _score_value(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def team_from_dict(data: Mapping[str, Any]) -> Team:
    if not isinstance(data, Mapping):
        raise ValueError("team must be an object")
    abbr = _optional_text(data.get("abbr") or data.get("abbreviation")) or ""
    name = _optional_text(data.get("name")) or abbr
    if not abbr and not name:
        raise ValueError("team needs a name or abbreviation")
    return Team(
        name=name,
        abbr=abbr or name[:3].upper(),
        color=parse_color(data.get("color")),
        record=_optional_text(data.get("record")),
        logo_url=_optional_text(data.get("logoUrl") or data.get("logo_url")),
    )


def status_from_dict(data: Optional[Mapping[str, Any]]) -> Status:
    data = data if isinstance(data, Mapping) else {}
    return Status(
        state=parse_state(data.get("state")),
        period=_optional_int(data.get("period")),
        clock=_optional_text(data.get("clock")),
        detail=_optional_text(data.get("detail")),
    )


def game_from_dict(data: Mapping[str, Any]) -> Game:
    """Build a :class:`Game` from a provider payload.

    Raises ``ValueError`` when the identifier or either team is missing.
    """

    if not isinstance(data, Mapping):
        raise ValueError("game must be an object")
    game_id = _optional_text(data.get("id"))
    if not game_id:
        raise ValueError("game is missing an id")
    if "home" not in data or "away" not in data:
        raise ValueError(f"game {game_id} is missing a team")

    score = data.get("score") if isinstance(data.get("score"), Mapping) else {}
    return Game(
        id=game_id,
        league=_optional_text(data.get("league")) or "",
        home=team_from_dict(data["home"]),
        away=team_from_dict(data["away"]),
        score=Score(home=_score_value(score.get("home")), away=_score_value(score.get("away"))),
        status=status_from_dict(data.get("status")),
        updated_at=_optional_text(data.get("updatedAt") or data.get("updated_at")) or "",
    )


def games_from_payload(payload: Iterable[Any]) -> List[Game]:
    """Parse a list of game payloads, skipping malformed or duplicate entries."""

    games: List[Game] = []
    seen = set()
    for raw in payload:
        try:
            game = game_from_dict(raw)
        except ValueError as exc:
            _LOGGER.warning("Skipping malformed game: %s", exc)
            continue
        if game.id in seen:
            _LOGGER.warning("Skipping duplicate game id %s", game.id)
            continue
        seen.add(game.id)
        games.append(game)
    return games
