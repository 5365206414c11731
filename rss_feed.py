"""RSS 2.0 feed pointing LED signage players at the rendered ticker images."""

from __future__ import annotations

import datetime
from email.utils import format_datetime
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from config import BASE_URL
from models import Game

FEED_TITLE = "Sports Ticker Feed"
FEED_DESCRIPTION = (
    "Live sports scores ticker with high-resolution images for LED displays"
)

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def _xml(text: str) -> str:
    return escape(text, _XML_ENTITIES)


def _status_summary(game: Game) -> str:
    status = game.status
    if status.is_final:
        return "Final"
    period = status.period if status.period else "?"
    return f"Q{period} {status.clock or ''}".strip()


def format_title(game: Game) -> str:
    if game.status.is_scheduled:
        return f"{game.away.abbr} vs {game.home.abbr} ({game.status.detail or 'Upcoming'})"
    return (
        f"{game.away.abbr} {game.score.away} - {game.home.abbr} {game.score.home} "
        f"({_status_summary(game)})"
    )


def format_description(game: Game) -> str:
    if game.status.is_scheduled:
        return f"{game.away.name} vs {game.home.name} — {game.status.detail or 'Upcoming'}"
    return (
        f"{game.away.name} {game.score.away}, {game.home.name} {game.score.home} — "
        f"{_status_summary(game)}"
    )


def _parse_timestamp(value: str) -> Optional[datetime.datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def image_url(game_id: str, base_url: str = BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/images/{game_id}.png"


def generate_rss(
    games: Iterable[Game],
    *,
    base_url: str = BASE_URL,
    now: Optional[datetime.datetime] = None,
) -> str:
    base_url = base_url.rstrip("/")
    now = (now or datetime.datetime.now(datetime.timezone.utc)).astimezone(
        datetime.timezone.utc
    )

    items = []
    for game in games:
        published = _parse_timestamp(game.updated_at) or now
        items.append(
            "    <item>\n"
            f"      <title>{_xml(format_title(game))}</title>\n"
            f"      <description>{_xml(format_description(game))}</description>\n"
            f'      <guid isPermaLink="false">{_xml(game.id)}</guid>\n'
            f"      <pubDate>{format_datetime(published, usegmt=True)}</pubDate>\n"
            f'      <enclosure url="{_xml(image_url(game.id, base_url))}" '
            'type="image/png" length="0"/>\n'
            "    </item>"
        )

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">\n'
        "  <channel>\n"
        f"    <title>{FEED_TITLE}</title>\n"
        f"    <link>{_xml(base_url)}</link>\n"
        f"    <description>{FEED_DESCRIPTION}</description>\n"
        f"    <lastBuildDate>{format_datetime(now, usegmt=True)}</lastBuildDate>\n"
        "    <ttl>1</ttl>\n"
        f'    <atom:link href="{_xml(base_url)}/rss.xml" rel="self" '
        'type="application/rss+xml"/>\n'
        + "\n".join(items)
        + ("\n" if items else "")
        + "  </channel>\n"
        "</rss>\n"
    )
