#!/usr/bin/env python3
"""
ticker.py

Broadcast-style scoreboard bitmap for a single game, sized for an LED panel.

Layout at 1x (384 x 192):

    +------------------------------+-----------+
    |  (LOGO)  AWY                 |    101    |   away row (80px)
    |          12-4                |           |
    +------------------------------+-----------+   1px divider
    |  (LOGO)  HOM                 |     99    |   home row (80px)
    +------------------------------+-----------+
    |  NBA        Q4  ·  3:52           * LIVE |   status bar (31px)
    +------------------------------------------+

The canvas is drawn at ``scale_factor`` times the target size and downsampled,
which keeps text and circle edges clean on the physical matrix.
"""

from __future__ import annotations

import functools
import io
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from config import (
    BACKGROUND_COLOR,
    DASH_COLOR,
    DIM_TEXT_COLOR,
    DIVIDER_COLOR,
    FINAL_COLOR,
    FINAL_LABEL,
    FONT_SIZE_LEAGUE,
    FONT_SIZE_LIVE,
    FONT_SIZE_RECORD,
    FONT_SIZE_SCORE,
    FONT_SIZE_STATUS,
    FONT_SIZE_TEAM_ABBR,
    HEIGHT,
    LIVE_COLOR,
    LIVE_LABEL,
    LOGO_PADDING,
    LOGO_SIZE,
    PERIOD_PREFIX,
    SCALE_FACTOR,
    SCHEDULED_COLOR,
    SCHEDULED_PLACEHOLDER,
    SCORE_PANEL_COLOR,
    SCORE_PANEL_WIDTH,
    STATUS_BAR_COLOR,
    STATUS_SEPARATOR,
    TEAM_ROW_HEIGHT,
    TEXT_COLOR,
    WIDTH,
)
from models import RGB, Game, Status, StatusState, Team
from utils import composite_overlay, draw_text, load_font, log_call, with_alpha

_LOGGER = logging.getLogger(__name__)

DASH_GLYPH = "–"
DASH_FONT_RATIO = 0.55
LOGO_TEXT_RATIO = 0.36
RECORD_OPACITY = 0.55
ABBR_RECORD_NUDGE = 8
RECORD_OFFSET = 14
ABBR_GAP = 10
ACCENT_INSET = 20
ACCENT_HEIGHT = 3
ACCENT_BOTTOM_GAP = 4
SEPARATOR_WIDTH = 2
STATUS_MARGIN = 8
LIVE_DOT_RADIUS = 4
LIVE_DOT_OFFSET = 38

STATUS_COLORS: Dict[StatusState, RGB] = {
    StatusState.SCHEDULED: SCHEDULED_COLOR,
    StatusState.IN_PROGRESS: TEXT_COLOR,
    StatusState.FINAL: FINAL_COLOR,
}

# (position, RGBA) stops for the nameplate depth overlay, top to bottom.
GRADIENT_STOPS = (
    (0.0, (255, 255, 255, 20)),
    (0.5, (0, 0, 0, 0)),
    (1.0, (0, 0, 0, 51)),
)


@dataclass(frozen=True)
class TickerLayout:
    """Pixel geometry of the ticker at 1x."""

    width: int = WIDTH
    height: int = HEIGHT
    team_row_height: int = TEAM_ROW_HEIGHT
    score_panel_width: int = SCORE_PANEL_WIDTH
    logo_size: int = LOGO_SIZE
    logo_padding: int = LOGO_PADDING

    @property
    def score_panel_x(self) -> int:
        return self.width - self.score_panel_width

    @property
    def away_row_y(self) -> int:
        return 0

    @property
    def divider_y(self) -> int:
        return self.team_row_height

    @property
    def home_row_y(self) -> int:
        return self.team_row_height + 1

    @property
    def status_y(self) -> int:
        return self.team_row_height * 2 + 1

    @property
    def status_height(self) -> int:
        return self.height - self.status_y

    def accent_box(self, row_y: int) -> Tuple[int, int, int, int]:
        """Return the win-accent bar rectangle ``(x0, y0, x1, y1)`` for a row."""

        x0 = self.score_panel_x + ACCENT_INSET
        y0 = row_y + self.team_row_height - ACCENT_BOTTOM_GAP
        return x0, y0, self.width - ACCENT_INSET, y0 + ACCENT_HEIGHT

    def live_dot_center(self) -> Tuple[float, float]:
        cy = self.status_y + self.status_height / 2 + 1
        return self.width - STATUS_MARGIN - LIVE_DOT_OFFSET, cy


DEFAULT_LAYOUT = TickerLayout()


# ─── Plan: every content decision, no drawing ────────────────────────────────
@dataclass(frozen=True)
class TeamPanel:
    team: Team
    score_text: str
    show_dash: bool
    win_accent: bool


@dataclass(frozen=True)
class TickerPlan:
    away: TeamPanel
    home: TeamPanel
    league: str
    status_text: str
    status_color: RGB
    live: bool


def status_text(status: Status) -> str:
    if status.state is StatusState.IN_PROGRESS:
        period = f"{PERIOD_PREFIX}{status.period}" if status.period else ""
        return f"{period}{STATUS_SEPARATOR}{status.clock or ''}"
    if status.state is StatusState.FINAL:
        return FINAL_LABEL
    return status.detail or SCHEDULED_PLACEHOLDER


def _team_panel(game: Game, side: str) -> TeamPanel:
    team = game.home if side == "home" else game.away
    score = game.score.home if side == "home" else game.score.away
    if game.status.is_scheduled:
        return TeamPanel(team=team, score_text=DASH_GLYPH, show_dash=True, win_accent=False)
    return TeamPanel(
        team=team,
        score_text=str(score),
        show_dash=False,
        win_accent=game.winner() == side,
    )


def plan_ticker(game: Game) -> TickerPlan:
    return TickerPlan(
        away=_team_panel(game, "away"),
        home=_team_panel(game, "home"),
        league=game.league or "",
        status_text=status_text(game.status),
        status_color=STATUS_COLORS[game.status.state],
        live=game.status.is_in_progress,
    )


# ─── Drawing ─────────────────────────────────────────────────────────────────
class _Frame:
    """Oversampled canvas plus the scale used to map 1x coordinates onto it."""

    def __init__(self, layout: TickerLayout, scale: int):
        self.layout = layout
        self.scale = scale
        size = (layout.width * scale, layout.height * scale)
        self.canvas = Image.new("RGBA", size, BACKGROUND_COLOR + (255,))
        self.draw = ImageDraw.Draw(self.canvas)

    def px(self, value: float) -> int:
        return int(round(value * self.scale))

    def box(self, x0: float, y0: float, x1: float, y1: float) -> Tuple[int, int, int, int]:
        # PIL rectangles include their far edge; keep fills half-open like the 1x grid.
        return self.px(x0), self.px(y0), self.px(x1) - 1, self.px(y1) - 1

    def font(self, size: float, *, bold: bool = False):
        return load_font(max(1, self.px(size)), bold=bold)


def _interpolate(stops, fraction: float):
    for (p0, c0), (p1, c1) in zip(stops, stops[1:]):
        if fraction <= p1:
            span = (fraction - p0) / (p1 - p0) if p1 > p0 else 0.0
            return tuple(int(round(a + (b - a) * span)) for a, b in zip(c0, c1))
    return stops[-1][1]


@functools.lru_cache(maxsize=8)
def _gradient_overlay(width: int, height: int) -> Image.Image:
    overlay = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    for row in range(height):
        fraction = row / (height - 1) if height > 1 else 0.0
        draw.line((0, row, width - 1, row), fill=_interpolate(GRADIENT_STOPS, fraction))
    return overlay


def _decode_logo(data: bytes, diameter: int) -> Optional[Image.Image]:
    """Decode logo bytes into a circle-clipped RGBA tile, or ``None``."""

    try:
        with Image.open(io.BytesIO(data)) as raw:
            source = raw.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        _LOGGER.debug("Logo decode failed: %s", exc)
        return None

    if source.width <= 0 or source.height <= 0:
        return None
    ratio = diameter / float(max(source.width, source.height))
    source = source.resize(
        (max(1, round(source.width * ratio)), max(1, round(source.height * ratio))),
        Image.Resampling.LANCZOS,
    )
    tile = Image.new("RGBA", (diameter, diameter), (0, 0, 0, 0))
    tile.paste(source, ((diameter - source.width) // 2, (diameter - source.height) // 2))

    mask = Image.new("L", (diameter, diameter), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, diameter - 1, diameter - 1), fill=255)
    tile.putalpha(ImageChops.multiply(tile.getchannel("A"), mask))
    return tile


def _draw_logo_fallback(frame: _Frame, team: Team, x: float, y: float, size: float) -> None:
    cx, cy = x + size / 2, y + size / 2
    r = size / 2 - 1

    composite_overlay(
        frame.canvas,
        lambda d: d.ellipse(
            (frame.px(cx - r), frame.px(cy - r), frame.px(cx + r), frame.px(cy + r)),
            fill=with_alpha((0, 0, 0), 0.35),
        ),
    )
    ring = r + 1
    composite_overlay(
        frame.canvas,
        lambda d: d.ellipse(
            (frame.px(cx - ring), frame.px(cy - ring), frame.px(cx + ring), frame.px(cy + ring)),
            outline=with_alpha((255, 255, 255), 0.25),
            width=frame.px(2),
        ),
    )
    draw_text(
        frame.draw,
        team.abbr,
        frame.font(round(size * LOGO_TEXT_RATIO), bold=True),
        frame.px(cx),
        frame.px(cy),
        align="center",
        fill=TEXT_COLOR,
    )


def _draw_logo(frame: _Frame, team: Team, x: float, y: float, size: float, logos) -> None:
    data = logos.resolve(team.logo_url) if team.logo_url else None
    if data:
        tile = _decode_logo(data, frame.px(size))
        if tile is not None:
            frame.canvas.alpha_composite(tile, dest=(frame.px(x), frame.px(y)))
            return
    _draw_logo_fallback(frame, team, x, y, size)


def _draw_score(frame: _Frame, panel: TeamPanel, cx: float, cy: float) -> None:
    if panel.show_dash:
        draw_text(
            frame.draw,
            panel.score_text,
            frame.font(round(FONT_SIZE_SCORE * DASH_FONT_RATIO), bold=True),
            frame.px(cx),
            frame.px(cy),
            align="center",
            fill=DASH_COLOR,
        )
        return

    font = frame.font(FONT_SIZE_SCORE, bold=True)
    layout = frame.layout

    # Soft drop shadow so digits survive LED bleed.
    shadow = Image.new(
        "RGBA",
        (frame.px(layout.score_panel_width), frame.px(layout.team_row_height)),
        (0, 0, 0, 0),
    )
    origin_x = frame.px(cx - layout.score_panel_width / 2)
    origin_y = frame.px(cy - layout.team_row_height / 2)
    draw_text(
        ImageDraw.Draw(shadow),
        panel.score_text,
        font,
        frame.px(cx + 1) - origin_x,
        frame.px(cy + 1) - origin_y,
        align="center",
        fill=with_alpha((0, 0, 0), 0.6),
    )
    shadow = shadow.filter(ImageFilter.GaussianBlur(radius=1.5 * frame.scale))
    frame.canvas.alpha_composite(shadow, dest=(origin_x, origin_y))

    draw_text(
        frame.draw,
        panel.score_text,
        font,
        frame.px(cx),
        frame.px(cy),
        align="center",
        fill=TEXT_COLOR,
    )


def _draw_team_row(frame: _Frame, panel: TeamPanel, y: int, logos) -> None:
    layout = frame.layout
    h = layout.team_row_height
    spx = layout.score_panel_x
    team = panel.team

    # Nameplate in the team colour with a fixed depth gradient.
    frame.draw.rectangle(frame.box(0, y, spx, y + h), fill=team.color + (255,))
    frame.canvas.alpha_composite(
        _gradient_overlay(frame.px(spx), frame.px(h)), dest=(0, frame.px(y))
    )

    frame.draw.rectangle(frame.box(spx, y, layout.width, y + h), fill=SCORE_PANEL_COLOR + (255,))
    frame.draw.rectangle(frame.box(spx, y, spx + SEPARATOR_WIDTH, y + h), fill=(0, 0, 0, 255))

    logo_x = layout.logo_padding
    logo_y = y + (h - layout.logo_size) / 2
    _draw_logo(frame, team, logo_x, logo_y, layout.logo_size, logos)

    text_x = layout.logo_padding + layout.logo_size + ABBR_GAP
    has_record = bool(team.record)
    draw_text(
        frame.draw,
        team.abbr,
        frame.font(FONT_SIZE_TEAM_ABBR, bold=True),
        frame.px(text_x),
        frame.px(y + h / 2 - (ABBR_RECORD_NUDGE if has_record else 0)),
        fill=TEXT_COLOR,
    )
    if has_record:
        composite_overlay(
            frame.canvas,
            lambda d: draw_text(
                d,
                team.record,
                frame.font(FONT_SIZE_RECORD),
                frame.px(text_x),
                frame.px(y + h / 2 + RECORD_OFFSET),
                fill=with_alpha(TEXT_COLOR, RECORD_OPACITY),
            ),
        )

    _draw_score(frame, panel, spx + layout.score_panel_width / 2, y + h / 2)

    if panel.win_accent:
        frame.draw.rectangle(frame.box(*layout.accent_box(y)), fill=team.color + (255,))


def _draw_status_bar(frame: _Frame, plan: TickerPlan) -> None:
    layout = frame.layout
    y, h, w = layout.status_y, layout.status_height, layout.width

    frame.draw.rectangle(frame.box(0, y, w, y + h), fill=STATUS_BAR_COLOR + (255,))
    frame.draw.rectangle(frame.box(0, y, w, y + 1), fill=DIVIDER_COLOR + (255,))

    cy = y + h / 2 + 1
    draw_text(
        frame.draw,
        plan.league,
        frame.font(FONT_SIZE_LEAGUE, bold=True),
        frame.px(STATUS_MARGIN),
        frame.px(cy),
        fill=DIM_TEXT_COLOR,
    )
    draw_text(
        frame.draw,
        plan.status_text,
        frame.font(FONT_SIZE_STATUS, bold=True),
        frame.px(w / 2),
        frame.px(cy),
        align="center",
        fill=plan.status_color,
    )

    if not plan.live:
        return
    dot_x, dot_y = layout.live_dot_center()
    r = LIVE_DOT_RADIUS
    frame.draw.ellipse(
        (frame.px(dot_x - r), frame.px(dot_y - r), frame.px(dot_x + r), frame.px(dot_y + r)),
        fill=LIVE_COLOR + (255,),
    )
    draw_text(
        frame.draw,
        LIVE_LABEL,
        frame.font(FONT_SIZE_LIVE, bold=True),
        frame.px(w - STATUS_MARGIN),
        frame.px(cy),
        align="right",
        fill=LIVE_COLOR,
    )


@log_call
def render_ticker(
    game: Game,
    logos,
    *,
    layout: Optional[TickerLayout] = None,
    scale_factor: Optional[int] = None,
) -> Image.Image:
    """Draw ``game`` and return the RGB image at the layout's target size."""

    layout = layout or DEFAULT_LAYOUT
    scale = max(1, int(scale_factor if scale_factor is not None else SCALE_FACTOR))
    plan = plan_ticker(game)
    frame = _Frame(layout, scale)

    _draw_team_row(frame, plan.away, layout.away_row_y, logos)
    frame.draw.rectangle(
        frame.box(0, layout.divider_y, layout.width, layout.divider_y + 1),
        fill=(0, 0, 0, 255),
    )
    _draw_team_row(frame, plan.home, layout.home_row_y, logos)
    _draw_status_bar(frame, plan)

    composite_overlay(
        frame.canvas,
        lambda d: d.rectangle(
            (0, 0, frame.canvas.width - 1, frame.canvas.height - 1),
            outline=with_alpha((255, 255, 255), 0.08),
            width=scale,
        ),
    )

    image = frame.canvas
    if scale > 1:
        image = image.resize((layout.width, layout.height), Image.Resampling.LANCZOS)
    return image.convert("RGB")


def render_ticker_image(
    game: Game,
    logos,
    *,
    layout: Optional[TickerLayout] = None,
    scale_factor: Optional[int] = None,
) -> bytes:
    """Render ``game`` and return PNG bytes."""

    image = render_ticker(game, logos, layout=layout, scale_factor=scale_factor)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
