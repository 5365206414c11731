# config.py

#!/usr/bin/env python3
import glob
import logging
import os
from pathlib import Path
from typing import Optional, Tuple

import pytz
from dotenv import load_dotenv
from PIL import ImageColor

# ─── Environment helpers ───────────────────────────────────────────────────────

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))


def _initialise_env() -> None:
    """Load environment variables from `.env` if present."""

    candidate_paths = [Path(SCRIPT_DIR) / ".env"]

    cwd_path = Path.cwd() / ".env"
    if cwd_path != candidate_paths[0]:
        candidate_paths.append(cwd_path)

    for path in candidate_paths:
        if not path.is_file():
            continue
        try:
            load_dotenv(path, override=False)
        except OSError as exc:
            logging.warning("Failed to load %s: %s", path, exc)


_ENV_LOADED = False


def _should_load_env() -> bool:
    """Return ``True`` when dotenv files should be loaded."""

    if os.environ.get("TICKER_SKIP_DOTENV"):
        return False

    # Tests control the environment explicitly.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False

    return True


def load_environment() -> None:
    """Load environment variables from `.env` files once, if allowed."""

    global _ENV_LOADED

    if _ENV_LOADED or not _should_load_env():
        return

    _initialise_env()
    _ENV_LOADED = True


load_environment()


def _int_from_env(name: str, default: int) -> int:
    raw_value = os.environ.get(name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        logging.warning("Invalid %s value %r; using default %d", name, raw_value, default)
        return default
    if value <= 0:
        logging.warning("%s must be greater than zero; using default %d", name, default)
        return default
    return value


def _float_from_env(name: str, default: float) -> float:
    raw_value = os.environ.get(name)
    if raw_value is None:
        return default
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        logging.warning("Invalid %s value %r; using default %s", name, raw_value, default)
        return default
    if value <= 0:
        logging.warning("%s must be greater than zero; using default %s", name, default)
        return default
    return value


def _optional_str_from_env(name: str) -> Optional[str]:
    raw_value = os.environ.get(name)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _coerce_color(env_name: str, default: str) -> Tuple[int, int, int]:
    """Return an RGB tuple from a ``#rrggbb`` style env value, logging bad input."""

    raw_value = os.environ.get(env_name) or default
    try:
        return ImageColor.getrgb(raw_value)[:3]
    except ValueError:
        logging.warning(
            "Invalid %s value %r; using default %s", env_name, raw_value, default
        )
        return ImageColor.getrgb(default)[:3]


# ─── Display geometry ─────────────────────────────────────────────────────────
WIDTH = 384
HEIGHT = 192

# Render at an integer multiple and downsample for crisper edges on the LED panel.
SCALE_FACTOR = _int_from_env("TICKER_SCALE_FACTOR", 2)

# ─── Ticker layout ────────────────────────────────────────────────────────────
TEAM_ROW_HEIGHT = 80
SCORE_PANEL_WIDTH = 114
LOGO_SIZE = 70
LOGO_PADDING = 6

STATUS_SEPARATOR = os.environ.get("TICKER_STATUS_SEPARATOR", "  ·  ")
PERIOD_PREFIX = os.environ.get("TICKER_PERIOD_PREFIX", "Q")
SCHEDULED_PLACEHOLDER = "UPCOMING"
FINAL_LABEL = "FINAL"
LIVE_LABEL = "LIVE"

# ─── Font resources ───────────────────────────────────────────────────────────
# Drop DejaVuSans.ttf and DejaVuSans-Bold.ttf into a folder named `fonts`
# alongside this file, or install the `fonts-dejavu-core` system package.
FONTS_DIR = os.path.join(SCRIPT_DIR, "fonts")
FONT_REGULAR_NAME = "DejaVuSans.ttf"
FONT_BOLD_NAME = "DejaVuSans-Bold.ttf"

FONT_SIZE_SCORE = 46
FONT_SIZE_TEAM_ABBR = 28
FONT_SIZE_RECORD = 13
FONT_SIZE_STATUS = 14
FONT_SIZE_LEAGUE = 12
FONT_SIZE_LIVE = 12


def iter_font_paths(*names: str):
    seen = set()
    search_roots = [FONTS_DIR, "/usr/share/fonts", "/usr/local/share/fonts"]

    for root in search_roots:
        for name in names:
            direct = os.path.join(root, name)
            if os.path.isfile(direct) and direct not in seen:
                seen.add(direct)
                yield direct

        for name in names:
            for path in glob.glob(os.path.join(root, "**", name), recursive=True):
                if path not in seen and os.path.isfile(path):
                    seen.add(path)
                    yield path


# ─── Colours ──────────────────────────────────────────────────────────────────
BACKGROUND_COLOR = _coerce_color("TICKER_BACKGROUND_COLOR", "#000000")
SCORE_PANEL_COLOR = _coerce_color("TICKER_SCORE_PANEL_COLOR", "#141414")
STATUS_BAR_COLOR = _coerce_color("TICKER_STATUS_BAR_COLOR", "#0c0c0c")
DIVIDER_COLOR = (0x33, 0x33, 0x33)
TEXT_COLOR = (255, 255, 255)
DIM_TEXT_COLOR = (0x88, 0x88, 0x88)
LIVE_COLOR = _coerce_color("TICKER_LIVE_COLOR", "#ff3333")
FINAL_COLOR = (0x99, 0x99, 0x99)
SCHEDULED_COLOR = (0x44, 0x99, 0xFF)
DASH_COLOR = (0x44, 0x44, 0x44)
FALLBACK_TEAM_COLOR = (0x55, 0x55, 0x55)

# ─── Caching ──────────────────────────────────────────────────────────────────
IMAGE_TTL_SECONDS = _float_from_env("IMAGE_TTL_SECONDS", 60.0)
REFRESH_INTERVAL_SECONDS = _float_from_env("REFRESH_INTERVAL_SECONDS", 60.0)
LOGO_TIMEOUT_SECONDS = _float_from_env("LOGO_TIMEOUT_SECONDS", 10.0)
LOGO_MAX_REDIRECTS = _int_from_env("LOGO_MAX_REDIRECTS", 1)

# ─── Storage ──────────────────────────────────────────────────────────────────
DEFAULT_STORAGE_DIR = os.path.join(SCRIPT_DIR, "storage")

# ─── Server / data ────────────────────────────────────────────────────────────
PORT = _int_from_env("PORT", 3000)
HOST = os.environ.get("HOST", "0.0.0.0")
DEBUG = os.environ.get("TICKER_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}
BASE_URL = (os.environ.get("BASE_URL") or f"http://localhost:{PORT}").rstrip("/")

DATA_PROVIDER = (os.environ.get("DATA_PROVIDER") or "mock").strip().lower()
if DATA_PROVIDER not in {"mock", "api"}:
    logging.warning("Unknown DATA_PROVIDER %r; falling back to 'mock'.", DATA_PROVIDER)
    DATA_PROVIDER = "mock"

SPORTS_API_KEY = _optional_str_from_env("SPORTS_API_KEY")
MOCK_GAMES_PATH = os.environ.get(
    "MOCK_GAMES_PATH", os.path.join(SCRIPT_DIR, "data", "mockGames.json")
)

try:
    TIMEZONE = pytz.timezone(os.environ.get("TIMEZONE", "US/Central"))
except pytz.UnknownTimeZoneError:
    logging.warning("Unknown TIMEZONE %r; using US/Central", os.environ.get("TIMEZONE"))
    TIMEZONE = pytz.timezone("US/Central")
