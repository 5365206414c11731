#!/usr/bin/env python3
"""
Ticker service entry point: renders every game into the image cache, keeps it
fresh on a background timer and serves images, RSS and a preview page.
"""
import logging
import signal
import sys
import threading

from colorama import Fore, Style, init as colorama_init

from config import DATA_PROVIDER, DEBUG, HEIGHT, HOST, PORT, REFRESH_INTERVAL_SECONDS, SCALE_FACTOR, WIDTH
from data_fetch import build_provider, mock_games_path_exists
from image_cache import ImageCache
from logos import LogoResolver
from paths import resolve_storage_paths
from server import create_app, format_started_banner
from ticker_service import TickerService

# ─── Logging ─────────────────────────────────────────────────────────────────
_LEVEL_COLORS = {
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA + Style.BRIGHT,
}


class _ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if not color:
            return text
        return text.replace(record.levelname, f"{color}{record.levelname}{Style.RESET_ALL}", 1)


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def configure_logging(level: int = logging.INFO) -> None:
    colorama_init(autoreset=True)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,
    )
    if sys.stderr.isatty():
        for handler in logging.getLogger().handlers:
            handler.setFormatter(_ColorFormatter(LOG_FORMAT, LOG_DATEFMT))
    for noisy in ("requests", "urllib3", "werkzeug"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


_shutdown_event = threading.Event()


def request_shutdown(reason: str) -> None:
    if _shutdown_event.is_set():
        return
    logging.info("✋ Shutdown requested (%s).", reason)
    _shutdown_event.set()


def _handle_signal(signum, _frame) -> None:
    request_shutdown(signal.Signals(signum).name)
    raise SystemExit(0)


def build_service() -> TickerService:
    storage = resolve_storage_paths(logger=logging.getLogger("paths"))
    service = TickerService(
        build_provider(),
        ImageCache(storage.images_dir),
        LogoResolver(storage.logos_dir),
    )
    service.initialize()
    return service


def main() -> int:
    configure_logging()
    logging.info("🖥️  Initializing sports ticker…")
    logging.info("  Provider:    %s", DATA_PROVIDER)
    logging.info("  Resolution:  %dx%d (%dx render)", WIDTH, HEIGHT, SCALE_FACTOR)
    logging.info("  Refresh:     every %.0fs", REFRESH_INTERVAL_SECONDS)
    if not mock_games_path_exists():
        logging.warning("Mock game data not found; the feed will stay empty.")

    service = build_service()
    service.refresh()
    service.start_refresh_loop(REFRESH_INTERVAL_SECONDS, _shutdown_event)

    signal.signal(signal.SIGTERM, _handle_signal)

    app = create_app(service)
    logging.info(format_started_banner())
    try:
        if DEBUG:
            app.run(host=HOST, port=PORT, debug=True, use_reloader=False)
        else:
            from waitress import serve

            serve(app, host=HOST, port=PORT)
    except KeyboardInterrupt:
        pass
    finally:
        request_shutdown("server stopped")
        logging.info("👋 Shutdown cleanup finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
