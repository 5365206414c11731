#!/usr/bin/env python3
"""HTTP front end: ticker images, the RSS feed, a health probe and a preview page."""
from __future__ import annotations

import datetime
import logging
import time
from typing import Any, Dict

from flask import Flask, Response, jsonify, redirect, render_template

from config import (
    BASE_URL,
    DATA_PROVIDER,
    HEIGHT,
    REFRESH_INTERVAL_SECONDS,
    SCALE_FACTOR,
    TIMEZONE,
    WIDTH,
)
from rss_feed import generate_rss
from ticker_service import GameNotFoundError, RenderError, TickerService

_logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=30"
PREVIEW_REFRESH_SECONDS = 30


def _health_payload(service: TickerService) -> Dict[str, Any]:
    last_update = service.last_update
    return {
        "status": "ok",
        "lastUpdate": last_update.isoformat() if last_update else None,
        "gamesCount": len(service.games),
        "refreshCount": service.refresh_count,
        "cachedImages": len(service.image_cache),
        "config": {
            "display": f"{WIDTH}x{HEIGHT}",
            "scaleFactor": SCALE_FACTOR,
            "provider": DATA_PROVIDER,
            "refreshIntervalSeconds": REFRESH_INTERVAL_SECONDS,
        },
    }


def create_app(service: TickerService, *, base_url: str = BASE_URL) -> Flask:
    app = Flask(__name__)

    @app.get("/images/<game_id>.png")
    def ticker_image(game_id: str):
        try:
            data = service.image_for(game_id)
        except GameNotFoundError:
            return jsonify({"error": "Image not found", "id": game_id}), 404
        except RenderError as exc:
            _logger.error("Render failed for %s: %s", game_id, exc)
            return jsonify({"error": "Render failed", "id": game_id}), 500
        response = Response(data, mimetype="image/png")
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    @app.get("/rss.xml")
    def rss():
        xml = generate_rss(service.games, base_url=base_url)
        response = Response(xml, content_type="application/rss+xml; charset=utf-8")
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    @app.get("/health")
    def health():
        return jsonify(_health_payload(service))

    @app.get("/preview")
    def preview():
        last_update = service.last_update
        local_update = (
            last_update.astimezone(TIMEZONE).strftime("%I:%M:%S %p").lstrip("0")
            if last_update
            else "never"
        )
        return render_template(
            "preview.html",
            games=service.games,
            width=WIDTH,
            height=HEIGHT,
            scale_factor=SCALE_FACTOR,
            rss_url=f"{base_url.rstrip('/')}/rss.xml",
            last_update=local_update,
            refresh_seconds=PREVIEW_REFRESH_SECONDS,
            cache_buster=int(time.time()),
        )

    @app.get("/")
    def index():
        return redirect("/preview")

    return app


def format_started_banner(base_url: str = BASE_URL) -> str:
    now = datetime.datetime.now(TIMEZONE).strftime("%Y-%m-%d %H:%M:%S %Z")
    return (
        f"Server running at {base_url} ({now})\n"
        f"  RSS Feed:  {base_url}/rss.xml\n"
        f"  Preview:   {base_url}/preview\n"
        f"  Health:    {base_url}/health"
    )
