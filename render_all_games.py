#!/usr/bin/env python3
"""Render every game from the provider to PNG and archive them into a dated ZIP."""
from __future__ import annotations

import argparse
import datetime as _dt
import logging
import os
import re
import sys
import zipfile
from typing import Iterable, List, Optional, Tuple

from config import TIMEZONE
from data_fetch import ProviderError, build_provider
from logos import LogoResolver
from paths import resolve_storage_paths
from screens.ticker import render_ticker_image

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def _sanitize_filename_prefix(name: str) -> str:
    safe = _UNSAFE_CHARS.sub("_", name.strip())
    return safe or "game"


def _render_games(provider, logos: LogoResolver) -> List[Tuple[str, bytes]]:
    assets: List[Tuple[str, bytes]] = []
    for game in provider.fetch_games():
        logging.info("Rendering '%s'", game.id)
        try:
            data = render_ticker_image(game, logos)
        except Exception as exc:
            logging.error("Failed to render '%s': %s", game.id, exc)
            continue
        assets.append((game.id, data))
    return assets


def _write_pngs(
    assets: Iterable[Tuple[str, bytes]], output_dir: str, timestamp: _dt.datetime
) -> List[str]:
    os.makedirs(output_dir, exist_ok=True)
    ts_suffix = timestamp.strftime("%Y%m%d_%H%M%S")
    saved: List[str] = []
    for game_id, data in assets:
        path = os.path.join(output_dir, f"{_sanitize_filename_prefix(game_id)}_{ts_suffix}.png")
        with open(path, "wb") as fh:
            fh.write(data)
        saved.append(path)
    return saved


def _write_zip(
    assets: Iterable[Tuple[str, bytes]], output_dir: str, timestamp: _dt.datetime
) -> str:
    os.makedirs(output_dir, exist_ok=True)
    zip_path = os.path.join(output_dir, f"games_{timestamp.strftime('%Y%m%d_%H%M%S')}.zip")
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for game_id, data in assets:
            zf.writestr(f"{_sanitize_filename_prefix(game_id)}.png", data)
    return zip_path


def render_all_games(
    *,
    output_dir: Optional[str] = None,
    write_pngs: bool = True,
    create_archive: bool = True,
    provider_kind: Optional[str] = None,
    mock_path: Optional[str] = None,
    logos: Optional[LogoResolver] = None,
) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )

    if output_dir is None or logos is None:
        storage = resolve_storage_paths(logger=logging.getLogger(__name__))
        if output_dir is None:
            output_dir = os.path.join(os.path.dirname(str(storage.images_dir)), "renders")
        if logos is None:
            logos = LogoResolver(storage.logos_dir)
    logos.initialize()

    provider = build_provider(provider_kind, mock_path=mock_path)
    try:
        assets = _render_games(provider, logos)
    except ProviderError as exc:
        logging.error("Could not load games: %s", exc)
        return 1

    if not assets:
        logging.error("No game images were produced.")
        return 1

    now = _dt.datetime.now(TIMEZONE)
    if write_pngs:
        saved = _write_pngs(assets, output_dir, now)
        logging.info("Wrote %d image(s) to %s", len(saved), output_dir)

    if create_archive:
        archive_path = _write_zip(assets, output_dir, now)
        logging.info("Archived %d game(s) → %s", len(assets), archive_path)
        print(archive_path)
    elif not write_pngs:
        logging.info("Rendered %d game(s) (no outputs written)", len(assets))

    return 0


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Directory for the PNG files and ZIP archive (defaults to the storage root).",
    )
    parser.add_argument(
        "--provider",
        choices=("mock", "api"),
        help="Game provider to read from (defaults to DATA_PROVIDER).",
    )
    parser.add_argument(
        "--mock-path",
        help="JSON file of games for the mock provider.",
    )
    parser.add_argument(
        "--no-pngs",
        action="store_true",
        help="Skip writing individual PNG files.",
    )
    parser.add_argument(
        "--no-archive",
        action="store_true",
        help="Skip creating the ZIP archive of rendered games.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    return render_all_games(
        output_dir=args.output_dir,
        write_pngs=not args.no_pngs,
        create_archive=not args.no_archive,
        provider_kind=args.provider,
        mock_path=args.mock_path,
    )


if __name__ == "__main__":
    sys.exit(main())
