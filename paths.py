from __future__ import annotations

"""Shared helpers for locating writable storage directories."""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import config
import storage_overrides

APP_DIR_NAME = "led_sports_ticker"


@dataclass(frozen=True)
class StoragePaths:
    """Resolved filesystem locations for runtime storage."""

    images_dir: Path
    logos_dir: Path


def _expand(path_str: str) -> Path:
    return Path(path_str).expanduser()


def _iter_candidate_roots() -> Iterable[Path]:
    yield Path(config.DEFAULT_STORAGE_DIR)

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        yield _expand(xdg_data) / APP_DIR_NAME

    yield Path.home() / ".local" / "share" / APP_DIR_NAME
    yield Path(tempfile.gettempdir()) / APP_DIR_NAME


def _iter_candidate_dirs(
    env_name: str, config_override: Optional[str], leaf: str
) -> Iterable[Path]:
    env_override = os.environ.get(env_name)
    if env_override:
        yield _expand(env_override)

    if config_override:
        yield _expand(config_override)

    for root in _iter_candidate_roots():
        yield root / leaf


def _ensure_writable(path: Path, logger: Optional[logging.Logger]) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        if logger:
            logger.debug("Could not create directory %s: %s", path, exc)
        return False

    try:
        fd, tmp_path = tempfile.mkstemp(dir=str(path))
    except OSError as exc:
        if logger:
            logger.debug("Directory %s is not writable: %s", path, exc)
        return False

    os.close(fd)
    try:
        os.unlink(tmp_path)
    except OSError:
        pass
    return True


def _select_dir(
    env_name: str,
    config_override: Optional[str],
    leaf: str,
    logger: Optional[logging.Logger],
) -> Path:
    for candidate in _iter_candidate_dirs(env_name, config_override, leaf):
        if _ensure_writable(candidate, logger):
            return candidate

    fallback = Path(tempfile.mkdtemp(prefix=f"{APP_DIR_NAME}_{leaf}_"))
    if logger:
        logger.warning(
            "Falling back to %s for %s; no writable directory was found.",
            fallback,
            leaf,
        )
    return fallback


def resolve_storage_paths(*, logger: Optional[logging.Logger] = None) -> StoragePaths:
    """Return writable directories for rendered images and downloaded logos."""

    images_dir = _select_dir(
        "TICKER_IMAGES_DIR", storage_overrides.IMAGES_DIR, "images", logger
    )
    logos_dir = _select_dir(
        "TICKER_LOGOS_DIR", storage_overrides.LOGOS_DIR, "logos", logger
    )

    if logger:
        logger.info("Using image directory %s", images_dir)
        logger.info("Using logo directory %s", logos_dir)

    return StoragePaths(images_dir=images_dir, logos_dir=logos_dir)
