"""Tests covering environment-driven configuration."""

import importlib
from typing import Dict

import pytest

import config as config_module

_TICKER_ENV_VARS = [
    "TICKER_SCALE_FACTOR",
    "TICKER_LIVE_COLOR",
    "IMAGE_TTL_SECONDS",
    "DATA_PROVIDER",
    "PORT",
    "BASE_URL",
    "TIMEZONE",
]


@pytest.fixture
def reload_config(monkeypatch):
    """Reload ``config`` with the provided environment overrides."""

    def _reload(overrides: Dict[str, str]):
        for key in _TICKER_ENV_VARS:
            monkeypatch.delenv(key, raising=False)
        for key, value in overrides.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config_module)

    yield _reload

    for key in _TICKER_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    importlib.reload(config_module)


def test_defaults(reload_config):
    config = reload_config({})

    assert (config.WIDTH, config.HEIGHT) == (384, 192)
    assert config.SCALE_FACTOR == 2
    assert config.IMAGE_TTL_SECONDS == 60.0
    assert config.DATA_PROVIDER == "mock"
    assert config.BASE_URL == "http://localhost:3000"
    assert config.LIVE_COLOR == (0xFF, 0x33, 0x33)


def test_scale_factor_and_ttl_from_env(reload_config):
    config = reload_config({"TICKER_SCALE_FACTOR": "3", "IMAGE_TTL_SECONDS": "15"})

    assert config.SCALE_FACTOR == 3
    assert config.IMAGE_TTL_SECONDS == 15.0


def test_invalid_numbers_fall_back(reload_config, caplog):
    config = reload_config({"TICKER_SCALE_FACTOR": "zero", "IMAGE_TTL_SECONDS": "-5"})

    assert config.SCALE_FACTOR == 2
    assert config.IMAGE_TTL_SECONDS == 60.0
    assert "TICKER_SCALE_FACTOR" in caplog.text


def test_invalid_colour_falls_back(reload_config):
    config = reload_config({"TICKER_LIVE_COLOR": "#zzz"})

    assert config.LIVE_COLOR == (0xFF, 0x33, 0x33)


def test_unknown_provider_falls_back_to_mock(reload_config):
    config = reload_config({"DATA_PROVIDER": "carrier-pigeon"})

    assert config.DATA_PROVIDER == "mock"


def test_base_url_follows_port(reload_config):
    config = reload_config({"PORT": "8080"})

    assert config.BASE_URL == "http://localhost:8080"


def test_unknown_timezone_falls_back(reload_config):
    config = reload_config({"TIMEZONE": "Mars/Olympus"})

    assert config.TIMEZONE.zone == "US/Central"
