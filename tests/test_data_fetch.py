import json

import pytest

import data_fetch
from data_fetch import (
    ApiProvider,
    MockProvider,
    ProviderError,
    build_provider,
    league_logo_url,
)


def _write(path, payload):
    path.write_text(json.dumps(payload))
    return path


def _game(game_id, league="NBA", home_logo=None):
    home = {"name": "Lakers", "abbr": "LAL"}
    if home_logo:
        home["logoUrl"] = home_logo
    return {
        "id": game_id,
        "league": league,
        "home": home,
        "away": {"name": "Celtics", "abbr": "BOS"},
        "status": {"state": "pre"},
    }


def test_bundled_mock_data_loads():
    games = MockProvider().fetch_games()

    assert len(games) == 5
    assert {game.league for game in games} == {"NBA", "NHL"}
    assert all(game.home.logo_url and game.away.logo_url for game in games)


def test_league_logo_urls():
    assert league_logo_url("NBA", "GSW") == "https://a.espncdn.com/i/teamlogos/nba/500/gs.png"
    assert league_logo_url("nhl", "vgk") == "https://a.espncdn.com/i/teamlogos/nhl/500/vgk.png"
    assert league_logo_url("NBA", "XXX") is None
    assert league_logo_url("MLS", "LAL") is None


def test_explicit_logo_url_is_kept(tmp_path):
    path = _write(tmp_path / "games.json", [_game("g1", home_logo="https://x/lal.png")])

    game = MockProvider(str(path)).fetch_games()[0]

    assert game.home.logo_url == "https://x/lal.png"
    assert game.away.logo_url == "https://a.espncdn.com/i/teamlogos/nba/500/bos.png"


def test_missing_file_raises_provider_error(tmp_path):
    with pytest.raises(ProviderError):
        MockProvider(str(tmp_path / "missing.json")).fetch_games()


def test_malformed_json_raises_provider_error(tmp_path):
    path = tmp_path / "games.json"
    path.write_text("{not json")

    with pytest.raises(ProviderError):
        MockProvider(str(path)).fetch_games()


def test_non_list_payload_raises_provider_error(tmp_path):
    path = _write(tmp_path / "games.json", {"games": []})

    with pytest.raises(ProviderError):
        MockProvider(str(path)).fetch_games()


def test_api_provider_without_key_uses_fallback(tmp_path, caplog):
    path = _write(tmp_path / "games.json", [_game("g1")])

    provider = ApiProvider(api_key="", fallback=MockProvider(str(path)))

    assert [game.id for game in provider.fetch_games()] == ["g1"]
    assert "No SPORTS_API_KEY" in caplog.text


def test_build_provider_selects_kind(tmp_path):
    path = _write(tmp_path / "games.json", [_game("g1")])

    assert isinstance(build_provider("mock", mock_path=str(path)), MockProvider)
    assert isinstance(build_provider("api", mock_path=str(path)), ApiProvider)
    assert isinstance(build_provider("bogus", mock_path=str(path)), MockProvider)


def test_mock_games_path_exists(tmp_path):
    assert data_fetch.mock_games_path_exists() is True
    assert data_fetch.mock_games_path_exists(str(tmp_path / "nope.json")) is False
