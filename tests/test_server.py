import pytest

from image_cache import ImageCache
from models import Game, Score, Status, StatusState, Team
import server
from ticker_service import TickerService


def _game(game_id, state=StatusState.FINAL):
    return Game(
        id=game_id,
        league="NBA",
        home=Team(name="Lakers", abbr="LAL"),
        away=Team(name="Celtics", abbr="BOS"),
        score=Score(home=104, away=117),
        status=Status(state=state),
        updated_at="2024-01-15T03:12:00Z",
    )


class FakeProvider:
    def __init__(self, games):
        self.games = games

    def fetch_games(self):
        return list(self.games)


class FakeLogos:
    def initialize(self):
        pass

    def resolve(self, url):
        return None


def _renderer(game, logos):
    if game.id == "broken":
        raise RuntimeError("boom")
    return b"\x89PNG-" + game.id.encode()


@pytest.fixture()
def app_client(tmp_path):
    service = TickerService(
        FakeProvider([_game("nba-bos-lal"), _game("broken")]),
        ImageCache(tmp_path / "images", ttl=60),
        FakeLogos(),
        renderer=_renderer,
    )
    service.initialize()
    service.refresh()

    app = server.create_app(service, base_url="http://ticker.local:3000")
    app.config.update(TESTING=True)
    with app.test_client() as client:
        yield client, service, tmp_path


def test_image_route_serves_png(app_client):
    client, _, _ = app_client

    resp = client.get("/images/nba-bos-lal.png")

    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.headers["Cache-Control"] == "public, max-age=30"
    assert resp.data == b"\x89PNG-nba-bos-lal"


def test_unknown_image_is_json_404(app_client):
    client, _, _ = app_client

    resp = client.get("/images/nope.png")

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Image not found", "id": "nope"}


def test_image_falls_back_to_disk_copy(app_client):
    client, _, tmp_path = app_client
    (tmp_path / "images" / "archived.png").write_bytes(b"from-disk")

    resp = client.get("/images/archived.png")

    assert resp.status_code == 200
    assert resp.data == b"from-disk"


def test_render_failure_is_500(app_client):
    client, _, _ = app_client

    resp = client.get("/images/broken.png")

    assert resp.status_code == 500
    assert resp.get_json()["id"] == "broken"


def test_rss_lists_every_game(app_client):
    client, _, _ = app_client

    resp = client.get("/rss.xml")
    body = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert resp.content_type.startswith("application/rss+xml")
    assert "http://ticker.local:3000/images/nba-bos-lal.png" in body
    assert "http://ticker.local:3000/images/broken.png" in body


def test_health_reports_counts(app_client):
    client, _, _ = app_client

    payload = client.get("/health").get_json()

    assert payload["status"] == "ok"
    assert payload["gamesCount"] == 2
    assert payload["refreshCount"] == 1
    assert payload["cachedImages"] == 1
    assert payload["lastUpdate"]
    assert payload["config"]["display"] == "384x192"


def test_preview_lists_games(app_client):
    client, _, _ = app_client

    resp = client.get("/preview")
    body = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert "/images/nba-bos-lal.png" in body
    assert "http://ticker.local:3000/rss.xml" in body


def test_root_redirects_to_preview(app_client):
    client, _, _ = app_client

    resp = client.get("/")

    assert resp.status_code in (301, 302)
    assert resp.headers["Location"].endswith("/preview")


def test_started_banner_lists_endpoints():
    banner = server.format_started_banner("http://ticker.local:3000")

    assert "http://ticker.local:3000/rss.xml" in banner
    assert "http://ticker.local:3000/health" in banner
