import threading

import pytest
import requests

from logos import LogoResolver, url_to_filename

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-logo"


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, routes=None, error=None):
        self.routes = routes or {}
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.routes.get(url, FakeResponse(status_code=404))


@pytest.fixture
def make_resolver(tmp_path):
    def _make(session, **kwargs):
        resolver = LogoResolver(tmp_path / "logos", session=session, **kwargs)
        resolver.initialize()
        return resolver

    return _make


def test_url_to_filename_replaces_unsafe_characters():
    assert (
        url_to_filename("https://cdn.example.com/nba/lal.png")
        == "https___cdn.example.com_nba_lal.png"
    )
    assert url_to_filename("https://cdn.example.com/logo?team=lal").endswith(".png")
    assert url_to_filename("https://cdn.example.com/team.svg").endswith("team.svg")


def test_url_to_filename_keeps_the_last_characters():
    url = "https://cdn.example.com/" + "a" * 300 + "/final.png"
    name = url_to_filename(url)
    assert len(name) == 120
    assert name.endswith("a_final.png")


def test_repeat_lookups_fetch_once(make_resolver, tmp_path):
    url = "https://cdn.example.com/lal.png"
    session = FakeSession({url: FakeResponse(content=PNG_BYTES)})
    resolver = make_resolver(session)

    assert resolver.resolve(url) == PNG_BYTES
    assert resolver.resolve(url) == PNG_BYTES
    assert resolver.fetch_count == 1
    assert len(session.calls) == 1
    assert (tmp_path / "logos" / url_to_filename(url)).read_bytes() == PNG_BYTES


def test_request_uses_timeout_and_manual_redirects(make_resolver):
    url = "https://cdn.example.com/lal.png"
    session = FakeSession({url: FakeResponse(content=PNG_BYTES)})
    make_resolver(session, timeout=3.5).resolve(url)

    _, kwargs = session.calls[0]
    assert kwargs["timeout"] == 3.5
    assert kwargs["allow_redirects"] is False


@pytest.mark.parametrize("url", [None, "", "   "])
def test_empty_url_does_no_io(make_resolver, url):
    session = FakeSession()
    resolver = make_resolver(session)

    assert resolver.resolve(url) is None
    assert session.calls == []


def test_disk_copy_is_used_before_network(make_resolver, tmp_path):
    url = "https://cdn.example.com/bos.png"
    logos_dir = tmp_path / "logos"
    logos_dir.mkdir()
    (logos_dir / url_to_filename(url)).write_bytes(PNG_BYTES)
    session = FakeSession()

    resolver = make_resolver(session)

    assert resolver.resolve(url) == PNG_BYTES
    assert session.calls == []
    assert resolver.fetch_count == 0


def test_memory_tier_survives_deleted_disk_copy(make_resolver, tmp_path):
    url = "https://cdn.example.com/bos.png"
    session = FakeSession({url: FakeResponse(content=PNG_BYTES)})
    resolver = make_resolver(session)
    resolver.resolve(url)

    (tmp_path / "logos" / url_to_filename(url)).unlink()

    assert resolver.resolve(url) == PNG_BYTES
    assert resolver.fetch_count == 1


def test_single_redirect_is_followed(make_resolver):
    url = "https://cdn.example.com/old/lal.png"
    session = FakeSession(
        {
            url: FakeResponse(status_code=302, headers={"Location": "/new/lal.png"}),
            "https://cdn.example.com/new/lal.png": FakeResponse(content=PNG_BYTES),
        }
    )
    resolver = make_resolver(session)

    assert resolver.resolve(url) == PNG_BYTES
    assert [call[0] for call in session.calls] == [
        url,
        "https://cdn.example.com/new/lal.png",
    ]


def test_second_redirect_fails(make_resolver, caplog):
    session = FakeSession(
        {
            "https://a.example.com/1.png": FakeResponse(
                status_code=301, headers={"Location": "https://a.example.com/2.png"}
            ),
            "https://a.example.com/2.png": FakeResponse(
                status_code=301, headers={"Location": "https://a.example.com/3.png"}
            ),
            "https://a.example.com/3.png": FakeResponse(content=PNG_BYTES),
        }
    )
    resolver = make_resolver(session)

    assert resolver.resolve("https://a.example.com/1.png") is None
    assert "https://a.example.com/3.png" not in [call[0] for call in session.calls]
    assert "redirect" in caplog.text


def test_http_error_returns_none_and_logs(make_resolver, caplog):
    url = "https://cdn.example.com/missing.png"
    resolver = make_resolver(FakeSession({url: FakeResponse(status_code=500)}))

    assert resolver.resolve(url) is None
    assert "Failed to download logo" in caplog.text
    assert url in caplog.text


def test_timeout_returns_none(make_resolver, tmp_path):
    url = "https://cdn.example.com/slow.png"
    resolver = make_resolver(FakeSession(error=requests.Timeout("timed out")))

    assert resolver.resolve(url) is None
    assert not (tmp_path / "logos" / url_to_filename(url)).exists()


def test_failures_are_not_cached(make_resolver):
    url = "https://cdn.example.com/flaky.png"
    session = FakeSession({url: FakeResponse(status_code=503)})
    resolver = make_resolver(session)

    assert resolver.resolve(url) is None
    session.routes[url] = FakeResponse(content=PNG_BYTES)
    assert resolver.resolve(url) == PNG_BYTES
    assert resolver.fetch_count == 2


def test_concurrent_lookups_share_one_fetch(make_resolver):
    url = "https://cdn.example.com/shared.png"
    release = threading.Event()

    class SlowSession(FakeSession):
        def get(self, url, **kwargs):
            release.wait(5)
            return super().get(url, **kwargs)

    session = SlowSession({url: FakeResponse(content=PNG_BYTES)})
    resolver = make_resolver(session)

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(resolver.resolve(url)))
        for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    release.set()
    for thread in threads:
        thread.join(5)

    assert results == [PNG_BYTES] * 4
    assert resolver.fetch_count == 1


def test_clear_memory_falls_back_to_disk(make_resolver):
    url = "https://cdn.example.com/lal.png"
    session = FakeSession({url: FakeResponse(content=PNG_BYTES)})
    resolver = make_resolver(session)
    resolver.resolve(url)

    resolver.clear_memory()

    assert resolver.resolve(url) == PNG_BYTES
    assert resolver.fetch_count == 1


def test_failed_write_leaves_no_temp_file(make_resolver, tmp_path, monkeypatch):
    url = "https://cdn.example.com/lal.png"
    resolver = make_resolver(FakeSession({url: FakeResponse(content=PNG_BYTES)}))

    def _fail(*_args, **_kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("utils.os.replace", _fail)

    assert resolver.resolve(url) == PNG_BYTES
    assert list((tmp_path / "logos").iterdir()) == []


def test_concurrent_mutual_redirects_fail_without_stalling(make_resolver):
    first = "https://a.example.com/one.png"
    second = "https://a.example.com/two.png"
    both_in_flight = threading.Barrier(2, timeout=5)
    lock = threading.Lock()
    initial_calls = []

    class LoopingSession(FakeSession):
        def get(self, url, **kwargs):
            with lock:
                initial = len(initial_calls) < 2
                if initial:
                    initial_calls.append(url)
            if initial:
                both_in_flight.wait()
            return super().get(url, **kwargs)

    session = LoopingSession(
        {
            first: FakeResponse(status_code=302, headers={"Location": second}),
            second: FakeResponse(status_code=302, headers={"Location": first}),
        }
    )
    resolver = make_resolver(session, timeout=5)

    results = {}
    threads = [
        threading.Thread(target=lambda u=u: results.__setitem__(u, resolver.resolve(u)))
        for u in (first, second)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(3)

    assert not any(thread.is_alive() for thread in threads)
    assert results == {first: None, second: None}
