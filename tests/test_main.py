import logging

import main
from ticker_service import TickerService


def test_build_service_uses_resolved_storage(monkeypatch, tmp_path):
    monkeypatch.setenv("TICKER_IMAGES_DIR", str(tmp_path / "images"))
    monkeypatch.setenv("TICKER_LOGOS_DIR", str(tmp_path / "logos"))

    service = main.build_service()

    assert isinstance(service, TickerService)
    assert service.image_cache.directory == tmp_path / "images"
    assert (tmp_path / "logos").is_dir()


def test_request_shutdown_sets_event_once(monkeypatch, caplog):
    caplog.set_level(logging.INFO)
    monkeypatch.setattr(main, "_shutdown_event", main.threading.Event())

    main.request_shutdown("test")
    main.request_shutdown("again")

    assert main._shutdown_event.is_set()
    assert caplog.text.count("Shutdown requested") == 1

