from palmmatch import serve
from palmmatch.core.config import settings


def _capture(monkeypatch):
    calls = []
    monkeypatch.setattr(serve.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


def test_serve_runs_the_app_from_settings(monkeypatch):
    calls = _capture(monkeypatch)
    monkeypatch.setattr(settings, "PORT", 9123)
    monkeypatch.setattr(settings, "WEB_WORKERS", 4)

    serve.main()

    app, kwargs = calls[0]
    assert app == "palmmatch.main:app"
    assert kwargs["port"] == 9123
    assert kwargs["log_level"] == "info"
    # In-memory stores cannot be shared between worker processes
    assert kwargs["workers"] == 1


def test_serve_scales_workers_with_a_database(monkeypatch):
    calls = _capture(monkeypatch)
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql://db/palmmatch")
    monkeypatch.setattr(settings, "WEB_WORKERS", 4)

    serve.main()

    assert calls[0][1]["workers"] == 4
