"""Application wiring: config, sweep loop, runner helpers and UI fallback."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from config import Settings, DEFAULT_MAX_CONTENT_BYTES
from errors import StorageFailure
from main import create_app, sweep_forever
from run import split_addr, parse_args


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("APP_SECRET", "s3cret")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("MAX_CONTENT_BYTES", "2048")
    monkeypatch.setenv("SWEEP_INTERVAL", "not-a-number")
    monkeypatch.delenv("DB_URL", raising=False)
    monkeypatch.delenv("MAX_BODY_BYTES", raising=False)

    settings = Settings.from_env()
    assert settings.secret == "s3cret"
    assert settings.database_url == f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"
    assert settings.max_content_bytes == 2048
    assert settings.max_body_bytes == 4 * 2048
    assert settings.sweep_interval == 600


def test_settings_generate_secret_when_missing(monkeypatch):
    monkeypatch.delenv("APP_SECRET", raising=False)
    monkeypatch.delenv("MAX_CONTENT_BYTES", raising=False)
    first = Settings.from_env()
    second = Settings.from_env()
    assert first.secret and second.secret
    assert first.secret != second.secret
    assert first.max_content_bytes == DEFAULT_MAX_CONTENT_BYTES


def test_sweep_forever_keeps_going_after_failure():
    calls = []

    class FlakyStore:
        async def sweep_expired(self):
            calls.append(len(calls))
            if len(calls) == 1:
                raise StorageFailure()
            if len(calls) == 3:
                raise asyncio.CancelledError()
            return 2

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(sweep_forever(FlakyStore(), 0))
    assert len(calls) == 3


def test_split_addr():
    assert split_addr(":8080") == ("0.0.0.0", 8080)
    assert split_addr("127.0.0.1:8787") == ("127.0.0.1", 8787)


def test_parse_args_defaults():
    args = parse_args([])
    assert args.addr == ":8080"
    assert args.admin == "127.0.0.1:8787"
    assert args.db is None


def test_spa_fallback(settings, store, tmp_path):
    ui = tmp_path / "dist"
    (ui / "assets").mkdir(parents=True)
    (ui / "index.html").write_text("<html>app</html>")
    (ui / "assets" / "app.js").write_text("console.log(1)")
    settings.ui_dir = str(ui)

    with TestClient(create_app(settings, store=store)) as client:
        assert client.get("/p/abcd1234").text == "<html>app</html>"
        assert client.get("/assets/app.js").text == "console.log(1)"
        assert client.get("/_health").status_code == 200
        assert client.get("/api/p/nothere1").status_code == 404


def test_settings_reject_non_sqlite_url(monkeypatch):
    monkeypatch.setenv("DB_URL", "postgresql://user:pw@localhost/pastes")
    with pytest.raises(ValueError):
        Settings.from_env()
