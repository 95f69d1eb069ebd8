"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from admin import create_admin_app
from config import Settings
from db_sqlalchemy import make_database
from main import create_app
from store import PasteStore

TEST_SECRET = "test-secret"
START_TIME = 1_700_000_000


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret=TEST_SECRET,
        db_path=str(tmp_path / "pastes.db"),
        max_content_bytes=1024,
        max_body_bytes=8 * 1024,
        sweep_interval=3600,
        ui_dir=str(tmp_path / "no-ui"),
    )


@pytest.fixture
def store(settings, clock):
    return PasteStore(
        database=make_database(settings.database_url),
        secret=settings.secret,
        max_content_bytes=settings.max_content_bytes,
        clock=clock,
    )


@pytest.fixture
def client(settings, store):
    """Test client with the lifespan running, so the database is connected."""
    app = create_app(settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(store):
    with TestClient(create_admin_app(store)) as test_client:
        yield test_client


@pytest.fixture
def create_paste(client):
    """POST a paste form and return its id."""

    def _create(content="hello", **fields):
        response = client.post("/api/p", data={"content": content, **fields})
        assert response.status_code == 200, response.text
        return response.json()["id"]

    return _create
