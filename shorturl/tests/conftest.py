import os

# Point the app at an in-memory SQLite database before anything reads settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BASE_URL"] = "http://localhost:8000"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("TELEMETRY_URL", None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from shorturl.main import app
from shorturl.db.Models.models import Base, ShortURL
from shorturl.db.Connection import database
from shorturl.utils.encoding import utc_now


@pytest.fixture
def db_session():
    """Creates a fresh database for each test."""
    Base.metadata.create_all(bind=database.engine)
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(db_session):
    """Test client bound to the same in-memory database as db_session."""
    yield TestClient(app)


@pytest.fixture
def expire(db_session):
    """Push a mapping's expiry into the past without waiting for it."""
    def _expire(shortcode: str, minutes_ago: int = 1):
        db_session.query(ShortURL).filter(ShortURL.shortcode == shortcode).update(
            {ShortURL.expires_at: utc_now() - timedelta(minutes=minutes_ago)}
        )
        db_session.commit()
    return _expire


@pytest.fixture
def sample_urls():
    """Provides sample URLs for testing."""
    return [
        "https://example.com/test1",
        "https://google.com/search?q=test",
        "https://github.com/user/repo",
    ]
