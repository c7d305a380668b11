from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from movie_poll.config import Settings
from movie_poll.database import Base
from movie_poll.main import create_app
from movie_poll.models.movie import Movie
from movie_poll.models.vote import Vote
from movie_poll.utils.security import create_voter_token

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "AdminPass123!"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret-key",
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        participation_threshold=3,
        tmdb_api_key=None,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def db_session(app):
    """Provide a clean database session for each test."""
    engine = app.state.engine
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app, db_session):
    """FastAPI test client sharing the in-memory database with db_session."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_movie(db_session):
    def _make_movie(title="Heat", year=None, tmdb_id=None):
        movie = Movie(title=title, year=year, tmdb_id=tmdb_id)
        db_session.add(movie)
        db_session.commit()
        db_session.refresh(movie)
        return movie

    return _make_movie


@pytest.fixture
def add_vote(db_session):
    """Insert a vote row directly, bypassing the service."""
    def _add_vote(movie, user_name, seen, vibe, device_id=None, updated_at=None):
        now = updated_at or datetime.now(timezone.utc)
        vote = Vote(
            movie_id=movie.id,
            user_name=user_name,
            device_id=device_id or f"device-{user_name.lower()}",
            seen=seen,
            vibe=vibe,
            created_at=now,
            updated_at=now,
        )
        db_session.add(vote)
        db_session.commit()
        db_session.refresh(vote)
        return vote

    return _add_vote


@pytest.fixture
def voter_headers(settings):
    def _voter_headers(user_name="Alice", device_id="device-alice"):
        token = create_voter_token(user_name, device_id, settings)
        return {"Authorization": f"Bearer {token}", "X-Device-ID": device_id}

    return _voter_headers


@pytest.fixture
def admin_headers(client):
    response = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
