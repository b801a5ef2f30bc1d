"""Shared fixtures: an in-memory SQLite database and a FastAPI test client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models import Base, get_db


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    from backend.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_prediction():
    """Build a wire-shaped prediction payload with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "fixtureId": str(1000 + counter["n"]),
            "date": "2026-10-18",
            "homeTeam": "Liverpool",
            "awayTeam": "Everton",
            "tip": "Over 2.5",
            "tipType": "over_under",
            "conf": 65,
            "hLambda": 1.8,
            "aLambda": 1.1,
        }
        payload.update(overrides)
        return payload

    return _make
