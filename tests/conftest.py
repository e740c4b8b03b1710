"""
Test configuration and fixtures.
"""
import asyncio
import datetime
import itertools
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from spotmap.db import create_tables, get_session
from spotmap.main import app
from spotmap.models import Session, Spot, User, utcnow

# Use in-memory async SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def session_factory():
    """
    A fresh in-memory database per test, shared by the app and the helpers
    below through a single StaticPool connection.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    asyncio.run(create_tables(test_engine))

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    asyncio.run(test_engine.dispose())


@pytest.fixture
def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_db(session_factory):
    """Run ``fn(session)`` against the test database and return its result."""
    def _run(fn):
        async def go():
            async with session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result
        return asyncio.run(go())
    return _run


@pytest.fixture
def make_user(run_db):
    """Create a user with a live session; returns id, token and auth headers."""
    counter = itertools.count(1)

    def _make(role="user", name=None):
        n = next(counter)
        user_id, token = f"user-{n}", f"token-{n}"

        async def insert(session):
            session.add(User(
                id=user_id,
                name=name or f"Rider {n}",
                email=f"rider{n}@example.com",
                image=f"https://img.example.com/{n}.png",
                role=role,
            ))
            session.add(Session(
                token=token,
                user_id=user_id,
                expires_at=utcnow() + datetime.timedelta(days=1),
            ))

        run_db(insert)
        return SimpleNamespace(id=user_id, token=token, role=role, headers={"Authorization": f"Bearer {token}"})

    return _make


@pytest.fixture
def get_row(run_db):
    """Load a fresh copy of a row straight from the database."""
    def _get(model, key):
        async def load(session):
            return await session.get(model, key)
        return run_db(load)
    return _get


@pytest.fixture
def set_row(run_db):
    """Overwrite columns of a row, bypassing the API."""
    def _set(model, key, **values):
        async def update(session):
            row = await session.get(model, key)
            for field, value in values.items():
                setattr(row, field, value)
        run_db(update)
    return _set


def spot_payload(**overrides):
    payload = {
        "name": "Mount Tam Switchbacks",
        "description": "Smooth tarmac with tight hairpins",
        "locationLat": 37.9235,
        "locationLng": -122.5965,
        "spotType": "downhill",
        "difficulty": "advanced",
        "visibility": "public",
        "photos": ["https://img.example.com/tam-1.jpg"],
    }
    payload.update(overrides)
    return payload


def iso_in(days=0, hours=0):
    return (utcnow() + datetime.timedelta(days=days, hours=hours)).isoformat() + "Z"


@pytest.fixture
def create_spot(client, set_row):
    """Create a spot via the API, then force its status/visibility if asked."""

    def _create(owner, status=None, **overrides):
        r = client.post("/spots", json=spot_payload(**overrides), headers=owner.headers)
        assert r.status_code == 201, r.text
        spot = r.json()
        if status is not None:
            set_row(Spot, spot["id"], status=status)
            spot["status"] = status
        return spot

    return _create
