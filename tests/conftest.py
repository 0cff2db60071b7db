"""Shared fixtures: in-memory SQLite per test and a TestClient bound to it."""
from __future__ import annotations

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookshelf import models  # noqa: F401  registers tables
from bookshelf.core import accounts
from bookshelf.database import Base, get_db
from bookshelf.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    return accounts.register_user(db, "reader@example.com", "secret123")


@pytest.fixture
def other_user(db):
    return accounts.register_user(db, "other@example.com", "secret456")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register_headers(client):
    """Register through the API and return request headers for that user."""

    def _register(email="reader@example.com", password="secret123") -> dict:
        resp = client.post("/auth/register", json={"email": email, "password": password})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}", "User-Id": str(body["user"]["id"])}

    return _register


@pytest.fixture
def auth_headers(register_headers):
    return register_headers()
