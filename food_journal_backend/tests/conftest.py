import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.main import app
from src.api.sessions import SessionStore, get_session_store
from src.db.db import get_db
from src.db.migrations import run_migrations


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    assert run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def session_store():
    return SessionStore(secret="test-secret")


@pytest.fixture
def client(session_factory, session_store):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: session_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signed_up(client):
    response = client.post(
        "/signup",
        data={"username": "alice", "password": "s3cret", "firstName": "Alice", "lastName": "Smith"},
    )
    assert response.status_code == 200
    return {"username": "alice", "password": "s3cret"}


@pytest.fixture
def logged_in(client, signed_up):
    response = client.post("/login", data=signed_up, follow_redirects=False)
    assert response.status_code == 302
    return client
