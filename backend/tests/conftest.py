import os
import tempfile

# Read at import time by wealthify.security / wealthify.services.media.
os.environ.setdefault("WEALTHIFY_SECRET_KEY", "test-secret-key")
os.environ.setdefault("WEALTHIFY_MEDIA_DIR", tempfile.mkdtemp(prefix="wealthify-media-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from wealthify import models  # noqa: F401
from wealthify.database import Base, get_db, make_engine
from wealthify.main import app
from wealthify.models import User


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    u = User(email="saver@example.com", name="Saver", password_hash="not-a-real-hash")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def make_client(session_factory):
    """Build TestClients bound to the temporary database. Each has its own cookie jar."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db

    def _make() -> TestClient:
        # Not used as a context manager: the lifespan would initialise the real DB.
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def signup(client: TestClient, email: str = "alice@example.com", name: str = "Alice") -> dict:
    resp = client.post(
        "/auth/signup", json={"email": email, "name": name, "password": "correct-horse"}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def client(make_client):
    """A client signed in as a fresh user."""
    c = make_client()
    signup(c)
    return c
