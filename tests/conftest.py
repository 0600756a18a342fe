"""Shared fixtures. Environment is set before the app is imported."""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="desi-ai-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["FIREBASE_PROJECT_ID"] = "desi-test"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["CACHE_ENABLED"] = "false"
os.environ["UPLOAD_STORAGE_PATH"] = os.path.join(_TMP_DIR, "files")
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("S3_BUCKET_NAME", None)

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_principal
from app.database import SessionLocal, engine
from app.main import app
from app.models import Base, User
from app.services.auth import Principal

TEST_UID = "uid-asha"
TEST_EMAIL = "asha@example.com"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Create a user row; keyword arguments override the defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> User:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "firebase_id": f"uid-{n}",
            "email": f"user{n}@example.com",
            "username": f"user_{n}",
            "display_name": f"User {n}",
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def premium_fields():
    return {"is_premium": True, "premium_expires_at": None}


@pytest.fixture
def expired_trial_fields():
    return {"is_premium": True, "premium_expires_at": datetime.utcnow() - timedelta(hours=1)}


@pytest.fixture
def client():
    """Client authenticated as TEST_UID without real token verification."""
    app.dependency_overrides[get_principal] = lambda: Principal(
        uid=TEST_UID, email=TEST_EMAIL, display_name="Asha Verma"
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    return TestClient(app)


@pytest.fixture
def api_user(make_user):
    """Local row for the client's identity, created up front so tests can shape it."""

    def _make(**overrides) -> User:
        fields = {"firebase_id": TEST_UID, "email": TEST_EMAIL, "username": "asha_verma"}
        fields.update(overrides)
        return make_user(**fields)

    return _make
