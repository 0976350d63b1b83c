import os
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

# Settings are read at import time; point them at throwaway resources first.
_test_tmp_dir = tempfile.mkdtemp(prefix="wateradmin_test_")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_INIT_MODE", "off")
os.environ.setdefault("GEOLOCATION_ENABLED", "false")
os.environ.setdefault("LOG_FILE", os.path.join(_test_tmp_dir, "app.log"))
os.environ.setdefault("ENVIRONMENT", "test")

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from wateradmin.core.database import Base, SessionLocal, engine  # noqa: E402
from wateradmin.core.roles import UserRole  # noqa: E402
from wateradmin.core.timeutils import utcnow  # noqa: E402
from wateradmin.main import app  # noqa: E402
from wateradmin.models.token import AccessToken  # noqa: E402
from wateradmin.services.activity_service import activity_service  # noqa: E402
from wateradmin.services.change_observer import register_change_observers  # noqa: E402
from wateradmin.services.geolocation import LocalFirstGeoLocator  # noqa: E402
from wateradmin.services.token_service import token_service  # noqa: E402
from wateradmin.services.user_service import user_service  # noqa: E402

PASSWORD = "correct-horse-battery"

register_change_observers()


@pytest.fixture(autouse=True)
def offline_geolocation(monkeypatch):
    monkeypatch.setattr(activity_service, "geolocator", LocalFirstGeoLocator(None))


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.ADMIN, name=None, email=None, password=PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        return user_service.create_user(
            db,
            name=name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@wateradmin.org",
            password=password,
            role=role,
        )

    return _make_user


@pytest.fixture
def make_token(db):
    """Insert a token directly; lets tests control expiry and usage timestamps."""

    def _make_token(user, expires_in=timedelta(hours=8), created_ago=None, last_used_ago=None, name="auth-token"):
        now = utcnow()
        token, plaintext = token_service._create_token(
            db,
            user,
            name=name,
            expires_at=now + expires_in if expires_in is not None else None,
        )
        if created_ago is not None:
            token.created_at = now - created_ago
        if last_used_ago is not None:
            token.last_used_at = now - last_used_ago
        db.commit()
        return token, plaintext

    return _make_token


def auth_header(plaintext):
    return {"Authorization": f"Bearer {plaintext}"}


def token_count(db, **filters):
    db.expire_all()
    return db.query(AccessToken).filter_by(**filters).count()
