import os
from datetime import datetime, timedelta, timezone

# Secrets must exist before importing videotube.main (it calls require_token_secrets() at import time).
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test_access_secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test_refresh_secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from videotube.core import config as app_config
from videotube.core.base import Base
from videotube.core.config import AuthConfig
from videotube.core.security import hash_password
from videotube.core.tokens import TokenService

# Import models so they register with SQLAlchemy metadata.
from videotube.models.subscription import Subscription  # noqa: F401
from videotube.models.user import User
from videotube.models.video import Video  # noqa: F401

from videotube.core.database import get_db
from videotube.dependencies.auth import get_token_service
from videotube.services import users as user_store
from videotube.services.sessions import SessionService

DEFAULT_PASSWORD = "test_password_123"


class FrozenClock:
    """Manually advanced UTC clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # The in-memory DB persists across tests (StaticPool); reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def auth_config() -> AuthConfig:
    return AuthConfig(
        access_token_secret="test_access_secret",
        refresh_token_secret="test_refresh_secret",
        access_token_ttl_seconds=3600,
        refresh_token_ttl_seconds=10 * 24 * 3600,
    )


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def token_service(auth_config, clock) -> TokenService:
    return TokenService(auth_config, clock=clock)


@pytest.fixture()
def session_service(db_session, token_service) -> SessionService:
    return SessionService(db_session, token_service)


@pytest.fixture()
def make_user(db_session):
    def _make_user(
        username: str = "alice",
        *,
        email: str | None = None,
        fullname: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        return user_store.create_user(
            db_session,
            username=username,
            email=email or f"{username}@example.com",
            fullname=fullname or username.title(),
            password_hash=hash_password(password),
            avatar=f"https://cdn.example.invalid/avatars/{username}.png",
            avatar_key=f"media/avatars/{username}.png",
        )

    return _make_user


class FakeS3Client:
    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    def upload_fileobj(self, Fileobj, Bucket, Key, ExtraArgs=None):  # noqa: N803
        Fileobj.read()
        self.uploaded.append(Key)

    def delete_object(self, Bucket, Key):  # noqa: N803
        self.deleted.append(Key)
        return {"ok": True}


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    """
    Stub the S3 client used by videotube.services.media_storage so tests never need AWS.
    """
    from videotube.services import media_storage

    fake = FakeS3Client()
    monkeypatch.setattr(media_storage, "_client", lambda: fake)
    monkeypatch.setattr(app_config.settings, "S3_BUCKET_NAME", "test-bucket")
    monkeypatch.setattr(app_config.settings, "MEDIA_BASE_URL", "https://cdn.example.invalid")
    return fake


@pytest.fixture(autouse=True)
def _insecure_cookies_for_testclient(monkeypatch):
    # TestClient talks plain http://testserver; Secure cookies would never be sent back.
    monkeypatch.setattr(app_config.settings, "COOKIE_SECURE", False)


@pytest.fixture()
def app(db_session, token_service):
    import videotube.main as main

    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_token_service] = lambda: token_service
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def logged_in(client, make_user):
    """
    Context manager: register `username` directly in the DB and log in over HTTP.

    Usage:
        with logged_in("bob") as (user, body):
            ...
    """

    @contextmanager
    def _logged_in(username: str = "alice", password: str = DEFAULT_PASSWORD):
        user = make_user(username, password=password)
        res = client.post("/api/v1/users/login", json={"username": username, "password": password})
        assert res.status_code == 200, res.text
        yield user, res.json()
        client.cookies.clear()

    return _logged_in
