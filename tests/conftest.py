"""Shared fixtures for the Course Portal tests.

Every test gets a fresh in-memory SQLite database. API tests run the
FastAPI app through TestClient with the database, the super admin email and
the mail sender replaced by test doubles.
"""

import os

# Must be set before config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import datetime
from typing import List, Optional, Tuple

import pytest
import pytz
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core import dependencies
from core.database import get_db
from core.exceptions import EmailDeliveryError
from models.base import Base
from models.user import UserModel
from schemas.session import Identity
from utils.catalog_manager import CatalogManager
from utils.email_sender import EmailSender, Notifier
from utils.passwords import hash_password
from utils.session_authority import SessionAuthority
from utils.user_manager import UserManager

SUPER_ADMIN_EMAIL = "owner@example.com"
PASSWORD = "secret123"


class RecordingEmailSender(EmailSender):
    """Keeps sent messages in memory."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []

    def send(self, to: str, subject: str, html: str) -> None:
        self.sent.append((to, subject, html))

    def last_code(self, to: str) -> str:
        """Return the six digit code in the latest subject or body sent to ``to``."""
        for recipient, subject, html in reversed(self.sent):
            if recipient == to:
                for token in (subject + " " + html).replace("<", " ").replace(">", " ").split():
                    if len(token) == 6 and token.isdigit():
                        return token
        raise AssertionError(f"no code sent to {to}")


class FailingEmailSender(EmailSender):
    def send(self, to: str, subject: str, html: str) -> None:
        raise EmailDeliveryError("SMTP relay unavailable")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def notifier(sender) -> Notifier:
    return Notifier(sender)


@pytest.fixture
def authority(db) -> SessionAuthority:
    return SessionAuthority(
        db,
        secret_key="test-secret",
        algorithm="HS256",
        expire_minutes=60,
        super_admin_email=SUPER_ADMIN_EMAIL,
    )


@pytest.fixture
def user_manager(db) -> UserManager:
    return UserManager(db, super_admin_email=SUPER_ADMIN_EMAIL)


@pytest.fixture
def catalog(db) -> CatalogManager:
    return CatalogManager(db)


@pytest.fixture
def make_user(db):
    """Insert an account directly and return its model."""

    def _make_user(
        email: str,
        role: str = "student",
        verified: bool = True,
        password: Optional[str] = PASSWORD,
        name: str = "Test User",
    ) -> UserModel:
        now = datetime.now(pytz.utc).isoformat()
        model = UserModel(
            user_id=f"user-{email.split('@')[0]}",
            email=email,
            name=name,
            password_hash=hash_password(password) if password else None,
            role=role,
            session_version=0,
            email_verified_at=now if verified else None,
            profile_verified=False,
            is_banned=False,
            is_frozen=False,
            created_at=now,
            updated_at=now,
        )
        db.add(model)
        db.commit()
        return model

    return _make_user


@pytest.fixture
def student(make_user) -> UserModel:
    return make_user("student@example.com")


@pytest.fixture
def admin(make_user) -> UserModel:
    return make_user("admin@example.com", role="admin")


@pytest.fixture
def super_admin(make_user) -> UserModel:
    return make_user(SUPER_ADMIN_EMAIL, role="admin", name="Owner")


def identity_of(model: UserModel) -> Identity:
    return Identity(
        user_id=model.user_id,
        email=model.email,
        role=model.role,
        is_super_admin=model.email == SUPER_ADMIN_EMAIL,
    )


@pytest.fixture
def client(session_factory, sender):
    """TestClient bound to the per-test database and recording sender."""
    from app import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[dependencies.get_super_admin_email] = lambda: SUPER_ADMIN_EMAIL
    app.dependency_overrides[dependencies.get_email_sender] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""

    def _login(email: str, password: str = PASSWORD) -> dict:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login
