"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.credential import Credential  # noqa: E402
from models.user import User  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    BCRYPT_ROUNDS = 4
    RATE_LIMIT = "1000 per minute"
    IMAGE_STORAGE = "local"


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def make_user(app: Flask):
    """Persist a user with a credential and return its id."""

    def _make_user(
        email: str,
        password: str = "secret123",
        *,
        name: str = "Test User",
        role: str = "user",
        active: bool = True,
    ) -> int:
        with app.app_context():
            user = User(name=name, email=email, role=role, is_active=active)
            credential = Credential(user=user, email=email, is_active=active)
            credential.set_password(password)
            db.session.add_all([user, credential])
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture()
def login(client: FlaskClient):
    """Log the test client in; the session cookie stays in its cookie jar."""

    def _login(email: str, password: str = "secret123") -> dict:
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()["user"]

    return _login
