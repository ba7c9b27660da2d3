"""Credential model holding the login secret of a user."""

from datetime import datetime

import bcrypt
from flask import current_app, has_app_context
from sqlalchemy.orm import validates

from . import db


DEFAULT_BCRYPT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


def _hash_rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
    return DEFAULT_BCRYPT_ROUNDS


class Credential(db.Model):
    """Email and bcrypt password hash linked to exactly one user."""

    __tablename__ = "credentials"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("true"),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = db.relationship("User", back_populates="credential")

    @validates("email")
    def _normalize_email(self, key, value):
        return (value or "").strip().lower()

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        salt = bcrypt.gensalt(rounds=_hash_rounds())
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        if not isinstance(password, str):
            return False
        candidate = password.encode("utf-8")
        if not candidate or len(candidate) > MAX_PASSWORD_BYTES or not self.password_hash:
            return False
        try:
            return bcrypt.checkpw(candidate, self.password_hash.encode("utf-8"))
        except ValueError:
            return False

    def record_login(self, when: datetime | None = None) -> datetime:
        """Stamp the login time on the credential and its user."""

        when = when or datetime.utcnow()
        self.last_login = when
        if self.user is not None:
            self.user.last_login = when
        return when

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Credential {self.email} user_id={self.user_id}>"
