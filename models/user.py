"""User (identity) model definition."""

from datetime import datetime
from enum import Enum

from sqlalchemy.orm import validates

from . import db


GENDERS = ("male", "female", "other", "prefer-not-to-say")


class Role(str, Enum):
    """Capability carried by an identity and its session token."""

    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the role matching ``value`` or None when it is not a role."""

        try:
            return cls((value or "").strip().lower())
        except (ValueError, AttributeError):
            return None


ROLES = tuple(role.value for role in Role)


class User(db.Model):
    """Profile record of a person using the storefront."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    age = db.Column(db.Integer, nullable=True)
    gender = db.Column(db.String(32), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    avatar = db.Column(db.String(512), nullable=True)
    role = db.Column(
        db.String(16),
        nullable=False,
        default=Role.USER.value,
        server_default=db.text("'user'"),
    )
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("true"),
    )
    is_email_verified = db.Column(db.Boolean, nullable=False, default=False)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    credential = db.relationship(
        "Credential",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return (value or "").strip().lower()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def to_dict(self) -> dict:
        """Serialize the public projection of the user."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "age": self.age,
            "gender": self.gender,
            "phone": self.phone,
            "avatar": self.avatar,
            "role": self.role,
            "isActive": self.is_active,
            "isEmailVerified": self.is_email_verified,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email} role={self.role}>"
