"""Session token issuing and verification."""

from __future__ import annotations

from flask import Response, current_app
from flask_jwt_extended import (
    create_access_token,
    decode_token,
    set_access_cookies,
    unset_jwt_cookies,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models.user import User


class InvalidToken(Exception):
    """Raised when a token is malformed, tampered with, or expired."""


def issue_token(user: User) -> str:
    """Return a signed token carrying the user's id, email and role."""

    return create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role},
    )


def verify_token(token: str | None) -> dict:
    """Return the claims of ``token``.

    Only the signature and the expiry are checked; the user is not looked up.
    """

    if not token:
        raise InvalidToken("Token is missing.")
    try:
        return decode_token(token)
    except (PyJWTError, JWTExtendedException) as exc:
        raise InvalidToken(str(exc)) from exc


def attach_token(response: Response, token: str) -> Response:
    """Set the HTTP-only session cookie on ``response``."""

    lifetime = current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    set_access_cookies(response, token, max_age=int(lifetime.total_seconds()))
    return response


def clear_token(response: Response) -> Response:
    unset_jwt_cookies(response)
    return response
