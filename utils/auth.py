"""Authorization gate: authenticate the session token, then check the role."""

from __future__ import annotations

from functools import wraps

from flask import current_app
from flask_jwt_extended import JWTManager, get_jwt, get_jwt_identity, verify_jwt_in_request
from werkzeug.exceptions import Forbidden

from models.user import Role
from utils.errors import json_error


def register_token_callbacks(jwt: JWTManager) -> None:
    """Map token failures onto 401 (no token) and 403 (bad or expired token)."""

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return json_error("Access denied. No token provided.", 401)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        current_app.logger.info("Rejected invalid token: %s", reason)
        return json_error("Invalid token.", 403)

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict, jwt_payload: dict):
        return json_error("Token has expired.", 403)


def authenticate(view):
    """Require a valid session token before running ``view``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        return view(*args, **kwargs)

    return wrapper


def require_admin(view):
    """Require a valid session token whose role claim is admin."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if current_role() is not Role.ADMIN:
            raise Forbidden("Admin privileges required.")
        return view(*args, **kwargs)

    return wrapper


def current_claims() -> dict:
    return get_jwt()


def current_role() -> Role | None:
    return Role.parse(get_jwt().get("role"))


def current_user_id() -> int | None:
    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError):
        return None
