"""Authentication blueprint providing signup, login and session endpoints."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Unauthorized

from models import db
from models.credential import Credential
from models.user import Role, User
from utils.auth import authenticate, current_user_id
from utils.errors import DuplicateEmail, ValidationError, json_error
from utils.request_validation import (
    normalize_email,
    parse_json_request,
    validate_password,
    validate_user_fields,
)
from utils.tokens import attach_token, clear_token, issue_token

INVALID_CREDENTIALS = "Invalid email or password"
auth_bp = Blueprint("auth", __name__)


def _email_taken(email: str) -> bool:
    return (
        Credential.query.filter_by(email=email).first() is not None
        or User.query.filter_by(email=email).first() is not None
    )


@auth_bp.route("/signup", methods=["POST"])
def signup() -> tuple:
    """Create a user and its credential, then start a session."""

    payload = parse_json_request(request)
    password = payload.get("password")

    if not payload.get("name") or not payload.get("email") or not password:
        raise BadRequest("Name, email, and password are required")

    errors, fields = validate_user_fields(payload)
    errors.extend(validate_password(password))
    fields.pop("is_active", None)
    fields.pop("is_email_verified", None)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    email = fields["email"]
    if _email_taken(email):
        raise DuplicateEmail()

    fields.setdefault("role", Role.USER.value)
    user = User(**fields)
    credential = Credential(user=user, email=email)
    credential.set_password(password)

    # identity and credential commit together
    db.session.add(user)
    db.session.add(credential)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail()

    current_app.logger.info("Signed up user %s with role %s", user.id, user.role)

    response = jsonify({"message": "User created successfully", "user": user.to_dict()})
    attach_token(response, issue_token(user))
    return response, HTTPStatus.CREATED


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate with email and password and start a session."""

    payload = parse_json_request(request)
    raw_email = payload.get("email")
    password = payload.get("password")

    if not isinstance(raw_email, str) or not isinstance(password, str):
        raise BadRequest("Email and password are required")
    email = normalize_email(raw_email)
    if not email or not password:
        raise BadRequest("Email and password are required")

    credential = Credential.query.filter_by(email=email).first()
    if credential is None or not credential.is_active:
        raise Unauthorized(INVALID_CREDENTIALS)
    if not credential.check_password(password):
        raise Unauthorized(INVALID_CREDENTIALS)

    user = credential.user
    if user is None:
        current_app.logger.warning("Credential %s has no user", credential.id)
        raise Unauthorized(INVALID_CREDENTIALS)

    credential.record_login()
    db.session.commit()

    current_app.logger.info("User %s logged in", user.id)

    response = jsonify({"message": "Login successful", "user": user.to_dict()})
    attach_token(response, issue_token(user))
    return response, HTTPStatus.OK


@auth_bp.route("/logout", methods=["POST"])
def logout() -> tuple:
    """Clear the session cookie."""

    response = jsonify({"message": "Logged out successfully"})
    clear_token(response)
    return response, HTTPStatus.OK


@auth_bp.route("/verify", methods=["GET"])
@authenticate
def verify() -> tuple:
    """Return the user behind the session token."""

    user_id = current_user_id()
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        response = json_error("User not found. Please login again.", HTTPStatus.UNAUTHORIZED)
        return clear_token(response)

    return jsonify({"user": user.to_dict()}), HTTPStatus.OK


@auth_bp.route("/status", methods=["GET"])
def status() -> tuple:
    """Lightweight session probe used by clients to detect expiry."""

    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError):
        raise Unauthorized("Not authenticated.")

    claims = get_jwt()
    return (
        jsonify(
            {
                "authenticated": True,
                "user": {
                    "id": current_user_id(),
                    "email": claims.get("email"),
                    "role": claims.get("role"),
                },
            }
        ),
        HTTPStatus.OK,
    )
