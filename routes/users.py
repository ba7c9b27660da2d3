"""Users blueprint: paginated directory, admin management and own profile."""

from __future__ import annotations

import time
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.credential import Credential
from models.user import User
from storage import StorageError, get_image_storage, is_data_uri
from utils.auth import authenticate, current_user_id, require_admin
from utils.errors import DuplicateEmail, UpstreamFailure, ValidationError
from utils.pagination import paginate
from utils.request_validation import (
    parse_json_request,
    validate_password,
    validate_user_fields,
)

users_bp = Blueprint("users", __name__)

PROFILE_FIELDS = ("name", "age", "gender", "phone")


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _current_user() -> User:
    user_id = current_user_id()
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        raise NotFound("User not found")
    return user


def _apply_fields(user: User, fields: dict) -> None:
    """Copy cleaned fields onto the user, mirroring login-relevant ones on its credential."""

    # loading the credential must not flush a half-applied email change
    with db.session.no_autoflush:
        credential = user.credential
        for attribute, value in fields.items():
            setattr(user, attribute, value)

        if credential is not None:
            if "email" in fields:
                credential.email = fields["email"]
            if "is_active" in fields:
                credential.is_active = fields["is_active"]


def _commit_or_duplicate() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail()


@users_bp.route("", methods=["GET"])
@authenticate
def list_users():
    """Return active users, newest first."""

    query = User.query.filter_by(is_active=True).order_by(User.created_at.desc(), User.id.desc())
    return jsonify(paginate(query, User.to_dict))


@users_bp.route("", methods=["POST"])
@require_admin
def create_user():
    """Create a user together with its login credential."""

    data = parse_json_request(request)
    errors, fields = validate_user_fields(data)
    password = data.get("password")
    if password in (None, ""):
        errors.append("Password is required")
    else:
        errors.extend(validate_password(password))
    if errors:
        raise ValidationError("Validation failed", details=errors)

    email = fields["email"]
    if (
        User.query.filter_by(email=email).first() is not None
        or Credential.query.filter_by(email=email).first() is not None
    ):
        raise DuplicateEmail()

    user = User(**fields)
    credential = Credential(user=user, email=email, is_active=fields.get("is_active", True))
    credential.set_password(password)
    db.session.add(user)
    db.session.add(credential)
    _commit_or_duplicate()

    current_app.logger.info("Admin %s created user %s", current_user_id(), user.id)
    return jsonify({"user": user.to_dict()}), HTTPStatus.CREATED


@users_bp.route("/<int:user_id>", methods=["GET"])
@authenticate
def get_user(user_id: int):
    return jsonify({"user": _get_user_or_404(user_id).to_dict()})


@users_bp.route("/<int:user_id>", methods=["PUT"])
@require_admin
def update_user(user_id: int):
    """Update any attribute of a user, including role and active flag."""

    user = _get_user_or_404(user_id)
    data = parse_json_request(request)
    errors, fields = validate_user_fields(data, partial=True)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _apply_fields(user, fields)
    _commit_or_duplicate()

    current_app.logger.info("Admin %s updated user %s", current_user_id(), user.id)
    return jsonify({"user": user.to_dict()})


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@require_admin
def delete_user(user_id: int):
    """Delete a user together with its credential."""

    user = _get_user_or_404(user_id)
    db.session.delete(user)
    db.session.commit()

    current_app.logger.info("Admin %s deleted user %s", current_user_id(), user_id)
    return jsonify({"message": "User deleted successfully"})


@users_bp.route("/profile", methods=["GET"])
@authenticate
def get_profile():
    return jsonify({"user": _current_user().to_dict()})


@users_bp.route("/profile", methods=["PUT"])
@authenticate
def update_profile():
    """Update the caller's own profile; role, email and status are not editable here."""

    user = _current_user()
    data = parse_json_request(request)
    profile = {key: data[key] for key in PROFILE_FIELDS if key in data}
    errors, fields = validate_user_fields(profile, partial=True)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    _apply_fields(user, fields)
    db.session.commit()
    return jsonify({"user": user.to_dict()})


@users_bp.route("/profile/upload-picture", methods=["POST"])
@authenticate
def upload_profile_picture():
    """Store a base64 data URI as the caller's avatar."""

    user = _current_user()
    data = parse_json_request(request)
    image = data.get("image")
    if not is_data_uri(image):
        raise BadRequest("image must be a base64 encoded image data URI.")

    try:
        storage = get_image_storage()
        user.avatar = storage.save_data_uri(
            image, "profile-pics", stem=f"{user.id}-{int(time.time() * 1000)}"
        )
    except StorageError as exc:
        current_app.logger.warning("Avatar upload failed for user %s: %s", user.id, exc)
        raise UpstreamFailure(str(exc))

    db.session.commit()
    return jsonify({"user": user.to_dict()})
