"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest

from models.credential import MAX_PASSWORD_BYTES
from models.user import GENDERS, ROLES

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MIN_AGE, MAX_AGE = 13, 120
MAX_NAME_LENGTH = 120
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 32


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=False)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def normalize_email(raw_email) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return str(raw_email or "").strip().lower()


def parse_bool(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "y"}:
        return True
    if lowered in {"0", "false", "no", "n"}:
        return False
    return None


def parse_whole_number(value):
    """Return ``value`` as an int, or None for bools, fractions and non-numbers."""

    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def validate_password(password) -> list[str]:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters"]
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return [f"Password must be at most {MAX_PASSWORD_BYTES} bytes"]
    return []


def validate_user_fields(data: dict, partial: bool = False) -> tuple[list[str], dict]:
    """Validate identity attributes from a request body.

    Returns the list of error messages and the cleaned values for the keys
    present in ``data``. With ``partial`` only supplied keys are checked.
    """

    errors: list[str] = []
    cleaned: dict = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Name is required")
        elif len(name) > MAX_NAME_LENGTH:
            errors.append(f"Name must be at most {MAX_NAME_LENGTH} characters")
        else:
            cleaned["name"] = name

    if "email" in data or not partial:
        email = normalize_email(data.get("email"))
        if not email:
            errors.append("Email is required")
        elif len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
            errors.append("Please enter a valid email")
        else:
            cleaned["email"] = email

    if data.get("age") not in (None, ""):
        age = parse_whole_number(data["age"])
        if age is None:
            errors.append("Age must be a whole number")
        else:
            if age < MIN_AGE:
                errors.append(f"Must be at least {MIN_AGE} years old")
            elif age > MAX_AGE:
                errors.append("Age must be realistic")
            else:
                cleaned["age"] = age
    elif "age" in data:
        cleaned["age"] = None

    if data.get("gender") not in (None, ""):
        gender = str(data["gender"]).strip().lower()
        if gender not in GENDERS:
            errors.append("Gender must be one of: {}".format(", ".join(GENDERS)))
        else:
            cleaned["gender"] = gender
    elif "gender" in data:
        cleaned["gender"] = None

    if "phone" in data:
        phone = str(data.get("phone") or "").strip()
        if len(phone) > MAX_PHONE_LENGTH:
            errors.append(f"Phone must be at most {MAX_PHONE_LENGTH} characters")
        else:
            cleaned["phone"] = phone or None

    if data.get("role") not in (None, ""):
        role = str(data["role"]).strip().lower()
        if role not in ROLES:
            errors.append("Role must be one of: {}".format(", ".join(ROLES)))
        else:
            cleaned["role"] = role

    for key, attribute in (("isActive", "is_active"), ("isEmailVerified", "is_email_verified")):
        if key in data:
            parsed = parse_bool(data.get(key))
            if parsed is None:
                errors.append(f"{key} must be boolean")
            else:
                cleaned[attribute] = parsed

    return errors, cleaned
