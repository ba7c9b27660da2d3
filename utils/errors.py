"""HTTP errors raised by the API beyond the stock werkzeug ones."""

from __future__ import annotations

import uuid
from typing import Iterable

from flask import g, jsonify
from werkzeug.exceptions import BadRequest


class ValidationError(BadRequest):
    """Input failed validation; ``details`` lists the individual problems."""

    def __init__(self, description: str = "Validation failed", details: Iterable[str] | None = None):
        super().__init__(description)
        self.details = list(details or [])


class DuplicateEmail(BadRequest):
    """An identity or credential with the email already exists."""

    description = "User already exists with this email"


class UpstreamFailure(BadRequest):
    """The image host rejected or failed an upload."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to upload image: {reason}")


def json_error(message: str, status: int, details: Iterable[str] | None = None):
    """Build the JSON error response shared by every error path."""

    request_id = g.get("request_id") or str(uuid.uuid4())
    payload: dict = {"error": message, "request_id": request_id}
    if details:
        payload["details"] = list(details)
    response = jsonify(payload)
    response.status_code = status
    response.headers.setdefault("X-Request-ID", request_id)
    return response
