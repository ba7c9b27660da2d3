"""Client-side session lifecycle for the storefront API.

The server keeps no session state: the signed token travels in an HTTP-only
cookie that lives in the :class:`requests.Session` cookie jar. This module
keeps the in-memory user consistent with that token:

* ``load()`` restores the user from an existing cookie via ``/auth/verify``.
* every call goes through :meth:`SessionClient.request`, and any 401 or 403
  answer ends the session (cookie jar cleared, user reset, listeners told).
* there is no refresh; a new token only comes from a new login.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
SESSION_END_STATUSES = frozenset({401, 403})


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class ApiError(Exception):
    """Non-success answer from the API."""

    def __init__(self, status_code: int, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}

    @property
    def ends_session(self) -> bool:
        return self.status_code in SESSION_END_STATUSES

    @classmethod
    def from_response(cls, response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message = str(payload.get("error") or payload.get("message") or response.reason)
        else:
            payload = None
            message = response.text or str(response.reason)
        return cls(response.status_code, message, payload)


class SessionClient:
    """Talks to the API and tracks whether the caller is logged in."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        http: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self.user: Optional[Dict[str, Any]] = None
        self._listeners: List[Callable[[str], None]] = []
        self._lock = threading.Lock()

    # State -----------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return SessionState.LOGGED_IN if self.user is not None else SessionState.LOGGED_OUT

    @property
    def has_token(self) -> bool:
        return TOKEN_COOKIE in self.http.cookies

    @property
    def is_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") == "admin"

    def add_logout_listener(self, callback: Callable[[str], None]) -> None:
        """Register ``callback(reason)`` to run whenever a live session ends."""
        self._listeners.append(callback)

    def remove_logout_listener(self, callback: Callable[[str], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _start_session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self.user = user
        return user

    def end_session(self, reason: str = "logout") -> None:
        """Drop the token and the user; listeners hear about it once per session."""

        with self._lock:
            was_logged_in = self.user is not None
            self.user = None
            self.http.cookies.clear()
        if not was_logged_in:
            return
        logger.info("Session ended (%s)", reason)
        for callback in list(self._listeners):
            try:
                callback(reason)
            except Exception:  # a failing listener does not stop the others
                logger.exception("Logout listener %r failed", callback)

    # Transport -------------------------------------------------------------
    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request with the session cookie attached."""

        kwargs.setdefault("timeout", self.timeout)
        response = self.http.request(method, f"{self.base_url}{path}", **kwargs)
        if response.status_code in SESSION_END_STATUSES:
            self.end_session(reason=f"http {response.status_code}")
        if response.status_code >= 400:
            raise ApiError.from_response(response)
        return response

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    # Auth flows ------------------------------------------------------------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        response = self.post("/auth/login", json={"email": email, "password": password})
        return self._start_session(response.json()["user"])

    def signup(self, name: str, email: str, password: str, **profile: Any) -> Dict[str, Any]:
        payload = {"name": name, "email": email, "password": password, **profile}
        response = self.post("/auth/signup", json=payload)
        return self._start_session(response.json()["user"])

    def logout(self) -> None:
        try:
            self.post("/auth/logout")
        except (ApiError, requests.RequestException) as exc:
            logger.warning("Logout request failed: %s", exc)
        finally:
            self.end_session(reason="logout")

    def load(self) -> Optional[Dict[str, Any]]:
        """Restore the user from a stored token, or settle in the logged-out state."""

        if not self.has_token:
            return None
        try:
            response = self.get("/auth/verify")
        except ApiError as exc:
            if not exc.ends_session:
                raise
            logger.info("Stored token rejected: %s", exc)
            self.http.cookies.clear()
            return None
        return self._start_session(response.json()["user"])

    def check_status(self) -> bool:
        """Probe ``/auth/status``; False means the session is over."""

        try:
            self.get("/auth/status")
        except ApiError as exc:
            if exc.ends_session:
                return False
            raise
        return True
