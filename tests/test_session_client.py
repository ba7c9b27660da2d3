"""Tests for the client-side session lifecycle and status poller."""

from __future__ import annotations

import json
import threading

import pytest
import requests
from requests.cookies import RequestsCookieJar

from apiclient import ApiError, SessionClient, SessionState, StatusPoller

USER = {"id": 1, "name": "A", "email": "a@x.com", "role": "user"}
ADMIN = {**USER, "role": "admin"}


def _response(status_code: int, payload=None, reason: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.headers["Content-Type"] = "application/json"
    response._content = json.dumps(payload if payload is not None else {}).encode()
    return response


class FakeHTTP:
    """Stands in for ``requests.Session`` with scripted answers per path."""

    def __init__(self):
        self.cookies = RequestsCookieJar()
        self.routes = {}
        self.calls = []

    def answer(self, method: str, path: str, status_code: int, payload=None, set_token=False):
        self.routes[(method, path)] = (status_code, payload, set_token)

    def request(self, method, url, **kwargs):
        path = url.split("localhost:5000", 1)[1]
        self.calls.append((method, path, kwargs))
        answer = self.routes.get((method, path))
        if answer is None:
            raise requests.ConnectionError(f"no route for {method} {path}")
        status_code, payload, set_token = answer
        if set_token:
            self.cookies.set("token", "signed.jwt.value")
        return _response(status_code, payload)


@pytest.fixture()
def http():
    return FakeHTTP()


@pytest.fixture()
def session(http):
    return SessionClient("http://localhost:5000/", http=http)


def _logged_in(session, http, user=USER):
    http.answer("POST", "/auth/login", 200, {"message": "Login successful", "user": user}, set_token=True)
    session.login("a@x.com", "secret1")
    return session


def test_login_starts_session(session, http):
    _logged_in(session, http, ADMIN)

    assert session.state is SessionState.LOGGED_IN
    assert session.has_token
    assert session.is_admin
    method, path, kwargs = http.calls[0]
    assert (method, path) == ("POST", "/auth/login")
    assert kwargs["json"] == {"email": "a@x.com", "password": "secret1"}
    assert kwargs["timeout"] == 10.0


def test_failed_login_stays_logged_out(session, http):
    http.answer("POST", "/auth/login", 401, {"error": "Invalid email or password"})

    with pytest.raises(ApiError) as excinfo:
        session.login("a@x.com", "wrong")

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid email or password"
    assert session.state is SessionState.LOGGED_OUT


def test_signup_sends_profile_fields(session, http):
    http.answer("POST", "/auth/signup", 201, {"user": USER}, set_token=True)

    user = session.signup("A", "a@x.com", "secret1", age=30)

    assert user == USER
    assert http.calls[0][2]["json"] == {
        "name": "A",
        "email": "a@x.com",
        "password": "secret1",
        "age": 30,
    }
    assert session.state is SessionState.LOGGED_IN


@pytest.mark.parametrize("status_code", [401, 403])
def test_auth_failure_ends_session_and_notifies(session, http, status_code):
    _logged_in(session, http)
    reasons = []
    session.add_logout_listener(reasons.append)
    http.answer("GET", "/products", status_code, {"error": "Token has expired."})

    with pytest.raises(ApiError) as excinfo:
        session.get("/products")

    assert excinfo.value.ends_session
    assert session.state is SessionState.LOGGED_OUT
    assert not session.has_token
    assert reasons == [f"http {status_code}"]


def test_other_errors_keep_session(session, http):
    _logged_in(session, http)
    http.answer("GET", "/products/9", 404, {"error": "Product not found"})

    with pytest.raises(ApiError) as excinfo:
        session.get("/products/9")

    assert not excinfo.value.ends_session
    assert session.state is SessionState.LOGGED_IN


def test_listeners_fire_once_and_failures_are_isolated(session, http):
    _logged_in(session, http)
    heard = []

    def broken(reason):
        raise RuntimeError("listener bug")

    session.add_logout_listener(broken)
    session.add_logout_listener(heard.append)

    session.end_session("expired")
    session.end_session("expired")

    assert heard == ["expired"]

    session.remove_logout_listener(heard.append)
    _logged_in(session, http)
    session.end_session("again")
    assert heard == ["expired"]


def test_logout_always_clears_state(session, http):
    _logged_in(session, http)

    session.logout()

    assert session.state is SessionState.LOGGED_OUT
    assert not session.has_token


def test_load_without_token_is_logged_out(session, http):
    assert session.load() is None
    assert http.calls == []


def test_load_restores_user_from_cookie(session, http):
    http.cookies.set("token", "stored.jwt.value")
    http.answer("GET", "/auth/verify", 200, {"user": USER})

    assert session.load() == USER
    assert session.state is SessionState.LOGGED_IN


def test_load_with_rejected_token_clears_cookie(session, http):
    http.cookies.set("token", "stored.jwt.value")
    http.answer("GET", "/auth/verify", 401, {"error": "User not found. Please login again."})

    assert session.load() is None
    assert not session.has_token
    assert session.state is SessionState.LOGGED_OUT


def test_load_keeps_cookie_on_server_error(session, http):
    http.cookies.set("token", "stored.jwt.value")
    http.answer("GET", "/auth/verify", 503, {"error": "Service unavailable"})

    with pytest.raises(ApiError) as excinfo:
        session.load()

    assert excinfo.value.status_code == 503
    assert session.has_token
    assert session.state is SessionState.LOGGED_OUT


def test_check_status(session, http):
    _logged_in(session, http)
    http.answer("GET", "/auth/status", 200, {"authenticated": True})
    assert session.check_status() is True

    http.answer("GET", "/auth/status", 500, {"error": "boom"})
    with pytest.raises(ApiError):
        session.check_status()

    http.answer("GET", "/auth/status", 401, {"error": "Not authenticated."})
    assert session.check_status() is False
    assert session.state is SessionState.LOGGED_OUT


def test_api_error_from_non_json_response():
    response = requests.Response()
    response.status_code = 502
    response.reason = "Bad Gateway"
    response._content = b"<html>upstream down</html>"

    error = ApiError.from_response(response)

    assert error.status_code == 502
    assert error.message == "<html>upstream down</html>"
    assert error.payload == {}


def test_poller_rejects_non_positive_interval(session):
    with pytest.raises(ValueError):
        StatusPoller(session, interval=0)


def test_poll_once_tolerates_transient_failures(session, http):
    _logged_in(session, http)
    poller = StatusPoller(session)

    assert poller.poll_once() is True  # no route: connection error

    http.answer("GET", "/auth/status", 500, {"error": "boom"})
    assert poller.poll_once() is True
    assert session.state is SessionState.LOGGED_IN

    http.answer("GET", "/auth/status", 403, {"error": "Token has expired."})
    assert poller.poll_once() is False


def test_poller_thread_stops_when_session_ends(session, http):
    _logged_in(session, http)
    ended = threading.Event()
    session.add_logout_listener(lambda reason: ended.set())
    http.answer("GET", "/auth/status", 401, {"error": "Not authenticated."})

    poller = StatusPoller(session, interval=0.01)
    poller.start()

    assert ended.wait(2.0)
    poller.stop(timeout=2.0)
    assert not poller.running
    assert session.state is SessionState.LOGGED_OUT


def test_poller_context_manager_stops_thread(session, http):
    http.answer("GET", "/auth/status", 200, {"authenticated": True})

    with StatusPoller(session, interval=0.01) as poller:
        assert poller.running

    assert not poller.running
