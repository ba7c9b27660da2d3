"""Python client for the storefront API session lifecycle."""

from .monitor import StatusPoller
from .session import ApiError, SessionClient, SessionState

__all__ = ["ApiError", "SessionClient", "SessionState", "StatusPoller"]
