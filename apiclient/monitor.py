"""Background poller that notices expired or deleted session tokens."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import requests

from .session import ApiError, SessionClient

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0


class StatusPoller:
    """Calls ``/auth/status`` on a fixed interval until the session ends."""

    def __init__(self, client: SessionClient, interval: float = DEFAULT_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.client = client
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="session-status-poller", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def poll_once(self) -> bool:
        """Run one probe. Returns False once the session is over."""

        try:
            return self.client.check_status()
        except ApiError as exc:
            logger.warning("Status probe failed: %s", exc)
        except requests.RequestException as exc:
            logger.warning("Status probe could not reach the API: %s", exc)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if not self.poll_once():
                logger.info("Session no longer valid; stopping status poller")
                self._stop.set()
                break

    def __enter__(self) -> "StatusPoller":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
