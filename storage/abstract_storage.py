"""Storage abstraction layer for uploaded images."""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from abc import ABC, abstractmethod

DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>image/[A-Za-z0-9.+-]+);base64,(?P<data>.+)$", re.DOTALL
)
EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class StorageError(Exception):
    """Raised when an image cannot be decoded or persisted."""


def is_data_uri(value) -> bool:
    return isinstance(value, str) and value.startswith("data:image")


def decode_data_uri(value: str) -> tuple[bytes, str]:
    """Return the raw bytes and mime type of a base64 image data URI."""

    match = DATA_URI_PATTERN.match(value.strip())
    if match is None:
        raise StorageError("Image must be a base64 encoded data URI.")
    mime = match.group("mime").lower()
    if mime not in EXTENSIONS:
        raise StorageError(f"Unsupported image type {mime}.")
    try:
        payload = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise StorageError("Image data is not valid base64.") from exc
    if not payload:
        raise StorageError("Image data is empty.")
    return payload, mime


class AbstractStorage(ABC):
    """Interface for image storage backends."""

    max_size: int = 10 * 1024 * 1024

    @abstractmethod
    def save(self, payload: bytes, key: str, content_type: str) -> str:
        """Persist ``payload`` under ``key`` and return its public URL."""

    def save_data_uri(self, data_uri: str, folder: str, stem: str | None = None) -> str:
        """Decode a data URI and store it as ``folder/<stem><ext>``."""

        payload, mime = decode_data_uri(data_uri)
        if len(payload) > self.max_size:
            raise StorageError(
                f"Image exceeds the maximum size of {self.max_size // (1024 * 1024)}MB."
            )
        key = f"{folder}/{stem or uuid.uuid4().hex}{EXTENSIONS[mime]}"
        return self.save(payload, key, mime)
