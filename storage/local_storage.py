"""Local filesystem storage implementation."""

from __future__ import annotations

import os
from pathlib import Path

from werkzeug.utils import secure_filename

from .abstract_storage import AbstractStorage, StorageError


class LocalStorage(AbstractStorage):
    """Persist images under the configured upload directory, served from ``/uploads``."""

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        self.base_directory = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.base_directory, exist_ok=True)

    def save(self, payload: bytes, key: str, content_type: str) -> str:
        """Write the image and return the URL it is served from."""

        parts = [secure_filename(part) for part in key.split("/")]
        if not all(parts):
            raise StorageError("Image key must contain only valid path segments.")

        destination = self.base_directory.joinpath(*parts)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(destination, "wb") as output:
                output.write(payload)
        except OSError as exc:
            raise StorageError(str(exc)) from exc

        relative = destination.relative_to(self.base_directory).as_posix()
        return f"{self.url_prefix}/{relative}"
