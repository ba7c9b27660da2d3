"""Cloudinary-hosted image storage."""

from __future__ import annotations

import io

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from .abstract_storage import AbstractStorage, StorageError


class CloudinaryStorage(AbstractStorage):
    """Upload images to Cloudinary and return their secure URL."""

    def __init__(self, cloud_name: str | None, api_key: str | None, api_secret: str | None):
        if not (cloud_name and api_key and api_secret):
            raise StorageError("Cloudinary credentials are not configured.")
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def save(self, payload: bytes, key: str, content_type: str) -> str:
        folder, _, filename = key.rpartition("/")
        public_id = filename.rsplit(".", 1)[0]
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(payload),
                folder=folder or None,
                public_id=public_id,
                resource_type="image",
            )
        except CloudinaryError as exc:
            raise StorageError(str(exc)) from exc

        url = result.get("secure_url") if isinstance(result, dict) else None
        if not url:
            raise StorageError("Cloudinary did not return an image URL.")
        return url
