"""Storage backends."""

from flask import current_app

from .abstract_storage import AbstractStorage, StorageError, decode_data_uri, is_data_uri
from .local_storage import LocalStorage

__all__ = [
    "AbstractStorage",
    "LocalStorage",
    "StorageError",
    "decode_data_uri",
    "get_image_storage",
    "is_data_uri",
]


def get_image_storage() -> AbstractStorage:
    """Build the backend selected by ``IMAGE_STORAGE`` for the current app."""

    config = current_app.config
    backend = (config.get("IMAGE_STORAGE") or "local").strip().lower()

    if backend == "cloudinary":
        from .cloudinary_storage import CloudinaryStorage

        storage: AbstractStorage = CloudinaryStorage(
            config.get("CLOUDINARY_CLOUD_NAME"),
            config.get("CLOUDINARY_API_KEY"),
            config.get("CLOUDINARY_API_SECRET"),
        )
    elif backend == "s3":
        from .s3_storage import S3Storage

        storage = S3Storage(
            config.get("AWS_BUCKET_NAME"),
            config.get("AWS_REGION"),
            config.get("AWS_ACCESS_KEY_ID"),
            config.get("AWS_SECRET_ACCESS_KEY"),
        )
    elif backend == "local":
        storage = LocalStorage(config["UPLOAD_DIR"])
    else:
        raise StorageError(f"Unknown image storage backend {backend!r}.")

    storage.max_size = int(config.get("MAX_IMAGE_SIZE", storage.max_size))
    return storage
