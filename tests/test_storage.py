"""Tests for the image storage backends."""

from __future__ import annotations

import base64

import cloudinary.uploader
import pytest
from botocore.exceptions import ClientError

from storage import LocalStorage, StorageError, decode_data_uri, get_image_storage, is_data_uri
from storage.cloudinary_storage import CloudinaryStorage
from storage.s3_storage import S3Storage

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


class FakeS3Client:
    def __init__(self, error: Exception | None = None):
        self.calls = []
        self.error = error

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)
        return {"ETag": '"abc"'}


def test_is_data_uri():
    assert is_data_uri(PNG_DATA_URI)
    assert not is_data_uri("https://example.com/a.png")
    assert not is_data_uri(None)


def test_decode_data_uri():
    payload, mime = decode_data_uri(PNG_DATA_URI)
    assert payload == PNG_BYTES
    assert mime == "image/png"


@pytest.mark.parametrize(
    "value",
    [
        "not a data uri",
        "data:text/plain;base64,aGVsbG8=",
        "data:image/bmp;base64,aGVsbG8=",
        "data:image/png;base64,@@@not-base64@@@",
    ],
)
def test_decode_data_uri_rejects_bad_input(value):
    with pytest.raises(StorageError):
        decode_data_uri(value)


def test_local_storage_writes_under_upload_dir(tmp_path):
    storage = LocalStorage(str(tmp_path))

    url = storage.save_data_uri(PNG_DATA_URI, "products", stem="lamp")

    assert url == "/uploads/products/lamp.png"
    assert (tmp_path / "products" / "lamp.png").read_bytes() == PNG_BYTES


def test_local_storage_sanitizes_key_segments(tmp_path):
    storage = LocalStorage(str(tmp_path))

    url = storage.save(PNG_BYTES, "products/my lamp!.png", "image/png")

    assert url == "/uploads/products/my_lamp.png"
    with pytest.raises(StorageError):
        storage.save(PNG_BYTES, "products/../", "image/png")


def test_size_limit_is_enforced(tmp_path):
    storage = LocalStorage(str(tmp_path))
    storage.max_size = 3

    with pytest.raises(StorageError, match="maximum size"):
        storage.save_data_uri(PNG_DATA_URI, "products")


def test_s3_storage_puts_object_and_returns_url():
    client = FakeS3Client()
    storage = S3Storage("shop-images", "eu-west-1", client=client)

    url = storage.save_data_uri(PNG_DATA_URI, "profile-pics", stem="7-1")

    assert url == "https://shop-images.s3.eu-west-1.amazonaws.com/profile-pics/7-1.png"
    assert client.calls == [
        {
            "Bucket": "shop-images",
            "Key": "profile-pics/7-1.png",
            "Body": PNG_BYTES,
            "ContentType": "image/png",
        }
    ]


def test_s3_storage_wraps_client_errors():
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "nope"}}, "PutObject")
    storage = S3Storage("shop-images", "eu-west-1", client=FakeS3Client(error))

    with pytest.raises(StorageError, match="AccessDenied"):
        storage.save(PNG_BYTES, "products/a.png", "image/png")


def test_s3_storage_requires_bucket_and_region():
    with pytest.raises(StorageError):
        S3Storage(None, "eu-west-1", client=FakeS3Client())


def test_cloudinary_storage_uploads(monkeypatch):
    captured = {}

    def fake_upload(file, **options):
        captured["body"] = file.read()
        captured.update(options)
        return {"secure_url": "https://res.cloudinary.com/demo/image/upload/products/lamp.png"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    storage = CloudinaryStorage("demo", "key", "secret")

    url = storage.save_data_uri(PNG_DATA_URI, "products", stem="lamp")

    assert url.startswith("https://res.cloudinary.com/")
    assert captured["body"] == PNG_BYTES
    assert captured["folder"] == "products"
    assert captured["public_id"] == "lamp"


def test_cloudinary_storage_requires_credentials():
    with pytest.raises(StorageError, match="not configured"):
        CloudinaryStorage("demo", None, "secret")


def test_get_image_storage_selects_backend(app):
    with app.app_context():
        storage = get_image_storage()
        assert isinstance(storage, LocalStorage)
        assert storage.max_size == app.config["MAX_IMAGE_SIZE"]

        app.config["IMAGE_STORAGE"] = "ftp"
        with pytest.raises(StorageError):
            get_image_storage()
