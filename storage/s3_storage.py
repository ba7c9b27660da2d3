"""Amazon S3 image storage."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .abstract_storage import AbstractStorage, StorageError


class S3Storage(AbstractStorage):
    """Put images into an S3 bucket and return their public object URL."""

    def __init__(
        self,
        bucket: str | None,
        region: str | None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ):
        if not (bucket and region):
            raise StorageError("S3 bucket and region are not configured.")
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def save(self, payload: bytes, key: str, content_type: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
