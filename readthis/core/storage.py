import logging
from functools import lru_cache

import boto3

from readthis.core.config import settings

logger = logging.getLogger("readthis.storage")


def public_base_url() -> str:
    if settings.S3_PUBLIC_BASE_URL:
        return settings.S3_PUBLIC_BASE_URL.rstrip("/") + "/"
    return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.AWS_REGION}.amazonaws.com/"


def public_url(key: str) -> str:
    return public_base_url() + key.lstrip("/")


def default_cover_url() -> str:
    return public_url(settings.DEFAULT_COVER_KEY)


def _is_absolute(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def resolve_image_url(value: str | None) -> str | None:
    """Absolute URLs pass through; bare object keys get the bucket base."""
    if not value:
        return None
    if _is_absolute(value):
        return value
    return public_url(value)


def resolve_post_image_url(value: str | None) -> str:
    return resolve_image_url(value) or default_cover_url()


class ObjectStorage:
    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def public_url(self, key: str) -> str:
        return public_url(key)

    def put(self, key: str, body: bytes, content_type: str) -> str:
        self.client.put_object(
            Bucket=self.bucket, Key=key, Body=body, ContentType=content_type
        )
        logger.info("stored object key=%s bytes=%d", key, len(body))
        return self.public_url(key)


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage:
    return ObjectStorage(settings.S3_BUCKET_NAME, settings.AWS_REGION)
