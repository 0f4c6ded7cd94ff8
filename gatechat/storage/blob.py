"""
Blob store for chat uploads.

S3 when S3_BUCKET_NAME is set, the local upload directory otherwise. Both return
a URL clients can fetch and can purge what they stored.
"""
import logging
import os
import uuid
from typing import Optional

from gatechat.aws.s3 import delete_from_s3, key_from_url, upload_to_s3
from gatechat.core.config import Settings

logger = logging.getLogger(__name__)

MAX_EXTENSION_LEN = 10


def blob_name(filename: Optional[str]) -> str:
    """Random object name that keeps the original extension."""
    ext = os.path.splitext(filename or "")[1][:MAX_EXTENSION_LEN]
    return f"{uuid.uuid4().hex}{ext}"


class BlobStore:
    def save(self, body: bytes, content_type: str, filename: Optional[str]) -> str:
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Files under a directory, served by the app under url_prefix."""

    def __init__(self, directory: str, url_prefix: str = "/uploads"):
        self.directory = directory
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.directory, exist_ok=True)

    def save(self, body: bytes, content_type: str, filename: Optional[str]) -> str:
        name = blob_name(filename)
        with open(os.path.join(self.directory, name), "wb") as f:
            f.write(body)
        return f"{self.url_prefix}/{name}"

    def delete(self, url: str) -> None:
        name = os.path.basename(url)
        path = os.path.join(self.directory, name)
        if name and os.path.isfile(path):
            os.remove(path)
            logger.info("Purged upload %s", name)


class S3BlobStore(BlobStore):
    def __init__(self, bucket: str, prefix: str = "chat", client=None):
        self.bucket = bucket
        self.prefix = prefix
        self.client = client

    def save(self, body: bytes, content_type: str, filename: Optional[str]) -> str:
        key = f"{self.prefix}/{blob_name(filename)}"
        return upload_to_s3(
            key=key,
            body=body,
            content_type=content_type or "application/octet-stream",
            bucket=self.bucket,
            client=self.client,
        )

    def delete(self, url: str) -> None:
        key = key_from_url(url)
        if key:
            delete_from_s3(key, bucket=self.bucket, client=self.client)


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.use_s3:
        return S3BlobStore(settings.S3_BUCKET_NAME)
    return LocalBlobStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
