"""
S3 helpers for chat uploads: put, delete and map keys to public URLs.
"""
import logging
from typing import Optional

from gatechat.aws.client import get_aws_client
from gatechat.core.config import settings

logger = logging.getLogger(__name__)

_URL_MARKER = ".amazonaws.com/"


def get_s3_client():
    return get_aws_client("s3", region_name=settings.s3_region)


def _bucket(bucket: Optional[str]) -> str:
    name = bucket or settings.S3_BUCKET_NAME
    if not name:
        raise ValueError("S3_BUCKET_NAME not configured")
    return name


def build_public_url(key: str, bucket: Optional[str] = None) -> str:
    """Virtual-hosted URL of an object. Public read comes from the bucket policy, not ACLs."""
    return f"https://{_bucket(bucket)}.s3.{settings.s3_region}{_URL_MARKER}{key}"


def key_from_url(url: str) -> Optional[str]:
    """Object key of a URL made by build_public_url, None for anything else."""
    if _URL_MARKER not in url:
        return None
    return url.split(_URL_MARKER, 1)[1] or None


def upload_to_s3(
    key: str,
    body: bytes,
    content_type: str,
    bucket: Optional[str] = None,
    client=None,
) -> str:
    """
    Put an object and return its public URL.

    Args:
        key: Object key, e.g. chat/<hex>.png
        body: Raw bytes
        content_type: Stored as the object's Content-Type
        bucket: Defaults to settings.S3_BUCKET_NAME
        client: boto3 S3 client; one is created when omitted
    """
    name = _bucket(bucket)
    client = client or get_s3_client()
    client.put_object(Bucket=name, Key=key, Body=body, ContentType=content_type)
    url = build_public_url(key, bucket=name)
    logger.info(f"Stored chat upload s3://{name}/{key}")
    return url


def delete_from_s3(key: str, bucket: Optional[str] = None, client=None) -> None:
    name = _bucket(bucket)
    client = client or get_s3_client()
    client.delete_object(Bucket=name, Key=key)
    logger.info(f"Removed chat upload s3://{name}/{key}")
