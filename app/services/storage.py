"""Object storage: S3 when a bucket is configured, local disk otherwise."""
import logging
import os
from typing import Optional
import boto3
from app.core.config import settings
from app.core.errors import UpstreamProviderError

logger = logging.getLogger(__name__)


def _s3_configured() -> bool:
    return all([
        settings.aws_access_key_id,
        settings.aws_secret_access_key,
        settings.s3_bucket_name,
    ])


def _s3_client():
    return boto3.client(
        's3',
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region or 'us-east-1'
    )


def _s3_base_url() -> str:
    if settings.s3_public_base_url:
        return settings.s3_public_base_url.rstrip("/")
    region = settings.aws_region or "us-east-1"
    return f"https://{settings.s3_bucket_name}.s3.{region}.amazonaws.com"


def _local_path(key: str) -> str:
    root = os.path.abspath(settings.upload_storage_path)
    path = os.path.abspath(os.path.join(root, key))
    if not path.startswith(root + os.sep):
        raise ValueError(f"Storage key escapes storage root: {key}")
    return path


def _store_local(data: bytes, key: str) -> str:
    """Store file locally and return URL."""
    filepath = _local_path(key)
    os.makedirs(os.path.dirname(filepath), exist_ok=True)
    with open(filepath, "wb") as f:
        f.write(data)
    return f"{settings.files_base_url.rstrip('/')}/{key}"


def _store_cloud(data: bytes, key: str, content_type: str) -> str:
    """Store file in S3 and return its public URL."""
    _s3_client().put_object(
        Bucket=settings.s3_bucket_name,
        Key=key,
        Body=data,
        ContentType=content_type,
    )
    return f"{_s3_base_url()}/{key}"


def put(data: bytes, key: str, content_type: str) -> str:
    """
    Store bytes under `key` and return a public URL.

    Raises:
        UpstreamProviderError: when the storage backend rejects the write
    """
    try:
        if _s3_configured():
            url = _store_cloud(data, key, content_type)
        else:
            url = _store_local(data, key)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return url
    except Exception as e:
        logger.error(f"Storage put error for {key}: {e}", exc_info=True)
        raise UpstreamProviderError("Failed to store file") from e


def key_from_url(url: str) -> Optional[str]:
    """Map a URL returned by put() back to its storage key."""
    base = _s3_base_url() if _s3_configured() else settings.files_base_url.rstrip("/")
    prefix = base + "/"
    if not url.startswith(prefix):
        return None
    return url[len(prefix):]


def delete(url: str) -> bool:
    """Delete a stored object by URL. Returns False when it cannot be deleted."""
    key = key_from_url(url)
    if not key:
        logger.warning(f"Storage delete skipped, URL not managed here: {url}")
        return False
    try:
        if _s3_configured():
            _s3_client().delete_object(Bucket=settings.s3_bucket_name, Key=key)
        else:
            os.remove(_local_path(key))
        return True
    except Exception as e:
        logger.error(f"Storage delete error for {key}: {e}")
        return False
