from __future__ import annotations
import io
from functools import lru_cache
from minio import Minio
from minio.error import S3Error
import structlog
from app.config import settings

log = structlog.get_logger()

SCREENSHOTS = "screenshots"
CHARTS = "charts"

def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure

def bucket_for(kind: str) -> str:
    if kind == SCREENSHOTS:
        return settings.s3_bucket_screenshots
    if kind == CHARTS:
        return settings.s3_bucket_charts
    raise ValueError(f"Unknown bucket kind: {kind}")

@lru_cache(maxsize=1)
def _client() -> Minio:
    host, secure = _parse_endpoint(settings.s3_endpoint)
    client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
    # Ensure buckets exist (idempotent)
    for bucket in (settings.s3_bucket_screenshots, settings.s3_bucket_charts):
        try:
            if not client.bucket_exists(bucket):
                client.make_bucket(bucket)
        except S3Error as e:
            # creation may race with another process; it's fine if it already exists
            log.warning("bucket_ensure_failed", bucket=bucket, code=e.code)
    return client

def put_bytes(kind: str, key: str, data: bytes, content_type: str) -> str:
    _client().put_object(bucket_for(kind), key, io.BytesIO(data), length=len(data), content_type=content_type)
    return key

def get_bytes(kind: str, key: str) -> tuple[bytes, str]:
    """
    Retrieve object from storage.
    Returns (data, content_type).
    """
    try:
        response = _client().get_object(bucket_for(kind), key)
        try:
            data = response.read()
            content_type = response.headers.get('Content-Type', 'application/octet-stream')
        finally:
            response.close()
            response.release_conn()
        return data, content_type
    except S3Error as e:
        if e.code == 'NoSuchKey':
            raise FileNotFoundError(f"Object not found: {key}")
        raise

def delete_bytes(kind: str, key: str) -> None:
    _client().remove_object(bucket_for(kind), key)
