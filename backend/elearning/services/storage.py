from __future__ import annotations

import logging
import re
import uuid

import boto3
from botocore.client import Config

from elearning.core.config import settings


log = logging.getLogger(__name__)


def get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=(str(settings.s3_endpoint_url or "").strip() or None),
        aws_access_key_id=settings.s3_access_key_id,
        aws_secret_access_key=settings.s3_secret_access_key,
        region_name=settings.s3_region_name,
        config=Config(
            signature_version="s3v4",
            connect_timeout=float(settings.s3_connect_timeout_seconds),
            read_timeout=float(settings.s3_read_timeout_seconds),
            retries={
                "max_attempts": int(settings.s3_max_attempts),
                "mode": "standard",
            },
            s3={
                "addressing_style": str(settings.s3_addressing_style),
            },
        ),
    )


def ensure_bucket_exists() -> None:
    s3 = get_s3_client()
    try:
        s3.head_bucket(Bucket=settings.s3_bucket)
    except Exception:
        # In production we should NOT auto-create buckets.
        if (settings.app_env or "").strip().lower() in {"prod", "production"}:
            raise
        s3.create_bucket(Bucket=settings.s3_bucket)


def module_prefix(module_id: uuid.UUID | str) -> str:
    return f"modules/{module_id}/"


def _safe_filename(name: str) -> str:
    base = (name or "").replace("\\", "/").split("/")[-1].strip()
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", base)
    return base[:200] or "file"


def put_upload(*, module_id: uuid.UUID, filename: str, data: bytes, content_type: str | None) -> str:
    """Store an uploaded material file and return its object key."""
    ensure_bucket_exists()
    s3 = get_s3_client()
    object_key = f"{module_prefix(module_id)}content/{uuid.uuid4().hex}-{_safe_filename(filename)}"
    params: dict[str, object] = {"Bucket": settings.s3_bucket, "Key": object_key, "Body": data}
    if content_type:
        params["ContentType"] = content_type
    s3.put_object(**params)
    log.info("stored upload key=%s bytes=%s", object_key, len(data))
    return object_key


def delete_object(object_key: str) -> None:
    s3 = get_s3_client()
    s3.delete_object(Bucket=settings.s3_bucket, Key=object_key)


def delete_object_best_effort(object_key: str | None) -> None:
    if not object_key:
        return
    try:
        delete_object(object_key)
    except Exception:
        log.exception("failed to delete stored object key=%s", object_key)


def delete_prefix_best_effort(*, prefix: str) -> None:
    try:
        s3 = get_s3_client()
        token: str | None = None
        while True:
            kwargs: dict[str, object] = {
                "Bucket": settings.s3_bucket,
                "Prefix": prefix,
                "MaxKeys": 1000,
            }
            if token:
                kwargs["ContinuationToken"] = token
            resp = s3.list_objects_v2(**kwargs)
            contents = resp.get("Contents") or []
            if contents:
                keys = [{"Key": str(o.get("Key"))} for o in contents if o.get("Key")]
                if keys:
                    s3.delete_objects(Bucket=settings.s3_bucket, Delete={"Objects": keys, "Quiet": True})
            if not resp.get("IsTruncated"):
                break
            token = str(resp.get("NextContinuationToken") or "") or None
    except Exception:
        log.exception("failed to delete stored objects under prefix=%s", prefix)
