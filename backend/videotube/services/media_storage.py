# videotube/services/media_storage.py
"""
Object storage for user images (avatars, cover images).

Uploads go straight to S3; the returned URL is what we store on the user.
"""
from __future__ import annotations

import io
import logging
import re
import uuid
from dataclasses import dataclass
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from videotube.core.config import settings

logger = logging.getLogger(__name__)

_SANITIZE_RE = re.compile(r"[^A-Za-z0-9_.-]")

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str


def _client():
    region = settings.AWS_REGION or None
    return boto3.client("s3", region_name=region)


def _bucket() -> str:
    return settings.S3_BUCKET_NAME


def build_key(folder: str, filename: str) -> str:
    safe = _SANITIZE_RE.sub("_", filename or "upload")
    prefix = settings.S3_PREFIX.rstrip("/")
    key = f"{folder}/{uuid.uuid4()}_{safe}"
    return f"{prefix}/{key}" if prefix else key


def object_size(fileobj: BinaryIO) -> int:
    """Byte length of a seekable upload; the read position is left where it was."""
    pos = fileobj.tell()
    fileobj.seek(0, io.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(pos)
    return size - pos


def public_url(key: str) -> str:
    if settings.MEDIA_BASE_URL:
        return f"{settings.MEDIA_BASE_URL}/{key}"
    region = settings.AWS_REGION or "us-east-1"
    return f"https://{_bucket()}.s3.{region}.amazonaws.com/{key}"


def upload_image(
    fileobj: BinaryIO,
    *,
    filename: str,
    content_type: str | None,
    folder: str,
) -> StoredObject | None:
    """
    Upload an image and return where it landed.

    Returns None when the upload fails; callers treat that as a bad request.
    """
    if not _bucket():
        logger.error("Upload skipped: S3_BUCKET_NAME is not configured")
        return None

    size = object_size(fileobj)
    if size > settings.MAX_UPLOAD_BYTES:
        logger.warning("Upload refused: %s bytes exceeds MAX_UPLOAD_BYTES=%s", size, settings.MAX_UPLOAD_BYTES)
        return None

    key = build_key(folder, filename)
    extra: dict[str, str] = {}
    if content_type:
        extra["ContentType"] = content_type

    try:
        _client().upload_fileobj(fileobj, _bucket(), key, ExtraArgs=extra or None)
    except (BotoCoreError, ClientError):
        logger.exception("Upload failed: key=%s", key)
        return None

    stored = StoredObject(key=key, url=public_url(key))
    logger.info("Uploaded object: key=%s", key)
    return stored


def delete_object(key: str | None) -> None:
    """Best-effort delete of a previously uploaded object."""
    if not key:
        return
    try:
        _client().delete_object(Bucket=_bucket(), Key=key)
    except (BotoCoreError, ClientError):
        # Orphaned objects are acceptable; the user record is already updated.
        logger.warning("Delete failed: key=%s", key, exc_info=True)
        return
    logger.info("Deleted object: key=%s", key)
