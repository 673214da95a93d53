# videotube/services/accounts.py
from __future__ import annotations

import logging
from typing import BinaryIO

from sqlalchemy.orm import Session

from videotube.core.config import settings
from videotube.core.errors import BadRequest, Conflict, NotFound
from videotube.models.user import User
from videotube.services import media_storage
from videotube.services import users as user_store

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
COVER_FOLDER = "covers"


def update_account_details(db: Session, user_id: int, *, fullname: str, email: str) -> User:
    fullname = (fullname or "").strip()
    email = user_store.normalize_identifier(email)
    if not fullname or not email:
        raise BadRequest("All fields are required")

    other = user_store.find_by_email(db, email)
    if other is not None and other.id != user_id:
        raise Conflict("Email already in use")

    return user_store.update(db, user_id, {"fullname": fullname, "email": email})


def check_image(fileobj: BinaryIO, *, content_type: str | None, label: str) -> None:
    """Reject uploads that are not an allowed image type or exceed MAX_UPLOAD_BYTES."""
    if content_type and content_type not in media_storage.ALLOWED_IMAGE_TYPES:
        raise BadRequest(f"{label} must be an image")
    size = media_storage.object_size(fileobj)
    if size > settings.MAX_UPLOAD_BYTES:
        raise BadRequest(
            f"{label} is too large",
            details={"max_bytes": settings.MAX_UPLOAD_BYTES, "size": size},
        )


def _replace_image(
    db: Session,
    user_id: int,
    fileobj: BinaryIO | None,
    *,
    filename: str | None,
    content_type: str | None,
    url_field: str,
    key_field: str,
    folder: str,
    label: str,
) -> User:
    if fileobj is None or not filename:
        raise BadRequest(f"{label} file is missing")
    check_image(fileobj, content_type=content_type, label=label)

    user = user_store.find_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")
    previous_key = getattr(user, key_field)

    stored = media_storage.upload_image(
        fileobj,
        filename=filename,
        content_type=content_type,
        folder=folder,
    )
    if stored is None:
        raise BadRequest(f"Error while uploading {label.lower()}")

    user = user_store.update(db, user_id, {url_field: stored.url, key_field: stored.key})

    # Old object goes only after the record points at the new one.
    if previous_key and previous_key != stored.key:
        media_storage.delete_object(previous_key)

    logger.info("%s updated: user_id=%s", label, user_id)
    return user


def update_avatar(
    db: Session,
    user_id: int,
    fileobj: BinaryIO | None,
    *,
    filename: str | None,
    content_type: str | None,
) -> User:
    return _replace_image(
        db,
        user_id,
        fileobj,
        filename=filename,
        content_type=content_type,
        url_field="avatar",
        key_field="avatar_key",
        folder=AVATAR_FOLDER,
        label="Avatar",
    )


def update_cover_image(
    db: Session,
    user_id: int,
    fileobj: BinaryIO | None,
    *,
    filename: str | None,
    content_type: str | None,
) -> User:
    return _replace_image(
        db,
        user_id,
        fileobj,
        filename=filename,
        content_type=content_type,
        url_field="cover_image",
        key_field="cover_image_key",
        folder=COVER_FOLDER,
        label="Cover image",
    )
