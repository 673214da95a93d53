# videotube/services/users.py
"""
User store.

Thin persistence helpers around the `users` table. Everything above this module
talks to users through these functions, so the session core never builds
queries itself.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from videotube.core.errors import BadRequest, Conflict, Internal, NotFound
from videotube.models.user import User

logger = logging.getLogger(__name__)

# Columns a caller may change through update(); credentials and the refresh
# slot have dedicated paths.
UPDATABLE_FIELDS = frozenset(
    {"fullname", "email", "avatar", "avatar_key", "cover_image", "cover_image_key"}
)

REQUIRED_FIELDS = ("username", "email", "fullname", "password_hash", "avatar")


def normalize_identifier(value: str | None) -> str:
    return (value or "").strip().lower()


def find_by_identifier(db: Session, *identifiers: str) -> Optional[User]:
    """Look up a user whose username or email equals any of `identifiers`."""
    idents = {normalize_identifier(i) for i in identifiers} - {""}
    if not idents:
        return None
    return (
        db.query(User)
        .filter(or_(User.username.in_(idents), User.email.in_(idents)))
        .order_by(User.id)
        .first()
    )


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_identifier(email)).first()


def find_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def find_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == normalize_identifier(username)).first()


def identifier_taken(db: Session, *, username: str, email: str) -> bool:
    """True if another user already holds this username or email."""
    return (
        db.query(User.id)
        .filter(
            or_(
                User.username == normalize_identifier(username),
                User.email == normalize_identifier(email),
            )
        )
        .first()
        is not None
    )


def _validate(user: User) -> None:
    missing = [f for f in REQUIRED_FIELDS if not (getattr(user, f, None) or "").strip()]
    if missing:
        raise BadRequest("All fields are required", details={"missing": missing})


def save(db: Session, user: User, *, validate: bool = True) -> User:
    """
    Persist `user` and commit.

    validate=False skips the required-field check for partial updates
    (refresh slot, password hash), mirroring a "save without validation" call.
    """
    if validate:
        _validate(user)

    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("User save rejected by unique constraint: id=%s", user.id)
        raise Conflict("User with username or email already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User save failed: id=%s", user.id)
        raise Internal() from e

    db.refresh(user)
    return user


def update(db: Session, user_id: int, patch: dict[str, Any]) -> User:
    """Apply a partial update and return the refreshed user."""
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    user = find_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")

    for key, value in patch.items():
        setattr(user, key, value)
    return save(db, user, validate=False)


def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    fullname: str,
    password_hash: str,
    avatar: str,
    avatar_key: str | None = None,
    cover_image: str = "",
    cover_image_key: str | None = None,
) -> User:
    user = User(
        username=normalize_identifier(username),
        email=normalize_identifier(email),
        fullname=fullname.strip(),
        password_hash=password_hash,
        avatar=avatar,
        avatar_key=avatar_key,
        cover_image=cover_image or "",
        cover_image_key=cover_image_key,
        refresh_token=None,
    )
    user = save(db, user)

    logger.info("Registered user: id=%s username=%s", user.id, user.username)
    return user
