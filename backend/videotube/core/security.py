# videotube/core/security.py
from __future__ import annotations

import logging

from passlib.context import CryptContext
from passlib.exc import PasswordSizeError, UnknownHashError

from videotube.core.config import settings
from videotube.core.errors import BadRequest

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# Upper bound for every password input: register, login and change-password.
PASSWORD_MAX_LENGTH = 128
PASSWORD_TOO_LONG = f"Password must be at most {PASSWORD_MAX_LENGTH} characters"


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    """
    Derive the stored credential hash for a plaintext password.

    Register and change-password call this directly; nothing hashes implicitly on save.
    """
    if len(password or "") > PASSWORD_MAX_LENGTH:
        raise BadRequest(PASSWORD_TOO_LONG)
    try:
        return pwd_context.hash(password)
    except PasswordSizeError as e:
        raise BadRequest(PASSWORD_TOO_LONG) from e


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except (UnknownHashError, ValueError):
        # Corrupt or foreign hash in the store: treat as a mismatch.
        logger.warning("Stored password hash could not be parsed")
        return False
