# videotube/services/session_store.py
"""
Session slot storage.

Each user has at most one live refresh token. The SessionStore protocol is the
only thing the session core knows about where that slot lives; the default
implementation keeps it on the user row.
"""
from __future__ import annotations

import hmac
import logging
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from videotube.models.user import User
from videotube.services import users as user_store

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def get_active(self, user_id: int) -> Optional[str]: ...

    def set_active(self, user_id: int, token: str) -> None: ...

    def clear(self, user_id: int) -> None: ...

    def matches(self, user_id: int, token: str) -> bool: ...


class UserRecordSessionStore:
    """
    Keeps the active refresh token in `users.refresh_token`.

    Writes are unconditional overwrites: concurrent rotations for the same user
    resolve as last-writer-wins.
    """

    def __init__(self, db: Session):
        self._db = db

    def _user(self, user_id: int) -> Optional[User]:
        return user_store.find_by_id(self._db, user_id)

    def get_active(self, user_id: int) -> Optional[str]:
        user = self._user(user_id)
        if user is None:
            return None
        return user.refresh_token or None

    def set_active(self, user_id: int, token: str) -> None:
        user = self._user(user_id)
        if user is None:
            # Nothing to attach the slot to; callers load the user first.
            raise LookupError(f"user {user_id} not found")
        user.refresh_token = token
        user_store.save(self._db, user, validate=False)

    def clear(self, user_id: int) -> None:
        user = self._user(user_id)
        if user is None or user.refresh_token is None:
            return
        user.refresh_token = None
        user_store.save(self._db, user, validate=False)

    def matches(self, user_id: int, token: str) -> bool:
        stored = self.get_active(user_id)
        if not stored or not token:
            return False
        return hmac.compare_digest(stored.encode("utf-8"), token.encode("utf-8"))
