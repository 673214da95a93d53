# videotube/services/sessions.py
"""
Login / refresh / logout / change-password.

All session state is the single refresh-token slot per user (SessionStore).
Rules enforced here:
  - login and refresh always mint a new pair and overwrite the slot
  - refresh is accepted only if the presented token equals the stored one, so a
    superseded or logged-out token is rejected even when its signature is valid
  - logout clears the slot and is idempotent
  - change-password replaces the hash and leaves the slot alone

Concurrent login/refresh for one user is last-writer-wins: two refreshes racing
on the same token can both succeed, and only the later persisted token stays
usable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.orm import Session

from videotube.core.errors import BadRequest, Conflict, Internal, NotFound, Unauthorized
from videotube.core.security import (
    PASSWORD_MAX_LENGTH,
    PASSWORD_TOO_LONG,
    hash_password,
    verify_password,
)
from videotube.core.tokens import AccessClaims, InvalidTokenError, TokenService
from videotube.models.user import User
from videotube.schemas.user import UserOut, public_user
from videotube.services import users as user_store
from videotube.services.session_store import SessionStore, UserRecordSessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class SessionResult:
    user: UserOut
    access_token: str
    refresh_token: str


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


class SessionService:
    def __init__(
        self,
        db: Session,
        tokens: TokenService,
        sessions: SessionStore | None = None,
    ):
        self._db = db
        self._tokens = tokens
        self._sessions: SessionStore = sessions or UserRecordSessionStore(db)

    # -----------------------------
    # Internals
    # -----------------------------
    def _issue_pair(self, user: User) -> TokenPair:
        access = self._tokens.issue_access(
            AccessClaims(
                user_id=user.id,
                username=user.username,
                email=user.email,
                fullname=user.fullname,
            )
        )
        refresh = self._tokens.issue_refresh(user.id)
        return TokenPair(access_token=access, refresh_token=refresh)

    def _rotate(self, user: User) -> TokenPair:
        pair = self._issue_pair(user)
        try:
            self._sessions.set_active(user.id, pair.refresh_token)
        except LookupError as e:
            # User vanished between lookup and write.
            logger.warning("Session slot write failed, user missing: id=%s", user.id)
            raise Internal("Something went wrong while generating tokens") from e
        return pair

    # -----------------------------
    # Protocols
    # -----------------------------
    def register(
        self,
        *,
        username: str,
        email: str,
        fullname: str,
        password: str,
        avatar_url: str,
        avatar_key: str | None = None,
        cover_image_url: str = "",
        cover_image_key: str | None = None,
    ) -> UserOut:
        self.check_registration(username=username, email=email, fullname=fullname, password=password)
        if _blank(avatar_url):
            raise BadRequest("Avatar file is required")

        user = user_store.create_user(
            self._db,
            username=username,
            email=email,
            fullname=fullname,
            password_hash=hash_password(password),
            avatar=avatar_url,
            avatar_key=avatar_key,
            cover_image=cover_image_url,
            cover_image_key=cover_image_key,
        )
        return public_user(user)

    def check_registration(self, *, username: str, email: str, fullname: str, password: str) -> None:
        """Everything register rejects before any upload or write happens."""
        if any(_blank(v) for v in (username, email, fullname, password)):
            raise BadRequest("All fields are required")
        if len(password) > PASSWORD_MAX_LENGTH:
            raise BadRequest(PASSWORD_TOO_LONG)
        self.ensure_available(username=username, email=email)

    def ensure_available(self, *, username: str, email: str) -> None:
        if user_store.identifier_taken(self._db, username=username, email=email):
            raise Conflict("User with username or email already exists")

    def login(self, identifier: str | Sequence[str], password: str) -> SessionResult:
        """
        Authenticate by username or email.

        `identifier` may be one value or several (username and email as sent);
        a user matching any of them is the one whose password is checked.
        """
        candidates = [identifier] if isinstance(identifier, str) else list(identifier)
        candidates = [c for c in candidates if not _blank(c)]
        if not candidates:
            raise BadRequest("Username or email is required")

        user = user_store.find_by_identifier(self._db, *candidates)
        if user is None:
            logger.info("Login rejected: unknown identifier")
            raise NotFound("User does not exist")

        if not verify_password(password, user.password_hash):
            logger.info("Login rejected: bad credentials user_id=%s", user.id)
            raise Unauthorized("Invalid user credentials")

        pair = self._rotate(user)
        logger.info("User logged in: id=%s", user.id)
        return SessionResult(
            user=public_user(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def refresh(self, presented: str | None) -> TokenPair:
        if _blank(presented):
            raise Unauthorized("Unauthorized request")

        try:
            claims = self._tokens.verify_refresh(presented)
        except InvalidTokenError as e:
            logger.info("Refresh rejected: %s", e.message)
            raise Unauthorized("Invalid refresh token") from e

        user = user_store.find_by_id(self._db, claims.user_id)
        if user is None:
            logger.info("Refresh rejected: user not found id=%s", claims.user_id)
            raise Unauthorized("Invalid refresh token")

        if not self._sessions.matches(user.id, presented):
            # Signature is fine but the slot moved on: reuse of a rotated or
            # logged-out token.
            logger.warning("Refresh rejected: stale or reused token user_id=%s", user.id)
            raise Unauthorized("Refresh token is expired or used")

        pair = self._rotate(user)
        logger.debug("Tokens refreshed: user_id=%s", user.id)
        return pair

    def logout(self, user_id: int) -> None:
        self._sessions.clear(user_id)
        logger.info("User logged out: id=%s", user_id)

    def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        if _blank(new_password):
            raise BadRequest("New password is required")

        user = user_store.find_by_id(self._db, user_id)
        if user is None:
            raise NotFound("User not found")

        if not verify_password(old_password, user.password_hash):
            raise BadRequest("Invalid old password")

        # Refresh slot untouched: existing sessions stay valid.
        user.password_hash = hash_password(new_password)
        user_store.save(self._db, user, validate=False)
        logger.info("Password changed: user_id=%s", user_id)
