# videotube/core/tokens.py
"""
Access / refresh token issue and verification.

Access tokens are stateless: signature + expiry is the whole check.
Refresh tokens are additionally compared against the value stored for the user
(see videotube.services.sessions); this module only proves they are well formed,
correctly signed and unexpired.

Each kind is signed with its own key and carries a "type" claim, so a token of
one kind never verifies as the other.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from jose import jwt
from jose.exceptions import JOSEError

from videotube.core.config import AuthConfig
from videotube.core.errors import Internal

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InvalidTokenError(Exception):
    """Token failed verification (signature, structure, type or expiry)."""

    def __init__(self, message: str = "Invalid or expired token"):
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    username: str
    email: str
    fullname: str


@dataclass(frozen=True)
class RefreshClaims:
    user_id: int


class TokenService:
    """
    Mints and verifies signed tokens.

    Keys and lifetimes come from an AuthConfig given at construction; the clock
    is injectable so expiry can be tested without waiting.
    """

    def __init__(self, config: AuthConfig, clock: Clock | None = None):
        self._config = config
        self._clock = clock or utc_now

    # -------------------------
    # Issue
    # -------------------------
    def issue_access(self, claims: AccessClaims) -> str:
        payload = {
            "sub": str(claims.user_id),
            "username": claims.username,
            "email": claims.email,
            "fullname": claims.fullname,
        }
        return self._sign(
            payload,
            key=self._config.access_token_secret,
            token_type=ACCESS,
            ttl_seconds=self._config.access_token_ttl_seconds,
        )

    def issue_refresh(self, user_id: int) -> str:
        return self._sign(
            {"sub": str(user_id)},
            key=self._config.refresh_token_secret,
            token_type=REFRESH,
            ttl_seconds=self._config.refresh_token_ttl_seconds,
        )

    # -------------------------
    # Verify
    # -------------------------
    def verify_access(self, token: str) -> AccessClaims:
        payload = self.verify(token, self._config.access_token_secret, expected_type=ACCESS)
        return AccessClaims(
            user_id=_user_id(payload),
            username=str(payload.get("username") or ""),
            email=str(payload.get("email") or ""),
            fullname=str(payload.get("fullname") or ""),
        )

    def verify_refresh(self, token: str) -> RefreshClaims:
        payload = self.verify(token, self._config.refresh_token_secret, expected_type=REFRESH)
        return RefreshClaims(user_id=_user_id(payload))

    def verify(self, token: str, key: str, *, expected_type: str) -> dict[str, Any]:
        """
        Decode `token` with `key` and check type + expiry against the injected clock.

        Raises InvalidTokenError on any failure; never returns partial claims.
        """
        _require_key(key)
        if not token or not isinstance(token, str):
            raise InvalidTokenError("Missing token")

        try:
            # Expiry is checked below against our clock, not jose's.
            payload = jwt.decode(
                token,
                key,
                algorithms=[self._config.algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as e:
            raise InvalidTokenError("Invalid token") from e

        if payload.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type")

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidTokenError("Malformed token payload")
        if self._clock().timestamp() >= exp:
            raise InvalidTokenError("Token has expired")

        return payload

    def _sign(self, payload: dict[str, Any], *, key: str, token_type: str, ttl_seconds: int) -> str:
        _require_key(key)

        now = self._clock()
        exp = now + timedelta(seconds=ttl_seconds)
        claims = {
            **payload,
            "type": token_type,
            # Distinct per mint, so a rotated token never equals its predecessor.
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(claims, key, algorithm=self._config.algorithm)


def _require_key(key: str) -> None:
    if not key or not key.strip():
        logger.error("Token signing key is not configured")
        raise Internal()


def _user_id(payload: dict[str, Any]) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError("Malformed token payload") from e
