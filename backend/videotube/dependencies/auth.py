# videotube/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from videotube.core.config import settings
from videotube.core.database import get_db
from videotube.core.tokens import InvalidTokenError, TokenService
from videotube.models.user import User
from videotube.services import users as user_store
from videotube.services.auth_cookies import read_access_cookie
from videotube.services.sessions import SessionService

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_service() -> TokenService:
    return TokenService(settings.auth_config())


def get_session_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> SessionService:
    return SessionService(db, tokens)


def _presented_access_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds and creds.scheme.lower() == "bearer" and creds.credentials:
        return creds.credentials
    return read_access_cookie(request)


def _resolve_user(token: str, db: Session, tokens: TokenService) -> User:
    try:
        claims = tokens.verify_access(token)
    except InvalidTokenError:
        raise _unauthorized("Invalid access token")

    user = user_store.find_by_id(db, claims.user_id)
    if not user:
        raise _unauthorized("Invalid access token")
    return user


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """
    Validates:
      - Authorization: Bearer <token>, or the access-token cookie
      - token signature + exp
      - user exists
    Returns:
      - User SQLAlchemy model
    """
    token = _presented_access_token(request, creds)
    if not token:
        raise _unauthorized("Unauthorized request")
    return _resolve_user(token, db, tokens)


def get_optional_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User | None:
    """Like get_current_user, but anonymous requests get None instead of 401."""
    token = _presented_access_token(request, creds)
    if not token:
        return None
    return _resolve_user(token, db, tokens)
