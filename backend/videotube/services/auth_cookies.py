from __future__ import annotations

from fastapi import Request, Response

from videotube.core.config import settings


# -----------------------------
# Cookie settings
# -----------------------------
def access_cookie_name() -> str:
    return str(getattr(settings, "ACCESS_COOKIE_NAME", "accessToken")).strip() or "accessToken"


def refresh_cookie_name() -> str:
    return str(getattr(settings, "REFRESH_COOKIE_NAME", "refreshToken")).strip() or "refreshToken"


def cookie_path() -> str:
    return str(getattr(settings, "COOKIE_PATH", "/")).strip() or "/"


def cookie_secure() -> bool:
    return bool(getattr(settings, "COOKIE_SECURE", True))


def cookie_samesite() -> str:
    """
    "lax" for same-site deployments
    "none" ONLY for cross-site cookies (requires HTTPS + Secure=True)
    """
    v = str(getattr(settings, "COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def access_cookie_max_age_seconds() -> int:
    return int(getattr(settings, "ACCESS_TOKEN_EXPIRE_SECONDS", 3600))


def refresh_cookie_max_age_seconds() -> int:
    return int(getattr(settings, "REFRESH_TOKEN_EXPIRE_SECONDS", 10 * 24 * 3600))


# -----------------------------
# Set / clear / read
# -----------------------------
def _set(resp: Response, key: str, value: str, max_age: int) -> None:
    resp.set_cookie(
        key=key,
        value=value,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=max_age,
        path=cookie_path(),
    )


def set_auth_cookies(resp: Response, access_token: str, refresh_token: str) -> None:
    _set(resp, access_cookie_name(), access_token, access_cookie_max_age_seconds())
    _set(resp, refresh_cookie_name(), refresh_token, refresh_cookie_max_age_seconds())


def clear_auth_cookies(resp: Response) -> None:
    for key in (access_cookie_name(), refresh_cookie_name()):
        resp.delete_cookie(
            key=key,
            path=cookie_path(),
            secure=cookie_secure(),
            httponly=True,
            samesite=cookie_samesite(),
        )


def _read_cookie(req: Request, key: str) -> str | None:
    val = req.cookies.get(key)
    if not val:
        return None
    val = val.strip()
    return val or None


def read_access_cookie(req: Request) -> str | None:
    return _read_cookie(req, access_cookie_name())


def read_refresh_token(req: Request, body_token: str | None = None) -> str | None:
    """Refresh token from the cookie, else from the request body field."""
    from_cookie = _read_cookie(req, refresh_cookie_name())
    if from_cookie:
        return from_cookie
    if body_token and body_token.strip():
        return body_token.strip()
    return None
