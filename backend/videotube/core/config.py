# videotube/core/config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


@dataclass(frozen=True)
class AuthConfig:
    """
    Signing keys and lifetimes for access/refresh tokens.

    Built once from Settings and handed to TokenService, so token code never
    reads the environment itself.
    """

    access_token_secret: str
    refresh_token_secret: str
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 10 * 24 * 3600
    algorithm: str = "HS256"


class Settings:
    def __init__(self) -> None:
        # Only load .env for local/dev. In prod, env vars come from the service config.
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            load_dotenv()

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

        # ----------------------------
        # Database
        # ----------------------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./videotube.db").strip()

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Auth / JWT
        # ----------------------------
        self.ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "")
        self.REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_SECONDS = int(os.getenv("ACCESS_TOKEN_EXPIRE_SECONDS", "3600"))
        self.REFRESH_TOKEN_EXPIRE_SECONDS = int(os.getenv("REFRESH_TOKEN_EXPIRE_SECONDS", str(10 * 24 * 3600)))
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

        # ----------------------------
        # Cookies
        # ----------------------------
        self.ACCESS_COOKIE_NAME = os.getenv("ACCESS_COOKIE_NAME", "accessToken")
        self.REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refreshToken")
        self.COOKIE_SECURE = str_to_bool(os.getenv("COOKIE_SECURE"), default=True)
        self.COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")
        self.COOKIE_PATH = os.getenv("COOKIE_PATH", "/")

        # ----------------------------
        # Object storage (avatars / cover images)
        # ----------------------------
        self.AWS_REGION = os.getenv("AWS_REGION", "")
        self.S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME", "")
        self.S3_PREFIX = os.getenv("S3_PREFIX", "media").strip().strip("/")
        # Public base for uploaded objects, e.g. a CDN in front of the bucket.
        self.MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "").strip().rstrip("/")
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.ACCESS_TOKEN_SECRET:
            missing.append("ACCESS_TOKEN_SECRET")
        if not self.REFRESH_TOKEN_SECRET:
            missing.append("REFRESH_TOKEN_SECRET")
        if not self.S3_BUCKET_NAME:
            missing.append("S3_BUCKET_NAME")
        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        if not self.COOKIE_SECURE:
            raise RuntimeError("COOKIE_SECURE must be enabled in prod")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    def auth_config(self) -> AuthConfig:
        return AuthConfig(
            access_token_secret=self.ACCESS_TOKEN_SECRET,
            refresh_token_secret=self.REFRESH_TOKEN_SECRET,
            access_token_ttl_seconds=self.ACCESS_TOKEN_EXPIRE_SECONDS,
            refresh_token_ttl_seconds=self.REFRESH_TOKEN_EXPIRE_SECONDS,
            algorithm=self.JWT_ALGORITHM,
        )


settings = Settings()


def require_token_secrets() -> None:
    if not settings.ACCESS_TOKEN_SECRET or not settings.REFRESH_TOKEN_SECRET:
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set")
