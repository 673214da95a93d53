import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from videotube.core.config import require_token_secrets, settings
from videotube.core.errors import ServiceError
from videotube.core.logging_config import configure_logging
from videotube.routes.auth import router as auth_router
from videotube.routes.users import router as users_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

require_token_secrets()

app = FastAPI(title="VideoTube")
logger.info(
    "Startup config: ENV=%s cookie_secure=%s bucket_configured=%s",
    settings.ENV,
    settings.COOKIE_SECURE,
    bool(settings.S3_BUCKET_NAME),
)

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


def _envelope(status_code: int, message: str, details: dict | None = None, headers: dict | None = None):
    payload: dict = {"error": _error_code(status_code), "message": message}
    if details:
        payload["details"] = details
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


@app.exception_handler(ServiceError)
def service_error_handler(request: Request, exc: ServiceError):  # noqa: ARG001
    if exc.status_code >= 500:
        logger.error("Request failed: %s %s -> %s", request.method, request.url.path, exc.message)
    return _envelope(exc.status_code, exc.message, exc.details)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    message: str
    details: dict | None = None

    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        msg = detail.get("message")
        message = msg if isinstance(msg, str) and msg else "Request failed"
        det = detail.get("details")
        details = det if isinstance(det, dict) else None
    else:
        message = str(detail) if detail is not None else "Request failed"

    return _envelope(exc.status_code, message, details, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
