"""Service-level failures.

Raised by the session core and the user/channel services; `videotube.main`
turns them into the standard error envelope. The message is always safe to show
to a client: underlying store or crypto errors are logged, never attached.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequest(ServiceError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized request"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Conflict"


class Internal(ServiceError):
    status_code = 500
    default_message = "Something went wrong"
