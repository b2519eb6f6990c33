from __future__ import annotations

import datetime as _dt
from typing import Any, Literal

ErrorCode = Literal[
    "RequestValidationError",
    "InvalidTaskError",
    "NotFoundError",
    "InternalServerError",
    "ApiRateLimitExceeded",
    "MethodNotAllowed",
    "PayloadTooLarge",
]


class AppError(Exception):
    """Base class for errors that map onto the JSON error envelope.

    Subclasses fix the ``code`` and default HTTP status; the message is chosen
    by whoever raises and is the only detail a client ever sees.
    """

    code: ErrorCode = "InternalServerError"
    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return error_payload(self.code, self.message, self.status_code)


class RequestValidationError(AppError):
    code: ErrorCode = "RequestValidationError"
    status_code = 400
    default_message = "Bad Request"


class InvalidTaskError(AppError):
    code: ErrorCode = "InvalidTaskError"
    status_code = 400
    default_message = "Bad Request"


class NotFoundError(AppError):
    code: ErrorCode = "NotFoundError"
    status_code = 404
    default_message = "Not Found"


class MethodNotAllowedError(AppError):
    code: ErrorCode = "MethodNotAllowed"
    status_code = 405
    default_message = "Method Not Allowed"


class PayloadTooLargeError(AppError):
    code: ErrorCode = "PayloadTooLarge"
    status_code = 413
    default_message = "Request body is too large"


class ApiRateLimitExceeded(AppError):
    code: ErrorCode = "ApiRateLimitExceeded"
    status_code = 429
    default_message = "Too many requests, please try again later."


class InternalServerError(AppError):
    code: ErrorCode = "InternalServerError"
    status_code = 500
    default_message = "Internal Server Error"


_HTTP_ERRORS: dict[int, type[AppError]] = {
    404: NotFoundError,
    405: MethodNotAllowedError,
    413: PayloadTooLargeError,
    429: ApiRateLimitExceeded,
}


def error_for_status(status: int, message: str | None = None) -> AppError:
    """Map a bare HTTP status onto the closest application error.

    Unlisted 4xx statuses read as request errors and 5xx as internal errors.
    The returned error keeps the original status.
    """
    cls = _HTTP_ERRORS.get(status)
    if cls is None:
        cls = InternalServerError if status >= 500 else RequestValidationError
    err = cls(message)
    err.status_code = status
    return err


def error_payload(code: ErrorCode, message: str, status: int) -> dict[str, Any]:
    return {
        "error": {
            "message": message,
            "code": code,
            "status": status,
            "timestamp": _dt.datetime.now(_dt.UTC).isoformat(),
        }
    }


__all__ = [
    "ApiRateLimitExceeded",
    "AppError",
    "ErrorCode",
    "InternalServerError",
    "InvalidTaskError",
    "MethodNotAllowedError",
    "NotFoundError",
    "PayloadTooLargeError",
    "RequestValidationError",
    "error_for_status",
    "error_payload",
]
