"""Application error hierarchy.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the
exception handlers can render one envelope shape:

    {"success": false, "error": {"code": "...", "message": "..."}}
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    status_code: int = 500
    code: str = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


# 401
class UnauthorizedError(AppError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentialsError(UnauthorizedError):
    code = ErrorCode.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class TokenExpiredError(UnauthorizedError):
    code = ErrorCode.TOKEN_EXPIRED
    default_message = "Token has expired"


class InvalidTokenError(UnauthorizedError):
    code = ErrorCode.INVALID_TOKEN
    default_message = "Invalid token"


# 403
class ForbiddenError(AppError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "You don't have permission to perform this action"


class InsufficientPermissionsError(ForbiddenError):
    code = ErrorCode.INSUFFICIENT_PERMISSIONS

    def __init__(self, permission: str | None = None) -> None:
        message = (
            f"Missing required permission: {permission}"
            if permission
            else "Insufficient permissions"
        )
        super().__init__(message)


# 400 / 404 / 409
class ValidationError(AppError):
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid input"


class NotFoundError(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")


class ConflictError(AppError):
    status_code = 409
    code = ErrorCode.CONFLICT
    default_message = "Conflict"


class InternalError(AppError):
    pass


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Request error: method=%s path=%s status=%s code=%s message=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.code,
            exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
