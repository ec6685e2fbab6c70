"""
stock_api.errors -- error rendering for the HTTP layer.

Every ``StockKernelError`` renders as::

    {"error": {"code": ..., "message": ..., "details": {...}}}

The HTTP status is chosen from the error code.  Kernel exceptions never
carry HTTP knowledge.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from stock_kernel.exceptions import StockKernelError
from stock_kernel.logging_config import get_logger

logger = get_logger("api.errors")


class NotAuthenticatedError(StockKernelError):
    """No acting user on the request."""

    code: str = "NOT_AUTHENTICATED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Not authenticated: {reason}")


class InsufficientPermissionsError(StockKernelError):
    """Acting user's role is below the endpoint's tier."""

    code: str = "INSUFFICIENT_PERMISSIONS"

    def __init__(self, role: str, required_role: str):
        self.role = role
        self.required_role = required_role
        super().__init__(f"Role {role} cannot perform this action (requires {required_role})")


_STATUS_BY_CODE: dict[str, int] = {
    "OVERLAPPING_PERIOD": status.HTTP_409_CONFLICT,
    "PERIOD_ALREADY_OPEN": status.HTTP_409_CONFLICT,
    "APPROVAL_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "NOT_IMPLEMENTED": status.HTTP_501_NOT_IMPLEMENTED,
    "TRANSACTION_FAILED": status.HTTP_503_SERVICE_UNAVAILABLE,
    "NOT_AUTHENTICATED": status.HTTP_401_UNAUTHORIZED,
    "INSUFFICIENT_PERMISSIONS": status.HTTP_403_FORBIDDEN,
}


def status_for_code(code: str) -> int:
    if code.endswith("_NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    return _STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST)


def error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a standardized error body."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": jsonable_encoder(details or {}),
        }
    }


async def stock_error_handler(request: Request, exc: StockKernelError) -> JSONResponse:
    http_status = status_for_code(exc.code)
    if http_status >= 500:
        logger.error("request_failed", extra={"path": request.url.path}, exc_info=exc)
    else:
        logger.warning(
            "request_rejected",
            extra={"path": request.url.path, "error_code": exc.code},
        )
    return JSONResponse(
        status_code=http_status,
        content=error_response(exc.code, str(exc), exc.details()),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "reason": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(
            "VALIDATION_ERROR", "Request validation failed", {"errors": errors},
        ),
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_failed", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response(
            "TRANSACTION_FAILED",
            "The operation could not be completed; it may be retried",
            {"operation": request.url.path},
        ),
    )
