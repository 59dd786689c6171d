"""
Domain exceptions and the handlers that turn them into API responses.

Every error leaves the service in the same envelope as a success:
`{"success": false, "message": ..., "data": {"error_code": ..., "details": ...}}`.
"""

import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppException):
    """Student, batch or open fee is missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class PreconditionFailedError(AppException):
    """Client state is stale: batch mismatch, full batch, non-latest history row."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="ERR_PRECONDITION_FAILED",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class InvalidFeeActionError(AppException):
    """Fee action is not one of TRANSFER, NEW_FEE or SPLIT."""

    def __init__(self, fee_action: Any):
        super().__init__(
            message="Invalid feeAction provided",
            error_code="ERR_INVALID_FEE_ACTION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"fee_action": fee_action},
        )


class BusinessRuleViolationError(AppException):
    """Request is well-formed but forbidden by a fee policy."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="ERR_BUSINESS_RULE",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class ConsistencyFailureError(AppException):
    """Stored data broke an invariant the engines rely on."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="ERR_CONSISTENCY",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class TransactionFailureError(AppException):
    """Storage error or timeout; the unit of work was rolled back and may be retried."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code="ERR_TRANSACTION",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


def error_body(message: str, error_code: str, details: Any = None) -> dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "data": {"error_code": error_code, "details": details or {}},
    }


# Global Exception Handlers


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if isinstance(exc, ConsistencyFailureError):
        logger.error("Consistency failure on %s: %s %s", request.url.path, exc.message, exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.message, exc.error_code, exc.details)),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with the standard envelope."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), error_code_map.get(exc.status_code, "ERR_UNKNOWN")),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for request body validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            error_body("Validation error", "ERR_VALIDATION", {"errors": exc.errors()})
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("An internal server error occurred", "ERR_INTERNAL_SERVER"),
    )
