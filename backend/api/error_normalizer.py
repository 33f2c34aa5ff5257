"""
Error normalization at the HTTP boundary.

Every failure leaving the API goes through ErrorNormalizer, which turns it
into an AppError and then into one response shape:

    {"error": {"type", "message", "details"?}, "request_id"?, "timestamp"}

Raw driver or framework text never reaches the client. The original
exception is only logged.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from aiokafka.errors import KafkaError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.context import get_request_id
from shared.exceptions import (
    AppError,
    BadRequestError,
    ConflictError,
    DatabaseError,
    ErrorKind,
    ExternalServiceError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RequestTimeoutError,
    UnauthorizedError,
    ValidationError,
)
from shared.repository import (
    RepositoryError,
    RepositoryResult,
    RepositoryStatus,
    classify_api_error,
)

from .models.errors import ErrorDetail, ErrorResponse

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"

# Driver message fragments, checked only when no SQLSTATE is recognized
DUPLICATE_KEY_PATTERNS = (
    "duplicate key value violates unique constraint",
    "unique constraint failed",
    "duplicate entry",
)
FOREIGN_KEY_PATTERNS = (
    "violates foreign key constraint",
    "foreign key constraint failed",
    "foreign key constraint fails",
)

_HTTP_STATUS_ERRORS: dict[int, tuple[type[AppError], str]] = {
    400: (BadRequestError, "Bad request"),
    401: (UnauthorizedError, "Unauthorized"),
    403: (ForbiddenError, "Forbidden"),
    404: (NotFoundError, "Resource not found"),
    408: (RequestTimeoutError, "Request timed out"),
    409: (ConflictError, "Resource conflict"),
    422: (BadRequestError, "Bad request"),
    504: (RequestTimeoutError, "Request timed out"),
}


def _repository_not_found() -> AppError:
    return NotFoundError("Record not found", code="RECORD_NOT_FOUND")


def _repository_conflict() -> AppError:
    return ConflictError("Resource already exists", code="DUPLICATE_KEY")


def _repository_constraint() -> AppError:
    return BadRequestError("Invalid reference to related resource", code="CONSTRAINT_VIOLATION")


_REPOSITORY_ERRORS = {
    RepositoryStatus.NOT_FOUND: _repository_not_found,
    RepositoryStatus.CONFLICT: _repository_conflict,
    RepositoryStatus.CONSTRAINT_VIOLATION: _repository_constraint,
}


class ErrorNormalizer:
    """Maps any exception to an AppError and an ErrorResponse."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

    def normalize(self, exc: BaseException) -> AppError:
        """
        Classify an exception.

        Precedence: typed AppError, framework errors, persistence errors,
        transport errors, then a generic InternalError.
        """
        if isinstance(exc, AppError):
            return exc
        if isinstance(exc, RequestValidationError):
            return self._from_validation(exc)
        if isinstance(exc, StarletteHTTPException):
            return self._from_http(exc)
        if isinstance(exc, RepositoryError):
            return self._from_repository(exc.result, exc)
        if isinstance(exc, APIError):
            return self._from_api_error(exc)
        if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
            return RequestTimeoutError("Request timed out", cause=exc)
        if isinstance(exc, httpx.TransportError):
            return ExternalServiceError("Upstream service unavailable", service="supabase", cause=exc)
        if isinstance(exc, KafkaError):
            return ExternalServiceError("Event broker unavailable", service="kafka", cause=exc)
        return InternalError(UNEXPECTED_ERROR_MESSAGE, cause=exc)

    def build_response(self, exc: BaseException, request_id: Optional[str] = None) -> tuple[ErrorResponse, int]:
        """Normalize ``exc``, log it, and build the response body and status."""
        error = self.normalize(exc)
        self._log(error, exc, request_id)
        body = ErrorResponse(
            error=ErrorDetail(**error.to_dict()),
            request_id=request_id,
            timestamp=datetime.now(timezone.utc),
        )
        return body, error.status_code

    def to_json_response(self, exc: BaseException) -> JSONResponse:
        body, status_code = self.build_response(exc, get_request_id())
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content=body.model_dump(mode="json", exclude_none=True),
            headers=headers,
        )

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def _from_validation(self, exc: RequestValidationError) -> AppError:
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ValidationError("Request validation failed", details=details, cause=exc)

    def _from_http(self, exc: StarletteHTTPException) -> AppError:
        mapped = _HTTP_STATUS_ERRORS.get(exc.status_code)
        if mapped is not None:
            error_cls, message = mapped
            return error_cls(message, cause=exc)
        if 400 <= exc.status_code < 500:
            return BadRequestError("Bad request", cause=exc)
        return InternalError(UNEXPECTED_ERROR_MESSAGE, cause=exc)

    def _from_repository(self, result: RepositoryResult, exc: BaseException) -> AppError:
        if result.status is RepositoryStatus.UNAVAILABLE:
            return DatabaseError("repository call", cause=exc)
        factory = _REPOSITORY_ERRORS.get(result.status)
        if factory is None:
            return InternalError(UNEXPECTED_ERROR_MESSAGE, cause=exc)
        error = factory()
        error.cause = exc
        error.__cause__ = exc
        return error

    def _from_api_error(self, exc: APIError) -> AppError:
        result = classify_api_error(exc)
        if result.status is not RepositoryStatus.UNAVAILABLE:
            return self._from_repository(result, exc)

        text = (exc.message or str(exc)).lower()
        if any(pattern in text for pattern in DUPLICATE_KEY_PATTERNS):
            return self._from_repository(RepositoryResult.conflict(cause=exc), exc)
        if any(pattern in text for pattern in FOREIGN_KEY_PATTERNS):
            return self._from_repository(RepositoryResult.constraint_violation(cause=exc), exc)
        return DatabaseError("query", cause=exc)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def _log(self, error: AppError, exc: BaseException, request_id: Optional[str]) -> None:
        extra = {
            "error_type": error.kind.value,
            "error_code": error.code,
            "status_code": error.status_code,
            "request_id": request_id,
        }
        if error.status_code >= 500:
            self._logger.error(
                "Request failed: %s", error.message, extra=extra, exc_info=(type(exc), exc, exc.__traceback__)
            )
        elif error.kind in (ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN):
            self._logger.warning("Request rejected: %s", error.message, extra=extra)
        else:
            self._logger.info("Request rejected: %s", error.message, extra=extra)


def register_error_handlers(app: FastAPI, normalizer: ErrorNormalizer) -> None:
    """
    Register exception handlers that route through ``normalizer``.

    Exceptions outside these types are caught by RequestContextMiddleware,
    which uses the same normalizer.
    """

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return normalizer.to_json_response(exc)

    app.add_exception_handler(AppError, handle)
    app.add_exception_handler(RequestValidationError, handle)
    app.add_exception_handler(StarletteHTTPException, handle)
    app.add_exception_handler(RepositoryError, handle)
