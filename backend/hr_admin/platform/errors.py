"""
Consistent error handling for the HR Admin API.

Every expected failure is an AppError subclass carrying an HTTP status,
a machine-readable code and a human-readable message. Handlers render
them in the standard envelope:

    {"success": false, "message": "...", "code": "...", "details": {...}}

Unexpected exceptions are caught by ErrorHandlerMiddleware, logged with
the request correlation ID and returned as a generic 500.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a new correlation ID for request tracing."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the request being processed, if any."""
    return _correlation_id.get()


class AppError(Exception):
    """Base class for expected, client-facing errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        """Convert to the failure envelope."""
        body: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "unauthorized"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "permission_denied"


class FeatureDisabledError(PermissionDeniedError):
    """A module is not enabled for the organization."""
    default_code = "module_disabled"


class TenantIsolationError(PermissionDeniedError):
    """The caller may not act within the requested organization."""
    default_code = "tenant_access_denied"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class ServiceUnavailableError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "service_unavailable"


class InternalError(AppError):
    """Recovered failure reported to the client as a generic 500."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"


def _with_correlation_header(response: JSONResponse) -> JSONResponse:
    correlation_id = get_correlation_id()
    if correlation_id:
        response.headers[CORRELATION_ID_HEADER] = correlation_id
    return response


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Application error",
            extra={
                "code": exc.code,
                "error_message": exc.message,
                "path": request.url.path,
                "correlation_id": get_correlation_id(),
            },
        )
    return _with_correlation_header(
        JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    content: dict[str, Any] = {"success": False, "message": message, "code": f"http_{exc.status_code}"}
    if not isinstance(exc.detail, str) and exc.detail is not None:
        content["details"] = exc.detail
    response = JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)
    return _with_correlation_header(response)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _with_correlation_header(
        JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Validation failed",
                "code": "validation_error",
                "details": {"errors": errors},
            },
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering handlers on an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Assigns a correlation ID to every request and converts unhandled
    exceptions into the generic 500 envelope.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = _correlation_id.set(correlation_id)
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Unhandled exception",
                extra={
                    "correlation_id": correlation_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "message": "An unexpected error occurred",
                    "code": "internal_error",
                },
            )
        finally:
            _correlation_id.reset(token)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
