"""API exceptions rendered in the `{success, error}` response envelope."""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import uuid
from datetime import datetime, timezone


logger = logging.getLogger(__name__)


class ApiException(HTTPException):
    """
    Base exception for errors surfaced to API clients.

    Every subclass renders as ``{"success": false, "error": <message>, ...}``
    with a stable machine-readable ``code`` next to the human message.
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: str,
        code: str,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize API exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the error type
            detail: Human-readable explanation specific to this occurrence
            code: Application-specific error code
            extensions: Additional error-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.code = code
        self.extensions = extensions or {}

        self.body = {
            "success": False,
            "error": detail,
            "code": code,
        }
        self.body.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers
        )


class ValidationError(ApiException):
    """Malformed or missing fields, bad enum values, bad payment amounts."""

    def __init__(
        self,
        detail: str = "Validation failed",
        details: Optional[list] = None,
    ):
        extensions = {}
        if details:
            extensions["details"] = details

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            code="VALIDATION_ERROR",
            extensions=extensions,
        )


class PolicyViolationError(ApiException):
    """A business rule bound (guest count, stay length) is violated."""

    def __init__(
        self,
        detail: str,
        rule: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        extensions = {}
        if rule:
            extensions["rule"] = rule
        if limit is not None:
            extensions["limit"] = limit

        super().__init__(
            status_code=400,
            title="Policy Violation",
            detail=detail,
            code="POLICY_VIOLATION",
            extensions=extensions,
        )


class NotFoundError(ApiException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        if not detail:
            detail = f"{resource_type.capitalize()} not found"

        extensions = {
            "resourceType": resource_type,
        }
        if resource_id:
            extensions["resourceId"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            code="NOT_FOUND",
            extensions=extensions,
        )


class InvalidStateError(ApiException):
    """The target resource is in a state that does not allow the operation."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=400,
            title="Invalid State",
            detail=detail,
            code="INVALID_STATE",
        )


class ConflictError(ApiException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resources: Optional[list] = None,
    ):
        extensions = {}
        if conflicting_resources:
            extensions["conflicts"] = conflicting_resources

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            code="CONFLICT",
            extensions=extensions,
        )


class RateLimitError(ApiException):
    """Exception for rate limit errors."""

    def __init__(
        self,
        detail: str = "Too many requests, please try again later",
        retry_after: Optional[int] = None,
        limit: Optional[int] = None,
    ):
        extensions = {}
        if limit:
            extensions["limit"] = limit

        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)
            extensions["retryAfterSeconds"] = retry_after

        super().__init__(
            status_code=429,
            title="Rate Limit Exceeded",
            detail=detail,
            code="RATE_LIMITED",
            extensions=extensions,
            headers=headers,
        )


class InternalServerError(ApiException):
    """Storage or unexpected failures, without leaking their details."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred while processing the request",
        error_id: Optional[str] = None,
    ):
        if not error_id:
            error_id = str(uuid.uuid4())

        super().__init__(
            status_code=500,
            title="Internal Server Error",
            detail=detail,
            code="INTERNAL_ERROR",
            extensions={
                "errorId": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )


async def api_exception_handler(request: Request, exc: ApiException) -> JSONResponse:
    """
    Exception handler for API exceptions.

    Args:
        request: FastAPI request object
        exc: API exception

    Returns:
        JSONResponse: Envelope formatted error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.body,
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Render pydantic request validation failures as 400 validation errors.

    Args:
        request: FastAPI request object
        exc: Request validation exception

    Returns:
        JSONResponse: Envelope formatted validation error
    """
    details = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    error = ValidationError(detail="Validation failed", details=details)
    return JSONResponse(status_code=error.status_code, content=error.body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to the error envelope.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Envelope formatted response
    """
    error = InternalServerError()

    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "error_id": error.body["errorId"],
            "error": str(exc),
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=error.body,
    )
