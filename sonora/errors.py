"""Unified error handling utilities for the Sonora API."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from enum import Enum
import logging
import traceback
from typing import Any
from uuid import uuid4

from fastapi import status
from fastapi.responses import JSONResponse

from sonora.logging import get_logger


class ErrorCode(str, Enum):
    """Application level error codes exposed via the public API."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    NOT_FOUND = "NOT_FOUND"
    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_logger = get_logger(__name__)


class AppError(Exception):
    """Base exception for errors that abort a request."""

    __slots__ = ("message", "code", "http_status", "details", "headers")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status
        self.details = details
        self.headers = headers

    def as_response(
        self, *, request_path: str, method: str, debug_details: bool = False
    ) -> JSONResponse:
        """Serialise the exception into the canonical error envelope."""

        return to_response(
            message=self.message,
            code=self.code,
            status_code=self.http_status,
            request_path=request_path,
            method=method,
            details=self.details,
            headers=self.headers,
            error=self.__cause__ or self,
            debug_details=debug_details,
        )


class ValidationAppError(AppError):
    """Error raised when a client submitted invalid input."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.VALIDATION_ERROR,
            http_status=status_code,
            details=details,
        )


class AuthenticationRequiredError(AppError):
    """Error raised when the caller identity or a third-party token is missing."""

    def __init__(self, message: str = "Unauthorized", *, details: str | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.AUTH_REQUIRED,
            http_status=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class NotFoundError(AppError):
    """Error raised when a resource could not be located."""

    def __init__(self, message: str = "Resource not found.") -> None:
        super().__init__(
            message,
            code=ErrorCode.NOT_FOUND,
            http_status=status.HTTP_404_NOT_FOUND,
        )


class DependencyError(AppError):
    """Error raised when an upstream dependency failed the request."""

    def __init__(
        self,
        message: str = "Upstream service is unavailable.",
        *,
        status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE,
        details: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.DEPENDENCY_ERROR,
            http_status=status_code,
            details=details,
        )


class InternalServerError(AppError):
    """Error raised when the application encountered an unexpected failure."""

    def __init__(
        self, message: str = "An unexpected error occurred.", *, details: str | None = None
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.INTERNAL_ERROR,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


def _log_level_for_status(status_code: int) -> int:
    if status_code in {502, 503, 504}:
        return logging.WARNING
    if status_code >= 500:
        return logging.ERROR
    return logging.INFO


def to_response(
    *,
    message: str,
    code: ErrorCode,
    status_code: int,
    request_path: str,
    method: str,
    details: str | None = None,
    headers: Mapping[str, str] | None = None,
    error: BaseException | None = None,
    debug_details: bool = False,
) -> JSONResponse:
    """Create an error response with the ``{error, code, details?}`` envelope.

    Stack traces are attached only when ``debug_details`` is set, which the
    handlers take from ``ErrorsConfig.debug_details``.
    """

    debug_id = uuid4().hex
    payload: MutableMapping[str, Any] = {"error": message, "code": code.value}
    if details:
        payload["details"] = details
    if debug_details:
        payload["debug_id"] = debug_id
        if error is not None and error.__traceback__ is not None:
            payload["stack"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["X-Debug-Id"] = debug_id
    if headers:
        for name, value in headers.items():
            response.headers[name] = value

    _logger.log(
        _log_level_for_status(status_code),
        "API request failed",
        extra={
            "event": "api.error",
            "code": code.value,
            "status": status_code,
            "path": request_path,
            "method": method,
            "debug_id": debug_id,
        },
    )
    return response


__all__ = [
    "AppError",
    "AuthenticationRequiredError",
    "DependencyError",
    "ErrorCode",
    "InternalServerError",
    "NotFoundError",
    "ValidationAppError",
    "to_response",
]
