"""Global exception handling for the public API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sonora.errors import AppError, ErrorCode, InternalServerError, to_response
from sonora.logging import get_logger

_logger = get_logger(__name__)

_STATUS_CODES: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTH_REQUIRED,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_502_BAD_GATEWAY: ErrorCode.DEPENDENCY_ERROR,
    status.HTTP_503_SERVICE_UNAVAILABLE: ErrorCode.DEPENDENCY_ERROR,
    status.HTTP_504_GATEWAY_TIMEOUT: ErrorCode.DEPENDENCY_ERROR,
}


def _format_validation_field(raw_loc: list[Any]) -> str:
    location: list[str] = [str(part) for part in raw_loc]
    if location and location[0] in {"body", "query", "path", "header", "cookie"}:
        location = location[1:]
    return ".".join(location) if location else ""


def _detail_message(detail: Any, default: str) -> str:
    if isinstance(detail, str) and detail.strip():
        return detail
    return default


def _debug_details(request: Request) -> bool:
    config = getattr(request.app.state, "config", None)
    return bool(config is not None and config.errors.debug_details)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: list[str] = []
    for error in exc.errors():
        raw_loc = error.get("loc", [])
        components = list(raw_loc) if isinstance(raw_loc, (list, tuple)) else [raw_loc]
        location = _format_validation_field(components) or "?"
        fields.append(f"{location}: {error.get('msg', 'Invalid input.')}")
    return to_response(
        message="Request validation failed.",
        code=ErrorCode.VALIDATION_ERROR,
        status_code=status.HTTP_400_BAD_REQUEST,
        request_path=request.url.path,
        method=request.method,
        details="; ".join(fields) or None,
        debug_details=_debug_details(request),
    )


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
    code = _STATUS_CODES.get(status_code)
    if code is None:
        code = ErrorCode.INTERNAL_ERROR if status_code >= 500 else ErrorCode.VALIDATION_ERROR
    return to_response(
        message=_detail_message(exc.detail, "Request could not be completed."),
        code=code,
        status_code=status_code,
        request_path=request.url.path,
        method=request.method,
        headers=exc.headers,
        debug_details=_debug_details(request),
    )


async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return exc.as_response(
        request_path=request.url.path,
        method=request.method,
        debug_details=_debug_details(request),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    _logger.exception("Unhandled application error", exc_info=exc)
    error = InternalServerError(details=str(exc) or type(exc).__name__)
    return to_response(
        message=error.message,
        code=error.code,
        status_code=error.http_status,
        request_path=request.url.path,
        method=request.method,
        details=error.details,
        error=exc,
        debug_details=_debug_details(request),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the canonical exception handlers for the API."""

    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(AppError, _handle_app_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = ["setup_exception_handlers"]
