"""Application middleware registration helpers."""

from __future__ import annotations

from fastapi import FastAPI

from .errors import setup_exception_handlers
from .request_id import RequestIDMiddleware


def install_middleware(app: FastAPI) -> None:
    """Install exception handlers and the request id middleware."""

    setup_exception_handlers(app)
    app.add_middleware(RequestIDMiddleware)


__all__ = ["install_middleware"]
