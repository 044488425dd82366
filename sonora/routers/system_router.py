"""Liveness and metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from sonora import __version__
from sonora.schemas import HealthResponse
from sonora.utils import metrics

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@router.get("/metrics")
async def get_metrics() -> Response:
    """Expose Prometheus metrics collected by the import pipeline."""

    payload = generate_latest(metrics.get_registry())
    headers = {"Cache-Control": "no-store"}
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST, headers=headers)


__all__ = ["router"]
