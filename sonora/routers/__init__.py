"""API routers exposed by the Sonora service."""

from fastapi import APIRouter

from .import_router import router as import_router
from .playlist_router import router as playlist_router
from .spotify_router import router as spotify_router
from .system_router import router as system_router

ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    import_router,
    spotify_router,
    playlist_router,
)

__all__ = [
    "ROUTERS",
    "import_router",
    "playlist_router",
    "spotify_router",
    "system_router",
]
