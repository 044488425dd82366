"""Entry point for the Sonora playlist import service."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from sonora import __version__
from sonora.config import AppConfig, load_config
from sonora.db import init_db
from sonora.integrations.catalog_client import CatalogSearchClient
from sonora.integrations.contracts import HeaderIdentityProvider
from sonora.integrations.spotify_auth import CookieAccessTokenProvider
from sonora.integrations.spotify_tracks import SpotifyTrackFetcher
from sonora.logging import configure_logging, get_logger
from sonora.middleware import install_middleware
from sonora.orchestrator import PlaylistImportOrchestrator
from sonora.progress import get_progress_store
from sonora.routers import ROUTERS
from sonora.services.match_resolver import MatchResolver
from sonora.services.playlist_writer import PlaylistWriter

logger = get_logger(__name__)

_COMPONENT_NAMES = frozenset(
    {
        "catalog",
        "identity_provider",
        "playlist_writer",
        "progress_store",
        "token_provider",
        "track_fetcher",
    }
)


def _build_components(config: AppConfig, overrides: dict[str, Any]) -> dict[str, Any]:
    unknown = set(overrides) - _COMPONENT_NAMES
    if unknown:
        raise TypeError(f"Unknown component overrides: {', '.join(sorted(unknown))}")

    components: dict[str, Any] = {
        "catalog": overrides.get("catalog") or CatalogSearchClient(config.catalog),
        "identity_provider": overrides.get("identity_provider") or HeaderIdentityProvider(),
        "playlist_writer": overrides.get("playlist_writer")
        or PlaylistWriter(max_attempts=config.imports.insert_max_attempts),
        "progress_store": overrides.get("progress_store") or get_progress_store(config),
        "token_provider": overrides.get("token_provider")
        or CookieAccessTokenProvider(config.spotify),
        "track_fetcher": overrides.get("track_fetcher") or SpotifyTrackFetcher(config.spotify),
    }
    components["import_orchestrator"] = PlaylistImportOrchestrator(
        fetcher=components["track_fetcher"],
        resolver=MatchResolver(components["catalog"]),
        writer=components["playlist_writer"],
        progress=components["progress_store"],
        config=config.imports,
    )
    return components


def create_app(config: AppConfig | None = None, **overrides: Any) -> FastAPI:
    """Build the API application.

    Keyword overrides replace the default collaborator with the same name,
    e.g. ``create_app(track_fetcher=fake_fetcher)``.
    """

    config = config or load_config()
    configure_logging(config.logging.level, config.logging.log_file)
    init_db(config.database.url)
    logger.info("Database initialised", extra={"event": "database.ready"})

    app = FastAPI(title="Sonora Playlist Import", version=__version__)
    app.state.config = config
    for name, component in _build_components(config, overrides).items():
        setattr(app.state, name, component)

    install_middleware(app)
    for router in ROUTERS:
        app.include_router(router)

    logger.info(
        "Sonora application configured",
        extra={"event": "app.configured", "routes": len(app.routes)},
    )
    return app


def __getattr__(name: str) -> Any:
    # Lazily built so importing the module (e.g. in tests) does not touch the database.
    if name == "app":
        application = create_app()
        globals()["app"] = application
        return application
    raise AttributeError(name)


__all__ = ["create_app"]
