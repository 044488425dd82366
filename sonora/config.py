"""Application configuration utilities for Sonora."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

DEFAULT_DATABASE_URL = "sqlite:///./sonora.db"
DEFAULT_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_CATALOG_SEARCH_URL = "https://saavnapi-nine.vercel.app/result/"
DEFAULT_IMPORT_PLAYLIST_NAME = "Imported from Spotify"
SPOTIFY_MAX_PAGE_SIZE = 50
MAX_IMPORT_ERROR_CAP = 100

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


@dataclass(slots=True, frozen=True)
class SpotifyConfig:
    client_id: str | None
    client_secret: str | None
    token_url: str
    page_size: int
    timeout_seconds: float
    max_attempts: int
    backoff_base_ms: int


@dataclass(slots=True, frozen=True)
class CatalogConfig:
    search_url: str
    timeout_ms: int


@dataclass(slots=True, frozen=True)
class ImportConfig:
    error_cap: int
    default_playlist_name: str
    progress_ttl_seconds: int
    insert_max_attempts: int


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    level: str
    log_file: str | None


@dataclass(slots=True, frozen=True)
class DatabaseConfig:
    url: str


@dataclass(slots=True, frozen=True)
class ErrorsConfig:
    debug_details: bool


@dataclass(slots=True, frozen=True)
class AppConfig:
    spotify: SpotifyConfig
    catalog: CatalogConfig
    imports: ImportConfig
    logging: LoggingConfig
    database: DatabaseConfig
    errors: ErrorsConfig


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime environment values applying .env before explicit environment."""

    env: dict[str, str] = {}
    source = dict(base_env or os.environ)

    path = Path(env_file) if env_file is not None else Path(".env")
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))

    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    """Return the cached runtime environment mapping."""

    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    if runtime_env is None:
        _RUNTIME_ENV_CACHE = None
    else:
        _RUNTIME_ENV_CACHE = dict(runtime_env)


def get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable honoring ENV > .env > defaults."""

    env = get_runtime_env()
    return env.get(name, default)


def _env_value(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    resolved = _coerce_int(value, default=default)
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _bounded_float(value: Any, *, default: float, minimum: float) -> float:
    try:
        resolved = float(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, resolved)


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env or get_runtime_env()

    spotify = SpotifyConfig(
        client_id=_env_value(env, "SPOTIFY_CLIENT_ID"),
        client_secret=_env_value(env, "SPOTIFY_CLIENT_SECRET"),
        token_url=_env_value(env, "SPOTIFY_TOKEN_URL") or DEFAULT_SPOTIFY_TOKEN_URL,
        page_size=_bounded_int(
            _env_value(env, "SPOTIFY_PAGE_SIZE"),
            default=SPOTIFY_MAX_PAGE_SIZE,
            minimum=1,
            maximum=SPOTIFY_MAX_PAGE_SIZE,
        ),
        timeout_seconds=_bounded_float(
            _env_value(env, "SPOTIFY_TIMEOUT_SEC"), default=10.0, minimum=1.0
        ),
        max_attempts=_bounded_int(
            _env_value(env, "SPOTIFY_MAX_ATTEMPTS"), default=3, minimum=1, maximum=10
        ),
        backoff_base_ms=_bounded_int(
            _env_value(env, "SPOTIFY_BACKOFF_BASE_MS"), default=250, minimum=1
        ),
    )

    catalog = CatalogConfig(
        search_url=_env_value(env, "CATALOG_SEARCH_URL") or DEFAULT_CATALOG_SEARCH_URL,
        timeout_ms=_bounded_int(
            _env_value(env, "CATALOG_TIMEOUT_MS"), default=8_000, minimum=100
        ),
    )

    imports = ImportConfig(
        error_cap=_bounded_int(
            _env_value(env, "IMPORT_ERROR_CAP"),
            default=MAX_IMPORT_ERROR_CAP,
            minimum=0,
            maximum=MAX_IMPORT_ERROR_CAP,
        ),
        default_playlist_name=(
            _env_value(env, "IMPORT_DEFAULT_PLAYLIST_NAME") or DEFAULT_IMPORT_PLAYLIST_NAME
        ),
        progress_ttl_seconds=_bounded_int(
            _env_value(env, "IMPORT_PROGRESS_TTL_SEC"), default=3600, minimum=1
        ),
        insert_max_attempts=_bounded_int(
            _env_value(env, "PLAYLIST_INSERT_MAX_ATTEMPTS"), default=3, minimum=1, maximum=10
        ),
    )

    logging_config = LoggingConfig(
        level=(_env_value(env, "LOG_LEVEL") or "INFO").upper(),
        log_file=_env_value(env, "LOG_FILE"),
    )

    return AppConfig(
        spotify=spotify,
        catalog=catalog,
        imports=imports,
        logging=logging_config,
        database=DatabaseConfig(url=_env_value(env, "DATABASE_URL") or DEFAULT_DATABASE_URL),
        errors=ErrorsConfig(
            debug_details=_as_bool(_env_value(env, "ERRORS_DEBUG_DETAILS"), default=False)
        ),
    )


__all__ = [
    "AppConfig",
    "CatalogConfig",
    "DatabaseConfig",
    "ErrorsConfig",
    "ImportConfig",
    "LoggingConfig",
    "SpotifyConfig",
    "get_env",
    "get_runtime_env",
    "load_config",
    "load_runtime_env",
    "override_runtime_env",
]
