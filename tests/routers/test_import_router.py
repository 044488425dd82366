from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from typing import Any

from fastapi import FastAPI
import httpx
import pytest

from sonora.config import AppConfig, override_runtime_env
from sonora.integrations.contracts import CatalogTrack
from sonora.integrations.spotify_tracks import SpotifyAuthError, SpotifyFetchError
from sonora.main import create_app
from sonora.progress import ProgressSnapshot
from tests.helpers import (
    FakeCatalog,
    StaticFetcher,
    StaticTokens,
    catalog_track,
    foreign,
    make_config,
)

USER = {"X-User-Id": "user-1"}


def _app(config: AppConfig | None = None, **overrides: Any) -> FastAPI:
    overrides.setdefault("track_fetcher", StaticFetcher([]))
    overrides.setdefault("catalog", FakeCatalog())
    overrides.setdefault("token_provider", StaticTokens())
    return create_app(config or make_config(), **overrides)


@asynccontextmanager
async def _client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class _GatedCatalog(FakeCatalog):
    def __init__(self, results: dict[str, list[CatalogTrack]]) -> None:
        super().__init__(results)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def search(self, query: str) -> list[CatalogTrack]:
        self.entered.set()
        await self.release.wait()
        return list(await super().search(query))


@pytest.mark.asyncio
async def test_import_requires_caller_identity() -> None:
    async with _client(_app()) as client:
        response = await client.post("/import", json={"sourcePlaylistId": "src"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "code": "AUTH_REQUIRED"}


@pytest.mark.asyncio
async def test_import_requires_spotify_connection() -> None:
    async with _client(_app(token_provider=StaticTokens(None))) as client:
        response = await client.post("/import", json={"sourcePlaylistId": "src"}, headers=USER)

    assert response.status_code == 401
    assert response.json()["error"] == "Not connected to Spotify"


@pytest.mark.asyncio
async def test_import_validates_playlist_ids() -> None:
    async with _client(_app()) as client:
        missing_source = await client.post("/import", json={}, headers=USER)
        missing_target = await client.post(
            "/import",
            json={"sourcePlaylistId": "src", "createNewPlaylist": False},
            headers=USER,
        )

    assert missing_source.status_code == 400
    assert missing_source.json() == {"error": "Playlist ID is required", "code": "VALIDATION_ERROR"}
    assert missing_target.status_code == 400
    assert missing_target.json()["error"] == "Target playlist ID is required"


@pytest.mark.asyncio
async def test_import_success_returns_results_envelope() -> None:
    fetcher = StaticFetcher([foreign("A", ""), foreign("B", ""), foreign("C", "")])
    catalog = FakeCatalog({"A": [catalog_track("song-a", "A")], "C": [catalog_track("song-c", "C")]})

    async with _client(_app(track_fetcher=fetcher, catalog=catalog)) as client:
        response = await client.post(
            "/import",
            json={"playlistId": "src-1", "playlistName": "Road trip", "sessionId": "import_http"},
            headers=USER,
        )
        body = response.json()
        songs = await client.get(f"/playlists/{body['playlistId']}/songs", headers=USER)

    assert response.status_code == 200
    assert response.headers["X-Request-ID"]
    assert body["success"] is True
    assert body["sessionId"] == "import_http"
    assert body["results"] == {
        "total": 3,
        "imported": 2,
        "failed": 1,
        "skipped": 0,
        "errors": [{"track": "B", "reason": "not found in catalog"}],
        "totalErrors": 1,
        "errorsTruncated": False,
    }
    assert fetcher.calls == [("src-1", "spotify-token")]
    assert songs.status_code == 200
    assert songs.json()["name"] == "Road trip"
    assert [(item["position"], item["song"]["id"]) for item in songs.json()["songs"]] == [
        (0, "song-a"),
        (1, "song-c"),
    ]


@pytest.mark.asyncio
async def test_fetch_failure_is_reported_as_server_error() -> None:
    error = SpotifyFetchError(
        "Failed to fetch playlist tracks: 500 - server error", status_code=500
    )
    async with _client(_app(track_fetcher=StaticFetcher(error=error))) as client:
        response = await client.post(
            "/import", json={"sourcePlaylistId": "src", "sessionId": "import_fail"}, headers=USER
        )
        progress = await client.get("/import-progress", params={"sessionId": "import_fail"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to import playlist",
        "code": "INTERNAL_ERROR",
        "details": "Failed to fetch playlist tracks: 500 - server error",
    }
    assert progress.status_code == 404


@pytest.mark.asyncio
async def test_rejected_spotify_token_is_unauthorized() -> None:
    error = SpotifyAuthError("Failed to fetch playlist tracks: 401 - expired", status_code=401)
    async with _client(_app(track_fetcher=StaticFetcher(error=error))) as client:
        response = await client.post("/import", json={"sourcePlaylistId": "src"}, headers=USER)

    assert response.status_code == 401
    assert response.json()["error"] == "Spotify token expired. Please reconnect."


@pytest.mark.asyncio
async def test_unknown_target_playlist_is_not_found() -> None:
    async with _client(_app()) as client:
        response = await client.post(
            "/import",
            json={
                "sourcePlaylistId": "src",
                "createNewPlaylist": False,
                "targetPlaylistId": "missing",
            },
            headers=USER,
        )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_progress_requires_session_id_and_reports_unknown_sessions() -> None:
    async with _client(_app()) as client:
        missing = await client.get("/import-progress")
        unknown = await client.get("/import-progress", params={"sessionId": "import_nope"})

    assert missing.status_code == 400
    assert missing.json()["error"] == "Session ID is required"
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Progress not found", "code": "NOT_FOUND"}


@pytest.mark.asyncio
async def test_progress_returns_camel_case_snapshot() -> None:
    app = _app()
    async with _client(app) as client:
        app.state.progress_store.set(
            "import_known",
            ProgressSnapshot(
                current=2,
                total=5,
                imported=1,
                failed=0,
                skipped=0,
                current_track="B by Y",
                errors=(),
            ),
        )
        response = await client.get("/import-progress", params={"sessionId": "import_known"})

    assert response.status_code == 200
    assert response.json() == {
        "current": 2,
        "total": 5,
        "imported": 1,
        "failed": 0,
        "skipped": 0,
        "currentTrack": "B by Y",
        "errors": [],
    }


@pytest.mark.asyncio
async def test_progress_can_be_polled_while_import_runs() -> None:
    catalog = _GatedCatalog({"A": [catalog_track("song-a", "A")]})
    fetcher = StaticFetcher([foreign("A", ""), foreign("B", "")])

    async with _client(_app(track_fetcher=fetcher, catalog=catalog)) as client:
        running = asyncio.create_task(
            client.post(
                "/import",
                json={"sourcePlaylistId": "src", "sessionId": "import_live"},
                headers=USER,
            )
        )
        await asyncio.wait_for(catalog.entered.wait(), timeout=5)
        during = await client.get("/import-progress", params={"sessionId": "import_live"})
        catalog.release.set()
        response = await asyncio.wait_for(running, timeout=5)
        after = await client.get("/import-progress", params={"sessionId": "import_live"})

    assert during.status_code == 200
    assert during.json()["current"] == 1
    assert during.json()["total"] == 2
    assert during.json()["currentTrack"] == "A"
    assert response.status_code == 200
    assert response.json()["results"]["imported"] == 1
    assert after.status_code == 404


@pytest.mark.asyncio
async def test_target_playlist_without_flag_adds_to_existing_playlist() -> None:
    fetcher = StaticFetcher([foreign("A", "")])
    catalog = FakeCatalog({"A": [catalog_track("song-a", "A")]})
    app = _app(track_fetcher=fetcher, catalog=catalog)
    target = await app.state.playlist_writer.create_playlist("user-1", "Favourites")

    async with _client(app) as client:
        response = await client.post(
            "/import",
            json={"playlistId": "src", "targetPlaylistId": target.id},
            headers=USER,
        )
        songs = await client.get(f"/playlists/{target.id}/songs", headers=USER)

    assert response.status_code == 200
    assert response.json()["playlistId"] == target.id
    assert [item["song"]["id"] for item in songs.json()["songs"]] == ["song-a"]


@pytest.mark.asyncio
async def test_explicit_flag_wins_over_target_playlist() -> None:
    app = _app()
    target = await app.state.playlist_writer.create_playlist("user-1", "Favourites")

    async with _client(app) as client:
        response = await client.post(
            "/import",
            json={
                "playlistId": "src",
                "createNewPlaylist": True,
                "targetPlaylistId": target.id,
            },
            headers=USER,
        )

    assert response.status_code == 200
    assert response.json()["playlistId"] != target.id


@pytest.mark.asyncio
async def test_reused_session_id_is_rejected_while_import_runs() -> None:
    catalog = _GatedCatalog({"A": [catalog_track("song-a", "A")]})
    fetcher = StaticFetcher([foreign("A", "")])

    async with _client(_app(track_fetcher=fetcher, catalog=catalog)) as client:
        running = asyncio.create_task(
            client.post(
                "/import",
                json={"sourcePlaylistId": "src", "sessionId": "import_shared"},
                headers=USER,
            )
        )
        await asyncio.wait_for(catalog.entered.wait(), timeout=5)
        second = await client.post(
            "/import",
            json={"sourcePlaylistId": "other", "sessionId": "import_shared"},
            headers=USER,
        )
        during = await client.get("/import-progress", params={"sessionId": "import_shared"})
        catalog.release.set()
        first = await asyncio.wait_for(running, timeout=5)

    assert second.status_code == 400
    assert second.json()["error"] == "Import session import_shared is already running"
    assert during.status_code == 200
    assert during.json()["total"] == 1
    assert first.status_code == 200
    assert first.json()["results"]["imported"] == 1


@pytest.mark.asyncio
async def test_debug_details_add_stack_trace() -> None:
    error = SpotifyFetchError("Failed to fetch playlist tracks: 500 - boom", status_code=500)
    app = _app(make_config(ERRORS_DEBUG_DETAILS="true"), track_fetcher=StaticFetcher(error=error))

    async with _client(app) as client:
        response = await client.post("/import", json={"sourcePlaylistId": "src"}, headers=USER)

    body = response.json()
    assert response.status_code == 500
    assert "SpotifyFetchError" in body["stack"]
    assert body["debug_id"] == response.headers["X-Debug-Id"]


@pytest.mark.asyncio
async def test_debug_details_follow_app_config_not_process_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ERRORS_DEBUG_DETAILS", "true")
    override_runtime_env(None)
    error = SpotifyFetchError("Failed to fetch playlist tracks: 500 - boom", status_code=500)
    app = _app(make_config(ERRORS_DEBUG_DETAILS="false"), track_fetcher=StaticFetcher(error=error))

    async with _client(app) as client:
        response = await client.post("/import", json={"sourcePlaylistId": "src"}, headers=USER)

    assert response.status_code == 500
    assert set(response.json()) == {"error", "code", "details"}
