from __future__ import annotations

import pytest
import requests
from spotipy.exceptions import SpotifyException

from sonora.integrations.contracts import ForeignTrack
from sonora.integrations.spotify_tracks import (
    SpotifyAuthError,
    SpotifyFetchError,
    SpotifyTrackFetcher,
    parse_playlist_item,
)
from tests.helpers import FakeSpotifyClient, make_config, spotify_item, spotify_page


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _fetcher(
    client: FakeSpotifyClient, *, sleep: _RecordingSleep | None = None, **env: object
) -> tuple[SpotifyTrackFetcher, list[str]]:
    tokens: list[str] = []

    def factory(token: str) -> FakeSpotifyClient:
        tokens.append(token)
        return client

    fetcher = SpotifyTrackFetcher(
        make_config(**env).spotify,
        client_factory=factory,
        sleep=sleep or _RecordingSleep(),
    )
    return fetcher, tokens


def test_parse_playlist_item_uses_primary_artist() -> None:
    item = spotify_item("Song", "First")
    item["track"]["artists"].append({"name": "Second"})

    assert parse_playlist_item(item) == ForeignTrack(id="song", title="Song", artist="First")


def test_parse_playlist_item_drops_unimportable_entries() -> None:
    assert parse_playlist_item({"track": None}) is None
    assert parse_playlist_item(spotify_item("Local", is_local=True)) is None
    assert parse_playlist_item({"track": "not-an-object"}) is None
    assert parse_playlist_item("garbage") is None


def test_parse_playlist_item_keeps_blank_titles_for_the_resolver() -> None:
    track = parse_playlist_item(spotify_item(None, None, track_id="x1"))

    assert track == ForeignTrack(id="x1", title="", artist="")


@pytest.mark.asyncio
async def test_fetch_follows_next_cursor_across_pages() -> None:
    client = FakeSpotifyClient(
        [
            spotify_page([spotify_item("A"), spotify_item("B")], next_url="https://api/next?offset=2"),
            spotify_page([spotify_item("C")]),
        ]
    )
    fetcher, tokens = _fetcher(client, SPOTIFY_PAGE_SIZE=2)

    tracks = await fetcher.fetch("pl-1", "token-1")

    assert [track.title for track in tracks] == ["A", "B", "C"]
    assert tokens == ["token-1"]
    first_name, first_kwargs = client.calls[0]
    assert first_name == "playlist_items"
    assert first_kwargs["playlist_id"] == "pl-1"
    assert first_kwargs["limit"] == 2
    assert client.calls[1] == ("next", "https://api/next?offset=2")


@pytest.mark.asyncio
async def test_fetch_filters_local_and_null_tracks() -> None:
    client = FakeSpotifyClient(
        [
            spotify_page(
                [
                    spotify_item("A"),
                    {"track": None},
                    spotify_item("Home recording", is_local=True),
                    spotify_item("B"),
                ]
            )
        ]
    )
    fetcher, _ = _fetcher(client)

    tracks = await fetcher.fetch("pl-1", "token")

    assert [track.title for track in tracks] == ["A", "B"]


@pytest.mark.asyncio
async def test_page_without_items_stops_pagination_and_keeps_accumulated() -> None:
    client = FakeSpotifyClient(
        [
            spotify_page([spotify_item("A")], next_url="https://api/next"),
            {"error": "unexpected"},
        ]
    )
    fetcher, _ = _fetcher(client)

    tracks = await fetcher.fetch("pl-1", "token")

    assert [track.title for track in tracks] == ["A"]


@pytest.mark.asyncio
async def test_http_500_on_second_page_aborts_without_retry() -> None:
    sleep = _RecordingSleep()
    client = FakeSpotifyClient(
        [
            spotify_page([spotify_item("A")], next_url="https://api/next"),
            SpotifyException(500, -1, "server error"),
            spotify_page([spotify_item("never served")]),
        ]
    )
    fetcher, _ = _fetcher(client, sleep=sleep)

    with pytest.raises(SpotifyFetchError) as excinfo:
        await fetcher.fetch("pl-1", "token")

    assert excinfo.value.status_code == 500
    assert "500" in str(excinfo.value)
    assert "server error" in str(excinfo.value)
    assert sleep.delays == []
    assert [name for name, _ in client.calls] == ["playlist_items", "next"]


@pytest.mark.asyncio
async def test_rate_limited_page_is_retried_after_retry_after() -> None:
    sleep = _RecordingSleep()
    client = FakeSpotifyClient(
        [
            spotify_page([spotify_item("A")], next_url="https://api/next"),
            SpotifyException(429, -1, "rate limited", headers={"Retry-After": "2"}),
            spotify_page([spotify_item("B")]),
        ]
    )
    fetcher, _ = _fetcher(client, sleep=sleep)

    tracks = await fetcher.fetch("pl-1", "token")

    assert [track.title for track in tracks] == ["A", "B"]
    assert len(sleep.delays) == 1
    assert 1.6 <= sleep.delays[0] <= 2.4


@pytest.mark.asyncio
async def test_transport_errors_exhaust_attempts() -> None:
    sleep = _RecordingSleep()
    client = FakeSpotifyClient(
        [requests.ConnectionError("reset"), requests.ConnectionError("reset")]
    )
    fetcher, _ = _fetcher(client, sleep=sleep, SPOTIFY_MAX_ATTEMPTS=2)

    with pytest.raises(SpotifyFetchError) as excinfo:
        await fetcher.fetch("pl-1", "token")

    assert excinfo.value.status_code is None
    assert len(sleep.delays) == 1


@pytest.mark.asyncio
async def test_unauthorized_raises_auth_error() -> None:
    client = FakeSpotifyClient([SpotifyException(401, -1, "The access token expired")])
    fetcher, _ = _fetcher(client)

    with pytest.raises(SpotifyAuthError) as excinfo:
        await fetcher.fetch("pl-1", "expired")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_iter_pages_yields_per_page() -> None:
    client = FakeSpotifyClient(
        [
            spotify_page([spotify_item("A")], next_url="https://api/next"),
            spotify_page([spotify_item("B"), spotify_item("C")]),
        ]
    )
    fetcher, _ = _fetcher(client)

    pages = [page async for page in fetcher.iter_pages("pl-1", "token")]

    assert [[track.title for track in page] for page in pages] == [["A"], ["B", "C"]]


@pytest.mark.asyncio
async def test_list_user_playlists_maps_summaries() -> None:
    client = FakeSpotifyClient(
        playlists=[
            {
                "items": [
                    {
                        "id": "p1",
                        "name": "Road trip",
                        "description": "",
                        "images": [{"url": "https://img/p1.jpg"}],
                        "tracks": {"total": 12},
                        "owner": {"display_name": "alex"},
                    },
                    {"name": "missing id"},
                ],
                "next": "https://api/me/playlists?offset=2",
            },
            {
                "items": [{"id": "p2", "name": "Focus", "images": [], "owner": None}],
                "next": None,
            },
        ]
    )
    fetcher, _ = _fetcher(client)

    playlists = await fetcher.list_user_playlists("token")

    assert [item.id for item in playlists] == ["p1", "p2"]
    assert playlists[0].image == "https://img/p1.jpg"
    assert playlists[0].track_count == 12
    assert playlists[0].owner == "alex"
    assert playlists[0].description is None
    assert playlists[1].image is None
    assert playlists[1].track_count == 0
    assert playlists[1].owner == "Unknown"
