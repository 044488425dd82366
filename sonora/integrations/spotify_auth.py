"""Spotify access token lookup for incoming requests."""

from __future__ import annotations

import base64

import httpx
from starlette.requests import Request

from sonora.config import SpotifyConfig
from sonora.logging import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "spotify_access_token"
REFRESH_TOKEN_COOKIE = "spotify_refresh_token"


class CookieAccessTokenProvider:
    """Read the Spotify token from cookies, refreshing it when only the refresh token is left.

    Refresh failures are treated as "not connected"; the caller answers 401.
    """

    def __init__(
        self,
        config: SpotifyConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def get_access_token(self, request: Request) -> str | None:
        access_token = request.cookies.get(ACCESS_TOKEN_COOKIE, "").strip()
        if access_token:
            return access_token
        refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE, "").strip()
        if not refresh_token:
            return None
        return await self.refresh(refresh_token)

    async def refresh(self, refresh_token: str) -> str | None:
        client_id = self._config.client_id
        client_secret = self._config.client_secret
        if not client_id or not client_secret:
            logger.info(
                "Spotify token refresh skipped: client credentials are not configured",
                extra={"event": "spotify.refresh_disabled"},
            )
            return None

        basic = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._config.token_url,
                    data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                    headers={"Authorization": f"Basic {basic}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Spotify token refresh failed: %s", exc)
            return None

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Spotify token refresh rejected",
                extra={"event": "spotify.refresh_rejected", "status": response.status_code},
            )
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        token = payload.get("access_token") if isinstance(payload, dict) else None
        return str(token) if token else None


__all__ = ["ACCESS_TOKEN_COOKIE", "REFRESH_TOKEN_COOKIE", "CookieAccessTokenProvider"]
