# relay/client.py
"""Read-only calls to the Spotify Web API on behalf of the cached user."""

import logging

import httpx

from .constants import PLAYLIST_ID, SPOTIFY_API
from .errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)


def bearer_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}


def upstream_error_message(r: httpx.Response) -> str:
    """Pull `error.message` out of a Spotify error body."""
    try:
        body = r.json()
    except ValueError:
        return r.reason_phrase or f"Spotify API error {r.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return error
    return r.reason_phrase or f"Spotify API error {r.status_code}"


async def fetch_playlist(
    access_token: str,
    playlist_id: str = PLAYLIST_ID,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """
    GET /playlists/{playlist_id} and return the upstream response; its body is relayed as is.

    Non-success statuses raise UpstreamError with Spotify's own status code.
    """
    url = f"{SPOTIFY_API}/playlists/{playlist_id}"
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            r = await client.get(url, headers=bearer_headers(access_token))
    except httpx.HTTPError as e:
        logger.error("Playlist fetch error: %s", e)
        raise TransportError("Failed to fetch playlist from Spotify") from e

    if not r.is_success:
        logger.warning("Spotify API failed: %s", r.status_code)
        logger.info("Error details: %s", r.text)
        raise UpstreamError(upstream_error_message(r), status_code=r.status_code)

    return r
