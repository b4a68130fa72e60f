import os
import base64
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from dotenv import load_dotenv

from .constants import AUTHORIZE_URL, SCOPES, TOKEN_URL
from .errors import ProviderTokenError, TransportError
from .state import CredentialStore

logger = logging.getLogger(__name__)


def _optional_float(value: Optional[str]) -> Optional[float]:
    return float(value) if value else None


def load_env():
    load_dotenv()

    origins = os.getenv("CORS_ORIGINS", "*")
    return {
        "CLIENT_ID": os.getenv("SPOTIFY_CLIENT_ID"),
        "CLIENT_SECRET": os.getenv("SPOTIFY_CLIENT_SECRET"),
        "REDIRECT_URI": os.getenv("SPOTIFY_REDIRECT_URI", "http://127.0.0.1:3000/callback"),
        "POST_LOGIN_REDIRECT": os.getenv("POST_LOGIN_REDIRECT", "/"),
        "PUBLIC_DIR": os.getenv("PUBLIC_DIR", "public"),
        "CORS_ORIGINS": [o.strip() for o in origins.split(",") if o.strip()],
        "UPSTREAM_TIMEOUT": _optional_float(os.getenv("UPSTREAM_TIMEOUT")),
        "HOST": os.getenv("HOST", "127.0.0.1"),
        "PORT": int(os.getenv("PORT", "3000")),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
    }


def b64_client_creds(client_id, client_secret) -> str:
    raw = f"{client_id}:{client_secret}".encode()
    return base64.b64encode(raw).decode()


def build_login_url(client_id, redirect_uri, scopes=SCOPES):
    params = {
        "response_type": "code",
        "client_id": client_id,
        "scope": scopes,
        "redirect_uri": redirect_uri,
    }
    return f"{AUTHORIZE_URL}?" + urlencode(params)


async def _post_token_request(data, client_id, client_secret, *, transport=None, timeout=None) -> dict:
    """POST a grant to the token endpoint and decode the JSON answer."""
    headers = {
        "Authorization": f"Basic {b64_client_creds(client_id, client_secret)}",
        "Content-Type": "application/x-www-form-urlencoded",
    }
    async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
        r = await client.post(TOKEN_URL, data=data, headers=headers)
    body = r.json()
    if not isinstance(body, dict):
        raise ValueError(f"unexpected token response: {r.text}")
    return body


async def exchange_code_for_token(code, client_id, client_secret, redirect_uri, *, transport=None, timeout=None):
    """
    Trade an authorization code for an access/refresh token pair.

    Raises ProviderTokenError when Spotify answers with an `error` field and
    TransportError when the request fails or the answer is not JSON.
    """
    data = {
        "code": code,
        "redirect_uri": redirect_uri,
        "grant_type": "authorization_code",
    }
    try:
        tok = await _post_token_request(data, client_id, client_secret, transport=transport, timeout=timeout)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Token fetch error: %s", e)
        raise TransportError("Token exchange failed") from e

    if tok.get("error"):
        logger.warning("Token error: %s", tok)
        raise ProviderTokenError(tok.get("error_description") or str(tok["error"]))

    tokens = {
        "access_token": tok.get("access_token") or "",
        "refresh_token": tok.get("refresh_token") or "",
    }
    logger.info("Spotify access token fetched: %s", "yes" if tokens["access_token"] else "no")
    return tokens


async def refresh_access_token(store: CredentialStore, client_id, client_secret, *, transport=None, timeout=None):
    """
    Best effort: swap the cached refresh token for a new access token.
    Returns the new token, or None when nothing was refreshed. Never raises.
    """
    refresh_token = store.refresh_token
    if not refresh_token:
        return None

    data = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    try:
        newtok = await _post_token_request(data, client_id, client_secret, transport=transport, timeout=timeout)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Token refresh failed: %s", e)
        return None

    if not newtok.get("access_token"):
        logger.warning("Token refresh returned no access_token: %s", newtok)
        return None

    if not await store.update_access_token(newtok["access_token"], refresh_token):
        logger.info("Credentials replaced during refresh, discarding refreshed token")
        return None
    return newtok["access_token"]
