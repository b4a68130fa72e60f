# server.py
import logging
import os
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

import relay.auth as auth
from relay.client import fetch_playlist
from relay.errors import MissingCodeError, RelayError, TransportError, Unauthenticated
from relay.state import CredentialStore

logger = logging.getLogger(__name__)


# ---------- per-request context ----------
def get_env(request: Request) -> Dict[str, Any]:
    return request.app.state.env


def get_store(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_transport(request: Request) -> Optional[httpx.AsyncBaseTransport]:
    return request.app.state.transport


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


# ---------- app ----------
def create_app(env: Optional[Dict[str, Any]] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the relay app around a fresh, empty CredentialStore.
    `transport` replaces the network for outbound httpx calls (tests).
    """
    env = env if env is not None else auth.load_env()

    app = FastAPI(title="spotify-playlist-relay")
    app.state.env = env
    app.state.credentials = CredentialStore()
    app.state.transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=env.get("CORS_ORIGINS") or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, relay_error_handler)

    @app.get("/login")
    def login(env: Dict[str, Any] = Depends(get_env)):
        url = auth.build_login_url(env["CLIENT_ID"], env["REDIRECT_URI"])
        return RedirectResponse(url, status_code=302)

    @app.get("/callback")
    async def callback(
        req: Request,
        env: Dict[str, Any] = Depends(get_env),
        store: CredentialStore = Depends(get_store),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
    ):
        code = req.query_params.get("code")
        if not code:
            raise MissingCodeError("No code in callback")
        try:
            tokens = await auth.exchange_code_for_token(
                code,
                env["CLIENT_ID"],
                env["CLIENT_SECRET"],
                env["REDIRECT_URI"],
                transport=transport,
                timeout=env.get("UPSTREAM_TIMEOUT"),
            )
        except TransportError as e:
            return PlainTextResponse(e.message, status_code=e.status_code)

        await store.set_tokens(tokens["access_token"], tokens["refresh_token"])
        return RedirectResponse(env.get("POST_LOGIN_REDIRECT") or "/", status_code=302)

    @app.get("/token")
    async def token(
        env: Dict[str, Any] = Depends(get_env),
        store: CredentialStore = Depends(get_store),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
    ):
        if not store.access_token:
            raise Unauthenticated("Token not available. Please /login first.")
        # refreshed on every call; failures leave the cached token in place
        await auth.refresh_access_token(
            store,
            env["CLIENT_ID"],
            env["CLIENT_SECRET"],
            transport=transport,
            timeout=env.get("UPSTREAM_TIMEOUT"),
        )
        return {"access_token": store.access_token}

    @app.get("/playlist")
    async def playlist(
        env: Dict[str, Any] = Depends(get_env),
        store: CredentialStore = Depends(get_store),
        transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
    ):
        access_token = store.access_token
        if not access_token:
            raise Unauthenticated("Access token missing. Please login first.")
        r = await fetch_playlist(access_token, transport=transport, timeout=env.get("UPSTREAM_TIMEOUT"))
        return Response(content=r.content, media_type=r.headers.get("content-type", "application/json"))

    # static player; mounted last so the routes above win
    public_dir = env.get("PUBLIC_DIR")
    if public_dir and os.path.isdir(public_dir):
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")
    else:
        logger.info("No public directory at %r, static files disabled", public_dir)

    return app


def main() -> None:
    env = auth.load_env()
    logging.basicConfig(
        level=env["LOG_LEVEL"].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(env)
    logger.info("Server running at http://%s:%s", env["HOST"], env["PORT"])
    uvicorn.run(app, host=env["HOST"], port=env["PORT"])


if __name__ == "__main__":
    main()
