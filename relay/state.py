# relay/state.py
"""In-memory credential cell shared by the relay handlers."""

import asyncio
from typing import NamedTuple


class CredentialState(NamedTuple):
    """Access/refresh token pair; empty strings mean "not cached"."""
    access_token: str = ""
    refresh_token: str = ""


class CredentialStore:
    """
    Holds the one CredentialState of the process.
    All writes go through the lock, so readers only ever see a complete pair.
    """

    def __init__(self, access_token: str = "", refresh_token: str = ""):
        self._state = CredentialState(access_token, refresh_token)
        self._lock = asyncio.Lock()

    def snapshot(self) -> CredentialState:
        return self._state

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def refresh_token(self) -> str:
        return self._state.refresh_token

    async def set_tokens(self, access_token: str, refresh_token: str) -> None:
        """Overwrite both tokens (code exchange)."""
        async with self._lock:
            self._state = CredentialState(access_token or "", refresh_token or "")

    async def update_access_token(self, access_token: str, used_refresh_token: str) -> bool:
        """
        Overwrite only the access token (refresh exchange).
        Dropped when the pair was replaced while the refresh was in flight;
        returns whether the token was applied.
        """
        async with self._lock:
            if self._state.refresh_token != used_refresh_token:
                return False
            self._state = self._state._replace(access_token=access_token)
            return True
