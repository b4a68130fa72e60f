# relay/errors.py
"""Errors surfaced by the relay endpoints."""


class RelayError(Exception):
    """Base error; carries the HTTP status the handler answers with."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingCodeError(RelayError):
    status_code = 400


class ProviderTokenError(RelayError):
    """The token endpoint answered with an `error` field."""
    status_code = 400


class Unauthenticated(RelayError):
    status_code = 401


class UpstreamError(RelayError):
    """Non-success answer from the Spotify Web API; keeps its status."""


class TransportError(RelayError):
    status_code = 500
