"""Exception hierarchy shared by the proxy endpoints and the client."""

from typing import Optional


class BayanError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class InputError(BayanError):
    status = 400


class RateLimitedError(BayanError):
    status = 429


class QuotaExceededError(BayanError):
    status = 402


class ConfigurationError(BayanError):
    status = 500


class UpstreamError(BayanError):
    """The gateway answered with a status we do not map to a specific error."""

    def __init__(
        self, message: str, upstream_status: Optional[int] = None, body: str = ""
    ):
        super().__init__(message, status=500)
        self.upstream_status = upstream_status
        self.body = body


class ChatTransportError(BayanError):
    """The chat exchange failed before or while streaming."""


class PoetryError(BayanError):
    pass
