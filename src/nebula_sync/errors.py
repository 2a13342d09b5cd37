from typing import Optional


class SyncError(Exception):
    """Base error for the Nebula sync layer."""


class TransportError(SyncError):
    """Raised when a request could not reach the server or timed out."""


class HttpStatusError(SyncError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status: int, body: str = "", message: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"HTTP {status}: {body}")


class DecodeError(SyncError):
    """Raised when a response body cannot be parsed into the expected shape."""


class NotFound(SyncError):
    """Raised when a local table file is absent or empty."""


Missing = NotFound


class ParseError(SyncError):
    """Raised when a local table file holds malformed content."""


class StoreIOError(SyncError):
    """Raised when a local table cannot be written to disk."""


class NoCachedData(SyncError):
    """Raised when a cached read was required but the local store is empty."""


class NoLocalData(SyncError):
    """Raised when a sync is requested for a user with no local record."""


class AuthError(SyncError):
    """Raised when no session or credentials are available."""


class InsufficientCoins(SyncError):
    """Raised when a player does not have enough coins to make a purchase."""
