# errors.py – Exceptions typées de metascope


class MetaScopeError(Exception):
    """Base exception for metascope."""
    pass


class NetworkError(MetaScopeError):
    """Raised when a remote source fails (transport error or bad HTTP status)."""
    pass


class StatsAPIError(NetworkError):
    """Non-2xx answer from the aggregated-stats API."""

    def __init__(self, status: int, body: str, message: str = "Stats API request failed"):
        self.status = status
        self.body = body
        super().__init__(f"{message}: {status} {body[:200]}")


class ParseError(MetaScopeError):
    """Raised for a document node that cannot be interpreted; always absorbed by the parser."""
    pass


class StoreError(MetaScopeError):
    """Raised when the history store cannot complete an operation."""
    pass


class SerializationError(StoreError):
    """Raised when a snapshot cannot be encoded to or decoded from its stored blob."""
    pass
