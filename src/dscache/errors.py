"""Error types raised by the caching layer.

The layer itself never retries. Errors raised by redis-py, by the
datastore driver and by fetch handlers reach the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

NOT_FOUND_CODE = "ERR_ENTITY_NOT_FOUND"


class CacheError(Exception):
    """Base exception for dscache errors."""

    pass


class NoDistributedStoreError(CacheError):
    """Entity-kind indexing was requested but no redis store is configured."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} requires the 'redis' store to be configured")


class StoreTransportError(CacheError):
    """A backing store could not serve the request."""

    def __init__(self, store: str, reason: str = "") -> None:
        self.store = store
        message = f"Cache store '{store}' failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class FetchError(CacheError):
    """Base class for failures raised by fetch handlers."""

    pass


class NotFoundError(FetchError):
    """One or more fetch targets do not exist in the datastore."""

    code = NOT_FOUND_CODE

    def __init__(self, keys: Sequence[Any] = (), message: str = "") -> None:
        self.keys = list(keys)
        super().__init__(message or f"Entity not found: {', '.join(map(str, self.keys))}")


def is_not_found(exc: BaseException) -> bool:
    """Return True if ``exc`` classifies as a not-found fetch failure.

    Driver errors that are not ``NotFoundError`` instances are recognised by
    their ``code`` attribute.
    """
    return isinstance(exc, NotFoundError) or getattr(exc, "code", None) == NOT_FOUND_CODE
