"""
Error taxonomy for the feed layer.

Cancellation is deliberately absent: it travels as ``asyncio.CancelledError``
so callers can tell it apart from every failure listed here.
"""
from __future__ import annotations

from typing import Optional


class FeedError(Exception):
    """Root of every recoverable failure raised by the feed layer."""


class StoreError(FeedError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFound(StoreError):
    def __init__(self, collection: str, filters: object = None) -> None:
        super().__init__(f"No row in '{collection}' matched {filters!r}", status_code=406)
        self.collection = collection
        self.filters = filters


class ConflictError(StoreError):
    """Insert hit a unique constraint."""


class InvalidRecord(FeedError):
    pass


class AuthRequired(FeedError):
    def __init__(self, message: str = "Please sign in before liking posts") -> None:
        super().__init__(message)
