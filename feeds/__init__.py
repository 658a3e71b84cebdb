"""
Public API for the listings feed layer.
"""
from __future__ import annotations

from feeds.errors import AuthRequired, ConflictError, FeedError, InvalidRecord, RecordNotFound, StoreError
from feeds.hub import FeedHub, build_feeds
from feeds.models import FeedPhase, FeedState, PostItem, PostKind, ReactionState
from feeds.reactions import ReactionCache
from feeds.service import FeedService
from feeds.store import MemoryStore, PostgrestStore, RemoteStore

__all__ = [
    "AuthRequired",
    "ConflictError",
    "FeedError",
    "FeedHub",
    "FeedPhase",
    "FeedService",
    "FeedState",
    "InvalidRecord",
    "MemoryStore",
    "PostItem",
    "PostKind",
    "PostgrestStore",
    "ReactionCache",
    "ReactionState",
    "RecordNotFound",
    "RemoteStore",
    "StoreError",
    "build_feeds",
]
