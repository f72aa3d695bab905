"""
Catalog caching package.

An in-process store with lazy TTL expiry, the key namespace shared by
reads and invalidations, the invalidation rule table applied after every
write, and the read-through helper used by every cached read.
"""

from .store import CacheEntry, CacheStore
from .keys import (
    BOOKS_BY_AUTHOR_KEY,
    BOOKS_BY_GENRE_KEY,
    EntityType,
    KeyKind,
    collection_key,
    entity_key,
    key_kind,
)
from .invalidation import InvalidationCoordinator, Mutation, keys_to_invalidate
from .read_through import DEFAULT_TTL_SECONDS, ReadThroughCache

__all__ = [
    "BOOKS_BY_AUTHOR_KEY",
    "BOOKS_BY_GENRE_KEY",
    "CacheEntry",
    "CacheStore",
    "DEFAULT_TTL_SECONDS",
    "EntityType",
    "InvalidationCoordinator",
    "KeyKind",
    "Mutation",
    "ReadThroughCache",
    "collection_key",
    "entity_key",
    "key_kind",
    "keys_to_invalidate",
]
