"""
Cache key namespace for catalog reads.

Every read that goes through the cache and every invalidation after a
write derives its key here, so the two sides always agree on spelling.
"""

from enum import Enum
from typing import Dict


class EntityType(str, Enum):
    """Catalog entity types."""
    USER = "user"
    BOOK = "book"
    AUTHOR = "author"
    GENRE = "genre"


class KeyKind(str, Enum):
    """What a cache key stands for; used as a metrics label."""
    COLLECTION = "collection"
    ENTITY = "entity"
    CROSS_REFERENCE = "cross_reference"


# Unfiltered collection reads share one key per entity type
COLLECTION_KEYS: Dict[EntityType, str] = {
    EntityType.USER: "allUsers",
    EntityType.BOOK: "allBooks",
    EntityType.AUTHOR: "allAuthors",
    EntityType.GENRE: "allGenres",
}

# Entity-by-id reads are prefix + decimal id
ENTITY_PREFIXES: Dict[EntityType, str] = {
    EntityType.USER: "userID",
    EntityType.BOOK: "bookID",
    EntityType.AUTHOR: "authorID",
    EntityType.GENRE: "genreID",
}

# Not parametrised by author/genre id: one entry answers every id
BOOKS_BY_AUTHOR_KEY = "getBooksByAuthorId"
BOOKS_BY_GENRE_KEY = "getBooksByGenreId"

CROSS_REFERENCE_KEYS = frozenset({BOOKS_BY_AUTHOR_KEY, BOOKS_BY_GENRE_KEY})


def collection_key(entity: EntityType) -> str:
    """Key for the unfiltered list of ``entity``."""
    return COLLECTION_KEYS[EntityType(entity)]


def entity_key(entity: EntityType, entity_id: int) -> str:
    """Key for a single ``entity`` by id, e.g. ``bookID5``."""
    if isinstance(entity_id, bool) or not isinstance(entity_id, int):
        raise TypeError(f"entity id must be an int, got {entity_id!r}")
    return f"{ENTITY_PREFIXES[EntityType(entity)]}{entity_id:d}"


def key_kind(key: str) -> KeyKind:
    """Classify a key produced by this module."""
    if key in CROSS_REFERENCE_KEYS:
        return KeyKind.CROSS_REFERENCE
    if key in COLLECTION_KEYS.values():
        return KeyKind.COLLECTION
    return KeyKind.ENTITY
