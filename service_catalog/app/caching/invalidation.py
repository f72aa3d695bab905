"""
Invalidation of cached reads after catalog writes.

The rule table below is the contract every mutating operation honours:
once the backing store has committed a change, every key whose cached
value could now be stale is deleted. Invalidation never raises into the
caller; a missed delete leaves stale data for at most one TTL.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, TYPE_CHECKING

from shared.logging import get_logger
from .keys import (
    BOOKS_BY_AUTHOR_KEY,
    BOOKS_BY_GENRE_KEY,
    EntityType,
    collection_key,
    entity_key,
)
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class Mutation(str, Enum):
    """Kinds of write that trigger invalidation."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    FILE_UPLOAD = "file_upload"


# Keys invalidated by any write to the entity type, besides its own
# collection key and entity key
_EXTRA_KEYS: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.USER: (),
    EntityType.BOOK: (BOOKS_BY_AUTHOR_KEY, BOOKS_BY_GENRE_KEY),
    EntityType.AUTHOR: (),
    EntityType.GENRE: (),
}

_ID_REQUIRED: FrozenSet[Mutation] = frozenset({Mutation.UPDATE, Mutation.DELETE, Mutation.FILE_UPLOAD})


def _label(value) -> str:
    return str(getattr(value, "value", value))


def _parse_id(entity_id) -> Optional[int]:
    """Coerce ids such as ``"3"`` to ``3``; unparseable values pass through unchanged."""
    if entity_id is None or isinstance(entity_id, bool):
        return entity_id
    if isinstance(entity_id, float) and not entity_id.is_integer():
        return entity_id
    try:
        return int(entity_id)
    except (TypeError, ValueError):
        return entity_id


def keys_to_invalidate(
    entity: EntityType,
    mutation: Mutation,
    entity_id: Optional[int] = None,
) -> Tuple[str, ...]:
    """Build the invalidation set for one committed write.

    ``create`` has no prior entity key, so only collection-level keys are
    returned. A file upload only touches the book's own snapshot, which
    embeds the filename.
    """
    entity = EntityType(entity)
    mutation = Mutation(mutation)

    if mutation in _ID_REQUIRED and entity_id is None:
        raise ValueError(f"{mutation.value} {entity.value} requires an entity id")

    if mutation is Mutation.FILE_UPLOAD:
        if entity is not EntityType.BOOK:
            raise ValueError(f"file uploads only apply to books, not {entity.value}")
        return (entity_key(entity, entity_id),)

    keys = [collection_key(entity)]
    if mutation is not Mutation.CREATE:
        keys.append(entity_key(entity, entity_id))
    keys.extend(_EXTRA_KEYS[entity])
    return tuple(keys)


class InvalidationCoordinator:
    """Deletes stale cache keys after successful writes."""

    def __init__(self, store: CacheStore, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("catalog.cache.invalidation")

    def invalidate(
        self,
        entity: EntityType,
        mutation: Mutation,
        entity_id: Optional[int] = None,
    ) -> List[str]:
        """Apply the invalidation set and return the keys deleted."""
        try:
            keys = keys_to_invalidate(entity, mutation, _parse_id(entity_id))
        except (TypeError, ValueError) as exc:
            # Fall back to the id-less keys
            self.logger.error(
                "Invalid invalidation request",
                entity=_label(entity),
                mutation=_label(mutation),
                entity_id=entity_id,
                error=str(exc),
            )
            keys = self._fallback_keys(entity)

        deleted: List[str] = []
        for key in keys:
            try:
                self.store.delete(key)
            except Exception as exc:
                self.logger.error("Cache invalidation failed", key=key, error=str(exc))
                continue
            deleted.append(key)

        self.logger.info(
            "Invalidated cache keys",
            entity=_label(entity),
            mutation=_label(mutation),
            entity_id=entity_id,
            keys=deleted,
        )
        self._record(entity, mutation)
        return deleted

    @staticmethod
    def _fallback_keys(entity: EntityType) -> Tuple[str, ...]:
        try:
            entity = EntityType(entity)
        except ValueError:
            return ()
        return (collection_key(entity),) + _EXTRA_KEYS[entity]

    def _record(self, entity: EntityType, mutation: Mutation) -> None:
        if not self.metrics:
            return
        try:
            self.metrics.increment_counter(
                "cache_invalidations_total",
                entity=_label(entity),
                mutation=_label(mutation),
            )
        except Exception as exc:  # pragma: no cover
            self.logger.debug("Failed to record invalidation metrics", error=str(exc))
