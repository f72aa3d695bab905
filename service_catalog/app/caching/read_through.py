"""
Read-through access to the cache store.

Every cached read follows the same steps:

1. look the key up;
2. on a hit, decode the stored JSON into the expected model and return it;
3. on a miss, await the loader for the authoritative value;
4. store the freshly loaded value with the standard TTL and return it.

Loader failures propagate and nothing is cached. A stored value that no
longer decodes (for example after a schema change between deployments)
is treated as a miss. Concurrent misses on one key each call the loader
and each store their result; the last ``set`` wins.
"""

import time
from typing import Awaitable, Callable, Optional, Type, TypeVar, TYPE_CHECKING

from pydantic import BaseModel, ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from shared.logging import get_logger
from .keys import key_kind
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 30 * 60

M = TypeVar("M", bound=BaseModel)


class ReadThroughCache:
    """Cache-aside reads of pydantic models over a :class:`CacheStore`."""

    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.metrics = metrics
        self.logger = get_logger("catalog.cache.read_through")

    async def get_or_load(self, key: str, model: Type[M], loader: Callable[[], Awaitable[M]]) -> M:
        """Return the cached ``model`` under ``key``, loading it on a miss."""
        kind = key_kind(key).value

        cached = self.peek(key, model)
        if cached is not None:
            self._count("cache_hits_total", kind)
            self.logger.debug("Cache hit", key=key)
            return cached

        self._count("cache_misses_total", kind)
        self.logger.debug("Cache miss", key=key)

        start = time.perf_counter()
        value = await loader()
        self._observe(kind, time.perf_counter() - start)

        self._store(key, value)
        return value

    def peek(self, key: str, model: Type[M]) -> Optional[M]:
        """Decode the live entry under ``key``, or ``None`` on a miss."""
        raw, found = self.store.get(key)
        if not found:
            return None

        try:
            return model.model_validate_json(raw)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            self.logger.warning(
                "Discarding undecodable cache entry",
                key=key,
                model=model.__name__,
                error=str(exc),
            )
            self._count("cache_decode_errors_total", key_kind(key).value)
            return None

    def _store(self, key: str, value: BaseModel) -> None:
        try:
            payload = value.model_dump_json()
        except (PydanticSerializationError, AttributeError, TypeError) as exc:
            # Loaded value is still returned, just not cached
            self.logger.warning("Could not serialize value for cache", key=key, error=str(exc))
            return

        self.store.set(key, payload, self.ttl_seconds)
        self.logger.debug("Cached value", key=key, ttl=self.ttl_seconds)

    def _count(self, metric_name: str, kind: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, key_kind=kind)

    def _observe(self, kind: str, duration: float) -> None:
        if self.metrics:
            self.metrics.observe_histogram("backing_fetch_duration_seconds", duration, key_kind=kind)
