"""
Unit tests for read-through cache access.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from shared.errors import DataAccessError, NotFoundError
from shared.metrics import MetricsCollector
from shared.test_helpers import CatalogDataFactory, FakeClock
from service_catalog.app.caching.read_through import DEFAULT_TTL_SECONDS, ReadThroughCache
from service_catalog.app.caching.store import CacheStore
from service_catalog.app.models import Genre, GenreList, User


def _sample_value(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels) or 0.0


class TestReadThroughCache:
    """Test cases for ReadThroughCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(clock=clock)

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("catalog")

    @pytest.fixture
    def reads(self, store, metrics):
        return ReadThroughCache(store, metrics=metrics)

    @pytest.fixture
    def genres(self):
        return GenreList.of(CatalogDataFactory.genres())

    def test_default_ttl_is_thirty_minutes(self, reads):
        assert DEFAULT_TTL_SECONDS == 1800
        assert reads.ttl_seconds == 1800

    def test_rejects_non_positive_ttl(self, store):
        with pytest.raises(ValueError):
            ReadThroughCache(store, 0)

    @pytest.mark.asyncio
    async def test_miss_loads_and_populates(self, reads, store, genres):
        loader = AsyncMock(return_value=genres)

        result = await reads.get_or_load("allGenres", GenreList, loader)

        assert result == genres
        loader.assert_awaited_once()
        raw, found = store.get("allGenres")
        assert found
        assert GenreList.model_validate_json(raw) == genres

    @pytest.mark.asyncio
    async def test_hit_skips_loader(self, reads, genres):
        loader = AsyncMock(return_value=genres)

        await reads.get_or_load("allGenres", GenreList, loader)
        result = await reads.get_or_load("allGenres", GenreList, loader)

        assert result == genres
        assert loader.await_count == 1

    @pytest.mark.asyncio
    async def test_hit_is_not_revalidated(self, reads, store, genres):
        """A hit returns what was cached even if the source has moved on."""
        await reads.get_or_load("allGenres", GenreList, AsyncMock(return_value=genres))
        newer = GenreList.of([Genre(id=9, name="Horror")])

        result = await reads.get_or_load("allGenres", GenreList, AsyncMock(return_value=newer))

        assert result == genres

    @pytest.mark.asyncio
    async def test_reload_after_expiry(self, reads, clock, genres):
        loader = AsyncMock(return_value=genres)

        await reads.get_or_load("allGenres", GenreList, loader)
        clock.advance(DEFAULT_TTL_SECONDS)
        await reads.get_or_load("allGenres", GenreList, loader)

        assert loader.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        NotFoundError("user", 3),
        DataAccessError("get_user", "connection reset"),
    ])
    async def test_loader_failure_propagates_and_caches_nothing(self, reads, store, error):
        loader = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await reads.get_or_load("userID3", User, loader)

        assert store.get("userID3") == (None, False)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_a_miss(self, reads, store, metrics, genres):
        store.set("allGenres", b"{not json", 60)
        loader = AsyncMock(return_value=genres)

        result = await reads.get_or_load("allGenres", GenreList, loader)

        assert result == genres
        loader.assert_awaited_once()
        assert _sample_value(metrics, "cache_decode_errors_total", key_kind="collection") == 1.0

    @pytest.mark.asyncio
    async def test_schema_mismatch_is_a_miss(self, reads, store):
        """An entry written by an older schema is refetched and replaced."""
        store.set("userID7", '{"id": 7, "login": "admin"}', 60)
        fresh = CatalogDataFactory.users()[1]

        result = await reads.get_or_load("userID7", User, AsyncMock(return_value=fresh))

        assert result == fresh
        raw, _ = store.get("userID7")
        assert User.model_validate_json(raw) == fresh

    @pytest.mark.asyncio
    async def test_records_hits_and_misses(self, reads, metrics, genres):
        loader = AsyncMock(return_value=genres)

        await reads.get_or_load("allGenres", GenreList, loader)
        await reads.get_or_load("allGenres", GenreList, loader)
        await reads.get_or_load("allGenres", GenreList, loader)

        assert _sample_value(metrics, "cache_misses_total", key_kind="collection") == 1.0
        assert _sample_value(metrics, "cache_hits_total", key_kind="collection") == 2.0

    @pytest.mark.asyncio
    async def test_peek(self, reads, genres):
        assert reads.peek("allGenres", GenreList) is None

        await reads.get_or_load("allGenres", GenreList, AsyncMock(return_value=genres))

        assert reads.peek("allGenres", GenreList) == genres

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_load(self, store, genres):
        """No miss coalescing: each concurrent miss hits the loader."""
        reads = ReadThroughCache(store)
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def loader():
            calls.append(1)
            if len(calls) == 2:
                started.set()
            await release.wait()
            return genres

        with patch.object(store, "set", wraps=store.set) as spy:
            first = asyncio.create_task(reads.get_or_load("allGenres", GenreList, loader))
            second = asyncio.create_task(reads.get_or_load("allGenres", GenreList, loader))
            await asyncio.wait_for(started.wait(), timeout=1)
            release.set()

            assert await first == genres
            assert await second == genres

        assert len(calls) == 2
        assert [c.args[0] for c in spy.call_args_list] == ["allGenres", "allGenres"]
