"""Tests for RestaurantService operations and cache coherence."""

from decimal import Decimal

import pytest

from restocache.cache.keys import CacheKeys
from restocache.core.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    StoreUnavailableError,
)
from restocache.services.restaurants import (
    RestaurantService,
    normalize_limit,
    normalize_min_rating,
)


class TestNormalization:
    """Tests for query parameter parsing."""

    def test_limit_default_and_clamp(self) -> None:
        assert normalize_limit(None) == 10
        assert normalize_limit("") == 10
        assert normalize_limit("25") == 25
        assert normalize_limit(150) == 100
        assert normalize_limit(0) == 1
        assert normalize_limit(-4) == 1

    def test_limit_rejects_garbage(self) -> None:
        with pytest.raises(InvalidArgumentError):
            normalize_limit("ten")

    def test_min_rating_bounds(self) -> None:
        assert str(normalize_min_rating(None)) == "0.0"
        assert str(normalize_min_rating("0")) == "0.0"
        assert str(normalize_min_rating("5")) == "5.0"
        assert normalize_min_rating("4.96") == Decimal("4.96")

    @pytest.mark.parametrize("value", ["5.1", "-0.1", "nan", "abc", "inf"])
    def test_min_rating_rejects(self, value) -> None:
        with pytest.raises(InvalidArgumentError):
            normalize_min_rating(value)


class TestCreateGetDelete:
    """Tests for the restaurant lifecycle."""

    @pytest.mark.asyncio
    async def test_create_then_get(self, service) -> None:
        await service.create_restaurant("A", "x", "y")

        assert await service.get_restaurant("A") == {
            "name": "A",
            "cuisine": "x",
            "region": "y",
            "rating": 0.0,
        }

    @pytest.mark.asyncio
    async def test_create_with_initial_rating(self, service, store) -> None:
        await service.create_restaurant("A", "x", "y", rating=4.5)

        assert store.records["A"].rating == 4.5
        assert store.records["A"].rating_count == 0

    @pytest.mark.asyncio
    async def test_duplicate_create_keeps_first_record(self, service, store) -> None:
        await service.create_restaurant("A", "x", "y")

        with pytest.raises(AlreadyExistsError):
            await service.create_restaurant("A", "other", "elsewhere")
        assert store.records["A"].cuisine == "x"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [(None, "x", "y"), ("A", "", "y"), ("A", "x", None)],
    )
    async def test_create_missing_fields(self, service, store, fields) -> None:
        with pytest.raises(InvalidArgumentError):
            await service.create_restaurant(*fields)
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_create_rejects_out_of_range_rating(self, service, store) -> None:
        with pytest.raises(InvalidArgumentError):
            await service.create_restaurant("A", "x", "y", rating=7)
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_get_unknown(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.get_restaurant("ghost")

    @pytest.mark.asyncio
    async def test_delete_then_get(self, service, cache) -> None:
        await service.create_restaurant("A", "x", "y")
        await service.get_restaurant("A")

        await service.delete_restaurant("A")

        assert CacheKeys.restaurant("A") not in cache.data
        with pytest.raises(NotFoundError):
            await service.get_restaurant("A")
        with pytest.raises(NotFoundError):
            await service.delete_restaurant("A")

    @pytest.mark.asyncio
    async def test_recreate_after_delete(self, service) -> None:
        """A recreated restaurant never resolves to its previous version."""
        await service.create_restaurant("A", "x", "y")
        await service.get_restaurant("A")
        await service.delete_restaurant("A")

        await service.create_restaurant("A", "z", "w")

        assert (await service.get_restaurant("A"))["cuisine"] == "z"


class TestCoherence:
    """Mutations leave no stale entries behind."""

    @pytest.mark.asyncio
    async def test_create_sweeps_query_entries_and_primes_direct(self, service, cache) -> None:
        stale = [
            CacheKeys.by_region("R", 10),
            CacheKeys.by_region_and_cuisine("R", "C", 50),
            CacheKeys.by_cuisine("C", 0, 10),
            CacheKeys.by_cuisine("C", 4.5, 100),
        ]
        for key in stale:
            cache.data[key] = b"[]"

        await service.create_restaurant("A", "C", "R")

        for key in stale:
            assert key not in cache.data
        assert CacheKeys.restaurant("A") in cache.data

    @pytest.mark.asyncio
    async def test_list_sees_new_restaurant(self, service) -> None:
        await service.create_restaurant("A", "C", "R", rating=3.0)
        assert [r["name"] for r in await service.list_by_region("R")] == ["A"]

        await service.create_restaurant("B", "C", "R", rating=4.0)

        assert [r["name"] for r in await service.list_by_region("R")] == ["B", "A"]
        assert [r["name"] for r in await service.list_by_cuisine("C")] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_rating_reorders_cached_lists(self, service) -> None:
        await service.create_restaurant("A", "C", "R", rating=3.0)
        await service.create_restaurant("B", "C", "R", rating=4.0)
        assert [r["name"] for r in await service.list_by_region_and_cuisine("R", "C")] == [
            "B",
            "A",
        ]

        await service.submit_rating("A", 5)

        result = await service.list_by_region_and_cuisine("R", "C")
        assert [r["name"] for r in result] == ["A", "B"]
        assert (await service.get_restaurant("A"))["rating"] == 5.0

    @pytest.mark.asyncio
    async def test_delete_removes_from_lists(self, service) -> None:
        await service.create_restaurant("A", "C", "R")
        assert len(await service.list_by_cuisine("C")) == 1

        await service.delete_restaurant("A")

        assert await service.list_by_cuisine("C") == []

    @pytest.mark.asyncio
    async def test_cache_outage_does_not_fail_mutations(self, service, store, cache) -> None:
        cache.fail = True

        await service.create_restaurant("A", "C", "R")
        projection = await service.submit_rating("A", 4)
        await service.delete_restaurant("A")

        assert projection["rating"] == 4.0
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_store_outage_propagates(self, service, store) -> None:
        store.fail = True

        with pytest.raises(StoreUnavailableError):
            await service.create_restaurant("A", "C", "R")
        with pytest.raises(StoreUnavailableError):
            await service.list_by_region("R")

    @pytest.mark.asyncio
    async def test_without_cache(self, store) -> None:
        service = RestaurantService(store, None)

        await service.create_restaurant("A", "C", "R")
        await service.get_restaurant("A")
        await service.get_restaurant("A")

        assert service.orchestrator is None
        assert store.calls["get"] == 3


class TestListQueries:
    """Tests for limits and minimum ratings on list queries."""

    @pytest.mark.asyncio
    async def test_min_rating_filter(self, service) -> None:
        for name, rating in (("two", 2.0), ("four", 4.0), ("five", 5.0)):
            await service.create_restaurant(name, "C", "R", rating=rating)

        result = await service.list_by_cuisine("C", min_rating="3")

        assert [r["rating"] for r in result] == [5.0, 4.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("min_rating", ["0", "5"])
    async def test_min_rating_boundaries_accepted(self, service, min_rating) -> None:
        assert await service.list_by_cuisine("C", min_rating=min_rating) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("min_rating", ["5.1", "-0.1"])
    async def test_min_rating_out_of_range(self, service, store, min_rating) -> None:
        with pytest.raises(InvalidArgumentError):
            await service.list_by_cuisine("C", min_rating=min_rating)
        assert store.queries == []

    @pytest.mark.asyncio
    async def test_large_limit_is_clamped(self, service, store, cache) -> None:
        await service.list_by_region("R", limit=150)

        assert store.queries[-1]["limit"] == 100
        assert CacheKeys.by_region("R", 100) in cache.data

    @pytest.mark.asyncio
    async def test_small_limit_served_from_smallest_entry(self, service, store, cache) -> None:
        for i in range(5):
            await service.create_restaurant(f"r{i}", "C", "R", rating=float(i))

        result = await service.list_by_region("R", limit=3)

        assert [r["name"] for r in result] == ["r4", "r3", "r2"]
        assert store.queries[-1]["limit"] == 10
        assert CacheKeys.by_region("R", 10) in cache.data
        assert CacheKeys.by_region("R", 3) not in cache.data

    @pytest.mark.asyncio
    async def test_repeated_list_is_cached(self, service, store) -> None:
        await service.create_restaurant("A", "C", "R")

        await service.list_by_region_and_cuisine("R", "C", limit=20)
        await service.list_by_region_and_cuisine("R", "C", limit=20)

        assert store.calls["query"] == 1

    @pytest.mark.asyncio
    async def test_min_rating_between_buckets_is_exact(self, service, cache) -> None:
        """A threshold off the 0.1 grid filters on the exact value."""
        for name, rating in (("A", 4.97), ("B", 0.07), ("C", 4.92)):
            await service.create_restaurant(name, "C", "R", rating=rating)

        assert [r["name"] for r in await service.list_by_cuisine("C", min_rating="4.96")] == ["A"]
        assert [r["name"] for r in await service.list_by_cuisine("C", min_rating="0.05")] == [
            "A",
            "C",
            "B",
        ]
        assert CacheKeys.by_cuisine("C", "4.9", 10) in cache.data

    @pytest.mark.asyncio
    async def test_shared_bucket_entry_serves_each_threshold(self, service, store) -> None:
        for name, rating in (("A", 4.97), ("C", 4.92)):
            await service.create_restaurant(name, "C", "R", rating=rating)

        wide = await service.list_by_cuisine("C", min_rating="4.9")
        narrow = await service.list_by_cuisine("C", min_rating="4.95")

        assert [r["name"] for r in wide] == ["A", "C"]
        assert [r["name"] for r in narrow] == ["A"]
        assert store.calls["query"] == 1
