"""Tests for the persistent ship-metadata cache."""

import asyncio
from pathlib import Path

import pytest

from marinetraffic.errors import FetchFailure
from marinetraffic.models import VesselMetadata
from marinetraffic.ship_cache import ShipCache


class CountingFetcher:
    """Ship-detail fetcher that records how often it is called."""

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: list[str] = []
        self.delay = delay

    async def __call__(self, ship_id: str) -> VesselMetadata:
        self.calls.append(ship_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return VesselMetadata(mmsi=f"2{ship_id:0>8}", imo="9074729", callsign="LAJK", typeId=70)


@pytest.fixture
def cache(tmp_path: Path) -> ShipCache:
    c = ShipCache(db_path=tmp_path / "ships.db", max_entries=3)
    yield c
    c.close()


class TestHasGetSet:
    def test_empty_cache(self, cache: ShipCache) -> None:
        assert not cache.has("S1")
        assert len(cache) == 0

    def test_get_missing_raises_key_error(self, cache: ShipCache) -> None:
        with pytest.raises(KeyError):
            cache.get("S1")

    def test_set_then_get(self, cache: ShipCache) -> None:
        meta = VesselMetadata(mmsi="123456789", callsign="ABCD")
        cache.set("S1", meta)
        assert cache.has("S1")
        assert cache.get("S1") == meta

    def test_integer_and_string_ids_are_the_same_key(self, cache: ShipCache) -> None:
        cache.set(7814591, VesselMetadata(mmsi="257111020"))
        assert cache.has("7814591")
        assert cache.get("7814591").mmsi == "257111020"

    def test_has_does_not_load_into_memory(self, tmp_path: Path) -> None:
        db = tmp_path / "ships.db"
        first = ShipCache(db_path=db)
        first.set("S1", VesselMetadata(mmsi="1"))
        first.close()

        second = ShipCache(db_path=db)
        try:
            assert second.has("S1")
            assert second.working_set_size == 0
            second.get("S1")
            assert second.working_set_size == 1
        finally:
            second.close()


class TestPersistence:
    def test_entries_survive_restart(self, tmp_path: Path) -> None:
        db = tmp_path / "ships.db"
        first = ShipCache(db_path=db)
        first.set("S1", VesselMetadata(mmsi="123456789", imo="1234567", typeId=37))
        first.close()

        second = ShipCache(db_path=db)
        try:
            meta = second.get("S1")
            assert meta.mmsi == "123456789"
            assert meta.type_id == 37
            assert len(second) == 1
        finally:
            second.close()

    def test_entries_lists_newest_first(self, cache: ShipCache) -> None:
        cache.set("OLD", VesselMetadata(mmsi="1"))
        cache.set("NEW", VesselMetadata(mmsi="2"))
        cache.set("MID", VesselMetadata(mmsi="3"))
        # Pin timestamps; consecutive time.time() calls can tie
        for ship_id, updated_at in [("OLD", 100.0), ("NEW", 300.0), ("MID", 200.0)]:
            cache._conn.execute(
                "UPDATE ships SET updated_at = ? WHERE ship_id = ?", (updated_at, ship_id),
            )
        ids = [ship_id for ship_id, _, _ in cache.entries()]
        assert ids == ["NEW", "MID", "OLD"]

    def test_rejects_non_positive_bound(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            ShipCache(db_path=tmp_path / "bad.db", max_entries=0)


class TestWorkingSet:
    def test_memory_is_bounded(self, cache: ShipCache) -> None:
        for i in range(10):
            cache.set(f"S{i}", VesselMetadata(mmsi=str(i)))
        assert cache.working_set_size == 3
        assert len(cache) == 10

    def test_evicted_entries_reload_from_disk(self, cache: ShipCache) -> None:
        for i in range(5):
            cache.set(f"S{i}", VesselMetadata(mmsi=str(i)))
        assert cache.get("S0").mmsi == "0"
        assert cache.working_set_size == 3

    def test_least_recently_used_is_evicted(self, cache: ShipCache) -> None:
        cache.set("A", VesselMetadata(mmsi="1"))
        cache.set("B", VesselMetadata(mmsi="2"))
        cache.set("C", VesselMetadata(mmsi="3"))
        cache.get("A")  # A becomes most recent; B is now oldest
        cache.set("D", VesselMetadata(mmsi="4"))
        assert set(cache._memory) == {"A", "C", "D"}


class TestResolve:
    async def test_miss_fetches_and_stores(self, cache: ShipCache) -> None:
        fetcher = CountingFetcher()
        meta = await cache.resolve("S1", fetcher)
        assert fetcher.calls == ["S1"]
        assert meta.callsign == "LAJK"
        assert cache.has("S1")

    async def test_second_resolve_does_not_refetch(self, cache: ShipCache) -> None:
        fetcher = CountingFetcher()
        first = await cache.resolve("S1", fetcher)
        second = await cache.resolve("S1", fetcher)
        assert first == second
        assert fetcher.calls == ["S1"]

    async def test_concurrent_misses_share_one_fetch(self, cache: ShipCache) -> None:
        """Same unseen ship in two tiles at once → one request."""
        fetcher = CountingFetcher(delay=0.01)
        results = await asyncio.gather(
            cache.resolve("S1", fetcher),
            cache.resolve("S1", fetcher),
            cache.resolve("S1", fetcher),
        )
        assert fetcher.calls == ["S1"]
        assert all(r == results[0] for r in results)

    async def test_distinct_keys_fetch_once_each(self, cache: ShipCache) -> None:
        fetcher = CountingFetcher()
        for ship_id in ["S1", "S2", "S1", "S2", "S3"]:
            await cache.resolve(ship_id, fetcher)
        assert fetcher.calls == ["S1", "S2", "S3"]

    async def test_fetch_failure_propagates_and_is_not_cached(self, cache: ShipCache) -> None:
        calls = 0

        async def failing(ship_id: str) -> VesselMetadata:
            nonlocal calls
            calls += 1
            raise FetchFailure("HTTP 503", url=f"/en/vessels/{ship_id}/general", status=503)

        with pytest.raises(FetchFailure):
            await cache.resolve("S1", failing)
        assert not cache.has("S1")

        # Next cycle may try again
        with pytest.raises(FetchFailure):
            await cache.resolve("S1", failing)
        assert calls == 2

    async def test_hit_from_previous_process(self, tmp_path: Path) -> None:
        db = tmp_path / "ships.db"
        first = ShipCache(db_path=db)
        await first.resolve("S1", CountingFetcher())
        first.close()

        second = ShipCache(db_path=db)
        try:
            fetcher = CountingFetcher()
            meta = await second.resolve("S1", fetcher)
            assert fetcher.calls == []
            assert meta.imo == "9074729"
        finally:
            second.close()
