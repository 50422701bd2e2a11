"""
Tests for analytics aggregation and the TTL/debounce cache.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from synthverify.curation.analytics import AnalyticsCache, calculate_analytics
from synthverify.curation.collection import ItemCollection
from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.models.item import Item


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCalculateAnalytics:
    """Tests for the pure aggregate."""

    def test_completion_and_error_counts(self):
        items = [
            Item(id="1", status="completed"),
            Item(id="2", status="success"),
            Item(id="3", status="Done"),
            Item(id="4", status="error"),
        ]

        snapshot = calculate_analytics(items)

        assert snapshot.total_items == 4
        assert snapshot.completed_items == 3
        assert snapshot.error_count == 1
        assert snapshot.success_rate == 75.0

    def test_reasoning_or_output_counts_as_completed(self):
        items = [Item(id="1", reasoning="thought"), Item(id="2", output="text"), Item(id="3")]

        assert calculate_analytics(items).completed_items == 2

    def test_token_cost_and_response_time(self):
        items = [
            {"status": "completed", "tokens": 100, "cost": 0.5, "response_time": 2.0},
            {"status": "failed", "usage": {"total_tokens": 50, "cost": 0.25}},
            {"token_count": 25, "duration": 4.0},
            {"response_time": "not a number"},
        ]

        snapshot = calculate_analytics(items)

        assert snapshot.total_tokens == 175
        assert snapshot.total_cost == pytest.approx(0.75)
        assert snapshot.avg_response_time == pytest.approx(3.0)
        assert snapshot.error_count == 1

    def test_empty_collection(self):
        snapshot = calculate_analytics([])

        assert snapshot.total_items == 0
        assert snapshot.success_rate == 0.0
        assert snapshot.avg_response_time == 0.0

    def test_sample_items(self, sample_items):
        snapshot = calculate_analytics(sample_items)

        assert snapshot.total_items == 5
        assert snapshot.completed_items == 3
        assert snapshot.error_count == 1
        assert snapshot.success_rate == 60.0

    def test_last_updated_uses_given_time(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)

        assert calculate_analytics([], now=now).last_updated == now


class TestAnalyticsCache:
    """Tests for TTL validity, forcing and persistence."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def collection(self, sample_items) -> ItemCollection:
        return ItemCollection(sample_items)

    def make_cache(self, collection, store, clock, **kwargs) -> AnalyticsCache:
        kwargs.setdefault("auto_update", False)
        return AnalyticsCache(collection, store, clock=clock, **kwargs)

    @pytest.mark.asyncio
    async def test_activation_without_stored_snapshot_computes(
        self, collection, fake_session_store, clock
    ):
        cache = self.make_cache(collection, fake_session_store, clock)

        await cache.activate("s1")

        assert cache.computation_count == 1
        assert cache.analytics.total_items == 5
        assert fake_session_store.snapshots["s1"].total_items == 5

    @pytest.mark.asyncio
    async def test_update_within_ttl_computes_once(
        self, collection, fake_session_store, clock
    ):
        cache = self.make_cache(collection, fake_session_store, clock)
        await cache.activate("s1")

        await cache.update_analytics()
        await cache.update_analytics()

        assert cache.computation_count == 1
        assert fake_session_store.writes == 1

    @pytest.mark.asyncio
    async def test_force_always_recomputes(self, collection, fake_session_store, clock):
        cache = self.make_cache(collection, fake_session_store, clock)
        await cache.activate("s1")

        await cache.update_analytics(force=True)
        await cache.refresh_analytics()

        assert cache.computation_count == 3

    @pytest.mark.asyncio
    async def test_expired_cache_recomputes(self, collection, fake_session_store, clock):
        cache = self.make_cache(collection, fake_session_store, clock, cache_ttl=300)
        await cache.activate("s1")

        clock.advance(299)
        assert cache.is_cache_valid() is True
        assert cache.next_update_in() == pytest.approx(1)

        clock.advance(1)
        assert cache.is_cache_valid() is False
        await cache.update_analytics()

        assert cache.computation_count == 2

    @pytest.mark.asyncio
    async def test_stored_snapshot_is_fresh_as_of_its_timestamp(
        self, collection, fake_session_store, clock
    ):
        stored = AnalyticsSnapshot(
            total_items=42,
            last_updated=datetime.fromtimestamp(clock.now - 100, tz=timezone.utc),
        )
        cache = self.make_cache(collection, fake_session_store, clock, cache_ttl=300)

        await cache.activate("s1", stored)

        assert cache.computation_count == 0
        assert cache.get_current_analytics().total_items == 42
        assert cache.cache_age() == pytest.approx(100)

        clock.advance(200)
        assert cache.get_current_analytics().total_items == 5
        assert cache.computation_count == 0

    def test_fresh_snapshot_is_stamped_with_cache_clock(
        self, collection, fake_session_store, clock
    ):
        cache = self.make_cache(collection, fake_session_store, clock)

        snapshot = cache.get_current_analytics()

        assert snapshot.last_updated == datetime.fromtimestamp(clock.now, tz=timezone.utc)
        assert cache.analytics is None

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_snapshot(
        self, collection, fake_session_store, clock
    ):
        fake_session_store.fail_with = RuntimeError("disk full")
        cache = self.make_cache(collection, fake_session_store, clock)

        await cache.activate("s1")

        assert cache.analytics.total_items == 5
        assert cache.computation_count == 1
        assert cache.is_calculating is False

    @pytest.mark.asyncio
    async def test_disabled_cache_does_nothing(self, collection, fake_session_store, clock):
        cache = self.make_cache(collection, fake_session_store, clock, enabled=False)

        await cache.activate("s1")

        assert await cache.update_analytics(force=True) is None
        assert fake_session_store.writes == 0
        assert cache.get_metrics()["success_rate"] == 60.0

    def test_update_without_session_is_noop(self, collection, fake_session_store, clock):
        cache = self.make_cache(collection, fake_session_store, clock)

        assert asyncio.run(cache.update_analytics(force=True)) is None


class TestDebouncedUpdates:
    """Tests for auto-update on collection size changes."""

    @pytest.fixture
    def collection(self, sample_items) -> ItemCollection:
        return ItemCollection(sample_items)

    @pytest.mark.asyncio
    async def test_burst_of_size_changes_coalesces(self, collection, fake_session_store):
        cache = AnalyticsCache(
            collection, fake_session_store, cache_ttl=0, debounce_seconds=0.05
        )
        await cache.activate("s1")

        for i in range(3):
            collection.set_data(lambda items, i=i: list(items) + [Item(id=f"new-{i}")])
        await asyncio.sleep(0.2)

        assert cache.computation_count == 2
        assert cache.analytics.total_items == 8
        cache.close()

    @pytest.mark.asyncio
    async def test_same_size_change_does_not_schedule(self, collection, fake_session_store):
        cache = AnalyticsCache(
            collection, fake_session_store, cache_ttl=0, debounce_seconds=0.01
        )
        await cache.activate("s1")

        collection.edit_item("item-1", {"answer": "edited"})
        await asyncio.sleep(0.05)

        assert cache.computation_count == 1
        cache.close()

    @pytest.mark.asyncio
    async def test_close_cancels_pending_update(self, collection, fake_session_store):
        cache = AnalyticsCache(
            collection, fake_session_store, cache_ttl=0, debounce_seconds=0.05
        )
        await cache.activate("s1")

        collection.set_data(lambda items: items[:1])
        cache.close()
        await asyncio.sleep(0.1)

        assert cache.computation_count == 1
        assert fake_session_store.writes == 1

    @pytest.mark.asyncio
    async def test_session_change_resets_timer(self, collection, fake_session_store):
        cache = AnalyticsCache(
            collection, fake_session_store, cache_ttl=0, debounce_seconds=0.05
        )
        await cache.activate("s1")
        collection.set_data(lambda items: items[:2])

        await cache.activate("s2")
        await asyncio.sleep(0.1)

        assert "s2" in fake_session_store.snapshots
        assert fake_session_store.snapshots["s1"].total_items == 5
        assert cache.computation_count == 2


class GatedSessionStore:
    """Session store whose writes block until released."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.release.set()
        self.completed: list[str] = []

    async def update_session_analytics(self, session_id: str, snapshot: AnalyticsSnapshot) -> None:
        self.started.set()
        await self.release.wait()
        self.completed.append(session_id)

    async def get_session_analytics(self, session_id: str):
        return None


class TestTeardown:
    """Tests for closing the cache while recomputes are pending or running."""

    @pytest.fixture
    def collection(self, sample_items) -> ItemCollection:
        return ItemCollection(sample_items)

    @pytest.mark.asyncio
    async def test_aclose_waits_for_in_flight_persist(self, collection):
        store = GatedSessionStore()
        cache = AnalyticsCache(collection, store, cache_ttl=0, debounce_seconds=0.01)
        await cache.activate("s1")
        store.started.clear()
        store.release.clear()

        collection.set_data(lambda items: items[:2])
        await asyncio.wait_for(store.started.wait(), timeout=1)
        closing = asyncio.create_task(cache.aclose())
        await asyncio.sleep(0.02)

        assert closing.done() is False
        store.release.set()
        await closing

        assert store.completed == ["s1", "s1"]
        assert cache.session_id is None

        collection.set_data(lambda items: items[:1])
        await asyncio.sleep(0.05)
        assert store.completed == ["s1", "s1"]

    @pytest.mark.asyncio
    async def test_recompute_fired_for_old_session_is_skipped(
        self, collection, fake_session_store
    ):
        cache = AnalyticsCache(
            collection, fake_session_store, cache_ttl=0, debounce_seconds=0.01
        )
        await cache.activate("s1")

        cache._fire()
        cache.close()
        await asyncio.sleep(0.02)

        assert fake_session_store.writes == 1
        assert cache.computation_count == 1
