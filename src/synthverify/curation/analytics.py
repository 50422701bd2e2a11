"""
Session analytics with a TTL cache and debounced recomputation.

``calculate_analytics`` is a pure aggregate over the items. ``AnalyticsCache``
keeps the last snapshot for ``cache_ttl`` seconds, persists every recompute
into the owning session record, and coalesces bursts of collection size
changes into a single recompute after ``debounce_seconds``. The debounce timer
is explicit state: it is cancelled and replaced on every qualifying change and
cancelled on teardown. A debounced recompute is bound to the session that
scheduled it and does nothing once that session is unbound; ``aclose`` also
waits for a persist already in flight, so nothing writes into a session after
teardown returns.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from synthverify.curation.collection import ItemCollection, Items
from synthverify.models.analytics import AnalyticsSnapshot
from synthverify.stores.protocols import SessionStore

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = frozenset({"completed", "success", "done"})
ERROR_STATUSES = frozenset({"error", "failed"})


def _value(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    getter = getattr(item, "get_value", None)
    if getter is not None:
        return getter(name)
    return getattr(item, name, None)


def _number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _first_number(*values: Any) -> float:
    """First non-zero numeric value, mirroring ``a || b || 0``."""
    for value in values:
        number = _number(value)
        if number:
            return number
    return 0.0


def _status(item: Any) -> str:
    status = _value(item, "status")
    return str(status).lower() if status else ""


def _usage(item: Any, name: str) -> Any:
    usage = _value(item, "usage")
    if isinstance(usage, Mapping):
        return usage.get(name)
    return None


def is_completed(item: Any) -> bool:
    return (
        _status(item) in COMPLETED_STATUSES
        or bool(_value(item, "output"))
        or bool(_value(item, "reasoning"))
    )


def is_errored(item: Any) -> bool:
    return _status(item) in ERROR_STATUSES or bool(_value(item, "error"))


def calculate_analytics(
    items: Iterable[Any], now: Optional[datetime] = None
) -> AnalyticsSnapshot:
    """
    Aggregate metrics over items (``Item`` models or plain mappings).

    Missing or malformed numeric fields count as zero.

    Args:
        items: Items to analyze
        now: Timestamp for ``last_updated`` (defaults to current UTC time)

    Returns:
        AnalyticsSnapshot
    """
    items = list(items)
    total = len(items)
    completed = sum(1 for item in items if is_completed(item))
    errors = sum(1 for item in items if is_errored(item))

    total_tokens = sum(
        _first_number(
            _value(item, "tokens"),
            _value(item, "token_count"),
            _usage(item, "total_tokens"),
        )
        for item in items
    )
    total_cost = sum(
        _first_number(_value(item, "cost"), _usage(item, "cost")) for item in items
    )

    response_times = [
        t
        for t in (
            _first_number(_value(item, "response_time"), _value(item, "duration"))
            for item in items
        )
        if t > 0
    ]
    avg_response_time = sum(response_times) / len(response_times) if response_times else 0.0

    return AnalyticsSnapshot(
        total_items=total,
        completed_items=completed,
        error_count=errors,
        total_tokens=total_tokens,
        total_cost=total_cost,
        avg_response_time=avg_response_time,
        success_rate=(completed / total) * 100 if total > 0 else 0.0,
        last_updated=now or datetime.now(timezone.utc),
    )


class AnalyticsCache:
    """Cached, debounced analytics for the session bound to a collection."""

    def __init__(
        self,
        collection: ItemCollection,
        store: SessionStore,
        cache_ttl: float = 300.0,
        debounce_seconds: float = 1.0,
        enabled: bool = True,
        auto_update: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.collection = collection
        self.store = store
        self.cache_ttl = cache_ttl
        self.debounce_seconds = debounce_seconds
        self.enabled = enabled
        self.auto_update = auto_update
        self.clock = clock

        self.session_id: Optional[str] = None
        self.analytics: Optional[AnalyticsSnapshot] = None
        self.is_calculating = False
        self.computation_count = 0
        self._last_computed_at = 0.0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending: set[asyncio.Future] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def activate(
        self, session_id: str, stored: Optional[AnalyticsSnapshot] = None
    ) -> None:
        """
        Bind to a session (on first open or when the session changes).

        A stored snapshot is adopted as fresh as of its own ``last_updated``;
        without one an initial computation is forced.
        """
        self.close()
        self._loop = asyncio.get_running_loop()
        self.session_id = session_id
        self.analytics = None
        self._last_computed_at = 0.0

        if self.auto_update:
            self._unsubscribe = self.collection.subscribe(self._on_collection_change)

        if not self.enabled:
            return

        if stored is not None:
            self.analytics = stored
            self._last_computed_at = stored.last_updated.timestamp()
            logger.debug(f"Loaded stored analytics for session {session_id}")
        else:
            await self.update_analytics(force=True)

    def is_cache_valid(self) -> bool:
        if not self._last_computed_at:
            return False
        return self.clock() - self._last_computed_at < self.cache_ttl

    async def update_analytics(self, force: bool = False) -> Optional[AnalyticsSnapshot]:
        """
        Recompute, store and persist the snapshot unless the cache is still valid.

        Persistence failures are logged; the in-memory snapshot is still updated.

        Args:
            force: Recompute regardless of the TTL

        Returns:
            The current snapshot, or None when no session is bound
        """
        session_id = self.session_id
        if session_id is None or not self.enabled:
            return None
        if not force and self.is_cache_valid():
            return self.analytics

        self.is_calculating = True
        try:
            snapshot = calculate_analytics(
                self.collection.items,
                now=datetime.fromtimestamp(self.clock(), tz=timezone.utc),
            )
            self.analytics = snapshot
            self._last_computed_at = self.clock()
            self.computation_count += 1

            persist = asyncio.ensure_future(
                self.store.update_session_analytics(session_id, snapshot)
            )
            self._track(persist)
            try:
                await persist
            except Exception as e:
                logger.error(f"Failed to persist analytics for session {session_id}: {e}")
        finally:
            self.is_calculating = False
        return self.analytics

    async def refresh_analytics(self) -> Optional[AnalyticsSnapshot]:
        return await self.update_analytics(force=True)

    def get_current_analytics(self) -> AnalyticsSnapshot:
        """Cached snapshot if still valid, otherwise a fresh one (cache untouched)."""
        if self.analytics is not None and self.is_cache_valid():
            return self.analytics
        return calculate_analytics(
            self.collection.items,
            now=datetime.fromtimestamp(self.clock(), tz=timezone.utc),
        )

    def get_metrics(self) -> dict[str, float]:
        return self.get_current_analytics().metrics()

    def cache_age(self) -> float:
        return self.clock() - self._last_computed_at

    def next_update_in(self) -> float:
        return max(0.0, self.cache_ttl - self.cache_age())

    def _on_collection_change(self, previous: Items, current: Items) -> None:
        if len(previous) != len(current):
            self.schedule_update()

    def schedule_update(self) -> None:
        """(Re)start the debounce timer for a non-forced recompute."""
        if self._loop is None or self.session_id is None or not self.enabled:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._track(self._loop.create_task(self._debounced_update(self.session_id)))

    def _track(self, task: asyncio.Future) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _debounced_update(self, session_id: Optional[str]) -> None:
        if session_id is None or self.session_id != session_id:
            return
        await self.update_analytics(force=False)

    def close(self) -> None:
        """
        Unbind from the session: cancel the debounce timer and stop observing.

        Recomputes that have not started yet become no-ops. A persist call
        already in flight is not interrupted; use ``aclose`` to wait for it.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.session_id = None

    async def aclose(self) -> None:
        """Close, then wait until no recompute is writing into the old session."""
        self.close()
        pending = list(self._pending)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
