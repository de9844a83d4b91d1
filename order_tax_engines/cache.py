"""
CalculationCache -- bounded-time memoization of order totals.

Responsibility:
    Serve OrderTotals for a (organization, service type, items fingerprint)
    key without re-resolving and re-computing while the entry is fresh.

Architecture position:
    Engines.  Owned by the event-loop thread that owns the service; no
    locking.  Time comes from an injected Clock.

Entry lifecycle (forward only):
    absent -> pending (compute running) -> present -> expired -> absent

Invariants enforced:
    - TTL is measured from insertion, never from last access.
    - Entries are replaced whole, never mutated (frozen CacheEntry); a reader
      holding an old entry is unaffected by a later put.
    - Concurrent ``get_or_compute`` calls for a pending key share the single
      in-flight computation: compute runs at most once per miss.
    - A computation that started before ``invalidate_organization`` never
      lands in the cache.
    - At most ``max_entries`` entries; the oldest insertion is evicted first.

Non-goals:
    - Not a source of truth.  Nothing is invalidated across processes;
      callers that change configurations elsewhere must treat totals cached
      here as stale.

Expired entries stay readable through ``stale()`` (never through ``get()``)
until they are replaced, purged or evicted; the service uses them only as a
fallback while the configuration store is unreachable.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable

from order_tax_engines.fingerprint import CacheKey
from order_tax_kernel.domain.clock import Clock, SystemClock
from order_tax_kernel.domain.values import OrderTotals
from order_tax_kernel.logging_config import get_logger

logger = get_logger("engines.cache")

DEFAULT_TTL_SECONDS = 30
DEFAULT_MAX_ENTRIES = 1024

ComputeFn = Callable[[], OrderTotals | Awaitable[OrderTotals]]


class EntryState(str, Enum):
    ABSENT = "absent"
    PENDING = "pending"
    PRESENT = "present"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    value: OrderTotals
    inserted_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class CalculationCache:
    """TTL cache of OrderTotals keyed by ``CacheKey``."""

    def __init__(
        self,
        clock: Clock | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._clock = clock or SystemClock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._pending: dict[CacheKey, asyncio.Task] = {}
        self._generations: dict[str, int] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl.total_seconds()

    def __len__(self) -> int:
        return len(self._entries)

    def state(self, key: CacheKey) -> EntryState:
        if key in self._pending:
            return EntryState.PENDING
        entry = self._entries.get(key)
        if entry is None:
            return EntryState.ABSENT
        if entry.is_expired(self._clock.now()):
            return EntryState.EXPIRED
        return EntryState.PRESENT

    def get(self, key: CacheKey) -> OrderTotals | None:
        """Fresh value for ``key`` or None.  Expired entries are never served here."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock.now()):
            return None
        return entry.value

    def stale(self, key: CacheKey) -> OrderTotals | None:
        """Last stored value for ``key``, fresh or expired."""
        entry = self._entries.get(key)
        return entry.value if entry else None

    def put(self, key: CacheKey, value: OrderTotals) -> CacheEntry:
        now = self._clock.now()
        entry = CacheEntry(key=key, value=value, inserted_at=now, expires_at=now + self._ttl)
        # Re-insert so dict order tracks insertion time for eviction
        self._entries.pop(key, None)
        self._entries[key] = entry
        while len(self._entries) > self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("calculation_cache_evicted", extra={"cache_key": str(oldest)})
        return entry

    async def get_or_compute(self, key: CacheKey, compute_fn: ComputeFn) -> OrderTotals:
        """
        Return the fresh cached value or compute, store and return a new one.

        ``compute_fn`` may be a plain callable or return an awaitable.
        Exceptions from ``compute_fn`` propagate to every waiter and leave the
        cache unchanged.
        """
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired(self._clock.now()):
            logger.debug("calculation_cache_hit", extra={"cache_key": str(key)})
            return entry.value

        task = self._pending.get(key)
        if task is None:
            logger.debug("calculation_cache_miss", extra={
                "cache_key": str(key),
                "expired": entry is not None,
            })
            generation = self._generations.get(key.organization_id, 0)
            task = asyncio.ensure_future(self._compute(key, compute_fn, generation))
            self._pending[key] = task
        else:
            logger.debug("calculation_cache_join_pending", extra={"cache_key": str(key)})

        # shield: one cancelled waiter must not cancel the shared computation
        return await asyncio.shield(task)

    async def _compute(
        self, key: CacheKey, compute_fn: ComputeFn, generation: int
    ) -> OrderTotals:
        this_task = asyncio.current_task()
        try:
            value: Any = compute_fn()
            if inspect.isawaitable(value):
                value = await value
            if self._generations.get(key.organization_id, 0) == generation:
                self.put(key, value)
            else:
                logger.info("calculation_cache_discarded_invalidated", extra={
                    "cache_key": str(key),
                })
            return value
        finally:
            if self._pending.get(key) is this_task:
                del self._pending[key]

    def invalidate(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_organization(self, organization_id: str) -> int:
        """Drop every entry of an organization and orphan its pending computations."""
        self._generations[organization_id] = self._generations.get(organization_id, 0) + 1
        doomed = [k for k in self._entries if k.organization_id == organization_id]
        for key in doomed:
            del self._entries[key]
        for key in [k for k in self._pending if k.organization_id == organization_id]:
            # The task keeps running for its current waiters but is no longer shared
            del self._pending[key]
        logger.info("calculation_cache_invalidated", extra={
            "organization_id": organization_id,
            "entries_removed": len(doomed),
        })
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock.now()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Drop every entry and orphan every pending computation."""
        organizations = {k.organization_id for k in self._entries}
        organizations.update(k.organization_id for k in self._pending)
        for organization_id in organizations:
            self._generations[organization_id] = self._generations.get(organization_id, 0) + 1
        self._entries.clear()
        self._pending.clear()
