"""
CalculationTracker -- last-request-wins ordering for one caller view.

Responsibility:
    A cart recalculates on every edit, and responses can arrive out of
    order.  The tracker tags each request with a monotonically increasing
    sequence number and commits a result only if its number is greater than
    the last one applied.  Superseded results are discarded and logged.

Architecture position:
    Services.  One tracker per caller view (cart, preview pane); not shared
    between organizations.

Invariants enforced:
    - ``last_applied_seq`` never decreases.
    - ``current`` always holds the result of the highest applied sequence.
"""

from __future__ import annotations

from typing import Awaitable

from order_tax_kernel.domain.values import OrderTotals
from order_tax_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.tracker")


class CalculationTracker:
    def __init__(self, name: str = "cart"):
        self.name = name
        self._issued = 0
        self._last_applied = 0
        self._current: OrderTotals | None = None

    @property
    def current(self) -> OrderTotals | None:
        return self._current

    @property
    def last_applied_seq(self) -> int:
        return self._last_applied

    @property
    def latest_seq(self) -> int:
        return self._issued

    def next_seq(self) -> int:
        self._issued += 1
        return self._issued

    def commit(self, seq: int, totals: OrderTotals) -> bool:
        """Apply ``totals`` if ``seq`` is newer than the last applied result."""
        if seq <= self._last_applied:
            logger.info("calculation_result_discarded", extra={
                "tracker": self.name,
                "seq": seq,
                "last_applied_seq": self._last_applied,
            })
            return False
        self._last_applied = seq
        self._current = totals
        return True

    async def track(self, calculation: Awaitable[OrderTotals]) -> OrderTotals | None:
        """
        Number, await and commit one calculation.

        Returns the caller-visible ``current`` after the commit attempt, which
        is a newer result than this one's when this one was superseded.
        """
        seq = self.next_seq()
        with LogContext.bind(request_seq=str(seq)):
            totals = await calculation
            self.commit(seq, totals)
        return self._current
