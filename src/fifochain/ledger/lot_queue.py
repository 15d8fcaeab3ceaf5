"""FIFO queue of open inventory lots for one currency.

Lots are appended in acquisition order and only ever consumed from the head.
A lot whose remaining amount drops to the exhaustion threshold is popped and
never comes back.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date

logger = logging.getLogger(__name__)

DEFAULT_EPSILON = Decimal("0.0001")


@dataclass
class Lot:
    """Unconsumed inventory of one currency with its remaining cost basis."""

    acquired_date: date
    remaining_amount: Decimal
    remaining_cost: Decimal

    @property
    def unit_cost(self) -> Decimal:
        if self.remaining_amount == 0:
            return Decimal("0")
        return self.remaining_cost / self.remaining_amount


class LotQueue:
    """Ordered, mutable collection of lots, oldest first."""

    def __init__(self, currency: str = "", epsilon: Decimal = DEFAULT_EPSILON) -> None:
        self.currency = currency
        self.epsilon = epsilon
        self._lots: deque[Lot] = deque()

    def __len__(self) -> int:
        return len(self._lots)

    def __bool__(self) -> bool:
        return bool(self._lots)

    def __iter__(self) -> Iterator[Lot]:
        return iter(self._lots)

    def enqueue(self, lot: Lot) -> None:
        """Append a lot at the tail.

        Raises ValueError for a non-positive amount or a negative cost; the
        chain runner filters rows before they get here.
        """
        if not lot.remaining_amount.is_finite() or lot.remaining_amount <= 0:
            raise ValueError(f"Lot amount must be a positive finite number: {lot.remaining_amount}")
        if not lot.remaining_cost.is_finite() or lot.remaining_cost < 0:
            raise ValueError(f"Lot cost must be a non-negative finite number: {lot.remaining_cost}")
        self._lots.append(lot)
        logger.debug(
            "Lot enqueued: %s %s (cost %s) acquired %s",
            lot.remaining_amount, self.currency, lot.remaining_cost, lot.acquired_date,
        )

    def peek_oldest(self) -> Lot | None:
        return self._lots[0] if self._lots else None

    def remove_oldest_if_exhausted(self) -> Lot | None:
        """Pop the head lot if its remaining amount is at or below epsilon."""
        head = self.peek_oldest()
        if head is None or head.remaining_amount > self.epsilon:
            return None
        return self._lots.popleft()

    # --- Query methods ---

    def total_amount(self) -> Decimal:
        return sum((lot.remaining_amount for lot in self._lots), Decimal("0"))

    def total_cost(self) -> Decimal:
        return sum((lot.remaining_cost for lot in self._lots), Decimal("0"))

    def snapshot(self) -> tuple[Lot, ...]:
        """Detached copies of the open lots, oldest first."""
        return tuple(replace(lot) for lot in self._lots)
