"""Proportional FIFO matching of one requested amount against a lot queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

    from fifochain.ledger.lot_queue import LotQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotFill:
    """The part of one lot consumed by a match."""

    acquired_date: date
    amount: Decimal
    cost: Decimal


@dataclass
class MatchResult:
    requested_amount: Decimal
    epsilon: Decimal
    fills: list[LotFill] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")
    shortfall: Decimal = Decimal("0")  # uncovered remainder, raw

    @property
    def matched_amount(self) -> Decimal:
        return sum((f.amount for f in self.fills), Decimal("0"))

    @property
    def is_short(self) -> bool:
        return self.shortfall > self.epsilon


def match_fifo(queue: LotQueue, requested_amount: Decimal) -> MatchResult:
    """Consume ``requested_amount`` from the oldest lots of ``queue``.

    Each lot gives up cost in proportion to the share of its remaining amount
    that is used. Exhausted lots are popped after every step. Whatever the
    queue cannot cover is left in ``shortfall``.
    """
    result = MatchResult(requested_amount=requested_amount, epsilon=queue.epsilon)
    remaining = requested_amount

    while remaining > 0 and queue:
        lot = queue.peek_oldest()
        assert lot is not None
        used = min(remaining, lot.remaining_amount)
        if used == lot.remaining_amount:
            cost_used = lot.remaining_cost
        else:
            cost_used = used * lot.remaining_cost / lot.remaining_amount

        lot.remaining_amount -= used
        lot.remaining_cost = max(lot.remaining_cost - cost_used, Decimal("0"))
        remaining -= used
        result.total_cost += cost_used
        result.fills.append(LotFill(acquired_date=lot.acquired_date, amount=used, cost=cost_used))

        queue.remove_oldest_if_exhausted()

    result.shortfall = max(remaining, Decimal("0"))
    logger.debug(
        "FIFO match: %s %s requested -> %d fills, cost %s, short %s",
        requested_amount, queue.currency, len(result.fills), result.total_cost, result.shortfall,
    )
    return result
