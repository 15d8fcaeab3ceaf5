"""Chain Runner — three FIFO passes over the A -> B -> C -> D conversion chain.

  Stage 1 (A -> B): every valid row opens a B-lot costed at the A spent.
  Stage 2 (B -> C): consumes B-lots FIFO; the consumed cost becomes the
                    basis of a new C-lot.
  Stage 3 (C -> D): consumes C-lots FIFO and realizes gain per matched lot.

Queues are built fresh on every ``run()``; the only inputs are the three
record lists, so running twice on the same lists gives the same result.

Totals are kept twice: once summed over the per-lot consumption rows and
once per sale event (full proceeds minus the basis found for it). The two
agree unless a sale runs short of inventory; the gap is reported as
``gain_divergence``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from fifochain.config import CurrencyConfig, EngineConfig
from fifochain.ledger.lot_queue import Lot, LotQueue
from fifochain.ledger.matcher import MatchResult, match_fifo
from fifochain.types import ShortfallAlert, Stage, TransactionRecord, ZeroCostPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date

logger = logging.getLogger(__name__)


def holding_days(acquired: date | None, disposed: date | None) -> int | None:
    """Whole days between acquisition and disposal, never negative."""
    if acquired is None or disposed is None:
        return None
    return max(0, (disposed - acquired).days)


@dataclass(frozen=True)
class ConsumptionRecord:
    """One (sale event x lot) match of stage 3."""

    disposal_date: date
    acquired_date: date
    matched_amount: Decimal
    matched_cost: Decimal
    proceeds: Decimal
    gain: Decimal
    holding_days: int | None


@dataclass
class RunResult:
    consumptions: list[ConsumptionRecord] = field(default_factory=list)
    alerts: list[ShortfallAlert] = field(default_factory=list)

    # Summed over consumption rows
    total_proceeds: Decimal = Decimal("0")
    total_cost_basis: Decimal = Decimal("0")
    total_gain: Decimal = Decimal("0")

    # Summed per sale event
    event_proceeds: Decimal = Decimal("0")
    event_cost_basis: Decimal = Decimal("0")
    event_gain: Decimal = Decimal("0")

    intermediate_lots: tuple[Lot, ...] = ()
    final_lots: tuple[Lot, ...] = ()

    # Conversions whose derived lot was not created (zero consumed cost)
    dropped: list[TransactionRecord] = field(default_factory=list)

    @property
    def remaining_intermediate(self) -> Decimal:
        return sum((lot.remaining_amount for lot in self.intermediate_lots), Decimal("0"))

    @property
    def remaining_final(self) -> Decimal:
        return sum((lot.remaining_amount for lot in self.final_lots), Decimal("0"))

    @property
    def remaining_intermediate_cost(self) -> Decimal:
        return sum((lot.remaining_cost for lot in self.intermediate_lots), Decimal("0"))

    @property
    def remaining_final_cost(self) -> Decimal:
        return sum((lot.remaining_cost for lot in self.final_lots), Decimal("0"))

    @property
    def gain_divergence(self) -> Decimal:
        """Per-event gain minus per-row gain."""
        return self.event_gain - self.total_gain


class ChainRunner:
    """Runs the three FIFO stages and aggregates the outcome."""

    def __init__(
        self,
        engine: EngineConfig | None = None,
        currencies: CurrencyConfig | None = None,
    ) -> None:
        self._engine = engine or EngineConfig()
        self._currencies = currencies or CurrencyConfig()

    @property
    def epsilon(self) -> Decimal:
        return self._engine.epsilon

    def run(
        self,
        acquisitions: Iterable[TransactionRecord],
        conversions: Iterable[TransactionRecord],
        disposals: Iterable[TransactionRecord],
    ) -> RunResult:
        result = RunResult()
        intermediate = LotQueue(self._currencies.intermediate, epsilon=self.epsilon)
        final = LotQueue(self._currencies.final, epsilon=self.epsilon)

        self._acquire(acquisitions, intermediate)
        self._convert(conversions, intermediate, final, result)
        self._dispose(disposals, final, result)

        result.intermediate_lots = intermediate.snapshot()
        result.final_lots = final.snapshot()

        if abs(result.gain_divergence) > self.epsilon:
            logger.warning(
                "Gain totals diverge by %s %s (per-event %s vs per-lot %s)",
                result.gain_divergence, self._currencies.settlement,
                result.event_gain, result.total_gain,
            )
        logger.info(
            "Chain run: %d consumption rows, %d alerts, gain %s %s, "
            "open %s %s / %s %s",
            len(result.consumptions), len(result.alerts),
            result.total_gain, self._currencies.settlement,
            result.remaining_intermediate, self._currencies.intermediate,
            result.remaining_final, self._currencies.final,
        )
        return result

    # --- Stages ---

    def _acquire(self, rows: Iterable[TransactionRecord], queue: LotQueue) -> None:
        for row in self._valid_rows(rows, Stage.ACQUIRE):
            day = row.calendar_date
            assert day is not None
            queue.enqueue(Lot(day, remaining_amount=row.output_amount, remaining_cost=row.input_amount))

    def _convert(
        self,
        rows: Iterable[TransactionRecord],
        source: LotQueue,
        target: LotQueue,
        result: RunResult,
    ) -> None:
        for row in self._valid_rows(rows, Stage.CONVERT):
            day = row.calendar_date
            assert day is not None
            match = match_fifo(source, row.input_amount)
            self._check_shortfall(match, Stage.CONVERT, day, result)

            if match.total_cost > 0:
                target.enqueue(Lot(day, row.output_amount, match.total_cost))
            elif self._engine.policy == ZeroCostPolicy.CREATE:
                logger.info(
                    "Zero-cost %s lot created for conversion on %s", target.currency, row.date,
                )
                target.enqueue(Lot(day, row.output_amount, Decimal("0")))
            else:
                logger.warning(
                    "Conversion on %s consumed no cost basis; %s %s lot dropped",
                    row.date, row.output_amount, target.currency,
                )
                result.dropped.append(row)

    def _dispose(self, rows: Iterable[TransactionRecord], source: LotQueue, result: RunResult) -> None:
        for row in self._valid_rows(rows, Stage.DISPOSE):
            day = row.calendar_date
            assert day is not None
            match = match_fifo(source, row.input_amount)

            for fill in match.fills:
                proceeds = fill.amount * row.output_amount / row.input_amount
                gain = proceeds - fill.cost
                result.consumptions.append(ConsumptionRecord(
                    disposal_date=day,
                    acquired_date=fill.acquired_date,
                    matched_amount=fill.amount,
                    matched_cost=fill.cost,
                    proceeds=proceeds,
                    gain=gain,
                    holding_days=holding_days(fill.acquired_date, day),
                ))
                result.total_proceeds += proceeds
                result.total_cost_basis += fill.cost
                result.total_gain += gain

            self._check_shortfall(match, Stage.DISPOSE, day, result)

            result.event_proceeds += row.output_amount
            result.event_cost_basis += match.total_cost
            result.event_gain += row.output_amount - match.total_cost

    # --- Helpers ---

    def _valid_rows(
        self, rows: Iterable[TransactionRecord], stage: Stage,
    ) -> Iterable[TransactionRecord]:
        for row in rows:
            if row.is_valid:
                yield row
            else:
                logger.debug("Skipping incomplete %s row: %s", self._currencies.stage_label(stage), row)

    def _check_shortfall(
        self, match: MatchResult, stage: Stage, day: date, result: RunResult,
    ) -> None:
        if not match.is_short:
            return
        spent, received = self._currencies.pair(stage)
        alert = ShortfallAlert(
            stage_label=self._currencies.stage_label(stage),
            date=day,
            missing_amount=match.shortfall,
            currency=spent,
            target_currency=received,
        )
        result.alerts.append(alert)
        logger.warning(
            "Shortfall in %s on %s: %s %s not covered by open lots",
            alert.stage_label, day, match.shortfall, spent,
        )


def run_chain(
    acquisitions: Iterable[TransactionRecord],
    conversions: Iterable[TransactionRecord],
    disposals: Iterable[TransactionRecord],
    engine: EngineConfig | None = None,
    currencies: CurrencyConfig | None = None,
) -> RunResult:
    """One-shot helper around ``ChainRunner.run``."""
    return ChainRunner(engine=engine, currencies=currencies).run(acquisitions, conversions, disposals)
