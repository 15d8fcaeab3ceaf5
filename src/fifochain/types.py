"""Shared types, enums, and dataclasses used across modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Stage(Enum):
    """The three legs of the conversion chain, keyed like the input tables."""

    ACQUIRE = "usd-cop"  # A -> B, origin of inventory
    CONVERT = "cop-usdt"  # B -> C
    DISPOSE = "usdt-usd"  # C -> D, realizes gains

    @property
    def label(self) -> str:
        return self.value


class ZeroCostPolicy(Enum):
    """What to do with a conversion whose consumed cost basis is zero."""

    DROP = "drop"
    CREATE = "create"


DATE_FORMAT = "%Y-%m-%d"


def parse_calendar_date(value: str | None) -> date | None:
    """Parse an ISO ``YYYY-MM-DD`` string. ``None`` when blank or invalid."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


@dataclass(frozen=True)
class TransactionRecord:
    """One row of a stage table.

    ``input_amount`` is what the row spends, ``output_amount`` what it
    receives (stage 1: USD spent, COP received).
    """

    date: str
    input_amount: Decimal
    output_amount: Decimal

    @property
    def calendar_date(self) -> date | None:
        return parse_calendar_date(self.date)

    @property
    def is_valid(self) -> bool:
        """Rows with a blank/bad date or a non-positive amount are not entered yet."""
        if self.calendar_date is None:
            return False
        for amount in (self.input_amount, self.output_amount):
            if not amount.is_finite() or amount <= 0:
                return False
        return True


@dataclass(frozen=True)
class ShortfallAlert:
    """Part of a requested amount that the open lots could not cover."""

    stage_label: str
    date: date
    missing_amount: Decimal
    currency: str = ""  # currency that ran short
    target_currency: str = ""  # what the event was buying
