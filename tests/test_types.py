"""Tests for shared types."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from fifochain.types import Stage, TransactionRecord, ZeroCostPolicy, parse_calendar_date


class TestParseCalendarDate:
    def test_iso_date(self) -> None:
        assert parse_calendar_date("2024-02-29") == date(2024, 2, 29)

    def test_surrounding_whitespace(self) -> None:
        assert parse_calendar_date(" 2024-01-01 ") == date(2024, 1, 1)

    @pytest.mark.parametrize("value", [None, "", "2023-02-29", "01/02/2024", "2024-01-01T10:00"])
    def test_invalid(self, value: str | None) -> None:
        assert parse_calendar_date(value) is None


class TestTransactionRecord:
    def test_valid(self) -> None:
        row = TransactionRecord("2024-01-01", Decimal("100"), Decimal("400000"))
        assert row.is_valid
        assert row.calendar_date == date(2024, 1, 1)

    def test_zero_amount_invalid(self) -> None:
        assert not TransactionRecord("2024-01-01", Decimal("0"), Decimal("1")).is_valid

    def test_infinite_amount_invalid(self) -> None:
        assert not TransactionRecord("2024-01-01", Decimal("1"), Decimal("Infinity")).is_valid

    def test_frozen(self) -> None:
        row = TransactionRecord("2024-01-01", Decimal("1"), Decimal("1"))
        with pytest.raises(AttributeError):
            row.date = "2024-01-02"  # type: ignore[misc]


def test_stage_labels() -> None:
    assert [s.label for s in Stage] == ["usd-cop", "cop-usdt", "usdt-usd"]


def test_policy_values() -> None:
    assert ZeroCostPolicy("drop") == ZeroCostPolicy.DROP
    assert ZeroCostPolicy("create") == ZeroCostPolicy.CREATE
