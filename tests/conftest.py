"""Shared test fixtures."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from fifochain.config import Config, load_config
from fifochain.ledger.chain_runner import ChainRunner
from fifochain.types import TransactionRecord


def _rec(date: str, spent: str | int, received: str | int) -> TransactionRecord:
    """Shorthand for a stage row."""
    return TransactionRecord(date, Decimal(str(spent)), Decimal(str(received)))


@pytest.fixture
def default_config() -> Config:
    return load_config(Path("/dev/null"))  # All defaults


@pytest.fixture
def runner() -> ChainRunner:
    return ChainRunner()


@pytest.fixture
def scenario_a() -> tuple[list[TransactionRecord], list[TransactionRecord], list[TransactionRecord]]:
    """USD 100 -> COP 400k -> USDT 100, then half the USDT sold for USD 55."""
    return (
        [_rec("2024-01-01", 100, 400000)],
        [_rec("2024-01-05", 400000, 100)],
        [_rec("2024-02-01", 50, 55)],
    )
