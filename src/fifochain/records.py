"""Loading stage tables into TransactionRecord lists.

Two input shapes are supported:
  - one CSV file per stage (header row, then date, spent, received)
  - a JSON workbook holding all three tables keyed by stage
    (``usd-cop``, ``cop-usdt``, ``usdt-usd``), each row either an object
    ``{"date": ..., "<spent>": ..., "<received>": ...}`` or a
    ``[date, spent, received]`` array

Numbers are parsed leniently: the leading numeric part of a cell is used and a
cell with none reads as zero, which makes the row invalid for the engine
instead of failing the load.
"""

from __future__ import annotations

import csv
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

import orjson

from fifochain.types import Stage, TransactionRecord

if TYPE_CHECKING:
    from pathlib import Path

    from fifochain.config import CurrencyConfig

logger = logging.getLogger(__name__)

_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class RecordFormatError(ValueError):
    """Raised when an input file cannot be read as stage tables."""


def parse_amount(value: Any) -> Decimal:
    """Parse a table cell into a Decimal.

    Only the leading numeric part counts, so ``"12abc"`` reads as 12. Blank
    cells and cells with no leading number give 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    match = _NUMBER_PREFIX.match(str(value).strip())
    if match is None:
        return Decimal("0")
    try:
        amount = Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def _record(date_value: Any, spent: Any, received: Any) -> TransactionRecord | None:
    date_str = str(date_value).strip() if date_value else ""
    record = TransactionRecord(date_str, parse_amount(spent), parse_amount(received))
    # A row with nothing in it was never filled in
    if not date_str and record.input_amount == 0 and record.output_amount == 0:
        return None
    return record


def load_stage_csv(path: Path) -> list[TransactionRecord]:
    """Read one stage table from CSV. The first three columns are used."""
    if not path.exists():
        raise RecordFormatError(f"Record file not found: {path}")

    records: list[TransactionRecord] = []
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            next(reader, None)  # header
            for row in reader:
                cells = (row + ["", "", ""])[:3]
                record = _record(*cells)
                if record is not None:
                    records.append(record)
    except (UnicodeDecodeError, csv.Error) as e:
        raise RecordFormatError(f"Cannot read {path}: {e}") from e

    logger.info("Loaded %d rows from %s", len(records), path)
    return records


def _workbook_row(row: Any, stage: Stage, currencies: CurrencyConfig | None) -> TransactionRecord | None:
    if isinstance(row, (list, tuple)):
        cells = (list(row) + [None, None, None])[:3]
        return _record(*cells)
    if isinstance(row, dict):
        values = [v for k, v in row.items() if k != "date"]
        if currencies is not None:
            spent, received = (c.lower() for c in currencies.pair(stage))
            lowered = {str(k).lower(): v for k, v in row.items()}
            if spent in lowered and received in lowered and spent != received:
                values = [lowered[spent], lowered[received]]
        values = (values + [None, None])[:2]
        return _record(row.get("date"), *values)
    raise RecordFormatError(f"Unsupported row in {stage.label}: {row!r}")


def load_workbook(
    path: Path, currencies: CurrencyConfig | None = None,
) -> dict[Stage, list[TransactionRecord]]:
    """Read all three stage tables from one JSON document.

    Object rows are read by currency name when ``currencies`` is given,
    otherwise by column order after ``date``.
    """
    if not path.exists():
        raise RecordFormatError(f"Workbook not found: {path}")
    try:
        data = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as e:
        raise RecordFormatError(f"Workbook {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RecordFormatError(f"Workbook {path} must be a JSON object keyed by stage")

    tables: dict[Stage, list[TransactionRecord]] = {}
    for stage in Stage:
        key = currencies.stage_label(stage) if currencies is not None else stage.label
        rows = data.get(key, data.get(stage.label, []))
        if not isinstance(rows, list):
            raise RecordFormatError(f"Table {key} in {path} must be a list")
        tables[stage] = [
            record for record in (_workbook_row(r, stage, currencies) for r in rows)
            if record is not None
        ]

    logger.info(
        "Loaded workbook %s (%s)", path,
        ", ".join(f"{stage.label}={len(rows)}" for stage, rows in tables.items()),
    )
    return tables
