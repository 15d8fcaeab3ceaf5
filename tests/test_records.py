"""Tests for stage table loading."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path  # noqa: TC003

import pytest

from fifochain.config import CurrencyConfig
from fifochain.records import RecordFormatError, load_stage_csv, load_workbook, parse_amount
from fifochain.types import Stage


class TestParseAmount:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("100", Decimal("100")),
            (" 12.5 ", Decimal("12.5")),
            (400000, Decimal("400000")),
            (0.1, Decimal("0.1")),
            ("", Decimal("0")),
            (None, Decimal("0")),
            ("abc", Decimal("0")),
            ("12abc", Decimal("12")),
            ("-3.5e2 USD", Decimal("-350")),
            (".5", Decimal("0.5")),
            ("1.500,00", Decimal("1.5")),
            ("NaN", Decimal("0")),
            ("Infinity", Decimal("0")),
            (True, Decimal("0")),
        ],
    )
    def test_lenient(self, raw: object, expected: Decimal) -> None:
        assert parse_amount(raw) == expected


class TestStageCSV:
    def test_reads_rows(self, tmp_path: Path) -> None:
        path = tmp_path / "usd-cop.csv"
        path.write_text("date,usd,cop\n2024-01-01,100,400000\n2024-01-02,50.5,200000\n")
        rows = load_stage_csv(path)
        assert len(rows) == 2
        assert rows[0].date == "2024-01-01"
        assert rows[0].input_amount == Decimal("100")
        assert rows[1].output_amount == Decimal("200000")

    def test_blank_rows_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "t.csv"
        path.write_text("date,usd,cop\n,,\n\n2024-01-01,100,400000\n")
        assert len(load_stage_csv(path)) == 1

    def test_partial_rows_kept_but_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "t.csv"
        path.write_text("date,usd,cop\n2024-01-01,abc\n")
        (row,) = load_stage_csv(path)
        assert row.input_amount == Decimal("0")
        assert not row.is_valid

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(RecordFormatError, match="not found"):
            load_stage_csv(tmp_path / "missing.csv")

    def test_trailing_text_uses_leading_number(self, tmp_path: Path) -> None:
        path = tmp_path / "t.csv"
        path.write_text("date,usd,cop\n2024-01-01,100 usd,400000cop\n")
        (row,) = load_stage_csv(path)
        assert row.input_amount == Decimal("100")
        assert row.output_amount == Decimal("400000")
        assert row.is_valid

    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "t.csv"
        path.write_bytes(b"date,usd,cop\n2024-01-01,100,\xff\xfe\n")
        with pytest.raises(RecordFormatError, match="Cannot read"):
            load_stage_csv(path)


class TestWorkbook:
    def test_object_rows_by_currency(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text(
            '{"usd-cop": [{"date": "2024-01-01", "cop": 400000, "usd": 100}],'
            ' "cop-usdt": [{"date": "2024-01-05", "cop": 400000, "usdt": 100}],'
            ' "usdt-usd": [{"date": "2024-02-01", "usdt": 50, "usd": 55}]}'
        )
        tables = load_workbook(path, CurrencyConfig())
        (acq,) = tables[Stage.ACQUIRE]
        assert acq.input_amount == Decimal("100")
        assert acq.output_amount == Decimal("400000")
        assert tables[Stage.DISPOSE][0].output_amount == Decimal("55")

    def test_array_rows(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text('{"cop-usdt": [["2024-01-05", "400000", "100"], ["", "", ""]]}')
        tables = load_workbook(path)
        assert tables[Stage.ACQUIRE] == []
        (row,) = tables[Stage.CONVERT]
        assert row.input_amount == Decimal("400000")

    def test_object_rows_by_position(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text('{"usdt-usd": [{"date": "2024-02-01", "sold": 50, "got": 55}]}')
        (row,) = load_workbook(path)[Stage.DISPOSE]
        assert (row.input_amount, row.output_amount) == (Decimal("50"), Decimal("55"))

    def test_custom_currency_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text('{"eur-ars": [{"date": "2024-01-01", "ars": 900, "eur": 1}]}')
        currencies = CurrencyConfig(origin="EUR", intermediate="ARS", final="USDC", settlement="EUR")
        (row,) = load_workbook(path, currencies)[Stage.ACQUIRE]
        assert row.input_amount == Decimal("1")
        assert row.output_amount == Decimal("900")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text("{not json")
        with pytest.raises(RecordFormatError, match="not valid JSON"):
            load_workbook(path)

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text("[]")
        with pytest.raises(RecordFormatError, match="JSON object"):
            load_workbook(path)

    def test_table_must_be_list(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text('{"usd-cop": {"date": "2024-01-01"}}')
        with pytest.raises(RecordFormatError, match="must be a list"):
            load_workbook(path)

    def test_bad_row_type(self, tmp_path: Path) -> None:
        path = tmp_path / "book.json"
        path.write_text('{"usd-cop": [42]}')
        with pytest.raises(RecordFormatError, match="Unsupported row"):
            load_workbook(path)
