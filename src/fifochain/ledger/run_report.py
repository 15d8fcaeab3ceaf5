"""Run Report — renders a RunResult for people and spreadsheets.

Produces:
  - FIFO detail rows (sale date, amount, cost, proceeds, gain, holding days)
  - A totals summary with remaining inventory
  - Human-readable shortfall alerts
  - CSV and JSON exports

Numbers use the display convention from config: 2 decimals with es-CO
grouping (``1.234.567,89``) unless overridden.
"""

from __future__ import annotations

import csv
import io
import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import TYPE_CHECKING

import orjson

from fifochain.config import CurrencyConfig, DisplayConfig, EngineConfig
from fifochain.types import Stage

if TYPE_CHECKING:
    from pathlib import Path

    from fifochain.ledger.chain_runner import RunResult
    from fifochain.types import ShortfallAlert

logger = logging.getLogger(__name__)


def format_number(value: Decimal | None, display: DisplayConfig | None = None) -> str:
    """Round half-up and group thousands. ``None`` renders as zero."""
    display = display or DisplayConfig()
    value = value or Decimal("0")
    quantum = Decimal(1).scaleb(-display.decimal_places)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the decimals
        ctx.prec = max(ctx.prec, value.adjusted() + display.decimal_places + 2)
        rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)  # no "-0,00"
    text = f"{rounded:,.{display.decimal_places}f}"
    return text.translate(str.maketrans({",": display.thousands_sep, ".": display.decimal_sep}))


def format_days(days: int | None) -> str:
    return f"{days} days" if days is not None else "-"


def format_alert(
    alert: ShortfallAlert,
    display: DisplayConfig | None = None,
    currencies: CurrencyConfig | None = None,
) -> str:
    """One sentence describing what inventory was missing and for what."""
    currencies = currencies or CurrencyConfig()
    amount = format_number(alert.missing_amount, display)
    if alert.stage_label == currencies.stage_label(Stage.DISPOSE):
        purpose = "the sale"
    else:
        purpose = f"the {alert.target_currency} purchase"
    return f"Missing {amount} {alert.currency} to cover {purpose} on {alert.date.isoformat()}."


class RunReport:
    """Formats a RunResult.

    Usage:
        report = RunReport(result, cfg.display, cfg.currencies)
        print(report.summary_text())
        report.export_csv(Path("fifo_detail.csv"))
    """

    def __init__(
        self,
        result: RunResult,
        display: DisplayConfig | None = None,
        currencies: CurrencyConfig | None = None,
        epsilon: Decimal | None = None,
    ) -> None:
        self._result = result
        self._display = display or DisplayConfig()
        self._currencies = currencies or CurrencyConfig()
        self._epsilon = epsilon if epsilon is not None else EngineConfig().epsilon

    def _fmt(self, value: Decimal) -> str:
        return format_number(value, self._display)

    def alert_messages(self) -> list[str]:
        return [format_alert(a, self._display, self._currencies) for a in self._result.alerts]

    def detail_rows(self) -> list[dict[str, str]]:
        """One formatted row per consumption record, in processing order."""
        c = self._currencies
        rows: list[dict[str, str]] = []
        for rec in self._result.consumptions:
            rows.append({
                "Sale date": rec.disposal_date.isoformat(),
                "Acquired": rec.acquired_date.isoformat(),
                f"{c.final} sold": self._fmt(rec.matched_amount),
                f"Cost ({c.origin})": self._fmt(rec.matched_cost),
                f"Proceeds ({c.settlement})": self._fmt(rec.proceeds),
                "Gain": self._fmt(rec.gain),
                "Holding": format_days(rec.holding_days),
            })
        return rows

    def summary_text(self) -> str:
        r = self._result
        c = self._currencies
        buf = io.StringIO()
        buf.write("FIFO Chain Summary\n")
        buf.write(f"{'=' * 40}\n")
        buf.write(f"Proceeds ({c.settlement}):     {self._fmt(r.total_proceeds)}\n")
        buf.write(f"Cost basis ({c.origin}):   {self._fmt(r.total_cost_basis)}\n")
        buf.write(f"Gain/loss:          {self._fmt(r.total_gain)}\n")
        buf.write(f"Open {c.intermediate}:           {self._fmt(r.remaining_intermediate)}\n")
        buf.write(f"Open {c.final}:          {self._fmt(r.remaining_final)}\n")
        buf.write(f"Matched rows:       {len(r.consumptions)}\n")
        if abs(r.gain_divergence) > self._epsilon:
            buf.write(f"Per-sale gain:      {self._fmt(r.event_gain)}\n")
        if r.dropped:
            buf.write(f"Dropped lots:       {len(r.dropped)}\n")
        for message in self.alert_messages():
            buf.write(f"! {message}\n")
        return buf.getvalue()

    def detail_text(self) -> str:
        rows = self.detail_rows()
        if not rows:
            return "No matched sales."
        headers = list(rows[0].keys())
        widths = [max(len(h), *(len(row[h]) for row in rows)) for h in headers]
        buf = io.StringIO()
        buf.write("  ".join(f"{h:>{w}}" for h, w in zip(headers, widths, strict=True)) + "\n")
        buf.write("-" * (sum(widths) + 2 * (len(widths) - 1)) + "\n")
        for row in rows:
            buf.write("  ".join(f"{row[h]:>{w}}" for h, w in zip(headers, widths, strict=True)) + "\n")
        return buf.getvalue()

    # --- Exports ---

    def export_csv(self, path: Path) -> None:
        """Export the FIFO detail rows as semicolon-separated CSV."""
        rows = self.detail_rows()
        if not rows:
            logger.info("No consumption rows, skipping CSV export")
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=rows[0].keys(), delimiter=";")
            writer.writeheader()
            writer.writerows(rows)

        logger.info("FIFO detail CSV exported to %s (%d rows)", path, len(rows))

    def export_json(self, path: Path) -> None:
        """Export totals, raw consumption rows and alerts as JSON (exact decimals)."""
        r = self._result
        data = {
            "currencies": {
                "origin": self._currencies.origin,
                "intermediate": self._currencies.intermediate,
                "final": self._currencies.final,
                "settlement": self._currencies.settlement,
            },
            "totals": {
                "proceeds": str(r.total_proceeds),
                "cost_basis": str(r.total_cost_basis),
                "gain": str(r.total_gain),
                "event_proceeds": str(r.event_proceeds),
                "event_cost_basis": str(r.event_cost_basis),
                "event_gain": str(r.event_gain),
                "gain_divergence": str(r.gain_divergence),
            },
            "remaining": {
                "intermediate": str(r.remaining_intermediate),
                "intermediate_cost": str(r.remaining_intermediate_cost),
                "final": str(r.remaining_final),
                "final_cost": str(r.remaining_final_cost),
            },
            "consumptions": [
                {
                    "disposal_date": rec.disposal_date.isoformat(),
                    "acquired_date": rec.acquired_date.isoformat(),
                    "matched_amount": str(rec.matched_amount),
                    "matched_cost": str(rec.matched_cost),
                    "proceeds": str(rec.proceeds),
                    "gain": str(rec.gain),
                    "holding_days": rec.holding_days,
                }
                for rec in r.consumptions
            ],
            "alerts": [
                {
                    "stage": a.stage_label,
                    "date": a.date.isoformat(),
                    "missing_amount": str(a.missing_amount),
                    "currency": a.currency,
                    "message": msg,
                }
                for a, msg in zip(r.alerts, self.alert_messages(), strict=True)
            ],
            "dropped": [
                {"date": row.date, "spent": str(row.input_amount), "received": str(row.output_amount)}
                for row in r.dropped
            ],
        }

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        logger.info("Run report JSON exported to %s", path)
