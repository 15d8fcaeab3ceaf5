"""Open Lot View: CLI tables of the inventory left after a run.

Shows, per intermediate and final currency:
  - each open lot with acquisition date, age, amount, cost and unit cost
  - a total line
"""

from __future__ import annotations

import io
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING

from fifochain.config import CurrencyConfig, DisplayConfig
from fifochain.ledger.chain_runner import holding_days
from fifochain.ledger.run_report import format_number

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fifochain.ledger.chain_runner import RunResult
    from fifochain.ledger.lot_queue import Lot


def format_lot_table(
    lots: Sequence[Lot],
    currency: str,
    cost_currency: str,
    display: DisplayConfig | None = None,
    as_of: date | None = None,
) -> str:
    """Format the open lots of one currency, oldest first."""
    if not lots:
        return f"No open {currency} lots."

    today = as_of or date.today()
    display = display or DisplayConfig()
    unit_display = replace(display, decimal_places=6)

    buf = io.StringIO()
    buf.write(f"Open {currency} lots\n")
    buf.write(f"{'Acquired':>10}  {'Age':>6}  {currency:>18}  {'Cost ' + cost_currency:>14}  "
              f"{'Unit cost':>14}\n")
    buf.write("-" * 70 + "\n")

    for lot in lots:
        age = holding_days(lot.acquired_date, today)
        buf.write(
            f"{lot.acquired_date.isoformat():>10}  {str(age) + 'd':>6}  "
            f"{format_number(lot.remaining_amount, display):>18}  "
            f"{format_number(lot.remaining_cost, display):>14}  "
            f"{format_number(lot.unit_cost, unit_display):>14}\n"
        )

    total_amount = sum(lot.remaining_amount for lot in lots)
    total_cost = sum(lot.remaining_cost for lot in lots)
    buf.write("-" * 70 + "\n")
    buf.write(f"{'Total':>10}  {'':>6}  {format_number(total_amount, display):>18}  "
              f"{format_number(total_cost, display):>14}\n")
    return buf.getvalue()


def format_open_inventory(
    result: RunResult,
    currencies: CurrencyConfig | None = None,
    display: DisplayConfig | None = None,
    as_of: date | None = None,
) -> str:
    """Both open-lot tables of a run."""
    currencies = currencies or CurrencyConfig()
    parts = [
        format_lot_table(result.intermediate_lots, currencies.intermediate, currencies.origin, display, as_of),
        "",
        format_lot_table(result.final_lots, currencies.final, currencies.origin, display, as_of),
    ]
    return "\n".join(parts)
