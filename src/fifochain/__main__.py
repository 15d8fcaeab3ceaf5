"""fifochain CLI: FIFO gains and open inventory for a three-stage conversion chain."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from fifochain.config import Config, ConfigError, load_config
from fifochain.ledger.chain_runner import ChainRunner, RunResult
from fifochain.logging_setup import setup_logging
from fifochain.records import RecordFormatError, load_stage_csv, load_workbook
from fifochain.types import Stage, TransactionRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------


def _load_tables(args: argparse.Namespace, cfg: Config) -> dict[Stage, list[TransactionRecord]]:
    """Read the three stage tables from a workbook or from per-stage CSVs."""
    if args.workbook:
        return load_workbook(Path(args.workbook), cfg.currencies)

    tables: dict[Stage, list[TransactionRecord]] = {}
    for stage, option in (
        (Stage.ACQUIRE, args.acquisitions),
        (Stage.CONVERT, args.conversions),
        (Stage.DISPOSE, args.disposals),
    ):
        tables[stage] = load_stage_csv(Path(option)) if option else []
    return tables


def _run(args: argparse.Namespace, cfg: Config) -> RunResult:
    tables = _load_tables(args, cfg)
    runner = ChainRunner(engine=cfg.engine, currencies=cfg.currencies)
    return runner.run(tables[Stage.ACQUIRE], tables[Stage.CONVERT], tables[Stage.DISPOSE])


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_report(args: argparse.Namespace, cfg: Config) -> None:
    from fifochain.ledger.run_report import RunReport

    result = _run(args, cfg)
    report = RunReport(result, cfg.display, cfg.currencies, epsilon=cfg.engine.epsilon)
    print(report.summary_text())
    print(report.detail_text())

    if args.csv:
        report.export_csv(Path(args.csv))
        print(f"\nDetail saved to {args.csv}")
    if args.json:
        report.export_json(Path(args.json))
        print(f"\nReport saved to {args.json}")


def _cmd_lots(args: argparse.Namespace, cfg: Config) -> None:
    from fifochain.ledger.lot_viewer import format_open_inventory

    result = _run(args, cfg)
    print(format_open_inventory(result, cfg.currencies, cfg.display))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _add_input_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workbook", "-w", type=str, help="JSON workbook with all three tables")
    parser.add_argument("--acquisitions", "-a", type=str, help="Stage 1 CSV (A spent, B received)")
    parser.add_argument("--conversions", "-b", type=str, help="Stage 2 CSV (B spent, C received)")
    parser.add_argument("--disposals", "-d", type=str, help="Stage 3 CSV (C sold, D received)")
    parser.add_argument("--config", "-c", type=str, help="Config file path")
    parser.add_argument("--json-log", action="store_true", help="JSON log output")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="fifochain",
        description="FIFO cost basis and realized gains across a three-stage currency chain",
    )
    sub = parser.add_subparsers(dest="command")

    report_parser = sub.add_parser("report", help="Totals, alerts and FIFO detail rows")
    _add_input_args(report_parser)
    report_parser.add_argument("--csv", type=str, help="Export detail rows to CSV")
    report_parser.add_argument("--json", type=str, help="Export full report to JSON")

    lots_parser = sub.add_parser("lots", help="Open lots left after the run")
    _add_input_args(lots_parser)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        cfg = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(level=cfg.log_level, json_output=args.json_log)
    logger.info(
        "fifochain %s (%s -> %s -> %s -> %s, zero-cost policy %s)",
        args.command, cfg.currencies.origin, cfg.currencies.intermediate,
        cfg.currencies.final, cfg.currencies.settlement, cfg.engine.zero_cost_policy,
    )

    try:
        if args.command == "lots":
            _cmd_lots(args, cfg)
        else:
            _cmd_report(args, cfg)
    except RecordFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
