"""Logging setup: readable lines for a terminal, JSON lines for pipelines.

The report itself goes to stdout, so logs default to stderr.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import IO


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamped from the record itself."""

    def format(self, record: logging.LogRecord) -> str:
        import orjson

        entry = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exc"] = self.formatException(record.exc_info)
        return orjson.dumps(entry).decode()


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Configure the root logger. Call once per CLI invocation."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)-8s [%(name)s] %(message)s"))
    root.addHandler(handler)
