"""Logging setup and FlightLogger circular-buffer handler for diagnosing bad model output."""

import logging
import re
import sys
from collections import deque
from datetime import datetime, timezone
from pathlib import Path

from pokiface.core.config import get_config

FLIGHT_LOG_CAPACITY = 50_000
# Relative to cwd when no config is provided.
DEFAULT_FORENSICS_DIR = Path.cwd() / "logs" / "forensics"

_LABEL_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")

_flight_logger: "FlightLogger | None" = None


class FlightLogger(logging.Handler):
    """
    Circular buffer handler: keeps the last 50,000 log records (all levels) in memory.
    dump(label) writes the buffer to {forensics_dir}/{label}_{timestamp}.log.
    """

    def __init__(
        self,
        capacity: int = FLIGHT_LOG_CAPACITY,
        forensics_dir: str | Path | None = None,
    ) -> None:
        super().__init__(level=logging.DEBUG)
        self._buffer: deque[logging.LogRecord] = deque(maxlen=capacity)
        self._forensics_dir = Path(forensics_dir if forensics_dir is not None else DEFAULT_FORENSICS_DIR)

    def emit(self, record: logging.LogRecord) -> None:
        self._buffer.append(record)

    def dump(self, label: str) -> str:
        """Write buffer to forensics dir; return path to the written file."""
        self._forensics_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        safe_label = _LABEL_UNSAFE.sub("-", label).strip("-") or "pokiface"
        filepath = self._forensics_dir / f"{safe_label}_{timestamp}.log"
        formatter = self.formatter or logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        with open(filepath, "w") as f:
            for record in self._buffer:
                f.write(formatter.format(record) + "\n")
        return str(filepath)

    def __len__(self) -> int:
        return len(self._buffer)


def get_flight_logger() -> FlightLogger | None:
    """Return the global FlightLogger handler created by setup_logging(), if any."""
    return _flight_logger


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Invariants:
    - The root logger is set to DEBUG so that all records reach handlers.
    - Console handler logs at cfg.log_level (WARNING by default, DEBUG with verbose=True); raw model output
      logged at DEBUG is otherwise kept only in the FlightLogger buffer.
    - A FlightLogger handler captures all levels at DEBUG into an in-memory circular buffer.
    """
    global _flight_logger
    cfg = get_config()

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=datefmt)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # Remove existing handlers so we don't duplicate when called again
    for h in root.handlers[:]:
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else cfg.log_level.upper())
    console.setFormatter(formatter)
    root.addHandler(console)

    flight = FlightLogger(
        capacity=FLIGHT_LOG_CAPACITY,
        forensics_dir=cfg.forensics_dir,
    )
    flight.setLevel(logging.DEBUG)
    flight.setFormatter(formatter)
    root.addHandler(flight)
    _flight_logger = flight

    # Keep urllib3 connection chatter out of the flight buffer.
    logging.getLogger("urllib3").setLevel(logging.INFO)
