"""Utility helpers shared across the network and scenario modules."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

LOGFILE = "logfile.log"
WARNINGS_LOGFILE = "logfileWarningsErrors.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

UNDEFINED_TIME = "undefined"


def configure_console_logging(level: int = logging.INFO) -> None:
    """Attach a console handler to the root logger."""

    logging.basicConfig(level=level, format=LOG_FORMAT)


@contextmanager
def output_directory_logging(output_dir: str | Path) -> Iterator[Path]:
    """Create `output_dir` and mirror log records into it for the scope of the block.

    All records go to ``logfile.log``; warnings and errors are additionally
    written to ``logfileWarningsErrors.log``. Failure to create the directory
    propagates.
    """

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    full_handler = logging.FileHandler(output_dir / LOGFILE, encoding="utf-8")
    full_handler.setFormatter(formatter)
    warn_handler = logging.FileHandler(output_dir / WARNINGS_LOGFILE, encoding="utf-8")
    warn_handler.setLevel(logging.WARNING)
    warn_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.addHandler(full_handler)
    root.addHandler(warn_handler)
    logging.getLogger(__name__).info("Logging to output directory %s", output_dir)
    try:
        yield output_dir
    finally:
        for handler in (full_handler, warn_handler):
            root.removeHandler(handler)
            handler.close()


def format_time(seconds: Optional[float]) -> str:
    """Format seconds since midnight as MATSim ``HH:MM:SS`` (hours may exceed 24)."""

    if seconds is None:
        return UNDEFINED_TIME
    total = int(round(seconds))
    if total < 0:
        raise ValueError(f"time must not be negative, got {seconds}")
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
