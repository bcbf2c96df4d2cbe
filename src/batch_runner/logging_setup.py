"""Console + log file sink for supervisor events."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

PACKAGE_LOGGER = "batch_runner"
LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SafeFileHandler(logging.FileHandler):
    """Append-only file handler that never fails the logging caller.

    The file is opened lazily on first emit, so a missing or read-only
    location surfaces here instead of at startup. Every failure is reported
    as one warning line on the console and the record is dropped from the
    file.
    """

    def __init__(self, path: Path, *, console=None) -> None:
        super().__init__(str(path), mode="a", encoding="utf-8", delay=True)
        self._console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        error = sys.exc_info()[1]
        console = self._console or sys.stdout
        timestamp = datetime.now().strftime(DATE_FORMAT)
        try:
            console.write(
                f"[{timestamp}] WARNING Failed to write to log file {self.baseFilename}: {error}\n",
            )
            console.flush()
        except (OSError, ValueError):  # pragma: no cover - console gone
            return
        if self.stream is not None:
            try:
                self.stream.close()
            except OSError:  # pragma: no cover
                pass
            self.stream = None


def setup_logging(*, log_path: Path, level: int | str = logging.INFO) -> logging.Logger:
    """Configure the package logger with console and file handlers.

    Call this once, before the first task is launched.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    file_handler = SafeFileHandler(log_path, console=sys.stdout)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
