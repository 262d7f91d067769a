"""
Fault Log

Plain-text, one-line-per-event log files in the report directory
(`error.log`, `access.log`, ...).

DESIGN RULES:
- Never throws
- Nothing is written without a directory
- Line format: [<timestamp>] <message> @ <url>
"""

import logging
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)

LINE_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class FaultLog:
    """
    Writes fault lines through dedicated, non-propagating loggers.

    One logger (and FileHandler) per log file, so the lines never reach the
    application's console output.
    """

    def __init__(self, directory: Optional[str] = None):
        self._directory = Path(directory) if directory else None
        self._loggers: Dict[str, logging.Logger] = {}

    @property
    def directory(self) -> Optional[Path]:
        return self._directory

    def path(self, name: str = "error") -> Optional[Path]:
        if self._directory is None:
            return None
        return self._directory / f"{name}.log"

    def write(self, message: str, name: str = "error", url: Optional[str] = None) -> None:
        """
        Append one line to `<directory>/<name>.log`.

        Must not throw - failures are logged and ignored.
        """
        if self._directory is None:
            return
        try:
            self._get_logger(name).info(f"{message.strip()} @ {url or ''}")
        except Exception as e:
            logger.warning(f"Failed to write fault log '{name}': {e}")

    def close(self) -> None:
        for fault_logger in self._loggers.values():
            for handler in fault_logger.handlers[:]:
                handler.close()
                fault_logger.removeHandler(handler)
        self._loggers = {}

    def _get_logger(self, name: str) -> logging.Logger:
        if name in self._loggers:
            return self._loggers[name]

        path = self.path(name)
        path.parent.mkdir(parents=True, exist_ok=True)

        fault_logger = logging.getLogger(f"faultlog.{path.resolve()}")
        fault_logger.setLevel(logging.INFO)
        fault_logger.propagate = False
        if not fault_logger.handlers:
            handler = logging.FileHandler(path, encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter(fmt=LINE_FORMAT, datefmt=DATE_FORMAT))
            fault_logger.addHandler(handler)

        self._loggers[name] = fault_logger
        return fault_logger
