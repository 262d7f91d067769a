"""
File Report Deduper

Writes standalone HTML fault reports, at most one per fault signature.

A report file is named `<prefix>_<YYYY-MM-DD-HH-MM-SS>_<digest>.html`; the
digest is an md5 over (message, code, file, line), so a fault that keeps
recurring still produces a single file.
"""

import fcntl
import hashlib
import logging
import os
import re
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from schemas.exceptions import ReportDirectoryError


logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "exception"


def fault_digest(message: str, code: int, file: str, line: int) -> str:
    """Content hash identifying one fault signature."""
    return hashlib.md5(f"{message}-{int(code)}-{file}-{line}".encode("utf-8")).hexdigest()


class FileReportDeduper:
    """
    Report directory manager.

    exists() is a linear directory scan; reports are an operator-facing,
    low-frequency path. write() holds an exclusive lock across the
    check and the write so two requests cannot both write the same digest.
    """

    def __init__(self, directory: Optional[str], prefix: str = DEFAULT_PREFIX):
        self._directory = Path(directory) if directory else None
        self._prefix = prefix
        self._pattern = re.compile(rf"^{re.escape(prefix)}_[0-9\-]+_([0-9a-f]{{32}})\.html$")

    @property
    def directory(self) -> Optional[Path]:
        return self._directory

    def digest(self, message: str, code: int, file: str, line: int) -> str:
        return fault_digest(message, code, file, line)

    def filename(self, digest: str, when: Optional[datetime] = None) -> str:
        stamp = (when or datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
        return f"{self._prefix}_{stamp}_{digest}.html"

    def exists(self, digest: str) -> bool:
        """True if a report for `digest` is already in the directory."""
        directory = self._require_directory()
        try:
            if not directory.is_dir():
                return False
            with os.scandir(directory) as entries:
                for entry in entries:
                    match = self._pattern.match(entry.name)
                    if match and match.group(1) == digest:
                        return True
        except OSError as e:
            raise ReportDirectoryError(f"Cannot read report directory {directory}: {e}") from e
        return False

    def write(self, digest: str, document: str) -> Optional[Path]:
        """
        Write a report unless one for `digest` exists.

        Returns:
            Path of the new report, or None if it was a duplicate.

        Raises:
            ReportDirectoryError: no directory configured, or it cannot be written
        """
        directory = self._require_directory()
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with self._locked(directory):
                if self.exists(digest):
                    return None
                path = directory / self.filename(digest)
                tmp = directory / f".{path.name}.tmp"
                tmp.write_text(document, encoding="utf-8")
                tmp.rename(path)
        except OSError as e:
            raise ReportDirectoryError(f"Cannot write report into {directory}: {e}") from e

        logger.info(f"Fault report written: {path.name}")
        return path

    def reports(self) -> list:
        """All report files currently in the directory, oldest name first."""
        directory = self._require_directory()
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.iterdir() if self._pattern.match(p.name))

    def _require_directory(self) -> Path:
        if self._directory is None:
            raise ReportDirectoryError("Report directory is not set")
        return self._directory

    @contextmanager
    def _locked(self, directory: Path) -> Iterator[None]:
        lock_path = directory / f".{self._prefix}.lock"
        fh = lock_path.open("a+")
        try:
            fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                yield None
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
        finally:
            fh.close()
