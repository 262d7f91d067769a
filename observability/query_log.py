"""
Query Log

Append-only buffer of instrumented database calls for one request.

DESIGN RULES:
- Append-only while the request runs
- No-op when diagnostics are disabled
- Call site points at application code, not at the instrumentation
"""

import sys
from typing import Iterator, List, Optional, Union

from schemas.snapshot import FAILED_ROWS, UNKNOWN_ROWS, QueryRecord


def _normalize_rows(rows: Optional[Union[int, str]]) -> Union[int, str]:
    if rows is None:
        return FAILED_ROWS
    if isinstance(rows, int) and rows < 0:
        return UNKNOWN_ROWS
    return rows


class QueryLog:
    """
    Ordered list of QueryRecords.

    `record()` takes a `stacklevel` the same way `warnings.warn` does:
    1 means the function calling `record`, 2 its caller, and so on.
    """

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self._records: List[QueryRecord] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record(
        self,
        statement: str,
        rows: Optional[Union[int, str]],
        elapsed: float,
        *,
        stacklevel: int = 1,
    ) -> None:
        """
        Append one executed statement.

        Args:
            statement: SQL text as sent to the driver
            rows: Row count (negative when unknown), or None / "-" when the statement failed
            elapsed: Execution time in seconds
            stacklevel: Frames above this call to report as the call site
        """
        if not self._enabled:
            return

        file, line = "", 0
        try:
            frame = sys._getframe(stacklevel)
            file, line = frame.f_code.co_filename, frame.f_lineno
        except ValueError:
            pass  # stack shallower than requested

        self._records.append(QueryRecord(
            statement=statement,
            rows=_normalize_rows(rows),
            elapsed=max(float(elapsed), 0.0),
            file=file,
            line=line,
        ))

    @property
    def records(self) -> List[QueryRecord]:
        return list(self._records)

    def total_time(self) -> float:
        return sum(r.elapsed for r in self._records)

    def clear(self) -> None:
        self._records = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[QueryRecord]:
        return iter(list(self._records))
