"""
DB-API Instrumentation

Wraps any DB-API 2.0 connection so every executed statement is timed and
reported to the debugger.

DESIGN RULES:
- Transparent: results, return values and exceptions are the driver's own
- A failed statement is reported with the "-" row marker, then re-raised
- Everything not instrumented is forwarded untouched
"""

import time
from typing import Any, Callable, Optional, Sequence, Union


QueryNotifier = Callable[..., None]


class InstrumentedCursor:
    """Cursor proxy timing execute() and executemany()."""

    def __init__(self, cursor: Any, notify: QueryNotifier):
        self._cursor = cursor
        self._notify = notify

    def execute(self, statement: str, parameters: Union[Sequence, dict] = ()) -> "InstrumentedCursor":
        self._timed(self._cursor.execute, statement, parameters, stacklevel=2)
        return self

    def executemany(self, statement: str, seq_of_parameters) -> "InstrumentedCursor":
        self._timed(self._cursor.executemany, statement, seq_of_parameters, stacklevel=2)
        return self

    def _timed(self, method: Callable, statement: str, parameters: Any, *, stacklevel: int) -> None:
        # stacklevel counts frames above this method, as in warnings.warn
        start = time.perf_counter()
        try:
            method(statement, parameters)
        except Exception:
            self._notify(statement, None, time.perf_counter() - start, stacklevel=stacklevel + 1)
            raise
        self._notify(statement, self._cursor.rowcount, time.perf_counter() - start, stacklevel=stacklevel + 1)

    def __iter__(self):
        return iter(self._cursor)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cursor, name)


class InstrumentedConnection:
    """
    Connection proxy handing out instrumented cursors.

    Usage:
        conn = InstrumentedConnection(sqlite3.connect(path), debugger.notify_query)
        conn.execute("SELECT 1").fetchall()
    """

    def __init__(self, connection: Any, notify: QueryNotifier):
        self._connection = connection
        self._notify = notify

    @property
    def raw(self) -> Any:
        """The wrapped driver connection."""
        return self._connection

    def cursor(self, *args, **kwargs) -> InstrumentedCursor:
        return InstrumentedCursor(self._connection.cursor(*args, **kwargs), self._notify)

    def execute(self, statement: str, parameters: Union[Sequence, dict] = ()) -> InstrumentedCursor:
        """Shortcut in the style of sqlite3.Connection.execute."""
        cursor = self.cursor()
        cursor._timed(cursor._cursor.execute, statement, parameters, stacklevel=2)
        return cursor

    def executemany(self, statement: str, seq_of_parameters) -> InstrumentedCursor:
        cursor = self.cursor()
        cursor._timed(cursor._cursor.executemany, statement, seq_of_parameters, stacklevel=2)
        return cursor

    def __enter__(self) -> "InstrumentedConnection":
        self._connection.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        return self._connection.__exit__(exc_type, exc, tb)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._connection, name)
