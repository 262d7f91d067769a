"""
FastAPI Dependencies

All object creation happens here, not per request.

RULE: routes and middleware get the Debugger from get_debugger(); nothing
else constructs one.
"""

import os
import sqlite3
from functools import lru_cache

from app.core.config import settings
from instrumentation.dbapi import InstrumentedConnection
from memory.redirect import RedirectMemory
from memory.store import InMemorySnapshotStore
from observability.notifier import EmailNotifier
from rendering.sink import HtmlRenderer
from routing.router import Debugger


@lru_cache(maxsize=1)
def get_debugger() -> Debugger:
    """
    Create and cache the Debugger singleton.

    Components wired here:
    - HtmlRenderer: markup for errors and the debug bar
    - RedirectMemory: snapshot handoff across redirects
    - EmailNotifier: notifications in silent/file modes

    Returns:
        Debugger: The application's error router.
    """
    memory = RedirectMemory(
        store=InMemorySnapshotStore(ttl_seconds=settings.memory_ttl_seconds),
        cookie_name=settings.cookie_name,
        max_age=settings.memory_ttl_seconds,
    )
    report_dir = settings.report_dir
    if report_dir and not os.path.isabs(report_dir):
        report_dir = os.path.join(settings.base_dir, report_dir)

    return Debugger(
        settings.mode,
        report_dir,
        settings.error_level,
        renderer=HtmlRenderer(),
        memory=memory,
        notifier=EmailNotifier(host=settings.smtp_host, port=settings.smtp_port),
        notify_email=settings.notify_email,
        log_suppressed=settings.log_suppressed,
        report_prefix=settings.report_prefix,
    )


@lru_cache(maxsize=1)
def get_database() -> InstrumentedConnection:
    """Instrumented sqlite connection shared by the demo routes."""
    connection = sqlite3.connect(settings.database_path, check_same_thread=False)
    db = InstrumentedConnection(connection, get_debugger().notify_query)
    db.execute("CREATE TABLE IF NOT EXISTS visits (id INTEGER PRIMARY KEY, path TEXT NOT NULL)")
    return db
