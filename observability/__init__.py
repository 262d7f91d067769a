# Observability Package
from observability.timing import TimingClock
from observability.query_log import QueryLog
from observability.context import RequestDiagnostics, current_context, use_context
from observability.snapshot import build_snapshot
from observability.fault_log import FaultLog
from observability.notifier import EmailNotifier

__all__ = [
    "TimingClock",
    "QueryLog",
    "RequestDiagnostics",
    "current_context",
    "use_context",
    "build_snapshot",
    "FaultLog",
    "EmailNotifier",
]
