"""
Diagnostic Snapshot Builder

Freezes a RequestDiagnostics context into a DiagnosticSnapshot.
"""

import logging
import tracemalloc
from typing import Mapping, Optional

import psutil

from observability.context import RequestDiagnostics, dump_value
from schemas.snapshot import DiagnosticSnapshot


logger = logging.getLogger(__name__)


def script_peak_memory() -> int:
    """Peak bytes allocated by Python code, 0 unless tracemalloc is tracing."""
    if not tracemalloc.is_tracing():
        return 0
    return tracemalloc.get_traced_memory()[1]


def system_peak_memory() -> int:
    """Peak memory the OS gave this process (current RSS where no peak is reported)."""
    try:
        info = psutil.Process().memory_info()
    except psutil.Error as e:
        logger.warning(f"Memory measurement failed: {e}")
        return 0
    return int(getattr(info, "peak_wset", 0) or info.rss)


def build_snapshot(
    context: RequestDiagnostics,
    response_headers: Optional[Mapping[str, str]] = None,
) -> DiagnosticSnapshot:
    """
    Build the immutable snapshot for the current point of the request.

    Args:
        context: The request's diagnostics context
        response_headers: Outgoing headers, when a response exists yet
    """
    response = dict(response_headers or {})

    variables = {group: dict(values) for group, values in context.variables.items()}
    variables["SESSION"] = {
        str(key): dump_value(value) for key, value in (context.session or {}).items()
    }
    variables["RESPONSE"] = response

    return DiagnosticSnapshot(
        url=context.url,
        method=context.method,
        queries=context.query_log.records,
        query_time=context.query_log.total_time(),
        peak_memory_script=script_peak_memory(),
        peak_memory_system=system_peak_memory(),
        request_headers=context.request_headers,
        response_headers=response,
        variables=variables,
        total_time=context.clock.elapsed(),
        attachments=dict(context.attachments),
        errors=list(context.fragments),
    )
