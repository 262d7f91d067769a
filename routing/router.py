"""
Debugger (error router)

The central authority of the diagnostics subsystem. Owns the operating
mode, installs the process-wide hooks and decides, for every captured
error, which sink receives it.

FLOW:
hook / middleware → CapturedError → route() → inline | file report | silent log

ROUTING GUARANTEES:
1. Every interception point funnels into route()
2. Maskable errors below the reporting threshold are dropped unless
   log_suppressed is set
3. The fault line is always logged; the text log file is skipped only in
   inline (developer) mode
4. Exactly one sink per error
5. The only failure allowed to escape is a broken report directory in
   file mode, and it terminates the process
"""

import atexit
import logging
import os
import sys
import threading
import warnings
from typing import Optional, Union

from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, Response

from memory.redirect import RedirectMemory
from observability.context import RequestDiagnostics, current_context
from observability.fault_log import FaultLog
from observability.notifier import EmailNotifier
from observability.snapshot import build_snapshot
from rendering.sink import HtmlRenderer, Renderer
from reports.deduper import DEFAULT_PREFIX, FileReportDeduper
from routing.classifier import Classifier, allows_body, classify_request, is_ajax
from routing.injection import inject_markup
from schemas.errors import FATAL_EXCEPTIONS, CapturedError, Severity
from schemas.exceptions import HooksAlreadyInstalledError, ReportDirectoryError
from schemas.modes import OperatingMode, parse_mode


logger = logging.getLogger(__name__)

# Debugger whose hooks are currently installed in this process.
_installed: Optional["Debugger"] = None


def last_runtime_error() -> Optional[CapturedError]:
    """
    The last error the interpreter reported as unhandled, if any.

    Set by the interpreter before sys.excepthook runs, so at exit it names
    the exception that ended the process.
    """
    exc = getattr(sys, "last_exc", None) or getattr(sys, "last_value", None)
    if exc is None:
        return None
    located = CapturedError.from_exception(exc)
    return CapturedError.fatal(
        message=located.message or type(exc).__name__,
        file=located.file,
        line=located.line,
        cause=exc,
    )


class Debugger:
    """
    Mode state machine and error router.

    One instance per application; per-request state lives in
    RequestDiagnostics, which is passed in or looked up from the current
    request binding.
    """

    def __init__(
        self,
        mode: Union[bool, str, None, OperatingMode] = False,
        report_dir: Optional[str] = None,
        error_level: Optional[int] = None,
        *,
        renderer: Optional[Renderer] = None,
        memory: Optional[RedirectMemory] = None,
        notifier: Optional[EmailNotifier] = None,
        notify_email: Optional[str] = None,
        log_suppressed: bool = False,
        classifier: Classifier = classify_request,
        report_prefix: str = DEFAULT_PREFIX,
    ):
        """
        Initialize the debugger.

        Args:
            mode: False disables, True renders inline, "file" writes
                reports, any other string logs silently
            report_dir: Directory for reports and text logs; enables
                downgrading inline mode to file reports
            error_level: Reporting threshold bitmask (default: everything)
            renderer: Markup sink for errors and snapshots
            memory: Redirect handoff for non-renderable responses
            notifier: Email sender for silent/file modes
            notify_email: Notification address
            log_suppressed: Route errors masked by the threshold anyway
            classifier: Request-mode heuristic
            report_prefix: File name prefix of reports
        """
        self._mode = parse_mode(mode)
        self._report_dir = report_dir
        self._error_level = int(Severity.ALL) if error_level is None else int(error_level)
        self._renderer = renderer or HtmlRenderer()
        self._memory = memory or RedirectMemory()
        self._notifier = notifier or EmailNotifier()
        self._email = notify_email
        self._log_suppressed = log_suppressed
        self._classifier = classifier
        self._reports = FileReportDeduper(report_dir, prefix=report_prefix)
        self._fault_log = FaultLog(report_dir)

        self._previous_hooks = None
        # Last exception seen by sys.excepthook; the interpreter stores the same
        # object in sys.last_exc, so it must not be reported again at exit.
        self._last_hooked: Optional[BaseException] = None
        self._guard = threading.local()
        self._baseline_error = last_runtime_error()

    # =====================================================
    # STATE
    # =====================================================

    @property
    def mode(self) -> OperatingMode:
        return self._mode

    @property
    def error_level(self) -> int:
        return self._error_level

    @property
    def notify_email(self) -> Optional[str]:
        return self._email

    @property
    def reports(self) -> FileReportDeduper:
        return self._reports

    @property
    def fault_log(self) -> FaultLog:
        return self._fault_log

    @property
    def installed(self) -> bool:
        return _installed is self

    def set_mail(self, address: Optional[str]) -> None:
        """Notification address for errors nobody sees."""
        self._email = address

    def disable(self, terminate: bool = False) -> OperatingMode:
        """
        Stop rendering diagnostics into responses.

        terminate=True (or leaving inline mode) also drops the notification
        address. Without terminate, a configured report directory keeps
        file reports going; otherwise everything stops. Never raises the
        mode above the current one.
        """
        if terminate or self._mode is OperatingMode.INLINE:
            self._email = None

        if not terminate and self._mode.enabled and self._report_dir:
            target = OperatingMode.FILE_REPORT
        else:
            target = OperatingMode.DISABLED

        if target.rank > self._mode.rank:
            target = self._mode

        if target is not self._mode:
            logger.info(f"Debugger mode {self._mode.value} -> {target.value}")
        self._mode = target
        return self._mode

    # =====================================================
    # HOOKS
    # =====================================================

    def install(self) -> bool:
        """
        Register the warning, exception and shutdown hooks.

        Returns:
            False when the debugger is disabled (nothing installed).

        Raises:
            HooksAlreadyInstalledError: hooks are already installed in this process
        """
        global _installed
        if not self._mode.enabled:
            return False
        if _installed is not None:
            raise HooksAlreadyInstalledError("Debugger hooks are already installed in this process")

        self._previous_hooks = (warnings.showwarning, sys.excepthook, threading.excepthook)
        warnings.showwarning = self._show_warning
        sys.excepthook = self._excepthook
        threading.excepthook = self._thread_excepthook
        atexit.register(self.handle_shutdown)

        self._baseline_error = last_runtime_error()
        _installed = self
        logger.info(f"Debugger hooks installed (mode={self._mode.value})")
        return True

    def uninstall(self) -> None:
        """Restore the hooks that were active before install()."""
        global _installed
        if _installed is not self:
            return
        warnings.showwarning, sys.excepthook, threading.excepthook = self._previous_hooks
        atexit.unregister(self.handle_shutdown)
        self._previous_hooks = None
        _installed = None

    def _show_warning(self, message, category, filename, lineno, file=None, line=None) -> None:
        self.route(CapturedError.from_warning(message, category, filename, lineno))

    def _excepthook(self, exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            self._previous_hooks[1](exc_type, exc, tb)
            return
        self._last_hooked = exc
        self.handle_exception(exc)

    def _thread_excepthook(self, args) -> None:
        if args.exc_type is SystemExit:
            return
        self.handle_exception(args.exc_value)

    # =====================================================
    # ENTRY POINTS
    # =====================================================

    def handle_error(
        self,
        code: int,
        message: str,
        file: str,
        line: int,
        context: Optional[RequestDiagnostics] = None,
    ) -> bool:
        """Route a runtime-raised (non-exception) error."""
        return self.route(CapturedError.from_error(code, message, file, line), context)

    def handle_exception(
        self,
        exc: BaseException,
        context: Optional[RequestDiagnostics] = None,
    ) -> bool:
        """Route an exception nothing else handled."""
        return self.route(CapturedError.from_exception(exc), context)

    def notify_query(
        self,
        statement: str,
        rows: Optional[Union[int, str]],
        elapsed: float,
        *,
        stacklevel: int = 1,
    ) -> None:
        """
        Record one executed statement on the current request's query log.

        Called by SQL wrappers; `stacklevel` counts frames above this call,
        as in warnings.warn.
        """
        if not self._mode.enabled:
            return
        context = current_context()
        if context is None:
            return
        context.query_log.record(statement, rows, elapsed, stacklevel=stacklevel + 1)

    def add_attachment(
        self,
        mark: str,
        name: str,
        text: Optional[str] = None,
        context: Optional[RequestDiagnostics] = None,
    ) -> None:
        """Extra named tab on the current request's debug bar."""
        context = context or current_context()
        if context is not None:
            context.add_attachment(mark, name, text)

    def error_access(
        self,
        exc: BaseException,
        path: str,
        remote_addr: Optional[str] = None,
        context: Optional[RequestDiagnostics] = None,
    ) -> None:
        """
        Record a refused access attempt.

        In inline mode the exception is re-raised so the developer sees it;
        otherwise one line goes to access.log.
        """
        if self._mode is OperatingMode.INLINE:
            raise exc
        context = context or current_context()
        url = context.url if context else None
        self._fault_log.write(f"{exc}. From {remote_addr or '-'} in /{path.lstrip('/')}", name="access", url=url)

    # =====================================================
    # ROUTING
    # =====================================================

    def is_masked(self, error: CapturedError) -> bool:
        """True if the threshold hides this error and suppressed errors are not logged."""
        if not error.kind.maskable or self._log_suppressed:
            return False
        return (int(error.code) & self._error_level) != int(error.code)

    def route(self, error: CapturedError, context: Optional[RequestDiagnostics] = None) -> bool:
        """
        Dispatch one captured error.

        Returns:
            True if the error was routed, False if it was dropped.
        """
        if not self._mode.enabled or self.is_masked(error):
            return False
        if getattr(self._guard, "active", False):
            # An error raised while routing another one.
            logger.debug(f"Nested error ignored: {error.message}")
            return False

        self._guard.active = True
        try:
            context = context or current_context()
            self._record(error, context)

            if self._mode is OperatingMode.INLINE:
                self._render_inline(error, context)
            elif self._mode is OperatingMode.FILE_REPORT:
                self._write_report(error, context)
            return True
        finally:
            self._guard.active = False

    def _record(self, error: CapturedError, context: Optional[RequestDiagnostics]) -> None:
        url = context.url if context else None
        line = f"{error.message} ({int(error.code)}) In {error.file} at line {error.line}"
        logger.error(f"{line} @ {url or ''}")

        if self._mode is OperatingMode.INLINE:
            return

        self._fault_log.write(line, url=url)
        if self._email:
            host = context.request_headers.get("host") if context else None
            self._notifier.notify(self._email, error.message, host_name=host)

    def _render_inline(self, error: CapturedError, context: Optional[RequestDiagnostics]) -> None:
        try:
            if context is not None:
                context.fragments.append(self._renderer.render_error(error))
                return
            text = error.format_traceback() or f"{error.label}: {error.message} in {error.file} on line {error.line}\n"
            sys.stderr.write(text)
            sys.stderr.flush()
        except Exception as e:
            logger.warning(f"Failed to render error inline: {e}")

    def _write_report(self, error: CapturedError, context: Optional[RequestDiagnostics]) -> None:
        try:
            digest = self._reports.digest(*error.signature)
            if self._reports.exists(digest):
                return
        except ReportDirectoryError as e:
            self._terminate(e)
            return

        try:
            snapshot = build_snapshot(context) if context is not None else None
            document = self._renderer.render_report(error, snapshot, context.url if context else None)
        except Exception as e:
            logger.warning(f"Failed to render fault report: {e}")
            return

        try:
            self._reports.write(digest, document)
        except ReportDirectoryError as e:
            self._terminate(e)

    def _terminate(self, reason: Exception) -> None:
        """File mode without a usable directory: nothing can record the fault."""
        logger.critical(f"DEBUGGER: {reason}")
        logging.shutdown()
        os._exit(1)

    # =====================================================
    # REQUEST LIFECYCLE
    # =====================================================

    async def open_request(self, request: Request) -> RequestDiagnostics:
        """Create the diagnostics context for an incoming request."""
        ajax = is_ajax(request.headers)
        context = await RequestDiagnostics.from_request(
            request,
            ajax=ajax,
            enabled=self._mode.enabled,
            capture_body=self._mode in (OperatingMode.INLINE, OperatingMode.FILE_REPORT),
        )
        if self._mode is OperatingMode.INLINE:
            carried = self._memory.load(request, ajax=ajax)
            if carried is not None:
                context.history = carried
                context.memory_consumed = True
        return context

    def handle_request_exception(self, exc: Exception, context: RequestDiagnostics) -> Response:
        """
        Turn an exception that escaped the endpoint into a response.

        Fatal exceptions are only recorded here; handle_shutdown routes them.
        """
        if isinstance(exc, FATAL_EXCEPTIONS):
            context.fatal_error = CapturedError.from_exception(exc, fatal=True)
        else:
            self.handle_exception(exc, context)

        if self._mode is OperatingMode.INLINE:
            return HTMLResponse("<!DOCTYPE html>\n<html><body></body></html>\n", status_code=500)
        return self.fallback_response()

    def fallback_response(self) -> Response:
        """What the visitor sees when an error is not shown inline."""
        return PlainTextResponse("Internal Server Error", status_code=500)

    def handle_shutdown(self, context: Optional[RequestDiagnostics] = None) -> bool:
        """
        Last-chance check for fatal errors nothing else routed.

        Runs at the end of every request (with its context) and once at
        process exit (without). An error identical to the one present when
        the debugger started is stale and only reported in inline mode.

        Returns:
            True if a fatal error was routed.
        """
        if context is not None:
            error = context.fatal_error
        else:
            error = last_runtime_error()
            if error is not None and error.cause is self._last_hooked:
                return False
        if error is None:
            return False
        if self._mode is not OperatingMode.INLINE and error == self._baseline_error:
            return False
        return self.route(error, context)

    async def finish_request(
        self,
        context: RequestDiagnostics,
        request: Request,
        response: Response,
    ) -> Response:
        """
        End-of-request step: fatal check, then show or carry the diagnostics.

        Returns:
            The response to send (possibly a rebuilt one with the debug bar).
        """
        self.handle_shutdown(context)

        if context.memory_consumed:
            self._memory.expire(response)

        if self._mode is not OperatingMode.INLINE:
            return response

        try:
            request_mode = self._classifier(request.headers, response.headers)
            snapshot = build_snapshot(context, response.headers)
            if request_mode.renderable and allows_body(response.status_code):
                markup = "".join(context.fragments) + self._renderer.render_snapshot(snapshot, context.history)
                status = 500 if context.fragments else None
                return await inject_markup(response, markup, status_code=status)

            self._memory.save(
                snapshot,
                request,
                response,
                carried=context.history,
                response_started=context.response_started,
            )
        except Exception as e:
            logger.warning(f"Failed to finish request diagnostics: {e}")
        return response
