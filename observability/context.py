"""
Request Diagnostics Context

Everything the debugger accumulates while one request is handled: the
timing clock, the query log, attachments, inline error fragments and the
snapshots carried over from earlier redirects.

DESIGN RULES:
- Created at request start, discarded at request end
- Passed explicitly where possible; the ContextVar binding only exists so
  process-wide hooks (warnings, SQL wrappers) can find the active request
- No routing decisions here
"""

import os
import pprint
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Dict, Iterator, List, Mapping, Optional

from starlette.datastructures import UploadFile
from starlette.requests import Request

from observability.query_log import QueryLog
from observability.timing import TimingClock
from schemas.errors import CapturedError
from schemas.snapshot import Attachment, DiagnosticSnapshot


_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

MAX_DUMP_LENGTH = 2000


class RequestDiagnostics:
    """
    Mutable per-request diagnostic state.

    The immutable DiagnosticSnapshot is derived from it at the end of the
    request (see observability.snapshot.build_snapshot).
    """

    def __init__(
        self,
        url: Optional[str] = None,
        method: Optional[str] = None,
        request_headers: Optional[Mapping[str, str]] = None,
        variables: Optional[Dict[str, Dict[str, str]]] = None,
        session: Optional[Mapping[str, Any]] = None,
        ajax: bool = False,
        enabled: bool = True,
    ):
        self.url = url
        self.method = method
        self.request_headers: Dict[str, str] = dict(request_headers or {})
        self.variables: Dict[str, Dict[str, str]] = variables or {}
        self.session = session
        self.ajax = ajax

        self.clock = TimingClock()
        self.query_log = QueryLog(enabled=enabled)
        self.attachments: Dict[str, Attachment] = {}
        self.fragments: List[str] = []
        self.history: List[DiagnosticSnapshot] = []
        self.fatal_error: Optional[CapturedError] = None
        self.memory_consumed = False
        self.response_started = False

    def add_attachment(self, mark: str, name: str, text: Optional[str] = None) -> None:
        self.attachments[mark] = Attachment(name=name, text=text)

    @classmethod
    async def from_request(
        cls,
        request: Request,
        *,
        ajax: bool = False,
        enabled: bool = True,
        capture_body: bool = True,
    ) -> "RequestDiagnostics":
        """
        Build a context from an incoming Starlette request.

        Args:
            request: The incoming request
            ajax: Whether the request was classified as an XHR call
            enabled: False turns the query log into a no-op
            capture_body: Parse form bodies into the POST/FILES groups
        """
        variables = {
            "GET": _dump_items(request.query_params.multi_items()),
            "POST": {},
            "FILES": {},
            "COOKIE": _dump_items(request.cookies.items()),
            "REQUEST": dict(request.headers),
            "SERVER": _server_metadata(request),
        }
        if capture_body and _has_form(request):
            post, files = await _read_form(request)
            variables["POST"] = post
            variables["FILES"] = files

        return cls(
            url=str(request.url),
            method=request.method,
            request_headers=dict(request.headers),
            variables=variables,
            session=request.scope.get("session"),
            ajax=ajax,
            enabled=enabled,
        )


def dump_value(value: Any) -> str:
    """Readable, bounded text dump of a variable."""
    text = value if isinstance(value, str) else pprint.pformat(value, width=100)
    if len(text) > MAX_DUMP_LENGTH:
        return text[:MAX_DUMP_LENGTH - 10] + "...[TRUNC]"
    return text


def _dump_items(items) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in items:
        if key in out:
            out[key] = f"{out[key]}, {dump_value(value)}"
        else:
            out[key] = dump_value(value)
    return out


def _server_metadata(request: Request) -> Dict[str, str]:
    scope = request.scope
    server = scope.get("server")
    client = scope.get("client")
    return {
        "REQUEST_METHOD": request.method,
        "REQUEST_URI": request.url.path + (f"?{request.url.query}" if request.url.query else ""),
        "SCHEME": request.url.scheme,
        "SERVER_PROTOCOL": f"HTTP/{scope.get('http_version', '1.1')}",
        "SERVER_ADDR": f"{server[0]}:{server[1]}" if server else "",
        "REMOTE_ADDR": f"{client[0]}:{client[1]}" if client else "",
        "ROOT_PATH": scope.get("root_path", ""),
        "PID": str(os.getpid()),
    }


def _has_form(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return request.method in ("POST", "PUT", "PATCH") and content_type.startswith(_FORM_TYPES)


async def _read_form(request: Request):
    post: Dict[str, str] = {}
    files: Dict[str, str] = {}
    # Cache the raw body first so the endpoint can still read it.
    await request.body()
    form = await request.form()
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files[key] = f"{value.filename} ({value.content_type}, {value.size} bytes)"
            else:
                post[key] = dump_value(value)
    finally:
        await form.close()
    return post, files


_current_context: ContextVar[Optional[RequestDiagnostics]] = ContextVar("debugger_request", default=None)


def current_context() -> Optional[RequestDiagnostics]:
    """The diagnostics context of the request being handled, if any."""
    return _current_context.get()


def bind_context(context: Optional[RequestDiagnostics]) -> Token:
    return _current_context.set(context)


def reset_context(token: Token) -> None:
    _current_context.reset(token)


@contextmanager
def use_context(context: RequestDiagnostics) -> Iterator[RequestDiagnostics]:
    """Bind a context for the duration of a block (scripts, workers, tests)."""
    token = bind_context(context)
    try:
        yield context
    finally:
        reset_context(token)
