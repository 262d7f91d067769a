"""
Debugger Middleware

Hooks the debugger into the ASGI request lifecycle: one diagnostics
context per request, exceptions routed instead of crashing the worker,
and the end-of-request step run on every exit path.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from observability.context import bind_context, reset_context
from routing.router import Debugger


class DebuggerMiddleware(BaseHTTPMiddleware):
    """Binds a RequestDiagnostics context around each request."""

    def __init__(self, app: ASGIApp, debugger: Debugger):
        super().__init__(app)
        self._debugger = debugger

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        debugger = self._debugger
        if not debugger.mode.enabled:
            return await call_next(request)

        context = await debugger.open_request(request)
        token = bind_context(context)
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                response = debugger.handle_request_exception(exc, context)
            return await debugger.finish_request(context, request, response)
        finally:
            reset_context(token)
