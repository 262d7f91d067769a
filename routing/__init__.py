# Routing Package
from routing.router import Debugger, last_runtime_error
from routing.classifier import classify_request, is_ajax
from routing.middleware import DebuggerMiddleware

__all__ = ["Debugger", "DebuggerMiddleware", "classify_request", "is_ajax", "last_runtime_error"]
