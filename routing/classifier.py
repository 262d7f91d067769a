"""
Request-Mode Classifier

Best-effort guess whether visible markup can be injected into a response.
The headers come from application code the debugger knows nothing about, so
this is a heuristic; pass a different callable to Debugger(classifier=...)
to override it.
"""

import re
from typing import Callable, Iterable, Mapping, Tuple, Union

from schemas.modes import RequestMode


HeaderItems = Union[Mapping[str, str], Iterable[Tuple[str, str]]]
Classifier = Callable[[HeaderItems, HeaderItems], RequestMode]

_NON_HTML = re.compile(r"^(?!\s*text/html)", re.IGNORECASE)


def _items(headers: HeaderItems) -> Iterable[Tuple[str, str]]:
    if hasattr(headers, "items"):
        multi = getattr(headers, "multi_items", None)
        return multi() if callable(multi) else headers.items()
    return headers


def is_ajax(request_headers: HeaderItems) -> bool:
    """True for requests flagged as XMLHttpRequest."""
    for name, value in _items(request_headers):
        if name.lower() == "x-requested-with" and value == "XMLHttpRequest":
            return True
    return False


def classify_request(request_headers: HeaderItems, response_headers: HeaderItems) -> RequestMode:
    """
    Classify a request/response pair.

    AJAX wins; otherwise the first decisive response header in order:
    Location → REDIRECT, Content-Disposition or a non-HTML Content-Type →
    DOWNLOAD. Anything else is RENDERABLE.
    """
    if is_ajax(request_headers):
        return RequestMode.AJAX

    for name, value in _items(response_headers):
        header = name.strip().lower()
        if header == "location":
            return RequestMode.REDIRECT
        if header == "content-disposition":
            return RequestMode.DOWNLOAD
        if header == "content-type" and _NON_HTML.match(value):
            return RequestMode.DOWNLOAD
    return RequestMode.RENDERABLE


def allows_body(status_code: int) -> bool:
    """False for statuses that must not carry a body (1xx, 204, 304)."""
    return status_code >= 200 and status_code not in (204, 304)
