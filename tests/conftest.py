import sys
from pathlib import Path
from typing import Dict, Optional

import pytest
from starlette.requests import Request

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import routing.router as router_module
from memory.redirect import RedirectMemory
from memory.store import InMemorySnapshotStore


def _build_request(
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    path: str = "/",
    method: str = "GET",
) -> Request:
    """Build a bare Starlette request for unit tests."""
    raw = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw.append((b"cookie", cookie.encode("latin-1")))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "scheme": "http",
        "query_string": b"",
        "headers": raw,
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
        "http_version": "1.1",
    }
    return Request(scope)


@pytest.fixture
def memory():
    return RedirectMemory(store=InMemorySnapshotStore(), cookie_name="rs-debugger")


@pytest.fixture(autouse=True)
def release_hooks():
    """Never leak installed hooks from one test into the next."""
    yield
    installed = router_module._installed
    if installed is not None:
        installed.uninstall()


@pytest.fixture
def make_request():
    """Factory for bare Starlette requests: make_request(headers=..., cookies=...)."""
    return _build_request
