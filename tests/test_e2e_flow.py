"""
End-to-end tests through the ASGI stack.

A fresh Debugger per test, wired into the demo routes with dependency
overrides. Lifespan is not run, so hooks are only installed where a
test asks for it.
"""

import sqlite3
import warnings

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.demo import router as demo_router
from app.dependencies import get_database, get_debugger
from instrumentation.dbapi import InstrumentedConnection
from memory.redirect import RedirectMemory
from memory.store import InMemorySnapshotStore
from routing.middleware import DebuggerMiddleware
from routing.router import Debugger


AJAX = {"X-Requested-With": "XMLHttpRequest"}
HISTORY_ROW = 'class="debug-row-history"'


def build_client(debugger: Debugger) -> TestClient:
    connection = sqlite3.connect(":memory:", check_same_thread=False)
    db = InstrumentedConnection(connection, debugger.notify_query)
    db.execute("CREATE TABLE visits (id INTEGER PRIMARY KEY, path TEXT NOT NULL)")

    app = FastAPI()
    app.add_middleware(DebuggerMiddleware, debugger=debugger)
    app.include_router(demo_router)
    app.dependency_overrides[get_debugger] = lambda: debugger
    app.dependency_overrides[get_database] = lambda: db
    return TestClient(app)


@pytest.fixture
def inline_debugger():
    return Debugger(True, memory=RedirectMemory(store=InMemorySnapshotStore()))


@pytest.fixture
def client(inline_debugger):
    return build_client(inline_debugger)


# =====================================================
# INLINE MODE
# =====================================================

def test_page_gets_debug_bar(client):
    response = client.get("/")

    assert response.status_code == 200
    assert 'id="rs-debug-bar"' in response.text
    assert "SQL: " in response.text
    assert "INSERT INTO" in response.text
    assert "<td>?</td>" in response.text
    assert response.text.rstrip().endswith("</html>")
    assert int(response.headers["content-length"]) == len(response.content)


def test_redirect_snapshot_shows_on_next_page_once(client):
    """Test: redirect → next page shows its row → third page does not."""
    redirect = client.get("/redirect", follow_redirects=False)
    assert redirect.status_code == 303
    assert "rs-debug-bar" not in redirect.text
    assert "rs-debugger" in client.cookies

    landing = client.get("/")
    assert landing.text.count(HISTORY_ROW) == 1
    assert "http://testserver/redirect" in landing.text

    again = client.get("/")
    assert HISTORY_ROW not in again.text


def test_followed_redirect_carries_snapshot(client):
    response = client.get("/redirect")

    assert response.status_code == 200
    assert response.text.count(HISTORY_ROW) == 1


def test_ajax_never_renders_and_is_carried(client):
    """Test: XHR → JSON untouched, snapshot shown on the next full page."""
    response = client.get("/ajax", headers=AJAX)

    assert response.json() == {"visits": 1}
    assert "rs-debug-bar" not in response.text

    page = client.get("/")
    assert page.text.count(HISTORY_ROW) == 1
    assert "http://testserver/ajax" in page.text


def test_ajax_does_not_consume_pending_snapshots(client):
    client.get("/redirect", follow_redirects=False)
    client.get("/ajax", headers=AJAX)

    page = client.get("/")
    assert page.text.count(HISTORY_ROW) == 2


def test_download_is_not_rendered(client):
    response = client.get("/download")

    assert response.text == "id,path\n"
    assert response.headers["content-disposition"].startswith("attachment")


def test_no_content_response_stays_empty_and_is_carried(client):
    """Test: 204 → no markup in the body, snapshot shown on the next full page."""
    client.get("/")
    response = client.delete("/visits")

    assert response.status_code == 204
    assert response.content == b""
    assert "rs-debugger" in client.cookies

    page = client.get("/")
    assert page.text.count(HISTORY_ROW) == 1
    assert "<b>DELETE</b>" in page.text


def test_inline_exception_renders_error_and_bar(client):
    response = client.get("/boom")

    assert response.status_code == 500
    assert "ZeroDivisionError" in response.text
    assert "divide by zero" in response.text
    assert 'id="rs-debug-bar"' in response.text


def test_inline_warning_sets_status_500(inline_debugger, client):
    inline_debugger.install()

    with warnings.catch_warnings():
        warnings.simplefilter("always")
        response = client.get("/warn")

    assert response.status_code == 500
    assert "demo warning raised by /warn" in response.text
    assert "USER WARNING" in response.text


def test_failed_query_is_listed(client):
    response = client.get("/broken-sql")

    assert response.status_code == 200
    assert "missing_table" in response.text
    assert "<td>-</td>" in response.text


def test_form_values_and_attachment_are_shown(client):
    response = client.post("/form", data={"name": "Ada"})

    assert response.status_code == 200
    assert "Thanks." in response.text
    assert "<td>name</td><td>Ada</td>" in response.text
    assert "Form: Ada" in response.text


def test_form_attachment_escapes_submitted_name(client):
    response = client.post("/form", data={"name": "<b>x</b>"})

    assert response.status_code == 200
    assert "Submitted name: &lt;b&gt;x&lt;/b&gt;" in response.text
    assert "<b>x</b>" not in response.text


# =====================================================
# OTHER MODES
# =====================================================

def test_file_mode_writes_report_and_hides_error(tmp_path):
    debugger = Debugger("file", str(tmp_path))
    client = build_client(debugger)

    first = client.get("/boom")
    second = client.get("/boom")

    assert first.status_code == 500
    assert first.text == "Internal Server Error"
    assert "divide by zero" not in second.text
    reports = debugger.reports.reports()
    assert len(reports) == 1
    document = reports[0].read_text(encoding="utf-8")
    assert "divide by zero" in document
    assert "http://testserver/boom" in document
    assert (tmp_path / "error.log").read_text(encoding="utf-8").count("divide by zero (0)") == 2


def test_file_mode_adds_no_markup(tmp_path):
    client = build_client(Debugger("file", str(tmp_path)))

    response = client.get("/")

    assert "rs-debug-bar" not in response.text
    assert "rs-debugger" not in client.cookies


def test_silent_mode_logs_without_reports(tmp_path):
    debugger = Debugger("silent", str(tmp_path))
    client = build_client(debugger)

    response = client.get("/boom")

    assert response.status_code == 500
    assert "divide by zero (0) In" in (tmp_path / "error.log").read_text(encoding="utf-8")
    assert debugger.reports.reports() == []


def test_disabled_debugger_passes_through():
    client = build_client(Debugger(False))

    response = client.get("/")

    assert response.status_code == 200
    assert "rs-debug-bar" not in response.text
