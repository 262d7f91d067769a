"""
Demo Routes

Small pages exercising every path of the debugger: plain pages with
queries, redirects, XHR calls, downloads, warnings and crashes.
Contains NO diagnostics logic; the middleware does all of it.
"""

import html
import sqlite3
import warnings

from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from app.dependencies import get_database, get_debugger
from instrumentation.dbapi import InstrumentedConnection
from routing.router import Debugger


router = APIRouter()

PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8" /><title>{title}</title></head>
<body>
<h1>{title}</h1>
<p>{body}</p>
</body>
</html>
"""


def _visit(db: InstrumentedConnection, path: str) -> int:
    db.execute("INSERT INTO visits (path) VALUES (?)", (path,))
    return db.execute("SELECT COUNT(*) FROM visits").fetchone()[0]


@router.get("/", response_class=HTMLResponse)
def index(db: InstrumentedConnection = Depends(get_database)) -> str:
    count = _visit(db, "/")
    return PAGE.format(title="Home", body=f"{count} visits so far.")


@router.get("/redirect")
def redirect(db: InstrumentedConnection = Depends(get_database)) -> RedirectResponse:
    _visit(db, "/redirect")
    return RedirectResponse("/", status_code=303)


@router.get("/ajax")
def ajax(db: InstrumentedConnection = Depends(get_database)) -> JSONResponse:
    return JSONResponse({"visits": _visit(db, "/ajax")})


@router.get("/download")
def download() -> Response:
    return Response(
        content="id,path\n",
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="visits.csv"'},
    )


@router.get("/warn", response_class=HTMLResponse)
def warn() -> str:
    warnings.warn("demo warning raised by /warn", UserWarning)
    return PAGE.format(title="Warning", body="A warning was raised while rendering this page.")


@router.get("/broken-sql", response_class=HTMLResponse)
def broken_sql(db: InstrumentedConnection = Depends(get_database)) -> str:
    try:
        db.execute("SELECT * FROM missing_table")
    except sqlite3.OperationalError as e:
        return PAGE.format(title="Broken SQL", body=f"Query failed: {e}")
    return PAGE.format(title="Broken SQL", body="Query unexpectedly succeeded.")


@router.get("/boom")
def boom() -> None:
    raise ZeroDivisionError("divide by zero")


@router.post("/form", response_class=HTMLResponse)
def form(name: str = Form(...), debugger: Debugger = Depends(get_debugger)) -> str:
    debugger.add_attachment("form", f"Form: {name}", f"<p>Submitted name: {html.escape(name)}</p>")
    return PAGE.format(title="Form", body="Thanks.")


@router.delete("/visits", status_code=204)
def clear_visits(db: InstrumentedConnection = Depends(get_database)) -> Response:
    db.execute("DELETE FROM visits")
    return Response(status_code=204)
