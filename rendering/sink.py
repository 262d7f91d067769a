"""
Diagnostics Render Sink

Turns captured errors and diagnostic snapshots into HTML.

DESIGN RULES:
- Pure functions of their input, no I/O
- Everything interpolated is escaped
- The router only depends on the Renderer interface
"""

import html
import platform
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from schemas.errors import CapturedError
from schemas.snapshot import DiagnosticSnapshot


class Renderer(ABC):
    """
    Abstract base for diagnostics markup.

    Implementations:
    - HtmlRenderer (default)
    """

    @abstractmethod
    def render_error(self, error: CapturedError) -> str:
        """Fragment describing one error."""

    @abstractmethod
    def render_snapshot(
        self,
        snapshot: DiagnosticSnapshot,
        history: Sequence[DiagnosticSnapshot] = (),
    ) -> str:
        """Debug bar for the current snapshot plus carried ones."""

    @abstractmethod
    def render_report(
        self,
        error: CapturedError,
        snapshot: Optional[DiagnosticSnapshot],
        url: Optional[str] = None,
    ) -> str:
        """Standalone HTML document for a file report."""


_SQL_KEYWORDS = re.compile(
    r"(^|\s)(SELECT|UPDATE|INSERT INTO|DELETE|FROM|WHERE|CALL|LIMIT|ORDER\s+BY|GROUP\s+BY"
    r"|LEFT\s+JOIN|RIGHT\s+JOIN|INNER\s+JOIN|JOIN)(\s)",
    re.IGNORECASE,
)

_BAR_STYLE = """
<style type="text/css">
  #rs-debug-bar { position: fixed; z-index: 1000; bottom: 0; left: 0; background: #fff; color: #000; opacity: 0.4; font-size: 13px; line-height: 16px; font-family: sans-serif; box-shadow: #666 0 0 5px; }
  #rs-debug-bar:hover { opacity: 1.0; }
  #rs-debug-bar .debug-row-history { font-size: 11px; line-height: 13px; }
  #rs-debug-bar .debug-tab { position: relative; display: inline-block; padding: 2px; }
  #rs-debug-bar .debug-tab>span:hover { cursor: pointer; background: #ddd; }
  #rs-debug-bar .debug-window { position: absolute; bottom: 20px; left: 0; display: none; max-width: 700px; padding: 5px; background: #fff; border-radius: 5px; box-shadow: #666 0 0 5px; }
  #rs-debug-bar .debug-window table { width: 100%; margin-bottom: 10px; word-wrap: break-word; }
  #rs-debug-bar .debug-window table th,
  #rs-debug-bar .debug-window table caption { font-size: medium; line-height: 1.5em; color: #fff; background: #666; }
  #rs-debug-bar .debug-window table tr:nth-child(even) { background: #ddd; }
  #rs-debug-bar .debug-window table td { padding: 3px; word-break: break-all; }
  #rs-debug-bar .debug-content { max-height: 500px; width: 600px; overflow: auto; }
  #rs-debug-bar .debug-close { text-decoration: none; color: #f00; font-size: 14px; line-height: 14px; font-weight: bold; float: right; }
</style>
"""

VARIABLE_GROUPS = ("GET", "POST", "FILES", "COOKIE", "SESSION", "REQUEST", "RESPONSE", "SERVER")


def _esc(text: object) -> str:
    return html.escape(str(text), quote=True)


def format_time(seconds: float, digits: int = 2) -> float:
    """Seconds to rounded milliseconds."""
    return round(seconds * 1000, digits)


def format_memory(num_bytes: int) -> float:
    """Bytes to rounded megabytes."""
    return round(num_bytes / (1024 * 1024), 3)


def format_file_name(path: str) -> str:
    """Directory in plain text, file name in bold."""
    head, sep, tail = path.rpartition("/")
    if not sep:
        return f"<b>{_esc(path)}</b>"
    return f"{_esc(head + sep)}<b>{_esc(tail)}</b>"


class HtmlRenderer(Renderer):
    """Inline-styled HTML, no external assets."""

    def render_error(self, error: CapturedError) -> str:
        parts = [
            '<div class="rs-debug-error" style="border: 2px solid red; background: #fff; color: #000; padding: 5px;">',
            f"  <h4>{_esc(error.label)}: {_esc(error.message)}</h4>",
            f"  <p>in {format_file_name(error.file)} on line <b>{error.line}</b></p>",
        ]
        trace = error.format_traceback()
        if trace:
            parts.append(f'  <pre style="white-space: pre-wrap;">{_esc(trace)}</pre>')
        parts.append("</div>")
        return "\n".join(parts) + "\n"

    def render_snapshot(
        self,
        snapshot: DiagnosticSnapshot,
        history: Sequence[DiagnosticSnapshot] = (),
    ) -> str:
        rows = [
            "<!-- DEBUGGER -->",
            _BAR_STYLE,
            '<div id="rs-debug-bar">',
            "  <div>",
            self._render_line(self._sections(snapshot)),
            '    <div class="debug-tab"><a title="close bar" href="#" class="debug-close" style="float: none;" '
            "onclick=\"var el = document.getElementById('rs-debug-bar'); el.parentNode.removeChild(el); return false;\">&times;</a></div>",
            "  </div>",
        ]
        for i, carried in enumerate(reversed(list(history))):
            rows.append('  <div class="debug-row-history">')
            rows.append(self._render_line(self._sections(carried), suffix=str(i)))
            rows.append("  </div>")
        rows.append("</div>")
        return "\n".join(rows) + "\n"

    def render_report(
        self,
        error: CapturedError,
        snapshot: Optional[DiagnosticSnapshot],
        url: Optional[str] = None,
    ) -> str:
        title = _esc(re.sub(r"<[^>]*>", "", error.message))
        meta = [
            f"<li>Generated: {datetime.now():%Y-%m-%d %H:%M:%S}</li>",
            f"<li>Python {_esc(platform.python_version())}</li>",
        ]
        if url:
            meta.append(f'<li><a href="{_esc(url)}">{_esc(url)}</a></li>')

        return "\n".join([
            "<!DOCTYPE html>",
            '<html lang="en">',
            "  <head>",
            f"    <title>{title}</title>",
            '    <meta charset="UTF-8" />',
            "  </head>",
            "  <body>",
            self.render_error(error),
            "<hr><ul>",
            *meta,
            "</ul>",
            self.render_snapshot(snapshot) if snapshot is not None else "",
            "  </body>",
            "</html>",
            "",
        ])

    def _sections(self, snapshot: DiagnosticSnapshot) -> Dict[str, Dict[str, Optional[str]]]:
        sections: Dict[str, Dict[str, Optional[str]]] = {}

        if snapshot.url:
            label = f"{snapshot.method or ''} {snapshot.url}".strip()
            sections["request"] = {"name": _esc(label), "text": None}

        if snapshot.queries:
            sections["sql"] = {
                "name": f"SQL: {format_time(snapshot.query_time)}ms / {snapshot.query_count} query",
                "text": self._query_table(snapshot),
            }
        else:
            sections["sql"] = {"name": "SQL: no query", "text": None}

        tables = "".join(
            self._table(group, snapshot.variables.get(group, {})) for group in VARIABLE_GROUPS
        )
        sections["vars"] = {
            "name": f"Memory: {format_memory(snapshot.peak_memory_script)}/{format_memory(snapshot.peak_memory_system)}MB",
            "text": tables,
        }
        sections["time"] = {"name": f"Time: {format_time(snapshot.total_time)}ms", "text": None}

        if snapshot.errors:
            sections["errors"] = {
                "name": f"Errors: {len(snapshot.errors)}",
                "text": "".join(snapshot.errors),
            }

        for mark, attachment in snapshot.attachments.items():
            sections[mark] = {"name": _esc(attachment.name), "text": attachment.text}
        return sections

    def _render_line(self, sections: Dict[str, Dict[str, Optional[str]]], suffix: str = "") -> str:
        out: List[str] = []
        for key, row in sections.items():
            id_mark = f"rs-debug-fixed-bar-{_esc(key)}{suffix}"
            if not row["text"]:
                out.append(f'    <div class="debug-tab">{row["name"]}</div>')
                continue
            out.append(
                f'    <div class="debug-tab"><span onclick="document.getElementById(\'{id_mark}\').style.display=\'block\'">{row["name"]}</span>\n'
                f'      <div id="{id_mark}" class="debug-window">\n'
                f'        <a title="close bar" href="#" class="debug-close" onclick="this.parentNode.style.display=\'none\'; return false;">&times;</a>\n'
                f'        <div class="debug-content">{row["text"]}</div>\n'
                "      </div>\n"
                "    </div>"
            )
        return "\n".join(out)

    def _query_table(self, snapshot: DiagnosticSnapshot) -> str:
        rows = ["<table><tr><th>Time [ms]</th><th>Request</th><th>Rows</th></tr>"]
        for q in snapshot.queries:
            statement = _SQL_KEYWORDS.sub(r"\1<br><b>\2</b>\3", _esc(q.statement))
            rows.append(
                f"<tr><td>{format_time(q.elapsed, 3)}</td><td>{statement}<br><br>"
                f"<small>in {_esc(q.file)} on line {q.line}</small></td><td>{_esc(q.rows)}</td></tr>"
            )
        rows.append("</table>")
        return "\n".join(rows) + "\n"

    def _table(self, name: str, values: Dict[str, str]) -> str:
        rows = [f"<table>\n<caption>{_esc(name)}</caption>"]
        for key, value in values.items():
            rows.append(f"<tr><td>{_esc(key)}</td><td>{_esc(value)}</td></tr>")
        rows.append("</table>")
        return "\n".join(rows) + "\n"
