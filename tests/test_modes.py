"""
Tests for mode parsing and the disable() state machine.
"""

import pytest

from routing.router import Debugger
from schemas.modes import OperatingMode, RequestMode, parse_mode


@pytest.mark.parametrize("value, expected", [
    (False, OperatingMode.DISABLED),
    (None, OperatingMode.DISABLED),
    ("", OperatingMode.DISABLED),
    ("off", OperatingMode.DISABLED),
    (True, OperatingMode.INLINE),
    ("1", OperatingMode.INLINE),
    ("inline", OperatingMode.INLINE),
    ("file", OperatingMode.FILE_REPORT),
    ("production", OperatingMode.SILENT),
    (OperatingMode.SILENT, OperatingMode.SILENT),
])
def test_parse_mode(value, expected):
    assert parse_mode(value) is expected


def test_mode_rank_order():
    assert OperatingMode.DISABLED.rank < OperatingMode.SILENT.rank
    assert OperatingMode.SILENT.rank < OperatingMode.FILE_REPORT.rank
    assert OperatingMode.FILE_REPORT.rank < OperatingMode.INLINE.rank


def test_only_renderable_requests_take_markup():
    assert RequestMode.RENDERABLE.renderable
    assert not RequestMode.REDIRECT.renderable
    assert not RequestMode.AJAX.renderable
    assert not RequestMode.DOWNLOAD.renderable


@pytest.mark.parametrize("mode", [True, "file", "silent", False])
def test_disable_terminate_always_disables(mode, tmp_path):
    """Test: disable(terminate=True) → DISABLED and no mail, from any mode."""
    debugger = Debugger(mode, str(tmp_path), notify_email="ops@example.com")

    assert debugger.disable(terminate=True) is OperatingMode.DISABLED
    assert debugger.notify_email is None


def test_disable_inline_with_directory_downgrades_to_file(tmp_path):
    debugger = Debugger(True, str(tmp_path), notify_email="ops@example.com")

    assert debugger.disable() is OperatingMode.FILE_REPORT
    assert debugger.notify_email is None


def test_disable_inline_without_directory_turns_off():
    debugger = Debugger(True)

    assert debugger.disable() is OperatingMode.DISABLED


def test_disable_never_raises_permissiveness(tmp_path):
    """Test: silent mode with a directory stays silent instead of becoming file."""
    debugger = Debugger("silent", str(tmp_path), notify_email="ops@example.com")

    assert debugger.disable() is OperatingMode.SILENT
    assert debugger.notify_email == "ops@example.com"


def test_disable_file_mode_keeps_file_reports(tmp_path):
    debugger = Debugger("file", str(tmp_path))

    assert debugger.disable() is OperatingMode.FILE_REPORT


def test_disable_is_idempotent_when_off():
    debugger = Debugger(False)

    assert debugger.disable() is OperatingMode.DISABLED
    assert debugger.disable(terminate=True) is OperatingMode.DISABLED


def test_disabled_debugger_installs_nothing():
    debugger = Debugger(False)

    assert debugger.install() is False
    assert not debugger.installed
