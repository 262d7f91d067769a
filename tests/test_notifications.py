"""
Tests for the text fault log and the email notifier.

Both must never raise into the router.
"""

from observability import notifier as notifier_module
from observability.fault_log import FaultLog
from observability.notifier import EmailNotifier


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def send_message(self, message):
        FakeSMTP.sent.append(message)


class BrokenSMTP:
    def __init__(self, *args, **kwargs):
        raise ConnectionRefusedError("relay down")


def test_fault_log_line_format(tmp_path):
    log = FaultLog(str(tmp_path))

    log.write("divide by zero (2) In calc.ext at line 41\n", url="http://testserver/calc")
    log.write("second")
    log.close()

    lines = (tmp_path / "error.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("[")
    assert lines[0].endswith("] divide by zero (2) In calc.ext at line 41 @ http://testserver/calc")
    assert lines[1].endswith("] second @ ")


def test_fault_log_separate_files(tmp_path):
    log = FaultLog(str(tmp_path))

    log.write("refused", name="access")

    assert (tmp_path / "access.log").exists()
    assert not (tmp_path / "error.log").exists()


def test_fault_log_without_directory_is_noop():
    log = FaultLog(None)

    log.write("nowhere")

    assert log.path() is None


def test_fault_log_unwritable_directory_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    FaultLog(str(blocker / "logs")).write("lost")


def test_notifier_sends_one_line(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", FakeSMTP)

    ok = EmailNotifier(host="relay", port=2525).notify("ops@example.com", "divide by zero", host_name="web-1")

    assert ok is True
    message = FakeSMTP.sent[0]
    assert message["Subject"] == "Python error call from web-1"
    assert message["To"] == "ops@example.com"
    assert message.get_content().strip().endswith("] divide by zero")


def test_notifier_failure_returns_false(monkeypatch):
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", BrokenSMTP)

    assert EmailNotifier().notify("ops@example.com", "boom", host_name="web-1") is False
