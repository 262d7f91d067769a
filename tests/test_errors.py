"""
Tests for the captured error model.
"""

import pytest

from schemas.errors import (
    CapturedError,
    ErrorKind,
    Severity,
    severity_label,
    warning_severity,
)


def _raise(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:
        return caught


def test_runtime_error_codes_classify_by_severity():
    """Test: warning codes are maskable, fatal codes are not."""
    warning = CapturedError.from_error(Severity.WARNING, "divide by zero", "calc.ext", 41)
    recoverable = CapturedError.from_error(Severity.RECOVERABLE_ERROR, "bad arg", "calc.ext", 7)
    fatal = CapturedError.from_error(Severity.ERROR, "out of memory", "calc.ext", 9)

    assert warning.kind is ErrorKind.RUNTIME_WARNING
    assert warning.kind.maskable
    assert recoverable.kind is ErrorKind.RECOVERABLE_ERROR
    assert recoverable.kind.maskable
    assert fatal.kind is ErrorKind.FATAL_ERROR
    assert not fatal.kind.maskable


def test_warning_categories_map_to_codes():
    assert warning_severity(DeprecationWarning) is Severity.DEPRECATED
    assert warning_severity(PendingDeprecationWarning) is Severity.DEPRECATED
    assert warning_severity(FutureWarning) is Severity.USER_DEPRECATED
    assert warning_severity(UserWarning) is Severity.USER_WARNING
    assert warning_severity(SyntaxWarning) is Severity.COMPILE_WARNING
    assert warning_severity(ImportWarning) is Severity.CORE_WARNING
    assert warning_severity(RuntimeWarning) is Severity.WARNING
    assert warning_severity(ResourceWarning) is Severity.WARNING


def test_from_exception_locates_innermost_frame():
    """Test: file/line come from where the exception was raised."""
    exc = _raise(ValueError("bad value"))
    error = CapturedError.from_exception(exc)

    assert error.kind is ErrorKind.UNCAUGHT_EXCEPTION
    assert error.message == "bad value"
    assert error.code == 0
    assert error.file.endswith("test_errors.py")
    assert error.line > 0
    assert error.cause is exc
    assert error.label == "ValueError"


def test_from_exception_keeps_integer_code_attribute():
    exc = OSError(13, "Permission denied")
    exc.code = 13
    error = CapturedError.from_exception(_raise(exc))

    assert error.code == 13


def test_fatal_exception_capture():
    error = CapturedError.from_exception(_raise(MemoryError()), fatal=True)

    assert error.kind is ErrorKind.FATAL_ERROR
    assert error.code == Severity.ERROR
    assert error.message == "MemoryError"


def test_synthesized_fatal_defaults():
    error = CapturedError.fatal()

    assert error.message == "shutdown"
    assert error.file == "unknown file"
    assert error.line == 0
    assert error.code == Severity.CORE_ERROR


def test_equality_ignores_cause():
    """Test: two captures of the same fault compare equal."""
    first = CapturedError.fatal("boom", "app.py", 3, cause=RuntimeError("a"))
    second = CapturedError.fatal("boom", "app.py", 3, cause=RuntimeError("b"))
    other = CapturedError.fatal("boom", "app.py", 4)

    assert first == second
    assert hash(first) == hash(second)
    assert first != other


def test_captured_error_is_immutable():
    error = CapturedError.from_error(Severity.WARNING, "x", "f.py", 1)
    with pytest.raises(AttributeError):
        error.message = "changed"


def test_traceback_formatting():
    error = CapturedError.from_exception(_raise(KeyError("missing")))

    assert "KeyError" in error.format_traceback()
    assert CapturedError.from_error(Severity.NOTICE, "n", "f", 1).format_traceback() == ""


def test_severity_labels():
    assert severity_label(Severity.WARNING) == "WARNING"
    assert severity_label(Severity.ERROR) == "FATAL ERROR"
    assert Severity.USER_DEPRECATED.label == "USER DEPRECATED"
    assert severity_label(99999) == "99999"
