"""
Captured Error Model

The single shape every intercepted fault is funnelled into before routing:
runtime warnings, recoverable errors, fatal errors found at shutdown and
uncaught exceptions all become a CapturedError.

DESIGN RULES:
- Immutable once constructed
- Consumed synchronously by the router, never retained
- No rendering or I/O here
"""

import traceback
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Optional, Tuple, Type


class Severity(IntFlag):
    """
    Numeric severity codes.

    The values are the classic runtime error bits, so a reporting threshold
    is a plain bitmask and the codes written to the text log stay stable.
    """
    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    STRICT = 2048
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384
    ALL = 32767

    @property
    def label(self) -> str:
        return SEVERITY_LABELS.get(int(self), str(int(self)))


SEVERITY_LABELS = {
    Severity.ERROR: "FATAL ERROR",
    Severity.USER_ERROR: "USER ERROR",
    Severity.RECOVERABLE_ERROR: "RECOVERABLE ERROR",
    Severity.PARSE: "PARSE ERROR",
    Severity.CORE_ERROR: "CORE ERROR",
    Severity.COMPILE_ERROR: "COMPILE ERROR",
    Severity.WARNING: "WARNING",
    Severity.USER_WARNING: "USER WARNING",
    Severity.CORE_WARNING: "CORE WARNING",
    Severity.COMPILE_WARNING: "COMPILE WARNING",
    Severity.NOTICE: "NOTICE",
    Severity.USER_NOTICE: "USER NOTICE",
    Severity.STRICT: "STRICT STANDARDS",
    Severity.DEPRECATED: "DEPRECATED",
    Severity.USER_DEPRECATED: "USER DEPRECATED",
}

FATAL_CODES = frozenset({
    Severity.ERROR,
    Severity.PARSE,
    Severity.CORE_ERROR,
    Severity.COMPILE_ERROR,
    Severity.USER_ERROR,
})

RECOVERABLE_CODES = frozenset({Severity.RECOVERABLE_ERROR})

# Exceptions after which the interpreter state is not trusted any more.
FATAL_EXCEPTIONS: Tuple[Type[BaseException], ...] = (MemoryError, RecursionError, SystemError)


def severity_label(code: int) -> str:
    """Human label for a code, falling back to the number itself."""
    return SEVERITY_LABELS.get(code, str(code))


def warning_severity(category: Type[Warning]) -> Severity:
    """Map a Python warning category onto a severity code."""
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning)):
        return Severity.DEPRECATED
    if issubclass(category, FutureWarning):
        return Severity.USER_DEPRECATED
    if issubclass(category, UserWarning):
        return Severity.USER_WARNING
    if issubclass(category, SyntaxWarning):
        return Severity.COMPILE_WARNING
    if issubclass(category, ImportWarning):
        return Severity.CORE_WARNING
    return Severity.WARNING


class ErrorKind(str, Enum):
    """Taxonomy used to decide whether an error may be masked."""
    RUNTIME_WARNING = "runtime_warning"
    RECOVERABLE_ERROR = "recoverable_error"
    FATAL_ERROR = "fatal_error"
    UNCAUGHT_EXCEPTION = "uncaught_exception"

    @property
    def maskable(self) -> bool:
        return self in (ErrorKind.RUNTIME_WARNING, ErrorKind.RECOVERABLE_ERROR)


@dataclass(frozen=True)
class CapturedError:
    """
    One intercepted fault.

    `cause` holds the original exception (with its own __cause__ chain) when
    the error came from one; it is excluded from equality so two captures of
    the same fault compare equal.
    """

    message: str
    code: int
    file: str
    line: int
    kind: ErrorKind = ErrorKind.RUNTIME_WARNING
    cause: Optional[BaseException] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CapturedError):
            return NotImplemented
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(self.signature)

    @property
    def signature(self) -> Tuple[str, int, str, int]:
        return (self.message, int(self.code), self.file, self.line)

    @property
    def label(self) -> str:
        if self.kind is ErrorKind.UNCAUGHT_EXCEPTION and self.cause is not None:
            return type(self.cause).__name__
        return severity_label(int(self.code))

    @classmethod
    def from_error(cls, code: int, message: str, file: str, line: int) -> "CapturedError":
        """Build from a runtime-raised (non-exception) error."""
        if code in FATAL_CODES:
            kind = ErrorKind.FATAL_ERROR
        elif code in RECOVERABLE_CODES:
            kind = ErrorKind.RECOVERABLE_ERROR
        else:
            kind = ErrorKind.RUNTIME_WARNING
        return cls(message=str(message), code=int(code), file=str(file), line=int(line or 0), kind=kind)

    @classmethod
    def from_warning(
        cls,
        message: object,
        category: Type[Warning],
        file: str,
        line: int,
    ) -> "CapturedError":
        """Build from a `warnings.showwarning` call."""
        return cls.from_error(warning_severity(category), str(message), file, line)

    @classmethod
    def from_exception(cls, exc: BaseException, *, fatal: bool = False) -> "CapturedError":
        """
        Build from an exception, locating it at the innermost traceback frame.

        Args:
            exc: The exception that escaped application code
            fatal: Mark as a fatal error instead of an uncaught exception
        """
        file, line = "unknown file", 0
        frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
        if frames:
            file, line = frames[-1].filename, frames[-1].lineno or 0

        if fatal:
            return cls(
                message=str(exc) or type(exc).__name__,
                code=Severity.ERROR,
                file=file,
                line=line,
                kind=ErrorKind.FATAL_ERROR,
                cause=exc,
            )

        code = getattr(exc, "code", 0)
        return cls(
            message=str(exc),
            code=code if isinstance(code, int) and not isinstance(code, bool) else 0,
            file=file,
            line=line,
            kind=ErrorKind.UNCAUGHT_EXCEPTION,
            cause=exc,
        )

    @classmethod
    def fatal(
        cls,
        message: str = "shutdown",
        file: str = "unknown file",
        line: int = 0,
        code: int = Severity.CORE_ERROR,
        cause: Optional[BaseException] = None,
    ) -> "CapturedError":
        """Synthesize a fatal error detected only at shutdown."""
        return cls(
            message=message,
            code=int(code),
            file=file,
            line=line,
            kind=ErrorKind.FATAL_ERROR,
            cause=cause,
        )

    def format_traceback(self) -> str:
        """Formatted traceback of the cause, empty when there is none."""
        if self.cause is None:
            return ""
        return "".join(traceback.format_exception(type(self.cause), self.cause, self.cause.__traceback__))
