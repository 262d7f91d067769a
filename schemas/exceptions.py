class DebuggerError(Exception):
    """Base class for errors raised by the debugger itself."""


class ReportDirectoryError(DebuggerError):
    """File reports were requested but no usable report directory exists."""


class HooksAlreadyInstalledError(DebuggerError):
    """install() was called a second time in the same process."""
