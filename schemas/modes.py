from enum import Enum, IntEnum
from typing import Union


class OperatingMode(str, Enum):
    """Routing policy for captured errors."""
    DISABLED = "disabled"
    INLINE = "inline"
    FILE_REPORT = "file"
    SILENT = "silent"

    @property
    def rank(self) -> int:
        """Permissiveness; a downgrade never increases it."""
        return _MODE_RANK[self]

    @property
    def enabled(self) -> bool:
        return self is not OperatingMode.DISABLED


_MODE_RANK = {
    OperatingMode.DISABLED: 0,
    OperatingMode.SILENT: 1,
    OperatingMode.FILE_REPORT: 2,
    OperatingMode.INLINE: 3,
}

_OFF_VALUES = {"", "0", "false", "off", "no", "none", "disabled"}
_INLINE_VALUES = {"1", "true", "on", "yes", "inline"}
_FILE_VALUES = {"file", "file_report", "report"}


def parse_mode(value: Union[bool, str, None, "OperatingMode"]) -> OperatingMode:
    """
    Interpret the `mode` construction value.

    False-ish disables, True turns on inline rendering, "file" selects file
    reports and any other non-empty string means silent logging.
    """
    if isinstance(value, OperatingMode):
        return value
    if value is None or value is False:
        return OperatingMode.DISABLED
    if value is True:
        return OperatingMode.INLINE

    text = str(value).strip().lower()
    if text in _OFF_VALUES:
        return OperatingMode.DISABLED
    if text in _INLINE_VALUES:
        return OperatingMode.INLINE
    if text in _FILE_VALUES:
        return OperatingMode.FILE_REPORT
    return OperatingMode.SILENT


class RequestMode(IntEnum):
    """Whether visible markup may be injected into the current response."""
    RENDERABLE = 0
    REDIRECT = 1
    AJAX = 2
    DOWNLOAD = 3

    @property
    def renderable(self) -> bool:
        return self is RequestMode.RENDERABLE
