import time
from datetime import datetime


class TimingClock:
    """
    Request start timestamp, captured once.

    Uses the monotonic clock for durations and keeps the wall-clock start
    for display.
    """

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self.started_at = datetime.now()

    def elapsed(self) -> float:
        """Seconds since the clock was created."""
        return time.perf_counter() - self._start
