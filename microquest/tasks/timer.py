"""
Tool: Time-Box Timer
Purpose: Measure focused time on the active quest

One timer per active quest. It can be paused and resumed, and reading it
never changes it. finish() turns the measurement into whole minutes with a
floor of one, so every completion counts for something and the pacing
ratio never divides by zero.

Usage:
    timer = TimeBoxTimer()
    timer.start()
    ...
    timer.pause()
    timer.start()
    minutes = timer.finish()
"""

import time
from typing import Callable, Optional


class TimeBoxTimer:
    """Pausable elapsed-time counter.

    Args:
        clock: Returns seconds from a monotonic source. Injected so tests
            can drive time explicitly.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._accumulated = 0.0
        self._session_start: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._session_start is not None

    def start(self) -> None:
        if self.running:
            return
        self._session_start = self._clock()

    def pause(self) -> None:
        if not self.running:
            return
        self._accumulated += self._clock() - self._session_start
        self._session_start = None

    def elapsed(self) -> float:
        """Elapsed seconds, including the current run if any."""
        if self.running:
            return self._accumulated + (self._clock() - self._session_start)
        return self._accumulated

    def finish(self) -> int:
        """Stop the timer and return elapsed minutes (nearest, at least 1)."""
        self.pause()
        minutes = int(self._accumulated / 60 + 0.5)
        return max(1, minutes)

    def reset(self) -> None:
        self._accumulated = 0.0
        self._session_start = None

    def to_dict(self) -> dict:
        seconds = int(self.elapsed())
        return {
            "running": self.running,
            "elapsed_seconds": seconds,
            "display": f"{seconds // 60}:{seconds % 60:02d}",
        }


__all__ = ["TimeBoxTimer"]
