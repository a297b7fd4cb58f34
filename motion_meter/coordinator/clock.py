"""
Central Clock System
Provides the time reference for sensor samples, state timers and records
"""

import threading
import time
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

logger = logging.getLogger(__name__)


class CentralClock:
    """
    Thread-safe central clock for the measurement pipeline

    Two time bases are exposed:
    - monotonic_ns(): nanosecond monotonic counter for sample timestamps
      and state deadlines (never goes backwards)
    - now(): UTC wall-clock timestamp for persisted records, kept strictly
      increasing so two records never share a capture time
    """

    def __init__(self):
        """Initialize central clock"""
        self._lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None
        self._call_count = 0

        logger.info("Central clock initialized")

    def monotonic_ns(self) -> int:
        """
        Get the monotonic time reference

        Returns:
            int: Nanoseconds from an arbitrary fixed origin
        """
        return time.monotonic_ns()

    def monotonic(self) -> float:
        """Monotonic time in seconds."""
        return self.monotonic_ns() / 1e9

    def _wall_clock(self) -> datetime:
        return datetime.now(timezone.utc)

    def now(self) -> datetime:
        """
        Get current UTC timestamp

        Returns:
            datetime: Current UTC timestamp with microsecond precision
        """
        with self._lock:
            current_time = self._wall_clock()

            # Ensure monotonic increasing timestamps
            if self._last_timestamp and current_time <= self._last_timestamp:
                current_time = self._last_timestamp + timedelta(microseconds=1)
                logger.debug("Adjusted timestamp to maintain monotonic sequence")

            self._last_timestamp = current_time
            self._call_count += 1

            return current_time

    def sleep(self, seconds: float):
        """Block the calling thread; bounded by the caller."""
        if seconds > 0:
            time.sleep(seconds)

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Clock usage statistics
        """
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_timestamp': self._last_timestamp.isoformat() if self._last_timestamp else None,
            }

    def __repr__(self):
        return f"<CentralClock(calls={self._call_count})>"


class ManualClock(CentralClock):
    """
    Clock that only moves when told to

    Lets state transitions be exercised without waiting on wall-clock time:
    advance() moves both the monotonic counter and the wall clock, and
    sleep() advances instead of blocking.
    """

    def __init__(self, start: Optional[datetime] = None, start_ns: int = 0):
        super().__init__()
        self._mono_ns = int(start_ns)
        self._wall = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def monotonic_ns(self) -> int:
        with self._lock:
            return self._mono_ns

    def _wall_clock(self) -> datetime:
        return self._wall

    def advance(self, seconds: float):
        """Move time forward by the given number of seconds."""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._mono_ns += int(round(seconds * 1e9))
            self._wall += timedelta(seconds=seconds)

    def sleep(self, seconds: float):
        if seconds > 0:
            self.advance(seconds)

    def __repr__(self):
        return f"<ManualClock(t={self._mono_ns / 1e9:.3f}s)>"
