"""
State Timer
Single cancellable deadline used by the measurement state machine
"""

import logging
from typing import Callable, Optional

from .clock import CentralClock

logger = logging.getLogger(__name__)


class StateTimer:
    """
    One pending deadline at a time, one-shot or periodic

    The timer never runs callbacks on its own thread. The owner polls it
    from its single driving task; poll() returns the callback that is due
    (advancing a periodic deadline by exactly one period) so that a clock
    jump of several periods yields several ticks, in order.

    Scheduling a new deadline replaces the pending one, so each state
    owns the timer exclusively while it is active.
    """

    def __init__(self, clock: CentralClock):
        self.clock = clock
        self._deadline_ns: Optional[int] = None
        self._period_ns: Optional[int] = None
        self._callback: Optional[Callable[[], None]] = None
        self._label = ''

    @property
    def active(self) -> bool:
        return self._deadline_ns is not None

    @property
    def label(self) -> str:
        return self._label

    def start_once(self, delay: float, callback: Callable[[], None], label: str = ''):
        """
        Arm a one-shot deadline

        Args:
            delay: Seconds from now
            callback: Invoked once when the deadline is reached
            label: Name shown in logs and status
        """
        self._arm(delay, None, callback, label)

    def start_periodic(self, period: float, callback: Callable[[], None], label: str = ''):
        """
        Arm a repeating deadline; first tick one period from now

        Args:
            period: Seconds between ticks (must be positive)
            callback: Invoked on every tick
            label: Name shown in logs and status
        """
        if period <= 0:
            raise ValueError(f"Timer period must be positive, got {period}")
        self._arm(period, period, callback, label)

    def cancel(self):
        """Drop the pending deadline. Cancelling an idle timer is a no-op."""
        if self._deadline_ns is not None:
            logger.debug(f"Timer '{self._label}' cancelled")
        self._deadline_ns = None
        self._period_ns = None
        self._callback = None
        self._label = ''

    def seconds_until_due(self) -> Optional[float]:
        """Seconds until the pending deadline (0 if overdue), None if idle."""
        if self._deadline_ns is None:
            return None
        return max(0.0, (self._deadline_ns - self.clock.monotonic_ns()) / 1e9)

    def poll(self) -> Optional[Callable[[], None]]:
        """
        Consume at most one due tick

        Returns:
            The callback to run, or None if nothing is due
        """
        if self._deadline_ns is None or self.clock.monotonic_ns() < self._deadline_ns:
            return None

        callback = self._callback
        if self._period_ns is None:
            self._deadline_ns = None
            self._callback = None
        else:
            self._deadline_ns += self._period_ns
        return callback

    def _arm(self, delay: float, period: Optional[float], callback, label: str):
        self._deadline_ns = self.clock.monotonic_ns() + int(round(delay * 1e9))
        self._period_ns = int(round(period * 1e9)) if period is not None else None
        self._callback = callback
        self._label = label
        logger.debug(f"Timer '{label}' armed: delay={delay}s periodic={period is not None}")

    def __repr__(self):
        return f"<StateTimer(label={self._label!r}, active={self.active})>"
