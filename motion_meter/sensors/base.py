"""
Sensor capability shared by every accelerometer source

A source emits timestamped 3-axis samples (g-units) to a single callback
until the returned SubscriptionHandle is released.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)


class SensorError(Exception):
    """Base class for sensor failures"""


class SensorUnavailable(SensorError):
    """The sensor could not be opened or subscribed to"""


class SensorFault(SensorError):
    """A sample carried a non-finite value"""


@dataclass(frozen=True)
class Vector3:
    """Three float components; units depend on context (g, m/s, m)."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def zero(cls) -> 'Vector3':
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, values) -> 'Vector3':
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)


@dataclass(frozen=True)
class Sample:
    """Single accelerometer reading."""
    vector: Vector3  # acceleration (g)
    t_ns: int        # monotonic nanosecond timestamp


SampleCallback = Callable[[Sample], None]


class SubscriptionHandle:
    """
    Token for an active subscription

    release() stops delivery and may be called any number of times;
    only the first call has an effect.
    """

    def __init__(self, on_release: Callable[[], None], name: str = 'accelerometer'):
        self._on_release = on_release
        self._lock = threading.Lock()
        self._released = False
        self.name = name

    @property
    def active(self) -> bool:
        return not self._released

    def release(self):
        with self._lock:
            if self._released:
                return
            self._released = True
        try:
            self._on_release()
        except Exception as e:
            logger.error(f"Error releasing {self.name} subscription: {e}", exc_info=True)
        logger.debug(f"Subscription to {self.name} released")

    def __repr__(self):
        return f"<SubscriptionHandle({self.name}, active={self.active})>"


class AccelerometerSource(ABC):
    """Capability consumed by the measurement session"""

    name = 'accelerometer'

    @abstractmethod
    def set_sample_interval(self, milliseconds: int):
        """Request a delivery interval; sources may round to what they support."""

    @abstractmethod
    def subscribe(self, on_sample: SampleCallback) -> SubscriptionHandle:
        """
        Start delivering samples to on_sample

        Raises:
            SensorUnavailable: if the source cannot be opened
        """

    def get_status(self) -> Optional[dict]:
        return None
