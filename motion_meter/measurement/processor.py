"""
Motion Signal Processor
Per-sample filtering and double Euler integration of acceleration

Pipeline, per accepted sample:
- Subtract the calibration baseline
- Zero every axis below the dead-zone threshold
- Convert g to m/s², integrate into velocity
- Damp velocity by a fixed decay factor (bounds drift)
- Integrate velocity into position
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from motion_meter.sensors.base import Vector3
from .config import MeasurementConfig

logger = logging.getLogger(__name__)

DEFAULT_DEAD_ZONE = 0.05


def filter_sample(raw: Vector3, baseline: Vector3, dead_zone: float = DEFAULT_DEAD_ZONE) -> Vector3:
    """
    Subtract the baseline and apply the per-axis dead zone

    Args:
        raw: Raw acceleration (g)
        baseline: Calibration baseline (g)
        dead_zone: Components with magnitude below this become exactly 0

    Returns:
        Filtered acceleration (g)
    """
    delta = raw.as_array() - baseline.as_array()
    delta[np.abs(delta) < dead_zone] = 0.0
    return Vector3.from_array(delta)


def _zeros() -> np.ndarray:
    return np.zeros(3, dtype=np.float64)


@dataclass
class IntegratorState:
    """Running velocity (m/s) and position (m) of one measurement."""
    velocity: np.ndarray = field(default_factory=_zeros)
    position: np.ndarray = field(default_factory=_zeros)
    last_t_ns: int = 0

    @classmethod
    def starting_at(cls, t_ns: int) -> 'IntegratorState':
        return cls(last_t_ns=int(t_ns))

    def reset(self, t_ns: int = 0):
        self.velocity[:] = 0.0
        self.position[:] = 0.0
        self.last_t_ns = int(t_ns)

    def copy(self) -> 'IntegratorState':
        return IntegratorState(self.velocity.copy(), self.position.copy(), self.last_t_ns)

    @property
    def displacement_x(self) -> float:
        return float(self.position[0])


class MotionIntegrator:
    """
    Advances an IntegratorState from filtered samples

    Samples whose step from the last accepted timestamp is not above
    min_dt (duplicates, out-of-order, clock jitter) are dropped without
    touching the state.
    """

    def __init__(self, config: Optional[MeasurementConfig] = None):
        self.config = config if config else MeasurementConfig()
        self.accepted_count = 0
        self.dropped_count = 0

    def integrate(self, state: IntegratorState, filtered: Vector3, t_ns: int) -> bool:
        """
        Apply one filtered sample

        Args:
            state: State to advance in place
            filtered: Filtered acceleration (g)
            t_ns: Sample timestamp (monotonic ns)

        Returns:
            True if the sample was integrated, False if dropped
        """
        dt = (t_ns - state.last_t_ns) / 1e9
        if dt <= self.config.min_dt:
            self.dropped_count += 1
            logger.debug(f"Dropped sample: dt={dt:.6f}s")
            return False

        acceleration = filtered.as_array() * self.config.gravity
        state.velocity += acceleration * dt
        state.velocity *= self.config.velocity_decay
        state.position += state.velocity * dt
        state.last_t_ns = int(t_ns)

        self.accepted_count += 1
        return True

    def reset_counters(self):
        self.accepted_count = 0
        self.dropped_count = 0
