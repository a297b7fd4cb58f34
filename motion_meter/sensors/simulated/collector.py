"""
Simulated Accelerometer
Demo source producing a slow sinusoidal drift plus uniform noise
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..base import (
    AccelerometerSource,
    Sample,
    SampleCallback,
    SensorUnavailable,
    SubscriptionHandle,
    Vector3,
)
from motion_meter.coordinator.clock import CentralClock

logger = logging.getLogger(__name__)


@dataclass
class SimulatedAccelerometerConfig:
    """Waveform parameters for the simulated accelerometer"""

    collection_interval: float = 0.01  # 100 Hz
    x_amplitude: float = 0.1   # g, sin(t)
    y_amplitude: float = 0.05  # g, cos(t)
    z_offset: float = 0.98     # g, resting gravity reading
    noise: float = 0.02        # peak-to-peak uniform noise (g)
    seed: Optional[int] = None


class SimulatedAccelerometer(AccelerometerSource):
    """
    Accelerometer source that needs no hardware

    Each sample is x = 0.1·sin(t), y = 0.05·cos(t), z = 0.98, each with
    uniform noise in ±noise/2, where t is the clock time in seconds.
    """

    name = 'simulated'

    def __init__(
            self,
            config: Optional[SimulatedAccelerometerConfig] = None,
            clock: Optional[CentralClock] = None,
    ):
        self.config = config if config else SimulatedAccelerometerConfig()
        self.clock = clock if clock else CentralClock()
        self._rng = np.random.default_rng(self.config.seed)

        self.is_running = False
        self.available = True
        self.stop_event = threading.Event()
        self.generator_thread = None
        self._on_sample: Optional[SampleCallback] = None
        self.sample_count = 0

        logger.info("Simulated accelerometer initialized")

    def set_sample_interval(self, milliseconds: int):
        if milliseconds <= 0:
            raise ValueError(f"Sample interval must be positive, got {milliseconds} ms")
        self.config.collection_interval = milliseconds / 1000.0

    def subscribe(self, on_sample: SampleCallback) -> SubscriptionHandle:
        if not self.available:
            raise SensorUnavailable("Simulated accelerometer disabled")
        if self.is_running:
            raise SensorUnavailable("Simulated accelerometer already has an active subscriber")

        self._on_sample = on_sample
        self.is_running = True
        self.stop_event.clear()
        self.generator_thread = threading.Thread(
            target=self._generate_loop,
            name="Simulated-Accelerometer-Thread",
            daemon=True
        )
        self.generator_thread.start()
        logger.info(f"✓ Simulated accelerometer started ({1.0 / self.config.collection_interval:.0f} Hz)")
        return SubscriptionHandle(self._stop, name=self.name)

    def next_sample(self) -> Sample:
        """Produce one sample at the current clock time."""
        t_ns = self.clock.monotonic_ns()
        t = t_ns / 1e9
        cfg = self.config
        nx, ny, nz = (self._rng.random(3) - 0.5) * cfg.noise
        return Sample(
            Vector3(
                math.sin(t) * cfg.x_amplitude + nx,
                math.cos(t) * cfg.y_amplitude + ny,
                cfg.z_offset + nz,
            ),
            t_ns,
        )

    def _generate_loop(self):
        while not self.stop_event.is_set():
            callback = self._on_sample
            if callback is not None:
                callback(self.next_sample())
                self.sample_count += 1
            self.stop_event.wait(self.config.collection_interval)

    def _stop(self):
        if not self.is_running:
            return
        self.stop_event.set()
        if (self.generator_thread and self.generator_thread.is_alive()
                and self.generator_thread is not threading.current_thread()):
            self.generator_thread.join(timeout=5)
        self._on_sample = None
        self.is_running = False
        logger.info(f"✓ Simulated accelerometer stopped after {self.sample_count} samples")

    def get_status(self) -> dict:
        return {
            'sensor_type': 'simulated',
            'is_running': self.is_running,
            'sample_rate': round(1.0 / self.config.collection_interval),
            'samples_generated': self.sample_count,
        }

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<SimulatedAccelerometer(status={status})>"
