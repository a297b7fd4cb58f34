"""
Sensor Coordinator
Manages the accelerometer subscription for one measurement session
"""

import logging
import threading
from typing import Optional

from .clock import CentralClock
from motion_meter.sensors.base import (
    AccelerometerSource,
    SampleCallback,
    SensorUnavailable,
    SubscriptionHandle,
)

logger = logging.getLogger(__name__)


class SensorCoordinator:
    """
    Owns exactly one sensor subscription handle at a time

    Responsibilities:
    - Configure the sample interval before delivery starts
    - Subscribe / release the sensor (release is idempotent)
    - Provide the central time reference
    - Track subscription status
    """

    def __init__(self, sensor: AccelerometerSource, clock: Optional[CentralClock] = None):
        """
        Initialize sensor coordinator

        Args:
            sensor: Accelerometer source to manage
            clock: Shared clock (a new CentralClock if omitted)
        """
        self.sensor = sensor
        self.clock = clock if clock else CentralClock()

        self._lock = threading.Lock()
        self._handle: Optional[SubscriptionHandle] = None
        self._subscribe_count = 0
        self._sample_interval_ms: Optional[int] = None

        logger.info(f"Sensor Coordinator initialized for {getattr(sensor, 'name', type(sensor).__name__)}")

    @property
    def is_subscribed(self) -> bool:
        with self._lock:
            return self._handle is not None and self._handle.active

    def get_central_timestamp(self):
        """
        Get synchronized timestamp

        Returns:
            datetime: Current UTC timestamp from the central clock
        """
        return self.clock.now()

    def set_sample_interval(self, milliseconds: int):
        """
        Forward the requested delivery interval to the sensor

        Raises:
            SensorUnavailable: if the sensor rejects the interval
        """
        try:
            self.sensor.set_sample_interval(milliseconds)
        except SensorUnavailable:
            raise
        except Exception as e:
            logger.error(f"✗ Sensor rejected {milliseconds} ms interval: {e}")
            raise SensorUnavailable(str(e)) from e
        self._sample_interval_ms = milliseconds
        logger.info(f"Sample interval set to {milliseconds} ms")

    def subscribe(self, on_sample: SampleCallback) -> SubscriptionHandle:
        """
        Subscribe to the sensor. An existing live subscription is
        returned unchanged.

        Args:
            on_sample: Callback invoked for every sample

        Raises:
            SensorUnavailable: if the sensor cannot deliver samples
        """
        with self._lock:
            if self._handle is not None and self._handle.active:
                logger.warning("Sensor already subscribed, keeping existing handle")
                return self._handle

            try:
                handle = self.sensor.subscribe(on_sample)
            except SensorUnavailable:
                logger.error("✗ Sensor unavailable")
                raise
            except Exception as e:
                logger.error(f"✗ Failed to subscribe to sensor: {e}", exc_info=True)
                raise SensorUnavailable(str(e)) from e

            self._handle = handle
            self._subscribe_count += 1
            logger.info("✓ Sensor subscribed")
            return handle

    def release(self):
        """Release the held subscription. Safe to call when nothing is held."""
        with self._lock:
            handle, self._handle = self._handle, None

        if handle is None:
            return
        handle.release()
        logger.info("✓ Sensor released")

    def get_coordinator_status(self) -> dict:
        """
        Get overall coordinator status

        Returns:
            dict: Coordinator status information
        """
        return {
            'sensor': getattr(self.sensor, 'name', type(self.sensor).__name__),
            'subscribed': self.is_subscribed,
            'subscribe_count': self._subscribe_count,
            'sample_interval_ms': self._sample_interval_ms,
            'clock_stats': self.clock.get_stats(),
            'sensor_status': self.sensor.get_status(),
        }

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - cleanup"""
        self.release()

    def __repr__(self):
        return f"<SensorCoordinator(subscribed={self.is_subscribed})>"
