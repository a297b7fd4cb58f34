"""
MPU6050 Data Collector
Raw accelerometer sampling over I2C
"""

import logging
import threading
from typing import Optional

import smbus2

from ..base import (
    AccelerometerSource,
    Sample,
    SampleCallback,
    SensorUnavailable,
    SubscriptionHandle,
    Vector3,
)
from .config import MPU6050Config
from motion_meter.coordinator.clock import CentralClock

logger = logging.getLogger(__name__)

# Register map
REG_PWR_MGMT_1 = 0x6B
REG_ACCEL_CONFIG = 0x1C
REG_ACCEL_XOUT_H = 0x3B
REG_ACCEL_YOUT_H = 0x3D
REG_ACCEL_ZOUT_H = 0x3F


class MPU6050Collector(AccelerometerSource):
    """
    MPU6050 collector - accelerometer source for the measurement session

    Reads raw 3-axis acceleration at the configured interval in a background
    thread and delivers each reading, in g-units, to the subscriber.
    Timestamps come from the shared clock.
    """

    name = 'mpu6050'

    def __init__(
            self,
            config: Optional[MPU6050Config] = None,
            clock: Optional[CentralClock] = None,
    ):
        """
        Initialize MPU6050 collector

        Args:
            config: MPU6050 configuration
            clock: Time reference for sample timestamps
        """
        self.config = config if config else MPU6050Config.for_high_precision()
        self.clock = clock if clock else CentralClock()

        # I2C bus
        self.bus = None

        # State management
        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()
        self._on_sample: Optional[SampleCallback] = None

        # Sample tracking
        self.accel_sample_count = 0
        self.read_error_count = 0

        logger.info(f"MPU6050 Collector initialized (bus={self.config.i2c_bus}, "
                    f"address=0x{self.config.i2c_address:02X})")

    def set_sample_interval(self, milliseconds: int):
        """
        Change the polling interval. Takes effect on the next loop iteration.

        Args:
            milliseconds: Delay between samples
        """
        self.config = self.config.with_interval_ms(milliseconds)
        logger.info(f"MPU6050 polling at {self.config.sample_rate} Hz")

    def subscribe(self, on_sample: SampleCallback) -> SubscriptionHandle:
        """
        Open the I2C bus, configure the MPU6050, and start the collection thread.

        Args:
            on_sample: Callback receiving every Sample

        Raises:
            SensorUnavailable: if the I2C bus cannot be opened or the sensor
                fails to configure, or a subscription is already active.

        Returns:
            SubscriptionHandle that stops collection when released.
        """
        if self.is_running:
            raise SensorUnavailable("MPU6050 already has an active subscriber")

        try:
            self._open()
        except Exception as e:
            logger.error(f"✗ Failed to start MPU6050: {e}", exc_info=True)
            self._close_bus()
            raise SensorUnavailable(f"MPU6050 not available: {e}") from e

        self._on_sample = on_sample
        self.is_running = True
        self.stop_event.clear()
        self.accel_sample_count = 0

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="MPU6050-Collection-Thread",
            daemon=True
        )
        self.collection_thread.start()

        logger.info("✓ MPU6050 data collection started successfully")
        return SubscriptionHandle(self._stop, name=self.name)

    def read_sample(self) -> Sample:
        """
        Read one accelerometer sample from the open bus

        Returns:
            Sample in g-units stamped with the central clock
        """
        accel_x = self._read_word_2c(REG_ACCEL_XOUT_H) / self.config.accel_sensitivity
        accel_y = self._read_word_2c(REG_ACCEL_YOUT_H) / self.config.accel_sensitivity
        accel_z = self._read_word_2c(REG_ACCEL_ZOUT_H) / self.config.accel_sensitivity
        return Sample(Vector3(accel_x, accel_y, accel_z), self.clock.monotonic_ns())

    def _open(self):
        logger.info("Initializing MPU6050 sensor...")
        self.bus = smbus2.SMBus(self.config.i2c_bus)

        # Wake up MPU6050 (disable sleep mode)
        self.bus.write_byte_data(self.config.i2c_address, REG_PWR_MGMT_1, 0x00)
        self.clock.sleep(self.config.startup_delay)

        # Configure accelerometer range
        self.bus.write_byte_data(self.config.i2c_address, REG_ACCEL_CONFIG, self.config.accel_range)
        self.clock.sleep(self.config.startup_delay)

        logger.info(f"✓ MPU6050 ready at address 0x{self.config.i2c_address:02X}")

    def _stop(self):
        """
        Signal the collection thread to stop and close the I2C bus.

        Returns:
            None.
        """
        if not self.is_running:
            return

        logger.info("Stopping MPU6050 data collection...")
        self.stop_event.set()

        if (self.collection_thread and self.collection_thread.is_alive()
                and self.collection_thread is not threading.current_thread()):
            self.collection_thread.join(timeout=5)

        self._close_bus()
        self._on_sample = None
        self.is_running = False
        logger.info(f"✓ MPU6050 stopped after {self.accel_sample_count} samples")

    def _close_bus(self):
        if self.bus:
            try:
                self.bus.close()
            finally:
                self.bus = None

    def _collection_loop(self):
        """
        Main data collection loop, runs in a background thread.

        Returns:
            None.
        """
        logger.info("MPU6050 collection loop started")

        while not self.stop_event.is_set():
            try:
                sample = self.read_sample()
                callback = self._on_sample
                if callback is not None and not self.stop_event.is_set():
                    callback(sample)
                    self.accel_sample_count += 1
            except Exception as e:
                self.read_error_count += 1
                logger.error(f"Error in collection loop: {e}", exc_info=True)

            # Sleep to maintain sample rate; returns early on stop
            self.stop_event.wait(self.config.collection_interval)

        logger.info("MPU6050 collection loop stopped")

    def _read_word_2c(self, reg: int) -> int:
        """
        Read signed 16-bit value from I2C register

        Args:
            reg: Register address

        Returns:
            Signed 16-bit integer value
        """
        high = self.bus.read_byte_data(self.config.i2c_address, reg)
        low = self.bus.read_byte_data(self.config.i2c_address, reg + 1)
        val = (high << 8) + low

        # Convert to signed value
        if val >= 0x8000:
            return -((65535 - val) + 1)
        else:
            return val

    def get_status(self) -> dict:
        """
        Return the current collector state.

        Returns:
            Dict containing sensor type, running state, polling rate
            and sample counts.
        """
        return {
            'sensor_type': 'MPU6050',
            'is_running': self.is_running,
            'sample_rate': self.config.sample_rate,
            'accel_samples_collected': self.accel_sample_count,
            'read_errors': self.read_error_count,
        }

    def __repr__(self):
        """String representation showing running state."""
        status = "running" if self.is_running else "stopped"
        return f"<MPU6050Collector(status={status})>"
