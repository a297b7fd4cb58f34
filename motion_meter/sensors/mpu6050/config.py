"""
MPU6050 Sensor Configuration
Accelerometer measurement parameters
"""

from dataclasses import dataclass


@dataclass
class MPU6050Config:
    """MPU6050 accelerometer configuration parameters"""

    # Hardware settings
    i2c_bus: int = 1
    i2c_address: int = 0x68

    # Sampling settings
    sample_rate: int = 100  # Hz
    collection_interval: float = 0.01  # 1/100 = 10ms between samples

    # Accelerometer settings
    accel_range: int = 0x00  # ±2g range (register value)
    accel_sensitivity: float = 16384.0  # LSB/g for ±2g range

    # Settling time after register writes
    startup_delay: float = 0.1

    def with_interval_ms(self, milliseconds: int) -> 'MPU6050Config':
        """
        Derive a configuration polling at a different interval.

        Args:
            milliseconds: Delay between samples.

        Returns:
            New MPU6050Config with collection_interval and sample_rate updated.
        """
        if milliseconds <= 0:
            raise ValueError(f"Sample interval must be positive, got {milliseconds} ms")
        interval = milliseconds / 1000.0
        return MPU6050Config(
            i2c_bus=self.i2c_bus,
            i2c_address=self.i2c_address,
            sample_rate=int(round(1.0 / interval)),
            collection_interval=interval,
            accel_range=self.accel_range,
            accel_sensitivity=self.accel_sensitivity,
            startup_delay=self.startup_delay,
        )

    @classmethod
    def for_high_precision(cls) -> 'MPU6050Config':
        """
        Create a configuration polling at 100 Hz.

        Returns:
            MPU6050Config with a 10 ms collection interval.
        """
        return cls(sample_rate=100, collection_interval=0.01)
