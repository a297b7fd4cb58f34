"""
Motion Meter Sensors
Accelerometer sources feeding the measurement session

Available Sources:
- MPU6050: 3-axis accelerometer over I2C (100 Hz)
- Simulated: hardware-free demo waveform (100 Hz)

All sources implement AccelerometerSource:
- set_sample_interval(milliseconds)
- subscribe(on_sample) -> SubscriptionHandle (release() is idempotent)
"""

from .base import (
    AccelerometerSource,
    Sample,
    SensorError,
    SensorFault,
    SensorUnavailable,
    SubscriptionHandle,
    Vector3,
)
from .mpu6050 import MPU6050Collector, MPU6050Config
from .simulated import SimulatedAccelerometer, SimulatedAccelerometerConfig

__all__ = [
    'AccelerometerSource',
    'Sample',
    'SensorError',
    'SensorFault',
    'SensorUnavailable',
    'SubscriptionHandle',
    'Vector3',

    # MPU6050 (Accelerometer)
    'MPU6050Collector',
    'MPU6050Config',

    # Simulated
    'SimulatedAccelerometer',
    'SimulatedAccelerometerConfig',
]

__version__ = '1.0.0'
