"""
Simulated accelerometer source, used when no MPU6050 is attached
"""

from .collector import SimulatedAccelerometer, SimulatedAccelerometerConfig

__all__ = [
    'SimulatedAccelerometer',
    'SimulatedAccelerometerConfig',
]
