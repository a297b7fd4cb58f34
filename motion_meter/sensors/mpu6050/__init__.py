"""
MPU6050 Sensor Module
3-axis accelerometer source over I2C

Usage:
    collector = MPU6050Collector(MPU6050Config.for_high_precision(), clock)
    handle = collector.subscribe(on_sample)
    # ... samples arrive on the collection thread ...
    handle.release()
"""

from .collector import MPU6050Collector
from .config import MPU6050Config

__all__ = [
    'MPU6050Collector',
    'MPU6050Config',
]

__version__ = '1.0.0'
