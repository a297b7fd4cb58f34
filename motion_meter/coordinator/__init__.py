"""
Motion Meter Sensor Coordinator
Time reference, state timers and sensor subscription management
"""

from .clock import CentralClock, ManualClock
from .timer import StateTimer
from .coordinator import SensorCoordinator

__all__ = [
    'CentralClock',
    'ManualClock',
    'StateTimer',
    'SensorCoordinator',
]

__version__ = '1.0.0'
