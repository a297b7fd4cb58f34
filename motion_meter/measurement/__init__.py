"""
Motion-to-distance estimation

Architecture:
- processor: dead-zone sample filter and double Euler integrator with velocity decay
- session: calibration / measurement / processing state machine
- classifier: accuracy band from final distance
- models: Record and its persisted JSON shape
- history: summary statistics and relative-time labels

Usage:
    session = MeasurementSession(sensor, record_store, config=MeasurementConfig())
    record = session.measure()
"""

from .classifier import AccuracyBand, classify
from .config import CALIBRATION_CAPTURE, CALIBRATION_ZERO, MeasurementConfig
from .history import HistorySummary, relative_time, summarize
from .models import Direction, Record
from .processor import IntegratorState, MotionIntegrator, filter_sample
from .session import MeasurementSession, MeasurementState

__all__ = [
    'AccuracyBand',
    'classify',
    'CALIBRATION_CAPTURE',
    'CALIBRATION_ZERO',
    'MeasurementConfig',
    'HistorySummary',
    'relative_time',
    'summarize',
    'Direction',
    'Record',
    'IntegratorState',
    'MotionIntegrator',
    'filter_sample',
    'MeasurementSession',
    'MeasurementState',
]
