"""
Measurement Configuration
Timing and numerical parameters for one measurement session
"""

import math
from dataclasses import dataclass

CALIBRATION_ZERO = 'zero'
CALIBRATION_CAPTURE = 'capture'


@dataclass
class MeasurementConfig:
    """
    Measurement session configuration parameters

    calibration_mode controls how the baseline is taken when the countdown
    ends:
    - 'zero' (default): baseline is (0, 0, 0). The countdown never records a
      reading and only gives the user time to hold still. Gravity and tilt
      are therefore NOT subtracted in this mode.
    - 'capture': the sensor is subscribed at the start of the countdown and
      the baseline is the mean of the raw samples received during it.
    """

    # Timing (seconds)
    calibration_seconds: int = 3
    countdown_tick: float = 1.0
    measurement_seconds: float = 5.0
    measurement_tick: float = 0.1
    processing_delay: float = 1.5

    # Sampling
    sample_interval_ms: int = 10  # 100 Hz

    # Numerics
    gravity: float = 9.81  # m/s² per g
    dead_zone: float = 0.05  # g, per-axis noise threshold
    velocity_decay: float = 0.99  # applied every accepted sample
    min_dt: float = 0.001  # seconds; smaller steps are dropped

    # Calibration
    calibration_mode: str = CALIBRATION_ZERO

    # Persistence
    auto_save: bool = True

    def validate(self) -> 'MeasurementConfig':
        """
        Check parameter ranges.

        Raises:
            ValueError: if any duration is non-positive or not finite, the decay is outside
                (0, 1], or the calibration mode is unknown.

        Returns:
            self, for chaining.
        """
        for name in ('countdown_tick', 'measurement_seconds', 'measurement_tick', 'processing_delay'):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite, got {getattr(self, name)}")
        for name in ('countdown_tick', 'measurement_seconds', 'measurement_tick'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.calibration_seconds < 0:
            raise ValueError(f"calibration_seconds must be >= 0, got {self.calibration_seconds}")
        if self.processing_delay < 0:
            raise ValueError(f"processing_delay must be >= 0, got {self.processing_delay}")
        if self.sample_interval_ms <= 0:
            raise ValueError(f"sample_interval_ms must be positive, got {self.sample_interval_ms}")
        if not 0.0 < self.velocity_decay <= 1.0:
            raise ValueError(f"velocity_decay must be in (0, 1], got {self.velocity_decay}")
        if self.calibration_mode not in (CALIBRATION_ZERO, CALIBRATION_CAPTURE):
            raise ValueError(f"Unknown calibration_mode: {self.calibration_mode!r}")
        return self

    @property
    def measurement_ticks(self) -> int:
        """Number of display ticks in a full measurement window."""
        return max(1, int(round(self.measurement_seconds / self.measurement_tick)))

    @classmethod
    def from_settings(cls, settings, **overrides) -> 'MeasurementConfig':
        """
        Build a configuration from persisted app settings.

        High-precision mode samples at 100 Hz (10 ms), otherwise 50 Hz (20 ms).

        Args:
            settings: AppSettings (or any object with the same attributes)
            **overrides: Field values taking precedence over the settings

        Returns:
            Validated MeasurementConfig.
        """
        values = dict(
            calibration_seconds=int(settings.calibration_time),
            measurement_seconds=float(settings.measurement_time),
            auto_save=bool(settings.auto_save),
            sample_interval_ms=10 if settings.high_precision_mode else 20,
        )
        values.update(overrides)
        return cls(**values).validate()
