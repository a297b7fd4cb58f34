"""
App settings persistence
"""

import json
import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict

from .kv_store import KeyValueStore, StoreWriteFailure
from .record_store import MEASUREMENTS_KEY

logger = logging.getLogger(__name__)

SETTINGS_KEY = 'appSettings'

# Longest calibration or measurement duration accepted from storage (seconds)
MAX_DURATION_SECONDS = 60


@dataclass(frozen=True)
class AppSettings:
    """User-facing settings; only the timing, auto-save and precision fields affect measurement."""
    haptic_feedback: bool = True
    sound_alerts: bool = False
    auto_save: bool = True
    high_precision_mode: bool = True
    calibration_time: float = 3
    measurement_time: float = 5

    def to_dict(self) -> Dict[str, Any]:
        return {_CAMEL[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppSettings':
        """
        Merge stored values over the defaults

        Unknown keys are ignored. Values of the wrong type, and durations that
        are not finite or fall outside (0, MAX_DURATION_SECONDS], keep the
        default.
        """
        values = {}
        for f in fields(cls):
            camel = _CAMEL[f.name]
            if camel not in data:
                continue
            value = data[camel]
            if isinstance(f.default, bool):
                if isinstance(value, bool):
                    values[f.name] = value
                    continue
            elif _is_duration(value):
                values[f.name] = value
                continue
            logger.warning(f"⚠ Ignoring invalid setting {camel}={value!r}")
        return cls(**values)


def _is_duration(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return 0 < value <= MAX_DURATION_SECONDS


_CAMEL = {
    'haptic_feedback': 'hapticFeedback',
    'sound_alerts': 'soundAlerts',
    'auto_save': 'autoSave',
    'high_precision_mode': 'highPrecisionMode',
    'calibration_time': 'calibrationTime',
    'measurement_time': 'measurementTime',
}


class SettingsStore:
    """Reads and writes AppSettings under the appSettings key."""

    def __init__(self, kv_store: KeyValueStore, key: str = SETTINGS_KEY):
        self.kv_store = kv_store
        self.key = key

    def load(self) -> AppSettings:
        """
        Load settings, falling back to defaults for anything missing or invalid.

        Returns:
            AppSettings
        """
        try:
            raw = self.kv_store.get(self.key)
        except Exception as e:
            logger.warning(f"⚠ Could not read settings, using defaults: {e}")
            return AppSettings()

        if raw is None:
            return AppSettings()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠ Stored settings are not valid JSON, using defaults: {e}")
            return AppSettings()
        if not isinstance(data, dict):
            logger.warning("⚠ Stored settings are not an object, using defaults")
            return AppSettings()
        return AppSettings.from_dict(data)

    def save(self, settings: AppSettings):
        """
        Raises:
            StoreWriteFailure: if the settings cannot be written
        """
        try:
            self.kv_store.set(self.key, json.dumps(settings.to_dict()))
        except StoreWriteFailure:
            raise
        except Exception as e:
            raise StoreWriteFailure(str(e)) from e
        logger.info("✓ Settings saved")

    def update(self, **changes) -> AppSettings:
        """
        Change individual fields and persist the result.

        Args:
            **changes: AppSettings field names and their new values

        Returns:
            The saved settings
        """
        settings = replace(self.load(), **changes)
        self.save(settings)
        return settings

    def clear_measurement_data(self):
        """Remove all stored measurements; settings are kept."""
        try:
            self.kv_store.remove(MEASUREMENTS_KEY)
        except StoreWriteFailure:
            raise
        except Exception as e:
            raise StoreWriteFailure(str(e)) from e
        logger.info("✓ All measurement data cleared")
