"""
Measurement data models
Finalized records and their persisted JSON shape
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .classifier import AccuracyBand, classify


class Direction(str, Enum):
    """Sign of the raw x displacement."""
    FORWARD = 'forward'
    BACKWARD = 'backward'

    @classmethod
    def from_displacement(cls, position_x: float) -> 'Direction':
        return cls.FORWARD if position_x >= 0 else cls.BACKWARD


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(text: str) -> datetime:
    """Inverse of format_timestamp; naive values are taken as UTC."""
    if not isinstance(text, str):
        raise ValueError(f"timestamp must be a string, got {type(text).__name__}")
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate_to_millis(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


@dataclass(frozen=True)
class Record:
    """
    One finalized measurement

    Created once when a session finalizes and never modified afterwards.
    distance_cm is always abs(final x position) * 100.
    """
    id: str
    distance_cm: float
    accuracy: AccuracyBand
    captured_at: datetime
    direction: Direction
    duration_seconds: float

    @classmethod
    def from_displacement(
            cls,
            position_x: float,
            duration_seconds: float,
            captured_at: datetime,
            record_id: Optional[str] = None,
    ) -> 'Record':
        """
        Build a record from the raw x position (meters) of a session

        Args:
            position_x: Signed final x position in meters
            duration_seconds: Measured window length
            captured_at: Capture time (stored at millisecond precision)
            record_id: Explicit id, a new UUID if omitted

        Returns:
            Record with distance, accuracy band and direction derived
        """
        distance_cm = abs(position_x) * 100
        return cls(
            id=record_id or str(uuid.uuid4()),
            distance_cm=distance_cm,
            accuracy=classify(distance_cm),
            captured_at=_truncate_to_millis(captured_at),
            direction=Direction.from_displacement(position_x),
            duration_seconds=float(duration_seconds),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'distance': self.distance_cm,
            'accuracy': self.accuracy.value,
            'timestamp': format_timestamp(self.captured_at),
            'direction': self.direction.value,
            'duration': self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Record':
        """
        Parse the persisted shape

        Raises:
            ValueError: on missing keys, wrong types or unknown labels
        """
        if not isinstance(data, dict):
            raise ValueError(f"record must be an object, got {type(data).__name__}")
        try:
            record_id = data['id']
            distance = data['distance']
            duration = data['duration']
            accuracy = AccuracyBand(data['accuracy'])
            direction = Direction(data['direction'])
            captured_at = parse_timestamp(data['timestamp'])
        except KeyError as e:
            raise ValueError(f"record missing field {e}") from e

        if not isinstance(record_id, str) or not record_id:
            raise ValueError("record id must be a non-empty string")
        for name, value in (('distance', distance), ('duration', duration)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"record {name} must be a number")
        if distance < 0:
            raise ValueError("record distance must be non-negative")

        return cls(
            id=record_id,
            distance_cm=float(distance),
            accuracy=accuracy,
            captured_at=captured_at,
            direction=direction,
            duration_seconds=float(duration),
        )
