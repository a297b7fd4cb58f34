"""
Accuracy Classifier
Maps a final displacement to a confidence band

Integration error grows with distance travelled, so confidence is treated
as inversely related to displacement magnitude.
"""

from enum import Enum


class AccuracyBand(str, Enum):
    """Discrete accuracy classification; values are the persisted labels."""
    HIGH = '±1cm'
    MEDIUM = '±5cm'
    LOW = '±10cm'

    @property
    def tolerance_cm(self) -> float:
        return _TOLERANCE_CM[self]


_TOLERANCE_CM = {
    AccuracyBand.HIGH: 1.0,
    AccuracyBand.MEDIUM: 5.0,
    AccuracyBand.LOW: 10.0,
}

# Upper bounds (exclusive), in centimeters
HIGH_ACCURACY_LIMIT_CM = 50.0
MEDIUM_ACCURACY_LIMIT_CM = 100.0


def classify(distance_cm: float) -> AccuracyBand:
    if distance_cm < HIGH_ACCURACY_LIMIT_CM:
        return AccuracyBand.HIGH
    if distance_cm < MEDIUM_ACCURACY_LIMIT_CM:
        return AccuracyBand.MEDIUM
    return AccuracyBand.LOW
