"""
History summary helpers for the results view
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from .classifier import AccuracyBand
from .models import Record


@dataclass(frozen=True)
class HistorySummary:
    count: int
    average_distance_cm: float
    high_accuracy_count: int

    def to_dict(self) -> dict:
        return {
            'count': self.count,
            'average_distance_cm': self.average_distance_cm,
            'high_accuracy_count': self.high_accuracy_count,
        }


def summarize(records: Sequence[Record]) -> HistorySummary:
    """Aggregate count, mean distance and number of ±1cm results."""
    if not records:
        return HistorySummary(0, 0.0, 0)
    total = sum(r.distance_cm for r in records)
    high = sum(1 for r in records if r.accuracy is AccuracyBand.HIGH)
    return HistorySummary(len(records), total / len(records), high)


def relative_time(captured_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Human label for how long ago a record was captured

    Returns "Just now" under a minute, then whole minutes, hours and days
    ("5m ago", "3h ago", "2d ago"), each rounded down.
    """
    now = now or datetime.now(timezone.utc)
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_ms = (now - captured_at).total_seconds() * 1000
    minutes = int(diff_ms // (1000 * 60))
    hours = int(diff_ms // (1000 * 60 * 60))
    days = int(diff_ms // (1000 * 60 * 60 * 24))

    if minutes < 1:
        return 'Just now'
    if minutes < 60:
        return f'{minutes}m ago'
    if hours < 24:
        return f'{hours}h ago'
    return f'{days}d ago'
