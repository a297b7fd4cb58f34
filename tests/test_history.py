from datetime import datetime, timedelta, timezone

import pytest

from motion_meter.measurement import Record, relative_time, summarize

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def _record(position_x: float) -> Record:
    return Record.from_displacement(position_x, 5.0, NOW)


def test_summary_of_empty_history() -> None:
    summary = summarize([])
    assert summary.count == 0
    assert summary.average_distance_cm == 0.0
    assert summary.high_accuracy_count == 0


def test_summary_counts_and_average() -> None:
    records = [_record(0.1), _record(-0.3), _record(0.8), _record(1.2)]
    summary = summarize(records)
    assert summary.count == 4
    assert summary.average_distance_cm == pytest.approx((10 + 30 + 80 + 120) / 4)
    assert summary.high_accuracy_count == 2
    assert summary.to_dict()['count'] == 4


@pytest.mark.parametrize(
    "age, label",
    [
        (timedelta(seconds=0), 'Just now'),
        (timedelta(seconds=59.9), 'Just now'),
        (timedelta(minutes=1), '1m ago'),
        (timedelta(minutes=59, seconds=59), '59m ago'),
        (timedelta(hours=1), '1h ago'),
        (timedelta(hours=23, minutes=59), '23h ago'),
        (timedelta(days=1), '1d ago'),
        (timedelta(days=12, hours=5), '12d ago'),
    ],
)
def test_relative_time_labels(age, label) -> None:
    assert relative_time(NOW - age, NOW) == label


def test_relative_time_future_is_just_now() -> None:
    assert relative_time(NOW + timedelta(minutes=3), NOW) == 'Just now'


def test_relative_time_accepts_naive_values() -> None:
    assert relative_time(datetime(2024, 5, 10, 11, 0, 0), NOW) == '1h ago'
