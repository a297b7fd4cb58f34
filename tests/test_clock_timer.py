from datetime import datetime, timezone

import pytest

from motion_meter.coordinator import CentralClock, ManualClock, StateTimer


def test_central_clock_timestamps_strictly_increase() -> None:
    clock = CentralClock()
    stamps = [clock.now() for _ in range(100)]
    assert all(b > a for a, b in zip(stamps, stamps[1:]))
    assert all(s.tzinfo is not None for s in stamps)
    assert clock.get_stats()['total_calls'] == 100


def test_central_clock_monotonic_never_goes_back() -> None:
    clock = CentralClock()
    readings = [clock.monotonic_ns() for _ in range(100)]
    assert readings == sorted(readings)


def test_manual_clock_advance() -> None:
    clock = ManualClock(start=datetime(2024, 2, 1, tzinfo=timezone.utc), start_ns=5)
    clock.advance(1.5)
    assert clock.monotonic_ns() == 1_500_000_005
    assert clock.now() == datetime(2024, 2, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)


def test_manual_clock_sleep_advances() -> None:
    clock = ManualClock()
    clock.sleep(0.25)
    clock.sleep(0)
    assert clock.monotonic() == pytest.approx(0.25)


def test_manual_clock_now_stays_unique_without_advance() -> None:
    clock = ManualClock()
    assert clock.now() < clock.now()


def test_manual_clock_rejects_negative_advance() -> None:
    with pytest.raises(ValueError):
        ManualClock().advance(-1)


def test_one_shot_timer_fires_once() -> None:
    clock = ManualClock()
    timer = StateTimer(clock)
    fired = []
    timer.start_once(1.5, lambda: fired.append('done'), 'processing')

    assert timer.poll() is None
    assert timer.seconds_until_due() == pytest.approx(1.5)

    clock.advance(1.5)
    callback = timer.poll()
    callback()

    assert fired == ['done']
    assert not timer.active
    assert timer.poll() is None
    assert timer.seconds_until_due() is None


def test_periodic_timer_catches_up_tick_by_tick() -> None:
    clock = ManualClock()
    timer = StateTimer(clock)
    ticks = []
    timer.start_periodic(0.1, lambda: ticks.append(clock.monotonic_ns()), 'measurement')

    clock.advance(0.35)
    while True:
        callback = timer.poll()
        if callback is None:
            break
        callback()

    assert len(ticks) == 3
    assert timer.active
    assert timer.seconds_until_due() == pytest.approx(0.05)


def test_rearming_replaces_pending_deadline() -> None:
    clock = ManualClock()
    timer = StateTimer(clock)
    timer.start_periodic(1.0, lambda: 'countdown', 'calibration')
    timer.start_once(2.0, lambda: 'processing', 'processing')

    clock.advance(1.0)
    assert timer.poll() is None
    clock.advance(1.0)
    assert timer.poll()() == 'processing'


def test_cancel_is_idempotent() -> None:
    clock = ManualClock()
    timer = StateTimer(clock)
    timer.start_once(0.5, lambda: None, 'x')
    timer.cancel()
    timer.cancel()

    clock.advance(1.0)
    assert timer.poll() is None
    assert timer.label == ''


def test_periodic_timer_rejects_non_positive_period() -> None:
    with pytest.raises(ValueError):
        StateTimer(ManualClock()).start_periodic(0, lambda: None)
