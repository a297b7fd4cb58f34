"""Shared fixtures for the motion meter test suite."""

import time

import pytest

from db.kv_store import InMemoryKeyValueStore
from db.record_store import RecordStore
from motion_meter.coordinator.clock import ManualClock
from motion_meter.measurement import MeasurementConfig, MeasurementSession
from motion_meter.sensors.base import (
    AccelerometerSource,
    Sample,
    SensorUnavailable,
    SubscriptionHandle,
    Vector3,
)


def wait_until(predicate, timeout_s: float = 2.0, step_s: float = 0.01) -> bool:
    """Poll *predicate* until it returns truthy, or *timeout_s* expires."""
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step_s)
    return False


class ScriptedSensor(AccelerometerSource):
    """Accelerometer driven by the test: samples are pushed with emit()."""

    name = 'scripted'

    def __init__(self):
        self.available = True
        self.interval_calls = []
        self.subscribe_count = 0
        self.release_count = 0
        self._callback = None

    @property
    def subscribed(self) -> bool:
        return self._callback is not None

    def set_sample_interval(self, milliseconds):
        self.interval_calls.append(milliseconds)

    def subscribe(self, on_sample):
        if not self.available:
            raise SensorUnavailable("scripted sensor offline")
        self.subscribe_count += 1
        self._callback = on_sample
        return SubscriptionHandle(self._release, name=self.name)

    def _release(self):
        self.release_count += 1
        self._callback = None

    def emit(self, x, y=0.0, z=0.0, t_ns=0) -> bool:
        """Deliver one sample; returns False if nobody is subscribed."""
        if self._callback is None:
            return False
        self._callback(Sample(Vector3(x, y, z), int(t_ns)))
        return True


@pytest.fixture
def clock():
    return ManualClock(start_ns=0)


@pytest.fixture
def sensor():
    return ScriptedSensor()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def record_store(kv_store):
    return RecordStore(kv_store)


@pytest.fixture
def make_session(sensor, record_store, clock):
    """Factory for sessions sharing the scripted sensor, store and manual clock."""

    def _make(**config_overrides):
        return MeasurementSession(
            sensor,
            record_store,
            clock=clock,
            config=MeasurementConfig(**config_overrides),
        )

    return _make
