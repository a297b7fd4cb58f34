import pytest
import smbus2

from conftest import wait_until
from motion_meter.coordinator import ManualClock
from motion_meter.sensors import (
    MPU6050Collector,
    MPU6050Config,
    SensorUnavailable,
    SimulatedAccelerometer,
    SimulatedAccelerometerConfig,
)
from motion_meter.sensors.base import SubscriptionHandle, Vector3
from motion_meter.sensors.mpu6050.collector import (
    REG_ACCEL_CONFIG,
    REG_ACCEL_XOUT_H,
    REG_ACCEL_YOUT_H,
    REG_ACCEL_ZOUT_H,
    REG_PWR_MGMT_1,
)


class FakeBus:
    """Register-level stand-in for smbus2.SMBus."""

    registers = {}
    writes = []

    def __init__(self, bus_number):
        self.bus_number = bus_number
        self.closed = False

    def write_byte_data(self, address, register, value):
        FakeBus.writes.append((address, register, value))

    def read_byte_data(self, address, register):
        return FakeBus.registers.get(register, 0)

    def close(self):
        self.closed = True


def _set_word(register, value):
    FakeBus.registers[register] = (value >> 8) & 0xFF
    FakeBus.registers[register + 1] = value & 0xFF


@pytest.fixture
def fake_bus(monkeypatch):
    FakeBus.registers = {}
    FakeBus.writes = []
    monkeypatch.setattr(smbus2, 'SMBus', FakeBus)
    return FakeBus


# -- base types ----------------------------------------------------------------


def test_vector_finiteness() -> None:
    assert Vector3(1.0, -2.0, 0.0).is_finite()
    assert not Vector3(float('nan'), 0.0, 0.0).is_finite()
    assert not Vector3(0.0, 0.0, float('-inf')).is_finite()


def test_handle_release_runs_once() -> None:
    calls = []
    handle = SubscriptionHandle(lambda: calls.append(1))
    handle.release()
    handle.release()
    assert calls == [1]
    assert not handle.active


# -- MPU6050 -------------------------------------------------------------------


def test_mpu6050_scales_signed_words_to_g(fake_bus) -> None:
    _set_word(REG_ACCEL_XOUT_H, 0x4000)
    _set_word(REG_ACCEL_YOUT_H, 0xC000)
    _set_word(REG_ACCEL_ZOUT_H, 0x2000)
    clock = ManualClock(start_ns=42)
    collector = MPU6050Collector(clock=clock)
    collector.bus = fake_bus(1)

    sample = collector.read_sample()

    assert sample.vector == Vector3(1.0, -1.0, 0.5)
    assert sample.t_ns == 42


def test_mpu6050_subscribe_configures_and_streams(fake_bus) -> None:
    _set_word(REG_ACCEL_XOUT_H, 0x0100)
    samples = []
    collector = MPU6050Collector(MPU6050Config(i2c_address=0x69), clock=ManualClock())

    handle = collector.subscribe(samples.append)
    try:
        assert wait_until(lambda: len(samples) >= 3)
    finally:
        handle.release()

    assert (0x69, REG_PWR_MGMT_1, 0x00) in fake_bus.writes
    assert (0x69, REG_ACCEL_CONFIG, 0x00) in fake_bus.writes
    assert samples[0].vector.x == pytest.approx(256 / 16384.0)
    assert not collector.is_running
    assert collector.bus is None


def test_mpu6050_missing_bus_is_unavailable(monkeypatch) -> None:
    def no_bus(bus_number):
        raise FileNotFoundError(f"/dev/i2c-{bus_number}")

    monkeypatch.setattr(smbus2, 'SMBus', no_bus)
    collector = MPU6050Collector(clock=ManualClock())
    with pytest.raises(SensorUnavailable):
        collector.subscribe(lambda s: None)
    assert not collector.is_running


def test_mpu6050_single_subscriber(fake_bus) -> None:
    collector = MPU6050Collector(clock=ManualClock())
    handle = collector.subscribe(lambda s: None)
    try:
        with pytest.raises(SensorUnavailable):
            collector.subscribe(lambda s: None)
    finally:
        handle.release()


def test_mpu6050_sample_interval() -> None:
    collector = MPU6050Collector(clock=ManualClock())
    collector.set_sample_interval(20)
    assert collector.config.collection_interval == pytest.approx(0.02)
    assert collector.config.sample_rate == 50
    with pytest.raises(ValueError):
        MPU6050Config().with_interval_ms(0)


# -- simulated -----------------------------------------------------------------


def test_simulated_waveform_at_time_zero() -> None:
    sensor = SimulatedAccelerometer(SimulatedAccelerometerConfig(noise=0.0), clock=ManualClock())
    sample = sensor.next_sample()
    assert sample.vector.x == pytest.approx(0.0)
    assert sample.vector.y == pytest.approx(0.05)
    assert sample.vector.z == pytest.approx(0.98)


def test_simulated_noise_is_bounded_and_seeded() -> None:
    config = SimulatedAccelerometerConfig(seed=7)
    first = SimulatedAccelerometer(config, clock=ManualClock())
    second = SimulatedAccelerometer(SimulatedAccelerometerConfig(seed=7), clock=ManualClock())

    a = [first.next_sample().vector for _ in range(20)]
    b = [second.next_sample().vector for _ in range(20)]

    assert a == b
    assert all(abs(v.z - 0.98) <= 0.0101 for v in a)


def test_simulated_subscription_streams_until_released() -> None:
    sensor = SimulatedAccelerometer(SimulatedAccelerometerConfig(seed=1))
    sensor.set_sample_interval(5)
    samples = []

    handle = sensor.subscribe(samples.append)
    assert wait_until(lambda: len(samples) >= 5)
    handle.release()
    count = len(samples)

    assert not sensor.is_running
    assert wait_until(lambda: len(samples) == count, timeout_s=0.1)
    assert all(b.t_ns >= a.t_ns for a, b in zip(samples, samples[1:]))


def test_simulated_unavailable() -> None:
    sensor = SimulatedAccelerometer()
    sensor.available = False
    with pytest.raises(SensorUnavailable):
        sensor.subscribe(lambda s: None)
