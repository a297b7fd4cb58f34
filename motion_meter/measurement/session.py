"""
Measurement Session
State machine driving calibration, the timed measurement window and
result finalization

    ready ──start()──▶ calibrating ──countdown──▶ measuring ──cap / stop()──▶
    processing ──delay──▶ complete ──start() / reset()──▶ ready

reset() returns to ready from any state.

Threading model:
    Sensor threads only enqueue samples on a channel. All state changes
    happen in step() (or in the start/stop/reset commands) under one lock,
    so the integrator is never mutated concurrently. Each subscription gets
    a generation number; samples from a released generation are discarded,
    so nothing delivered after release can change the result.

Timing:
    Every wait is a StateTimer deadline against the injected clock. Tests
    use a ManualClock and call step() after advancing it; run() drives
    step() in a bounded real-time loop.
"""

import logging
import queue
import threading
from enum import Enum
from typing import Optional

import numpy as np

from motion_meter.coordinator.clock import CentralClock
from motion_meter.coordinator.coordinator import SensorCoordinator
from motion_meter.coordinator.timer import StateTimer
from motion_meter.sensors.base import (
    AccelerometerSource,
    Sample,
    SensorFault,
    SensorUnavailable,
    Vector3,
)
from .classifier import AccuracyBand
from .config import CALIBRATION_CAPTURE, MeasurementConfig
from .models import Record
from .processor import IntegratorState, MotionIntegrator, filter_sample

logger = logging.getLogger(__name__)


class MeasurementState(str, Enum):
    READY = 'ready'
    CALIBRATING = 'calibrating'
    MEASURING = 'measuring'
    PROCESSING = 'processing'
    COMPLETE = 'complete'


class MeasurementSession:
    """
    One measurement at a time, from countdown to persisted record

    Responsibilities:
    - Hold the single sensor subscription (via SensorCoordinator)
    - Own the calibration baseline and integrator state
    - Expose live readout: countdown, measurement_time, current_distance_cm
    - Build the Record and hand it to the record store
    """

    def __init__(
            self,
            sensor: AccelerometerSource,
            record_store=None,
            clock: Optional[CentralClock] = None,
            config: Optional[MeasurementConfig] = None,
    ):
        """
        Initialize measurement session

        Args:
            sensor: Accelerometer source
            record_store: Object with append(record); None disables saving
            clock: Time reference (a new CentralClock if omitted)
            config: Measurement configuration
        """
        self.config = (config if config else MeasurementConfig()).validate()
        self.clock = clock if clock else CentralClock()
        self.coordinator = SensorCoordinator(sensor, self.clock)
        self.record_store = record_store
        self.integrator = MotionIntegrator(self.config)

        self._timer = StateTimer(self.clock)
        self._channel: "queue.Queue[tuple]" = queue.Queue()
        self._lock = threading.RLock()
        self._generation = 0

        self.state = MeasurementState.READY
        self.last_record: Optional[Record] = None
        self.last_error: Optional[Exception] = None
        self.save_failed = False
        self._zero_counters()

        logger.info(f"Measurement session created ({self.config.calibration_seconds}s calibration, "
                    f"{self.config.measurement_seconds}s window)")

    # -----------------------------------------------------------------------
    # Live readout
    # -----------------------------------------------------------------------

    @property
    def measurement_time(self) -> float:
        """Elapsed measurement time in display ticks (seconds)."""
        return round(self.measurement_ticks * self.config.measurement_tick, 1)

    @property
    def samples_accepted(self) -> int:
        return self.integrator.accepted_count

    @property
    def samples_dropped(self) -> int:
        return self.integrator.dropped_count

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def start(self):
        """
        Begin the calibration countdown from ready. From complete, returns
        to ready instead. Ignored in any other state.

        Raises:
            SensorUnavailable: in capture mode, if the sensor cannot be opened
        """
        with self._lock:
            if self.state is MeasurementState.COMPLETE:
                self._reset()
                return
            if self.state is not MeasurementState.READY:
                logger.warning(f"Start ignored while {self.state.value}")
                return
            self.last_error = None
            self._enter_calibrating()

    def stop(self):
        """
        Manual stop: finish the measurement now. Only valid while measuring.

        Samples already delivered by the sensor are applied before the
        subscription is released; reset() discards them instead.
        """
        with self._lock:
            if self.state is not MeasurementState.MEASURING:
                logger.warning(f"Stop ignored while {self.state.value}")
                return
            self._drain_samples()
            logger.info(f"Manual stop at {self.measurement_time:.1f}s")
            self._enter_processing()

    def reset(self):
        """Release the sensor, cancel timers and zero everything. Records are kept."""
        with self._lock:
            self._reset()

    # -----------------------------------------------------------------------
    # Driving
    # -----------------------------------------------------------------------

    def step(self) -> int:
        """
        Apply queued samples, then fire any due timer ticks

        Returns:
            Number of samples integrated

        Raises:
            SensorUnavailable: if entering measuring could not subscribe;
                the session is back in ready when this is raised
        """
        with self._lock:
            applied = self._drain_samples()
            self._run_due_timers()
            return applied

    def run(self, timeout: Optional[float] = None, poll_interval: float = 0.005) -> MeasurementState:
        """
        Drive step() until the session settles in complete or ready

        Args:
            timeout: Upper bound in seconds (default: the full cycle plus 5 s)
            poll_interval: Longest sleep between steps

        Returns:
            The settled state

        Raises:
            TimeoutError: if the bound elapses; the session is reset first
        """
        if timeout is None:
            timeout = (self.config.calibration_seconds * self.config.countdown_tick
                       + self.config.measurement_seconds + self.config.processing_delay + 5.0)
        deadline = self.clock.monotonic() + timeout

        while True:
            self.step()
            if self.state in (MeasurementState.COMPLETE, MeasurementState.READY):
                return self.state
            if self.clock.monotonic() >= deadline:
                self.reset()
                raise TimeoutError(f"Measurement did not finish within {timeout:.1f}s")
            until_due = self._timer.seconds_until_due()
            wait = poll_interval if until_due is None else min(poll_interval, until_due)
            self.clock.sleep(wait)

    def measure(self, timeout: Optional[float] = None) -> Optional[Record]:
        """
        Run one complete measurement and return its record

        Returns:
            The finalized Record, or None if the session ended in ready
        """
        with self._lock:
            if self.state is MeasurementState.COMPLETE:
                self._reset()
        self.start()
        state = self.run(timeout=timeout)
        return self.last_record if state is MeasurementState.COMPLETE else None

    # -----------------------------------------------------------------------
    # Private: state entry
    # -----------------------------------------------------------------------

    def _enter_calibrating(self):
        self._zero_counters()
        self.state = MeasurementState.CALIBRATING
        self.countdown = self.config.calibration_seconds
        logger.info(f"Calibrating, hold still ({self.countdown}s)")

        if self.config.calibration_mode == CALIBRATION_CAPTURE:
            self._subscribe()

        self._timer.start_periodic(self.config.countdown_tick, self._on_countdown_tick, 'calibration')

    def _enter_measuring(self):
        self.baseline = self._capture_baseline()
        self.state = MeasurementState.MEASURING

        now_ns = self.clock.monotonic_ns()
        self.integrator_state.reset(now_ns)
        self.integrator.reset_counters()
        self.measurement_ticks = 0
        self.current_distance_cm = 0.0
        self._measuring_started_ns = now_ns
        self._window_end_ns = now_ns + int(round(self.config.measurement_seconds * 1e9))

        if not self.coordinator.is_subscribed:
            self._subscribe()

        self._timer.start_periodic(self.config.measurement_tick, self._on_measurement_tick, 'measurement')
        logger.info(f"✓ Measuring for {self.config.measurement_seconds}s "
                    f"(baseline x={self.baseline.x:.3f} y={self.baseline.y:.3f} z={self.baseline.z:.3f})")

    def _enter_processing(self):
        self._release_sensor()
        self.state = MeasurementState.PROCESSING

        self._final_position_x = self.integrator_state.displacement_x
        elapsed = (self.clock.monotonic_ns() - self._measuring_started_ns) / 1e9
        self._final_duration = round(min(elapsed, self.config.measurement_seconds), 3)

        logger.info(f"Processing {self.samples_accepted} samples "
                    f"({self.samples_dropped} dropped, {self.fault_count} faults, {self.late_count} late)")
        self._timer.start_once(self.config.processing_delay, self._finalize, 'processing')

    def _finalize(self):
        record = Record.from_displacement(
            position_x=self._final_position_x,
            duration_seconds=self._final_duration,
            captured_at=self.coordinator.get_central_timestamp(),
        )
        self.final_distance_cm = record.distance_cm
        self.accuracy = record.accuracy
        self.last_record = record
        self.save_failed = False

        if self.config.auto_save and self.record_store is not None:
            try:
                self.record_store.append(record)
            except Exception as e:
                # Result is still shown; the record is lost
                self.save_failed = True
                logger.error(f"✗ Failed to save measurement {record.id}: {e}", exc_info=True)

        self.state = MeasurementState.COMPLETE
        logger.info(f"✓ Measurement complete: {record.distance_cm:.1f} cm "
                    f"{record.direction.value} ({record.accuracy.value})")

    def _reset(self):
        self._timer.cancel()
        self._release_sensor()
        self._zero_counters()
        self.last_record = None
        self.save_failed = False
        if self.state is not MeasurementState.READY:
            logger.info(f"Reset from {self.state.value}")
        self.state = MeasurementState.READY

    # -----------------------------------------------------------------------
    # Private: timer callbacks
    # -----------------------------------------------------------------------

    def _run_due_timers(self):
        while True:
            callback = self._timer.poll()
            if callback is None:
                return
            callback()

    def _on_countdown_tick(self):
        if self.countdown <= 1:
            self.countdown = 0
            self._enter_measuring()
        else:
            self.countdown -= 1
            logger.debug(f"Calibration countdown: {self.countdown}")

    def _on_measurement_tick(self):
        self.measurement_ticks += 1
        if self.measurement_ticks >= self.config.measurement_ticks:
            self.measurement_ticks = self.config.measurement_ticks
            logger.info("Measurement window elapsed")
            self._enter_processing()

    # -----------------------------------------------------------------------
    # Private: sensor and samples
    # -----------------------------------------------------------------------

    def _subscribe(self):
        generation = self._generation

        def on_sample(sample: Sample):
            self._channel.put((generation, sample))

        try:
            self.coordinator.set_sample_interval(self.config.sample_interval_ms)
            self.coordinator.subscribe(on_sample)
        except SensorUnavailable as e:
            logger.error(f"✗ Sensor unavailable, returning to ready: {e}")
            self._reset()
            self.last_error = e
            raise

    def _release_sensor(self):
        self._generation += 1
        self.coordinator.release()
        while True:
            try:
                self._channel.get_nowait()
            except queue.Empty:
                break

    def _drain_samples(self) -> int:
        applied = 0
        while True:
            try:
                generation, sample = self._channel.get_nowait()
            except queue.Empty:
                return applied
            if generation != self._generation:
                continue
            if self.state is MeasurementState.MEASURING:
                applied += self._apply_sample(sample)
            elif self.state is MeasurementState.CALIBRATING:
                self._accumulate_baseline(sample)

    def _apply_sample(self, sample: Sample) -> int:
        try:
            self._check_finite(sample)
        except SensorFault as e:
            self.fault_count += 1
            logger.warning(f"⚠ {e}")
            return 0

        if sample.t_ns > self._window_end_ns:
            self.late_count += 1
            logger.debug(f"Sample after measurement window dropped: t_ns={sample.t_ns}")
            return 0

        filtered = filter_sample(sample.vector, self.baseline, self.config.dead_zone)
        if not self.integrator.integrate(self.integrator_state, filtered, sample.t_ns):
            return 0
        self.current_distance_cm = abs(self.integrator_state.displacement_x) * 100
        return 1

    def _accumulate_baseline(self, sample: Sample):
        try:
            self._check_finite(sample)
        except SensorFault as e:
            self.fault_count += 1
            logger.warning(f"⚠ {e}")
            return
        self._calibration_sum += sample.vector.as_array()
        self._calibration_count += 1

    def _capture_baseline(self) -> Vector3:
        if self.config.calibration_mode != CALIBRATION_CAPTURE:
            return Vector3.zero()
        if self._calibration_count == 0:
            logger.warning("⚠ No samples during calibration, using zero baseline")
            return Vector3.zero()
        return Vector3.from_array(self._calibration_sum / self._calibration_count)

    @staticmethod
    def _check_finite(sample: Sample):
        if not sample.vector.is_finite():
            raise SensorFault(f"Non-finite sample dropped: {sample.vector}")

    def _zero_counters(self):
        self.countdown = 0
        self.measurement_ticks = 0
        self.current_distance_cm = 0.0
        self.final_distance_cm: Optional[float] = None
        self.accuracy: Optional[AccuracyBand] = None
        self.fault_count = 0
        self.late_count = 0

        self.baseline = Vector3.zero()
        self.integrator_state = IntegratorState()
        self.integrator.reset_counters()
        self._calibration_sum = np.zeros(3, dtype=np.float64)
        self._calibration_count = 0
        self._measuring_started_ns = self.clock.monotonic_ns()
        self._window_end_ns = self._measuring_started_ns
        self._final_position_x = 0.0
        self._final_duration = 0.0

    # -----------------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------------

    def get_status(self) -> dict:
        """
        Return a snapshot of the session for display.

        Returns:
            Dict with state, live readout, final result and counters.
        """
        with self._lock:
            return {
                'state': self.state.value,
                'countdown': self.countdown,
                'measurement_time': self.measurement_time,
                'current_distance_cm': self.current_distance_cm,
                'final_distance_cm': self.final_distance_cm,
                'accuracy': self.accuracy.value if self.accuracy else None,
                'samples_accepted': self.samples_accepted,
                'samples_dropped': self.samples_dropped,
                'sensor_faults': self.fault_count,
                'late_samples': self.late_count,
                'save_failed': self.save_failed,
                'last_error': str(self.last_error) if self.last_error else None,
                'coordinator': self.coordinator.get_coordinator_status(),
            }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.reset()

    def __repr__(self):
        return f"<MeasurementSession(state={self.state.value})>"
