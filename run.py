"""
Motion Meter - Main Entry Point
Runs one measurement end to end:
  1. Open the key-value store (SQLite by default)
  2. Load app settings
  3. Open the accelerometer (MPU6050 or simulated)
  4. Calibrate, measure, process
  5. Persist the record and print the result

Usage:
    python run.py                       # simulated sensor, motion_meter.db
    python run.py --sensor mpu6050
    python run.py --history             # list stored measurements
    python run.py --clear               # delete all stored measurements
"""

import argparse
import logging
import sys
from datetime import datetime, timezone

from db.kv_store import SQLKeyValueStore, StoreError
from db.record_store import RecordStore
from db.settings_store import SettingsStore
from motion_meter.coordinator.clock import CentralClock
from motion_meter.measurement import (
    CALIBRATION_CAPTURE,
    CALIBRATION_ZERO,
    MeasurementConfig,
    MeasurementSession,
    MeasurementState,
    relative_time,
    summarize,
)
from motion_meter.sensors import (
    MPU6050Collector,
    MPU6050Config,
    SensorUnavailable,
    SimulatedAccelerometer,
    SimulatedAccelerometerConfig,
)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

logger = logging.getLogger('motion_meter')


def build_sensor(args, clock: CentralClock):
    """Create the accelerometer source selected on the command line."""
    if args.sensor == 'mpu6050':
        config = MPU6050Config(i2c_bus=args.i2c_bus, i2c_address=args.i2c_address)
        return MPU6050Collector(config=config, clock=clock)
    return SimulatedAccelerometer(SimulatedAccelerometerConfig(seed=args.seed), clock=clock)


def print_history(records_store: RecordStore):
    records = records_store.list()
    if not records:
        print("No measurements yet")
        return

    now = datetime.now(timezone.utc)
    for record in records:
        print(f"  {record.distance_cm:7.1f} cm  {record.accuracy.value:>6}  "
              f"{record.direction.value:<8}  {relative_time(record.captured_at, now):>9}  {record.id}")

    summary = summarize(records)
    print()
    print(f"  Measurements : {summary.count}")
    print(f"  Average      : {summary.average_distance_cm:.1f} cm")
    print(f"  High accuracy: {summary.high_accuracy_count}/{summary.count}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Motion Meter - accelerometer distance measurement')
    parser.add_argument('--db-url', default='sqlite:///motion_meter.db',
                        help='SQLAlchemy URL of the key-value store (default: sqlite:///motion_meter.db)')
    parser.add_argument('--sensor', choices=('simulated', 'mpu6050'), default='simulated',
                        help='Accelerometer source (default: simulated)')
    parser.add_argument('--i2c-bus', type=int, default=MPU6050Config.i2c_bus,
                        help=f'I2C bus number (default: {MPU6050Config.i2c_bus})')
    parser.add_argument('--i2c-address', type=lambda v: int(v, 0), default=MPU6050Config.i2c_address,
                        help=f'I2C address (default: 0x{MPU6050Config.i2c_address:02X})')
    parser.add_argument('--seed', type=int, default=None, help='Simulated sensor noise seed')
    parser.add_argument('--calibration', choices=(CALIBRATION_ZERO, CALIBRATION_CAPTURE),
                        default=CALIBRATION_ZERO,
                        help='Baseline mode: zero (default) or capture (mean of countdown samples)')
    parser.add_argument('--history', action='store_true', help='List stored measurements and exit')
    parser.add_argument('--clear', action='store_true', help='Delete stored measurements and exit')
    parser.add_argument('--log-file', default=None, help='Also write DEBUG logs to this file')
    parser.add_argument('--verbose', action='store_true', help='Log at DEBUG level')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    if args.log_file:
        fh = logging.FileHandler(args.log_file)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(fh)

    try:
        kv_store = SQLKeyValueStore.connect(args.db_url)
    except StoreError as e:
        logger.error(f"✗ Cannot open store: {e}")
        return 1

    records = RecordStore(kv_store)
    settings_store = SettingsStore(kv_store)

    try:
        if args.history:
            print_history(records)
            return 0
        if args.clear:
            settings_store.clear_measurement_data()
            return 0

        settings = settings_store.load()
        config = MeasurementConfig.from_settings(settings, calibration_mode=args.calibration)

        clock = CentralClock()
        sensor = build_sensor(args, clock)
        session = MeasurementSession(sensor, records, clock=clock, config=config)

        print(f"Hold the device still for {config.calibration_seconds}s, then move it along its x axis "
              f"for up to {config.measurement_seconds:g}s (Ctrl+C to stop early)")

        try:
            session.start()
            session.run()
        except KeyboardInterrupt:
            if session.state is not MeasurementState.MEASURING:
                session.reset()
                return 1
            session.stop()
            session.run()

        record = session.last_record
        if record is None:
            logger.error("✗ No result")
            return 1

        print()
        print(f"  Distance : {record.distance_cm:.1f} cm ({record.direction.value})")
        print(f"  Accuracy : {record.accuracy.value}")
        print(f"  Duration : {record.duration_seconds:.1f}s")
        if session.save_failed:
            print("  ⚠ Result could not be saved")
        return 0

    except SensorUnavailable as e:
        logger.error(f"✗ Failed to access accelerometer: {e}")
        return 1
    except StoreError as e:
        logger.error(f"✗ Storage error: {e}")
        return 1
    finally:
        kv_store.close()


if __name__ == '__main__':
    sys.exit(main())
