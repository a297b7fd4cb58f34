import json

import pytest

from db.kv_store import InMemoryKeyValueStore, StoreReadFailure
from db.record_store import MEASUREMENTS_KEY
from db.settings_store import SETTINGS_KEY, AppSettings, SettingsStore
from motion_meter.measurement import MeasurementConfig


class UnreadableStore(InMemoryKeyValueStore):
    def get(self, key):
        raise StoreReadFailure("locked")


def test_defaults_when_nothing_stored(kv_store) -> None:
    settings = SettingsStore(kv_store).load()
    assert settings == AppSettings()
    assert settings.calibration_time == 3
    assert settings.measurement_time == 5
    assert settings.auto_save is True
    assert settings.high_precision_mode is True


def test_to_dict_uses_camel_case_keys() -> None:
    assert AppSettings().to_dict() == {
        'hapticFeedback': True,
        'soundAlerts': False,
        'autoSave': True,
        'highPrecisionMode': True,
        'calibrationTime': 3,
        'measurementTime': 5,
    }


def test_save_then_load(kv_store) -> None:
    store = SettingsStore(kv_store)
    store.save(AppSettings(sound_alerts=True, measurement_time=8))

    assert json.loads(kv_store.get(SETTINGS_KEY))['measurementTime'] == 8
    loaded = store.load()
    assert loaded.sound_alerts is True
    assert loaded.measurement_time == 8


def test_partial_settings_merge_over_defaults(kv_store) -> None:
    kv_store.set(SETTINGS_KEY, json.dumps({'autoSave': False, 'unknownKey': 1}))
    settings = SettingsStore(kv_store).load()
    assert settings.auto_save is False
    assert settings.calibration_time == 3


@pytest.mark.parametrize(
    "stored",
    [
        {'autoSave': 'yes'},
        {'measurementTime': 0},
        {'calibrationTime': -2},
        {'measurementTime': True},
        {'highPrecisionMode': 1},
        {'measurementTime': float('inf')},
        {'calibrationTime': 1e400},
        {'measurementTime': 10 ** 400},
        {'measurementTime': 3600},
    ],
)
def test_invalid_values_keep_defaults(kv_store, stored) -> None:
    kv_store.set(SETTINGS_KEY, json.dumps(stored))
    assert SettingsStore(kv_store).load() == AppSettings()


@pytest.mark.parametrize("raw", ['{broken', '[1, 2]', '"text"'])
def test_malformed_settings_fall_back_to_defaults(kv_store, raw) -> None:
    kv_store.set(SETTINGS_KEY, raw)
    assert SettingsStore(kv_store).load() == AppSettings()


def test_unreadable_store_falls_back_to_defaults() -> None:
    assert SettingsStore(UnreadableStore()).load() == AppSettings()


def test_update_changes_one_field(kv_store) -> None:
    store = SettingsStore(kv_store)
    store.save(AppSettings(sound_alerts=True))

    updated = store.update(high_precision_mode=False)

    assert updated.high_precision_mode is False
    assert updated.sound_alerts is True
    assert store.load() == updated


def test_clear_measurement_data_keeps_settings(kv_store) -> None:
    store = SettingsStore(kv_store)
    store.save(AppSettings(measurement_time=4))
    kv_store.set(MEASUREMENTS_KEY, '[]')

    store.clear_measurement_data()

    assert kv_store.get(MEASUREMENTS_KEY) is None
    assert store.load().measurement_time == 4


def test_measurement_config_from_settings() -> None:
    config = MeasurementConfig.from_settings(
        AppSettings(calibration_time=2, measurement_time=4, auto_save=False, high_precision_mode=False)
    )
    assert config.calibration_seconds == 2
    assert config.measurement_seconds == 4.0
    assert config.measurement_ticks == 40
    assert config.auto_save is False
    assert config.sample_interval_ms == 20


def test_high_precision_samples_at_100_hz() -> None:
    assert MeasurementConfig.from_settings(AppSettings()).sample_interval_ms == 10


def test_measurement_config_overrides_win() -> None:
    config = MeasurementConfig.from_settings(AppSettings(), calibration_mode='capture')
    assert config.calibration_mode == 'capture'


@pytest.mark.parametrize(
    "changes",
    [
        {'measurement_seconds': 0},
        {'measurement_tick': -0.1},
        {'velocity_decay': 1.5},
        {'velocity_decay': 0.0},
        {'calibration_mode': 'auto'},
        {'sample_interval_ms': 0},
    ],
)
def test_measurement_config_validation(changes) -> None:
    with pytest.raises(ValueError):
        MeasurementConfig(**changes).validate()


def test_non_finite_json_durations_fall_back_to_defaults(kv_store) -> None:
    kv_store.set(SETTINGS_KEY, '{"measurementTime": Infinity, "calibrationTime": 1e400, "autoSave": false}')

    settings = SettingsStore(kv_store).load()
    config = MeasurementConfig.from_settings(settings)

    assert settings == AppSettings(auto_save=False)
    assert config.measurement_seconds == 5.0
    assert config.calibration_seconds == 3


def test_measurement_config_rejects_non_finite_durations() -> None:
    with pytest.raises(ValueError):
        MeasurementConfig(measurement_seconds=float('inf')).validate()
    with pytest.raises(ValueError):
        MeasurementConfig(processing_delay=float('nan')).validate()
