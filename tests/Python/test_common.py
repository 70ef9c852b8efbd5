import pytest
import json
import logging
import math

import yaml

from suspension_analytics.common import COMMON_CONFIG
from suspension_analytics.common.configuration import (
    AlertThresholds,
    AnalyticsConfiguration,
    clear_config_cache,
    load_analytics_configuration,
    load_config,
    save_config,
)
from suspension_analytics.common.error_handling import (
    InsufficientDataError,
    InvalidConfigurationError,
    SuspensionAnalyticsError,
    handle_error,
)
from suspension_analytics.common.logging import setup_logging
from suspension_analytics.models import DampingMode, EnvironmentalReading, RoadCondition, ShockAbsorberReading
from suspension_analytics.common.validation import (
    lookup,
    sanitize_bool,
    sanitize_choice,
    sanitize_number,
    sanitize_number_list,
    to_camel_case,
    validate_input,
)


@pytest.fixture(autouse=True)
def fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()


class TestAnalyticsConfiguration:
    def test_defaults(self):
        config = AnalyticsConfiguration()

        assert config.data_retention_period == 7.0
        assert config.sampling_rate == 1.0
        assert config.anomaly_detection_sensitivity == 0.8
        assert config.prediction_horizon == 30.0
        assert config.enable_real_time_analysis is True
        assert config.enable_predictive_maintenance is True
        assert config.alert_thresholds == AlertThresholds()
        assert config.max_buffer_size == 7 * 24 * 60 * 60

    def test_from_dict_accepts_camel_case(self):
        config = AnalyticsConfiguration.from_dict({
            'dataRetentionPeriod': 1,
            'samplingRate': 10,
            'enablePredictiveMaintenance': 'no',
            'alertThresholds': {'temperatureHigh': 90, 'pressure_high': 30_000_000},
            'unknownKey': 'ignored',
        })

        assert config.max_buffer_size == 864_000
        assert config.enable_predictive_maintenance is False
        assert config.alert_thresholds.temperature_high == 90.0
        assert config.alert_thresholds.pressure_high == 30_000_000.0
        assert config.alert_thresholds.power_low == 30.0

    @pytest.mark.parametrize('overrides', [
        {'sampling_rate': 0},
        {'data_retention_period': -1},
        {'anomaly_detection_sensitivity': 1.5},
        {'anomaly_detection_sensitivity': -0.1},
        {'prediction_horizon': -5},
        {'sampling_rate': 'fast'},
        {'alert_thresholds': 'hot'},
        {'alert_thresholds': {'temperature_high': 'very'}},
        {'sampling_rate': float('inf')},
        {'data_retention_period': 10 ** 400},
        {'data_retention_period': 0.00001, 'sampling_rate': 0.01},
    ])
    def test_invalid_values_are_rejected(self, overrides):
        with pytest.raises(InvalidConfigurationError):
            AnalyticsConfiguration.from_dict(overrides)

    def test_direct_construction_is_validated(self):
        with pytest.raises(InvalidConfigurationError):
            AnalyticsConfiguration(sampling_rate=-1)

    def test_configuration_is_immutable(self):
        config = AnalyticsConfiguration()
        with pytest.raises(AttributeError):
            config.sampling_rate = 5.0

    def test_coerce(self):
        config = AnalyticsConfiguration(sampling_rate=4)

        assert AnalyticsConfiguration.coerce(config) is config
        assert AnalyticsConfiguration.coerce(None) == AnalyticsConfiguration()
        assert AnalyticsConfiguration.coerce({'samplingRate': 4}) == config
        with pytest.raises(InvalidConfigurationError):
            AnalyticsConfiguration.coerce(['not', 'a', 'mapping'])


class TestConfigFiles:
    def test_load_yaml_analytics_section(self, tmp_path):
        path = tmp_path / 'analytics.yaml'
        path.write_text(yaml.safe_dump({
            'analytics': {'samplingRate': 5, 'anomalyDetectionSensitivity': 0.5},
            'other': {'ignored': True},
        }))

        config = load_analytics_configuration(path)

        assert config.sampling_rate == 5.0
        assert config.anomaly_detection_sensitivity == 0.5

    def test_load_json_top_level(self, tmp_path):
        path = tmp_path / 'analytics.json'
        path.write_text(json.dumps({'prediction_horizon': 14}))

        assert load_analytics_configuration(path).prediction_horizon == 14.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'missing.yaml')

    def test_empty_file_is_empty_config(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')

        assert load_config(path) == {}

    def test_non_mapping_file_is_rejected(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- one\n- two\n')

        with pytest.raises(InvalidConfigurationError):
            load_config(path)

    def test_loaded_configs_are_cached(self, tmp_path):
        path = tmp_path / 'cached.yaml'
        path.write_text('sampling_rate: 2\n')

        first = load_config(path)
        path.write_text('sampling_rate: 3\n')

        assert load_config(path) is first
        assert load_config(path, use_cache=False)['sampling_rate'] == 3

    @pytest.mark.parametrize('file_name', ['saved.yaml', 'saved.json'])
    def test_save_and_reload(self, tmp_path, file_name):
        config = AnalyticsConfiguration(
            sampling_rate=2,
            enable_real_time_analysis=False,
            alert_thresholds=AlertThresholds(temperature_high=75)
        )
        path = tmp_path / 'nested' / file_name

        save_config(config, path)

        assert load_analytics_configuration(path) == config


class TestValidation:
    def test_sanitize_number(self):
        assert sanitize_number(5, 0, 10) == 5.0
        assert sanitize_number(-3, 0, 10) == 0.0
        assert sanitize_number(30, 0, 10) == 10.0
        assert sanitize_number(' 7.5 ', 0, 10) == 7.5
        assert sanitize_number('abc', 1, 10) == 1.0
        assert sanitize_number(None, 2, 10) == 2.0
        assert sanitize_number(True, 0, 10) == 0.0
        assert sanitize_number(math.nan, 0, 10) == 0.0
        assert sanitize_number(math.inf, 0, 10) == 10.0
        assert sanitize_number([1, 2], 0, 10) == 0.0

    def test_sanitize_choice_and_bool(self):
        assert sanitize_choice('sport', ['comfort', 'sport']) == 'sport'
        assert sanitize_choice('turbo', ['comfort', 'sport']) == 'comfort'
        assert sanitize_choice(None, ['comfort', 'sport']) == 'comfort'
        assert sanitize_bool('Yes') is True
        assert sanitize_bool('false') is False
        assert sanitize_bool(0) is False
        assert sanitize_bool(None) is False

    def test_key_lookup(self):
        assert to_camel_case('battery_soc') == 'batterySoc'
        assert lookup({'batterySOC': 0.5}, 'battery_soc', ['batterySOC']) == 0.5
        assert lookup({'batterySoc': 0.4, 'battery_soc': 0.3}, 'battery_soc') == 0.3
        assert lookup({}, 'battery_soc') is None

    def test_huge_integers_clamp_instead_of_overflowing(self):
        assert sanitize_number(10 ** 400, 0, 1000) == 1000.0
        assert sanitize_number(-10 ** 400, -40, 200) == -40.0
        assert sanitize_number_list([10 ** 400, 5], 0, 1000, default=()) == (1000.0, 5.0)

    def test_number_list_falls_back_to_default(self):
        assert sanitize_number_list('1,2', 0, 10, default=(0.5, 0.5)) == (0.5, 0.5)
        assert sanitize_number_list(None, 0, 10, default=(0.0,)) == (0.0,)

    def test_validate_input_fills_missing_fields(self):
        reading = validate_input(None, EnvironmentalReading)

        assert isinstance(reading, EnvironmentalReading)
        assert reading.vehicle_speed == 0.0
        assert reading.ambient_temperature == -50.0
        assert reading.road_condition == RoadCondition.SMOOTH

    def test_validate_input_never_rejects_a_reading(self):
        reading = validate_input({
            'generatedPower': 10 ** 400,
            'damping_force': -1e9,
            'efficiency': 'broken',
            'dampingMode': 'turbo',
            'isOperational': 'yes',
            'unknown': object(),
        }, ShockAbsorberReading)

        assert reading.generated_power == 1000.0
        assert reading.damping_force == -10000.0
        assert reading.efficiency == 0.0
        assert reading.damping_mode == DampingMode.COMFORT
        assert reading.is_operational is True


class TestErrorsAndLogging:
    def test_insufficient_data_error(self):
        error = InsufficientDataError('pattern analysis', 10, 3)

        assert isinstance(error, SuspensionAnalyticsError)
        assert str(error) == 'Insufficient data for pattern analysis: need at least 10 data points, got 3'

    def test_handle_error_logs_context(self, caplog):
        logger = logging.getLogger('test_handle_error')

        with caplog.at_level(logging.ERROR, logger='test_handle_error'):
            try:
                raise ValueError('boom')
            except ValueError as e:
                handle_error(logger, 'Report generation', e)
            try:
                raise InsufficientDataError('pattern analysis', 10, 3)
            except InsufficientDataError as e:
                handle_error(logger, 'Pattern analysis', e)

        assert 'Report generation failed: boom' in caplog.text
        assert caplog.records[0].exc_info[0] is ValueError
        assert not caplog.records[1].exc_info

    def test_setup_logging_attaches_one_file_handler(self, tmp_path):
        log_file = str(tmp_path / 'analytics.log')

        logger = setup_logging('test_setup_logging', log_file)
        setup_logging('test_setup_logging', log_file)
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

        try:
            assert len(file_handlers) == 1
            assert logger.level == logging.INFO
            logger.info('hello')
            file_handlers[0].flush()
            assert 'test_setup_logging - INFO - hello' in (tmp_path / 'analytics.log').read_text()
        finally:
            for handler in file_handlers:
                logger.removeHandler(handler)
                handler.close()

    def test_unknown_level_is_rejected(self):
        with pytest.raises(ValueError):
            setup_logging('test_bad_level', level='CHATTY')

    def test_common_config_defaults(self):
        assert COMMON_CONFIG['logging']['level'] == 'INFO'
        assert 'yaml' in COMMON_CONFIG['configuration']['supported_formats']
