import json
import math
import numbers
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .error_handling import InvalidConfigurationError
from .validation import lookup, sanitize_bool

_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}

SECONDS_PER_DAY = 24 * 60 * 60


def load_config(path: Union[str, Path], use_cache: bool = True) -> Dict[str, Any]:
    """
    Load a YAML or JSON config file with per-file cache.
    """
    key = str(path)
    if use_cache and key in _CONFIG_CACHE:
        return _CONFIG_CACHE[key]

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        if config_path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"Config file {path} must contain a mapping at top level")

    _CONFIG_CACHE[key] = data
    return data


def save_config(config: Union[Mapping[str, Any], 'AnalyticsConfiguration'],
                path: Union[str, Path]) -> Path:
    """Write a configuration mapping (or ``AnalyticsConfiguration``) as YAML or JSON."""
    if isinstance(config, AnalyticsConfiguration):
        config = config.to_dict()

    config_path = Path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        if config_path.suffix.lower() == '.json':
            json.dump(dict(config), f, indent=2)
        else:
            yaml.safe_dump(dict(config), f, default_flow_style=False, sort_keys=False)

    _CONFIG_CACHE.pop(str(path), None)
    return config_path


def clear_config_cache() -> None:
    _CONFIG_CACHE.clear()


def _require_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidConfigurationError(f"{name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise InvalidConfigurationError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class AlertThresholds:
    """Limits checked against every ingested data point."""
    temperature_high: float = 85.0
    temperature_critical: float = 105.0
    efficiency_low: float = 0.65
    efficiency_critical: float = 0.45
    power_low: float = 30.0
    vibration_high: float = 8.0
    pressure_high: float = 35e6

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'AlertThresholds':
        data = data or {}
        values = {}
        for f in fields(cls):
            value = lookup(data, f.name)
            if value is not None:
                values[f.name] = _require_number(f"alert_thresholds.{f.name}", value)
        return cls(**values)


@dataclass(frozen=True)
class AnalyticsConfiguration:
    """Session configuration for the analytics pipeline.

    Immutable once constructed; ``validate`` is run on construction.
    """
    data_retention_period: float = 7.0
    sampling_rate: float = 1.0
    anomaly_detection_sensitivity: float = 0.8
    prediction_horizon: float = 30.0
    enable_real_time_analysis: bool = True
    enable_predictive_maintenance: bool = True
    alert_thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    log_file: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        retention = _require_number('data_retention_period', self.data_retention_period)
        sampling = _require_number('sampling_rate', self.sampling_rate)
        sensitivity = _require_number('anomaly_detection_sensitivity', self.anomaly_detection_sensitivity)
        horizon = _require_number('prediction_horizon', self.prediction_horizon)

        if retention <= 0:
            raise InvalidConfigurationError(
                f"data_retention_period must be positive, got {retention}")
        if sampling <= 0:
            raise InvalidConfigurationError(f"sampling_rate must be positive, got {sampling}")
        if not 0.0 <= sensitivity <= 1.0:
            raise InvalidConfigurationError(
                f"anomaly_detection_sensitivity must be within [0, 1], got {sensitivity}")
        if horizon < 0:
            raise InvalidConfigurationError(
                f"prediction_horizon must not be negative, got {horizon}")
        if self.max_buffer_size < 1:
            raise InvalidConfigurationError(
                f"data_retention_period x sampling_rate must retain at least one point, "
                f"got {retention * SECONDS_PER_DAY * sampling} points")
        if not isinstance(self.alert_thresholds, AlertThresholds):
            raise InvalidConfigurationError("alert_thresholds must be an AlertThresholds instance")

    @property
    def max_buffer_size(self) -> int:
        return int(self.data_retention_period * SECONDS_PER_DAY * self.sampling_rate)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'AnalyticsConfiguration':
        """Build a configuration from snake_case or camelCase keys; unknown keys are ignored."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")

        values: Dict[str, Any] = {}
        for f in fields(cls):
            value = lookup(data, f.name)
            if value is None:
                continue
            if f.name == 'alert_thresholds':
                if not isinstance(value, Mapping):
                    raise InvalidConfigurationError("alert_thresholds must be a mapping")
                values[f.name] = AlertThresholds.from_dict(value)
            elif f.name.startswith('enable_'):
                values[f.name] = sanitize_bool(value)
            elif f.name == 'log_file':
                values[f.name] = str(value)
            else:
                values[f.name] = _require_number(f.name, value)
        return cls(**values)

    @classmethod
    def coerce(cls, config: Union['AnalyticsConfiguration', Mapping[str, Any], None]
               ) -> 'AnalyticsConfiguration':
        """Accept a ready configuration, a plain mapping, or None for defaults."""
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        return cls.from_dict(config)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_analytics_configuration(path: Union[str, Path]) -> AnalyticsConfiguration:
    """Load and validate an ``AnalyticsConfiguration`` from a YAML or JSON file.

    The settings may sit at top level or under an ``analytics`` key.
    """
    data = load_config(path)
    section = data.get('analytics', data)
    return AnalyticsConfiguration.from_dict(section)
