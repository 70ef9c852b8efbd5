import numbers
from collections import deque
from datetime import datetime
from itertools import islice
from typing import Any, Deque, Dict, List, Mapping, Optional, Type, Union

import numpy as np

from ..common.configuration import AnalyticsConfiguration
from ..common.logging import setup_logging
from ..common.validation import ModelT, validate_input
from ..models import (
    DamperReading,
    DataQualityMetrics,
    EnvironmentalReading,
    IntegrationReading,
    ShockAbsorberReading,
    SuspensionDataPoint,
)
from .statistics import ema

QUALITY_SMOOTHING = 0.1
INTERPOLATION_WINDOW = 3
ACCURACY_WINDOW = 10
CONSISTENCY_WINDOW = 5
BYTES_PER_POINT = 1024

RawReading = Optional[Mapping[str, Any]]


def to_local_naive(timestamp: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive timestamps pass through."""
    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        return timestamp.replace(tzinfo=None)
    return timestamp.astimezone().replace(tzinfo=None)


class DataProcessor:
    """Validates, sanitizes and buffers suspension telemetry.

    Keeps a bounded FIFO of ``SuspensionDataPoint`` records and a rolling
    set of data-quality scores updated on every ingested point. Timestamps
    are stored as naive local time.
    """
    def __init__(self, config: Union[AnalyticsConfiguration, Mapping[str, Any], None] = None):
        self.config = AnalyticsConfiguration.coerce(config)
        self.max_buffer_size = self.config.max_buffer_size
        self.sampling_rate = self.config.sampling_rate
        self.data_buffer: Deque[SuspensionDataPoint] = deque(maxlen=self.max_buffer_size)
        self.data_quality_metrics = DataQualityMetrics()
        self.last_processing_time: Optional[datetime] = None
        self.setup_logging()

    def setup_logging(self):
        self.logger = setup_logging('DataProcessor', self.config.log_file)

    def process_data_point(
        self,
        shock_absorber_data: RawReading,
        damper_data: RawReading,
        integration_data: RawReading,
        environmental_data: RawReading,
        timestamp: Optional[datetime] = None
    ) -> SuspensionDataPoint:
        """Sanitize one four-part reading, buffer it and update quality metrics."""
        timestamp = to_local_naive(timestamp) if timestamp is not None else datetime.now()
        raw_parts = [shock_absorber_data, damper_data, integration_data, environmental_data]

        if shock_absorber_data is None and self.data_buffer:
            shock_absorber_data = self._interpolate_shock_absorber_data()
        if damper_data is None and self.data_buffer:
            damper_data = self._interpolate_damper_data()

        data_point = SuspensionDataPoint(
            timestamp=timestamp,
            shock_absorber=self._sanitize(shock_absorber_data, ShockAbsorberReading, 'shock_absorber'),
            damper=self._sanitize(damper_data, DamperReading, 'damper'),
            integration=self._sanitize(integration_data, IntegrationReading, 'integration'),
            environmental=self._sanitize(environmental_data, EnvironmentalReading, 'environmental')
        )

        self.data_buffer.append(data_point)

        present = sum(1 for part in raw_parts if part is not None)
        self._update_data_quality_metrics(data_point, present / len(raw_parts))

        self.last_processing_time = timestamp
        return data_point

    def _sanitize(self, raw: RawReading, model: Type[ModelT], component: str) -> ModelT:
        reading = validate_input(raw, model)
        if isinstance(raw, Mapping):
            for key, value in reading:
                original = raw.get(key)
                if isinstance(original, (numbers.Real, str)) and original != value:
                    self.logger.debug(f"Sanitized {component}.{key}: {original!r} -> {value!r}")
        return reading

    def _tail(self, count: int) -> List[SuspensionDataPoint]:
        """The last ``count`` buffered points, oldest first, without copying the whole buffer."""
        recent = list(islice(reversed(self.data_buffer), count))
        recent.reverse()
        return recent

    def _interpolate_shock_absorber_data(self) -> Dict[str, Any]:
        """Estimate a missing shock absorber reading from the last few buffered points."""
        if len(self.data_buffer) < 2:
            return {}

        recent = self._tail(INTERPOLATION_WINDOW)
        self.logger.debug(f"Interpolating shock absorber reading from {len(recent)} points")
        return {
            'generated_power': float(np.mean([dp.shock_absorber.generated_power for dp in recent])),
            'efficiency': float(np.mean([dp.shock_absorber.efficiency for dp in recent])),
            'is_operational': True
        }

    def _interpolate_damper_data(self) -> Dict[str, Any]:
        if len(self.data_buffer) < 2:
            return {}

        recent = self._tail(INTERPOLATION_WINDOW)
        self.logger.debug(f"Interpolating damper reading from {len(recent)} points")
        return {
            'generated_power': float(np.mean([dp.damper.generated_power for dp in recent])),
            'energy_efficiency': float(np.mean([dp.damper.energy_efficiency for dp in recent]))
        }

    def _update_data_quality_metrics(self, data_point: SuspensionDataPoint, completeness: float):
        metrics = self.data_quality_metrics

        if self.last_processing_time is not None:
            expected_interval = 1000 / self.sampling_rate
            actual_interval = (data_point.timestamp - self.last_processing_time).total_seconds() * 1000
            timeliness = max(0.0, 1 - abs(actual_interval - expected_interval) / expected_interval)
            metrics.timeliness = ema(metrics.timeliness, timeliness, QUALITY_SMOOTHING)

        validity_checks = [
            0 <= data_point.shock_absorber.efficiency <= 1,
            0 <= data_point.damper.energy_efficiency <= 1,
            0 <= data_point.environmental.vehicle_speed <= 300,
            0 <= data_point.environmental.battery_soc <= 1,
        ]
        validity = sum(validity_checks) / len(validity_checks)

        metrics.completeness = ema(metrics.completeness, completeness, QUALITY_SMOOTHING)
        metrics.validity = ema(metrics.validity, validity, QUALITY_SMOOTHING)

        # Accuracy and consistency need recent history
        if len(self.data_buffer) > ACCURACY_WINDOW:
            self._update_accuracy_metrics()
            self._update_consistency_metrics()

    def _update_accuracy_metrics(self):
        recent = self._tail(ACCURACY_WINDOW)
        accurate = 0
        count = 0
        for previous, current in zip(recent, recent[1:]):
            power_change = abs(current.shock_absorber.generated_power - previous.shock_absorber.generated_power)
            if power_change <= previous.shock_absorber.generated_power * 0.5:
                accurate += 1
            count += 1

        if count > 0:
            self.data_quality_metrics.accuracy = ema(
                self.data_quality_metrics.accuracy, accurate / count, QUALITY_SMOOTHING)

    def _update_consistency_metrics(self):
        recent = self._tail(CONSISTENCY_WINDOW)
        consistent = 0
        for dp in recent:
            power_efficiency_consistent = (
                (dp.shock_absorber.generated_power > 0) == (dp.shock_absorber.efficiency > 0.1)
            )
            temperature_consistent = abs(
                dp.shock_absorber.operating_temperature - dp.damper.system_temperature) < 20
            if power_efficiency_consistent and temperature_consistent:
                consistent += 1

        if recent:
            self.data_quality_metrics.consistency = ema(
                self.data_quality_metrics.consistency, consistent / len(recent), QUALITY_SMOOTHING)

    def get_data_range(self, start_time: datetime, end_time: datetime) -> List[SuspensionDataPoint]:
        """Buffered points with ``start_time <= timestamp <= end_time``."""
        start_time, end_time = to_local_naive(start_time), to_local_naive(end_time)
        return [dp for dp in self.data_buffer if start_time <= dp.timestamp <= end_time]

    def get_recent_data(self, count: int) -> List[SuspensionDataPoint]:
        if count <= 0:
            return []
        return self._tail(count)

    def get_all_data(self) -> List[SuspensionDataPoint]:
        return list(self.data_buffer)

    def get_data_quality_metrics(self) -> DataQualityMetrics:
        m = self.data_quality_metrics
        return DataQualityMetrics(
            completeness=m.completeness,
            accuracy=m.accuracy,
            consistency=m.consistency,
            timeliness=m.timeliness,
            validity=m.validity
        )

    def get_buffer_stats(self) -> Dict[str, Any]:
        return {
            'total_data_points': len(self.data_buffer),
            'oldest_timestamp': self.data_buffer[0].timestamp if self.data_buffer else None,
            'newest_timestamp': self.data_buffer[-1].timestamp if self.data_buffer else None,
            'memory_usage': len(self.data_buffer) * BYTES_PER_POINT
        }

    def clear_data(self):
        self.data_buffer.clear()
        self.last_processing_time = None
        self.logger.info("Data buffer cleared")
