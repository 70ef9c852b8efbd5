import pandas as pd
import numpy as np
from typing import Dict, List, Any, Optional, Sequence, Union, Mapping
from datetime import datetime
from sklearn.preprocessing import StandardScaler

from ..common.configuration import AnalyticsConfiguration
from ..common.error_handling import InsufficientDataError, handle_error
from ..common.logging import setup_logging
from ..models import (
    AnomalyDetection,
    AnomalyType,
    CorrelationAnalysis,
    Impact,
    PatternAnalysisResult,
    PerformancePattern,
    Relationship,
    Severity,
    SuspensionDataPoint,
    TrendDirection,
    points_to_frame,
)
from .statistics import (
    autocorrelation,
    correlation_significance,
    linear_slope,
    pearson_correlation,
)

MIN_DATA_POINTS = 10
MIN_SEASONALITY_POINTS = 50
MAX_SEASONALITY_LAG = 100
SEASONALITY_THRESHOLD = 0.3
TREND_SLOPE_THRESHOLD = 0.01
CORRELATION_THRESHOLD = 0.1
PATTERN_HISTORY_LIMIT = 1000

# (frame column, anomaly type, description); checked in this order for every point
ANOMALY_METRICS = [
    ('shock_temperature', AnomalyType.TEMPERATURE, 'Shock absorber temperature anomaly detected'),
    ('shock_power', AnomalyType.POWER, 'Power generation anomaly detected'),
    ('shock_efficiency', AnomalyType.EFFICIENCY, 'System efficiency anomaly detected'),
    ('hydraulic_pressure', AnomalyType.PRESSURE, 'Hydraulic pressure anomaly detected'),
    ('damper_temperature', AnomalyType.TEMPERATURE, 'Damper temperature anomaly detected'),
    ('damper_power', AnomalyType.POWER, 'Damper power generation anomaly detected'),
]

SEVERITY_MULTIPLIERS = [
    (Severity.CRITICAL, 5),
    (Severity.HIGH, 4),
    (Severity.MEDIUM, 3),
    (Severity.LOW, 2),
]

CORRELATION_PAIRS = [
    ('Vehicle Speed', 'Power Generation', 'vehicle_speed', 'total_power'),
    ('Road Roughness', 'Power Generation', 'road_roughness', 'total_power'),
    ('Temperature', 'Efficiency', 'shock_temperature', 'shock_efficiency'),
    ('Battery SOC', 'Energy Harvesting', 'battery_soc', 'harvested_energy'),
]


class PatternRecognitionEngine:
    """Finds trends, seasonality, anomalies, correlations and performance patterns
    in a window of suspension telemetry."""
    def __init__(self, config: Union[AnalyticsConfiguration, Mapping[str, Any], None] = None):
        self.config = AnalyticsConfiguration.coerce(config)
        self.sensitivity = self.config.anomaly_detection_sensitivity
        self.anomaly_baselines: Dict[str, Dict[str, float]] = {}
        self.correlation_cache: Dict[str, float] = {}
        self.pattern_history: List[PerformancePattern] = []
        self.last_analysis_time: Optional[datetime] = None
        self.setup_logging()

    def setup_logging(self):
        self.logger = setup_logging('PatternRecognitionEngine', self.config.log_file)

    def analyze_patterns(self, data: Sequence[SuspensionDataPoint]) -> PatternAnalysisResult:
        """Run every pattern analysis over ``data`` (at least 10 points)."""
        try:
            if len(data) < MIN_DATA_POINTS:
                raise InsufficientDataError('pattern analysis', MIN_DATA_POINTS, len(data))

            df = points_to_frame(data)

            trend_direction = self._analyze_trends(df)
            seasonality = self._detect_seasonality(df)
            anomalies = self._detect_anomalies(df, [dp.timestamp for dp in data])
            correlations = self._analyze_correlations(df)
            performance_patterns = self._identify_performance_patterns(df)

            self.pattern_history.extend(performance_patterns)
            if len(self.pattern_history) > PATTERN_HISTORY_LIMIT:
                self.pattern_history = self.pattern_history[-PATTERN_HISTORY_LIMIT:]
            self.last_analysis_time = datetime.now()

            self.logger.info(
                f"Pattern analysis over {len(df)} points: trend={trend_direction.value}, "
                f"anomalies={len(anomalies)}, correlations={len(correlations)}, "
                f"patterns={len(performance_patterns)}"
            )

            return PatternAnalysisResult(
                trend_direction=trend_direction,
                seasonality=seasonality,
                anomalies=anomalies,
                correlations=correlations,
                performance_patterns=performance_patterns
            )

        except Exception as e:
            handle_error(self.logger, "Pattern analysis", e)
            raise

    def _analyze_trends(self, df: pd.DataFrame) -> TrendDirection:
        """Combine the power and efficiency trends into one direction."""
        trends = [
            self._calculate_trend(df['total_power']),
            self._calculate_trend(df['average_efficiency']),
        ]

        if trends.count(TrendDirection.INCREASING) >= 2:
            return TrendDirection.INCREASING
        if trends.count(TrendDirection.DECREASING) >= 2:
            return TrendDirection.DECREASING
        if TrendDirection.STABLE in trends:
            return TrendDirection.STABLE
        return TrendDirection.FLUCTUATING

    def _calculate_trend(self, values: pd.Series) -> TrendDirection:
        if len(values) < 3:
            return TrendDirection.STABLE

        slope = linear_slope(values.to_numpy(dtype=float))
        if abs(slope) < TREND_SLOPE_THRESHOLD:
            return TrendDirection.STABLE
        return TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING

    def _detect_seasonality(self, df: pd.DataFrame) -> bool:
        if len(df) < MIN_SEASONALITY_POINTS:
            return False

        values = df['total_power'].to_numpy(dtype=float)
        max_lag = min(len(values) // 4, MAX_SEASONALITY_LAG)
        max_correlation = max(
            (abs(self.calculate_autocorrelation(values, lag)) for lag in range(1, max_lag + 1)),
            default=0.0
        )
        return max_correlation > SEASONALITY_THRESHOLD

    def calculate_autocorrelation(self, values: Sequence[float], lag: int) -> float:
        return autocorrelation(values, lag)

    def _detect_anomalies(self, df: pd.DataFrame, timestamps: List[datetime]) -> List[AnomalyDetection]:
        """Flag per-point z-score outliers against baselines of the current window."""
        columns = [metric[0] for metric in ANOMALY_METRICS]
        values = df[columns].to_numpy(dtype=float)

        scaler = StandardScaler()
        z_scores = np.abs(scaler.fit_transform(values))
        std_devs = np.sqrt(scaler.var_)
        # Constant columns carry no signal
        z_scores[:, np.ptp(values, axis=0) == 0] = 0.0

        self._update_anomaly_baselines(columns, scaler.mean_, std_devs)

        thresholds = [
            (severity, multiplier * (1 - self.sensitivity))
            for severity, multiplier in SEVERITY_MULTIPLIERS
        ]

        anomalies = []
        for row_index, timestamp in enumerate(timestamps):
            for col_index, (column, anomaly_type, description) in enumerate(ANOMALY_METRICS):
                deviation = float(z_scores[row_index, col_index])
                severity = self._classify_deviation(deviation, thresholds)
                if severity is None:
                    continue
                anomalies.append(AnomalyDetection(
                    type=anomaly_type,
                    severity=severity,
                    value=float(values[row_index, col_index]),
                    expected_value=float(scaler.mean_[col_index]),
                    deviation=deviation,
                    timestamp=timestamp,
                    description=description
                ))

        return sorted(anomalies, key=lambda a: a.severity.rank, reverse=True)

    def _update_anomaly_baselines(self, columns: List[str], means: np.ndarray, std_devs: np.ndarray):
        for column, mean, std_dev in zip(columns, means, std_devs):
            self.anomaly_baselines[column] = {'mean': float(mean), 'std_dev': float(std_dev)}

    @staticmethod
    def _classify_deviation(deviation: float, thresholds) -> Optional[Severity]:
        for severity, threshold in thresholds:
            if deviation > threshold:
                return severity
        return None

    def _analyze_correlations(self, df: pd.DataFrame) -> List[CorrelationAnalysis]:
        correlations = []
        sample_size = len(df)

        for name1, name2, column1, column2 in CORRELATION_PAIRS:
            coefficient = self.pearson_correlation(df[column1], df[column2])
            self.correlation_cache[f"{name1}_{name2}"] = coefficient

            if abs(coefficient) <= CORRELATION_THRESHOLD:
                continue

            correlations.append(CorrelationAnalysis(
                variable1=name1,
                variable2=name2,
                correlation_coefficient=coefficient,
                significance=correlation_significance(coefficient, sample_size),
                relationship=Relationship.POSITIVE if coefficient > 0 else Relationship.NEGATIVE
            ))

        return correlations

    def pearson_correlation(self, x: Sequence[float], y: Sequence[float]) -> float:
        return pearson_correlation(x, y)

    def _identify_performance_patterns(self, df: pd.DataFrame) -> List[PerformancePattern]:
        detectors = [
            self._identify_high_efficiency_pattern,
            self._identify_power_peak_pattern,
            self._identify_temperature_pattern,
            self._identify_road_condition_pattern,
        ]
        patterns = []
        for detector in detectors:
            pattern = detector(df)
            if pattern is not None:
                patterns.append(pattern)
        return patterns

    def _identify_high_efficiency_pattern(self, df: pd.DataFrame) -> Optional[PerformancePattern]:
        high_efficiency = df[(df['shock_efficiency'] > 0.8) & (df['damper_efficiency'] > 0.8)]
        if high_efficiency.empty or len(high_efficiency) < len(df) * 0.1:
            return None

        return PerformancePattern(
            pattern='High Efficiency Operation',
            frequency=len(high_efficiency) / len(df),
            conditions=self._find_common_conditions(high_efficiency),
            impact=Impact.POSITIVE,
            recommendation='Optimize system to operate more frequently under these conditions'
        )

    def _identify_power_peak_pattern(self, df: pd.DataFrame) -> Optional[PerformancePattern]:
        average_power = df['total_power'].mean()
        peaks = df[df['total_power'] > average_power * 1.5]
        if peaks.empty or len(peaks) < len(df) * 0.05:
            return None

        return PerformancePattern(
            pattern='Power Generation Peaks',
            frequency=len(peaks) / len(df),
            conditions=self._find_common_conditions(peaks),
            impact=Impact.POSITIVE,
            recommendation='Increase exposure to conditions that generate power peaks'
        )

    def _identify_temperature_pattern(self, df: pd.DataFrame) -> Optional[PerformancePattern]:
        hot = (df['shock_temperature'] > 80) | (df['damper_temperature'] > 80)
        high_temp = df[hot]
        normal_temp = df[~hot]
        if high_temp.empty or len(high_temp) < len(df) * 0.1 or normal_temp.empty:
            return None

        if high_temp['shock_efficiency'].mean() < normal_temp['shock_efficiency'].mean() * 0.9:
            return PerformancePattern(
                pattern='Temperature-Related Performance Degradation',
                frequency=len(high_temp) / len(df),
                conditions=['High operating temperature (>80°C)'],
                impact=Impact.NEGATIVE,
                recommendation='Implement better cooling strategies to maintain optimal temperature'
            )
        return None

    def _identify_road_condition_pattern(self, df: pd.DataFrame) -> Optional[PerformancePattern]:
        rough = df[df['road_roughness'] > 0.7]
        smooth = df[df['road_roughness'] < 0.3]
        if rough.empty or smooth.empty:
            return None

        if rough['total_power'].mean() > smooth['total_power'].mean() * 1.2:
            return PerformancePattern(
                pattern='Enhanced Power Generation on Rough Roads',
                frequency=len(rough) / len(df),
                conditions=['High road roughness (>0.7)'],
                impact=Impact.POSITIVE,
                recommendation='Optimize energy harvesting algorithms for rough road conditions'
            )
        return None

    def _find_common_conditions(self, df: pd.DataFrame) -> List[str]:
        conditions = []

        average_speed = df['vehicle_speed'].mean()
        if average_speed > 80:
            conditions.append('High speed driving (>80 km/h)')
        elif average_speed < 30:
            conditions.append('Low speed driving (<30 km/h)')

        if (df['road_roughness'] > 0.5).sum() > len(df) * 0.7:
            conditions.append('Rough road conditions')

        average_ambient = df['ambient_temperature'].mean()
        if average_ambient > 30:
            conditions.append('High ambient temperature (>30°C)')
        elif average_ambient < 0:
            conditions.append('Low ambient temperature (<0°C)')

        if df['battery_soc'].mean() < 0.3:
            conditions.append('Low battery state of charge (<30%)')

        return conditions

    def get_pattern_stats(self) -> Dict[str, Any]:
        return {
            'total_patterns_identified': len(self.pattern_history),
            'correlation_analysis_count': len(self.correlation_cache),
            'anomaly_baseline_count': len(self.anomaly_baselines),
            'last_analysis_time': self.last_analysis_time
        }

    def clear_cache(self):
        self.anomaly_baselines.clear()
        self.correlation_cache.clear()
        self.pattern_history = []
        self.logger.info("Pattern recognition cache cleared")
