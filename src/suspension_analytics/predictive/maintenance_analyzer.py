import numpy as np
import pandas as pd
from typing import Dict, List, Any, Optional, Sequence, Union, Mapping, Callable
from datetime import datetime, timedelta

from ..common.configuration import AnalyticsConfiguration
from ..common.error_handling import InsufficientDataError, handle_error
from ..common.logging import setup_logging
from ..models import (
    Component,
    ComponentHealthScore,
    HealthIndicator,
    HealthScore,
    HealthStatus,
    HealthTrend,
    IndicatorStatus,
    MaintenanceAnalysis,
    MaintenancePrediction,
    Severity,
    SuspensionDataPoint,
    points_to_frame,
)
from ..analysis.statistics import coefficient_of_variation, linear_slope

MIN_DATA_POINTS = 100
HEALTH_HISTORY_LIMIT = 1000
CRITICAL_HEALTH_THRESHOLD = 30
PREDICTION_SCORE_CEILING = 75
# Failure dates beyond a century are reported as a century out
MAX_FAILURE_HORIZON_DAYS = 36500

COMPONENT_WEIGHTS = {
    Component.SHOCK_ABSORBER: 0.25,
    Component.ELECTROMAGNETIC_GENERATOR: 0.25,
    Component.HYDRAULIC_DAMPER: 0.20,
    Component.CONTROL_SYSTEM: 0.15,
    Component.THERMAL_MANAGEMENT: 0.15,
}

RECOMMENDED_ACTIONS = {
    'Mechanical failure': 'Schedule immediate inspection and replacement of mechanical components',
    'Performance degradation': 'Perform calibration and optimization procedures',
    'Wear and tear': 'Plan preventive maintenance and component replacement',
    'Electrical component failure': 'Inspect and replace electrical components',
    'Magnetic field degradation': 'Check and replace magnetic components',
    'Coil degradation': 'Inspect coil windings and replace if necessary',
    'Seal failure': 'Replace hydraulic seals and check fluid levels',
    'Fluid degradation': 'Replace hydraulic fluid and check for contamination',
    'Valve wear': 'Inspect and replace hydraulic valves',
    'Software/sensor malfunction': 'Update software and calibrate sensors',
    'Cooling system failure': 'Inspect and repair cooling system',
    'Heat dissipation degradation': 'Clean heat sinks and improve ventilation',
    'General wear': 'Perform comprehensive system inspection',
}
DEFAULT_ACTION = 'Perform detailed component analysis'

BASE_COSTS = {
    Component.SHOCK_ABSORBER: 2000,
    Component.ELECTROMAGNETIC_GENERATOR: 5000,
    Component.HYDRAULIC_DAMPER: 3000,
    Component.CONTROL_SYSTEM: 1500,
    Component.THERMAL_MANAGEMENT: 2500,
}
DEFAULT_BASE_COST = 2000

SEVERITY_COST_MULTIPLIERS = {
    Severity.LOW: 1.0,
    Severity.MEDIUM: 1.5,
    Severity.HIGH: 2.0,
    Severity.CRITICAL: 3.0,
}


def _indicator(name: str, value: float, threshold: float, status: IndicatorStatus) -> HealthIndicator:
    return HealthIndicator(name=name, value=float(value), threshold=threshold, status=status)


def _flag(condition: bool, status: IndicatorStatus = IndicatorStatus.WARNING) -> IndicatorStatus:
    return status if condition else IndicatorStatus.NORMAL


class PredictiveMaintenanceAnalyzer:
    """Scores component health and extrapolates degradation into failure predictions.

    Every analysis appends a ``HealthScore`` snapshot to the bounded health
    history; degradation rates and the health trend are derived from that
    history, so predictions only appear once several analyses have run.
    """
    def __init__(self, config: Union[AnalyticsConfiguration, Mapping[str, Any], None] = None):
        self.config = AnalyticsConfiguration.coerce(config)
        self.health_history: List[HealthScore] = []
        self.last_predictions: List[MaintenancePrediction] = []
        self.last_analysis_time: Optional[datetime] = None
        self.component_analyzers: Dict[Component, Callable[[pd.DataFrame], ComponentHealthScore]] = {
            Component.SHOCK_ABSORBER: self._analyze_shock_absorber_health,
            Component.ELECTROMAGNETIC_GENERATOR: self._analyze_electromagnetic_generator_health,
            Component.HYDRAULIC_DAMPER: self._analyze_hydraulic_damper_health,
            Component.CONTROL_SYSTEM: self._analyze_control_system_health,
            Component.THERMAL_MANAGEMENT: self._analyze_thermal_management_health,
        }
        self.setup_logging()

    def setup_logging(self):
        self.logger = setup_logging('PredictiveMaintenanceAnalyzer', self.config.log_file)

    def analyze_predictive_maintenance(self, data: Sequence[SuspensionDataPoint]) -> MaintenanceAnalysis:
        """Score health, predict failures and derive recommendations (at least 100 points)."""
        try:
            if len(data) < MIN_DATA_POINTS:
                raise InsufficientDataError('predictive maintenance analysis', MIN_DATA_POINTS, len(data))

            df = points_to_frame(data)
            now = datetime.now()

            health_score = self._calculate_health_score(df, now)
            predictions = self._generate_maintenance_predictions(health_score, len(df), now)
            recommendations = self._generate_component_recommendations(health_score, predictions)

            self.health_history.append(health_score)
            if len(self.health_history) > HEALTH_HISTORY_LIMIT:
                self.health_history = self.health_history[-HEALTH_HISTORY_LIMIT:]
            self.last_predictions = predictions
            self.last_analysis_time = now

            self.logger.info(
                f"Maintenance analysis over {len(df)} points: overall health "
                f"{health_score.overall:.1f} ({health_score.trend.value}), "
                f"{len(predictions)} predictions"
            )

            return MaintenanceAnalysis(
                health_score=health_score,
                maintenance_predictions=predictions,
                component_recommendations=recommendations
            )

        except Exception as e:
            handle_error(self.logger, "Predictive maintenance analysis", e)
            raise

    def _calculate_health_score(self, df: pd.DataFrame, now: datetime) -> HealthScore:
        components = [analyzer(df) for analyzer in self.component_analyzers.values()]
        overall = sum(c.score * COMPONENT_WEIGHTS[c.component] for c in components)

        return HealthScore(
            overall=float(overall),
            components=components,
            trend=self._calculate_health_trend(),
            last_updated=now
        )

    def _calculate_health_trend(self) -> HealthTrend:
        if len(self.health_history) < 5:
            return HealthTrend.STABLE

        slope = linear_slope([h.overall for h in self.health_history[-5:]])
        if slope > 0.02:
            return HealthTrend.IMPROVING
        if slope < -0.02:
            return HealthTrend.DEGRADING
        return HealthTrend.STABLE

    @staticmethod
    def _component_score(component: Component, score: float,
                         indicators: List[HealthIndicator]) -> ComponentHealthScore:
        score = max(0.0, float(score))
        return ComponentHealthScore(
            component=component,
            score=score,
            status=HealthStatus.from_score(score),
            key_indicators=indicators
        )

    def _analyze_shock_absorber_health(self, df: pd.DataFrame) -> ComponentHealthScore:
        score = 100
        damping_variability = coefficient_of_variation(df['shock_damping_force'])
        average_efficiency = df['shock_efficiency'].mean()
        uptime = df['is_operational'].astype(bool).mean()

        indicators = [
            _indicator('Damping Force Variability', damping_variability, 0.3, _flag(damping_variability > 0.3)),
            _indicator('Average Efficiency', average_efficiency, 0.7, _flag(average_efficiency < 0.7)),
            _indicator('System Uptime', uptime, 0.95, _flag(uptime < 0.95, IndicatorStatus.CRITICAL)),
        ]

        if damping_variability > 0.3:
            score -= 15
        if damping_variability > 0.5:
            score -= 25
        if average_efficiency < 0.7:
            score -= 20
        if average_efficiency < 0.5:
            score -= 30
        if uptime < 0.95:
            score -= 25
        if uptime < 0.8:
            score -= 40

        return self._component_score(Component.SHOCK_ABSORBER, score, indicators)

    def _analyze_electromagnetic_generator_health(self, df: pd.DataFrame) -> ComponentHealthScore:
        score = 100
        power_variability = coefficient_of_variation(df['shock_power'])
        voltage_variability = coefficient_of_variation(df['output_voltage'])
        max_rpm = df['generator_rpm'].max()
        average_rpm = df['generator_rpm'].mean()

        indicators = [
            _indicator('Power Generation Variability', power_variability, 0.4, _flag(power_variability > 0.4)),
            # Higher is better
            _indicator('Voltage Stability', 1 - voltage_variability, 0.8, _flag(voltage_variability > 0.2)),
            _indicator('Average RPM', average_rpm, 1000, _flag(average_rpm < 500)),
        ]

        if power_variability > 0.4:
            score -= 15
        if voltage_variability > 0.2:
            score -= 20
        if max_rpm > 8000:
            score -= 10
        if average_rpm < 500:
            score -= 15

        return self._component_score(Component.ELECTROMAGNETIC_GENERATOR, score, indicators)

    def _analyze_hydraulic_damper_health(self, df: pd.DataFrame) -> ComponentHealthScore:
        score = 100
        max_pressure = df['hydraulic_pressure'].max()
        em_force_variability = coefficient_of_variation(df['electromagnetic_force'])
        average_efficiency = df['damper_efficiency'].mean()

        indicators = [
            _indicator('Maximum Hydraulic Pressure', max_pressure, 40_000_000,
                       _flag(max_pressure > 40_000_000, IndicatorStatus.CRITICAL)),
            _indicator('EM Force Consistency', 1 - em_force_variability, 0.7, _flag(em_force_variability > 0.3)),
            _indicator('Energy Efficiency', average_efficiency, 0.6, _flag(average_efficiency < 0.6)),
        ]

        if max_pressure > 40_000_000:
            score -= 30
        if max_pressure > 50_000_000:
            score -= 50
        if em_force_variability > 0.3:
            score -= 15
        if average_efficiency < 0.6:
            score -= 20
        if average_efficiency < 0.4:
            score -= 35

        return self._component_score(Component.HYDRAULIC_DAMPER, score, indicators)

    def _analyze_control_system_health(self, df: pd.DataFrame) -> ComponentHealthScore:
        score = 100
        response_consistency = max(0.0, 1 - coefficient_of_variation(df['performance_score']))
        average_performance = df['performance_score'].mean()

        indicators = [
            _indicator('Control Response Consistency', response_consistency, 0.8,
                       _flag(response_consistency < 0.8)),
            _indicator('Integration Performance', average_performance, 80, _flag(average_performance < 80)),
        ]

        if response_consistency < 0.8:
            score -= 20
        if response_consistency < 0.6:
            score -= 35
        if average_performance < 80:
            score -= 15
        if average_performance < 60:
            score -= 30

        return self._component_score(Component.CONTROL_SYSTEM, score, indicators)

    def _analyze_thermal_management_health(self, df: pd.DataFrame) -> ComponentHealthScore:
        score = 100
        max_temperature = max(df['shock_temperature'].max(), df['damper_temperature'].max())
        temperature_variability = (
            coefficient_of_variation(df['shock_temperature']) +
            coefficient_of_variation(df['damper_temperature'])
        ) / 2

        indicators = [
            _indicator('Maximum Operating Temperature', max_temperature, 100,
                       _flag(max_temperature > 100, IndicatorStatus.CRITICAL)),
            _indicator('Temperature Stability', 1 - temperature_variability, 0.8,
                       _flag(temperature_variability > 0.2)),
        ]

        if max_temperature > 100:
            score -= 40
        if max_temperature > 120:
            score -= 60
        if temperature_variability > 0.2:
            score -= 15

        return self._component_score(Component.THERMAL_MANAGEMENT, score, indicators)

    def _generate_maintenance_predictions(self, health_score: HealthScore, data_size: int,
                                          now: datetime) -> List[MaintenancePrediction]:
        predictions = []
        for component in health_score.components:
            prediction = self._predict_component_maintenance(component, data_size, now)
            if prediction is not None:
                predictions.append(prediction)
        return sorted(predictions, key=lambda p: p.predicted_failure_date)

    def _predict_component_maintenance(self, component: ComponentHealthScore, data_size: int,
                                       now: datetime) -> Optional[MaintenancePrediction]:
        if component.score > PREDICTION_SCORE_CEILING:
            return None

        degradation_rate = self.calculate_degradation_rate(component.component)
        if degradation_rate <= 0:
            return None

        days_to_failure = (component.score - CRITICAL_HEALTH_THRESHOLD) / degradation_rate
        failure_offset = min(days_to_failure, MAX_FAILURE_HORIZON_DAYS)
        severity = self._severity_for(days_to_failure)
        failure_mode = self._determine_failure_mode(component)

        return MaintenancePrediction(
            component=component.component,
            predicted_failure_date=now + timedelta(days=failure_offset),
            confidence=self._calculate_prediction_confidence(component, data_size),
            remaining_useful_life=max(0.0, days_to_failure),
            failure_mode=failure_mode,
            severity=severity,
            recommended_action=RECOMMENDED_ACTIONS.get(failure_mode, DEFAULT_ACTION),
            cost_impact=BASE_COSTS.get(component.component, DEFAULT_BASE_COST) * SEVERITY_COST_MULTIPLIERS[severity]
        )

    def calculate_degradation_rate(self, component: Component) -> float:
        """Score lost per analysis, from the slope of the last 10 snapshots."""
        if len(self.health_history) < 5:
            return 0.0

        scores = []
        for snapshot in self.health_history[-10:]:
            entry = snapshot.component(component)
            scores.append(entry.score if entry is not None else 100.0)
        return -linear_slope(scores)

    @staticmethod
    def _severity_for(days_to_failure: float) -> Severity:
        if days_to_failure < 7:
            return Severity.CRITICAL
        elif days_to_failure < 30:
            return Severity.HIGH
        elif days_to_failure < 90:
            return Severity.MEDIUM
        return Severity.LOW

    @staticmethod
    def _determine_failure_mode(component: ComponentHealthScore) -> str:
        def flagged(status: IndicatorStatus, keyword: str) -> bool:
            return any(i.status == status and keyword in i.name for i in component.key_indicators)

        critical = IndicatorStatus.CRITICAL
        warning = IndicatorStatus.WARNING

        if component.component == Component.SHOCK_ABSORBER:
            if flagged(critical, 'Uptime'):
                return 'Mechanical failure'
            if flagged(warning, 'Efficiency'):
                return 'Performance degradation'
            return 'Wear and tear'
        if component.component == Component.ELECTROMAGNETIC_GENERATOR:
            if flagged(warning, 'Voltage'):
                return 'Electrical component failure'
            if flagged(warning, 'Power'):
                return 'Magnetic field degradation'
            return 'Coil degradation'
        if component.component == Component.HYDRAULIC_DAMPER:
            if flagged(critical, 'Pressure'):
                return 'Seal failure'
            if flagged(warning, 'Efficiency'):
                return 'Fluid degradation'
            return 'Valve wear'
        if component.component == Component.CONTROL_SYSTEM:
            return 'Software/sensor malfunction'
        if component.component == Component.THERMAL_MANAGEMENT:
            if flagged(critical, 'Temperature'):
                return 'Cooling system failure'
            return 'Heat dissipation degradation'
        return 'General wear'

    def _calculate_prediction_confidence(self, component: ComponentHealthScore, data_size: int) -> float:
        confidence = 0.5
        if data_size > 500:
            confidence += 0.2
        if data_size > 1000:
            confidence += 0.1
        if len(self.health_history) > 10:
            confidence += 0.1
        if len(self.health_history) > 50:
            confidence += 0.1
        if component.score < 50:
            confidence += 0.1
        if component.score < 30:
            confidence += 0.1
        return min(0.95, confidence)

    def _generate_component_recommendations(self, health_score: HealthScore,
                                            predictions: List[MaintenancePrediction]) -> List[str]:
        recommendations = []

        if health_score.overall < 70:
            recommendations.append(
                'System health is below optimal levels. Consider comprehensive maintenance review.')
        if health_score.trend == HealthTrend.DEGRADING:
            recommendations.append(
                'System health is degrading. Increase monitoring frequency and prepare for maintenance.')

        for component in health_score.components:
            if component.status == HealthStatus.CRITICAL:
                recommendations.append(
                    f"{component.component.value} requires immediate attention - critical status detected.")
            elif component.status == HealthStatus.POOR:
                recommendations.append(
                    f"{component.component.value} performance is poor - schedule maintenance soon.")

        critical_components = [p.component.value for p in predictions if p.severity == Severity.CRITICAL]
        if critical_components:
            recommendations.append(
                f"Critical maintenance required within 7 days for: {', '.join(critical_components)}")

        return recommendations

    def get_health_history(self) -> List[HealthScore]:
        return list(self.health_history)

    def get_maintenance_stats(self) -> Dict[str, Any]:
        latest = self.health_history[-1] if self.health_history else None
        confidences = [p.confidence for p in self.last_predictions]
        return {
            'total_analyses': len(self.health_history),
            'critical_predictions': sum(1 for p in self.last_predictions if p.severity == Severity.CRITICAL),
            'average_confidence': float(np.mean(confidences)) if confidences else 0.0,
            'last_analysis_time': self.last_analysis_time,
            'health_trend': latest.trend if latest is not None else HealthTrend.STABLE
        }

    def clear_maintenance_history(self):
        self.health_history = []
        self.last_predictions = []
        self.logger.info("Maintenance history cleared")
