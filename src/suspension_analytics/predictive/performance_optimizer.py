import numpy as np
import pandas as pd
from collections import Counter
from dataclasses import replace
from typing import Dict, List, Any, Optional, Sequence, Union, Mapping
from datetime import datetime

from ..common.configuration import AnalyticsConfiguration
from ..common.error_handling import InsufficientDataError, handle_error
from ..common.logging import setup_logging
from ..models import (
    Complexity,
    DampingMode,
    OptimizationAction,
    OptimizationCategory,
    OptimizationEffectiveness,
    OptimizationRecommendation,
    PerformanceMetrics,
    Severity,
    SuspensionDataPoint,
    points_to_frame,
)
from ..analysis.statistics import coefficient_of_variation, ema

MIN_DATA_POINTS = 50
OPTIMIZATION_HISTORY_LIMIT = 1000
BASELINE_SMOOTHING = 0.1
# Realized improvement must reach half the expected percentage
SUCCESS_FRACTION = 0.005

CATEGORY_METRIC = {
    OptimizationCategory.ENERGY_HARVESTING: 'power',
    OptimizationCategory.DAMPING: 'efficiency',
    OptimizationCategory.THERMAL: 'efficiency',
    OptimizationCategory.MAINTENANCE: 'uptime',
}


def _relative_change(before: float, after: float) -> float:
    if before == 0:
        return 0.0
    return (after - before) / before


class PerformanceOptimizer:
    """Generates ranked optimization recommendations from telemetry and metrics."""
    def __init__(self, config: Union[AnalyticsConfiguration, Mapping[str, Any], None] = None):
        self.config = AnalyticsConfiguration.coerce(config)
        self.optimization_history: List[OptimizationRecommendation] = []
        self.performance_baseline: Optional[PerformanceMetrics] = None
        self.last_optimization_time: Optional[datetime] = None
        self.setup_logging()

    def setup_logging(self):
        self.logger = setup_logging('PerformanceOptimizer', self.config.log_file)

    def generate_optimization_recommendations(
        self,
        data: Sequence[SuspensionDataPoint],
        current_metrics: PerformanceMetrics
    ) -> List[OptimizationRecommendation]:
        """Run every optimization analyzer (at least 50 points) and rank the results."""
        try:
            if len(data) < MIN_DATA_POINTS:
                raise InsufficientDataError('optimization analysis', MIN_DATA_POINTS, len(data))

            df = points_to_frame(data)
            self._update_performance_baseline(current_metrics)

            recommendations: List[OptimizationRecommendation] = []
            recommendations.extend(self._analyze_damping_optimization(df))
            recommendations.extend(self._analyze_energy_harvesting_optimization(df))
            recommendations.extend(self._analyze_thermal_optimization(df))
            recommendations.extend(self._analyze_maintenance_optimization(df, current_metrics))

            recommendations.sort(key=lambda r: (r.priority.rank, r.expected_improvement), reverse=True)

            self.optimization_history.extend(recommendations)
            if len(self.optimization_history) > OPTIMIZATION_HISTORY_LIMIT:
                self.optimization_history = self.optimization_history[-OPTIMIZATION_HISTORY_LIMIT:]
            self.last_optimization_time = datetime.now()

            self.logger.info(f"Generated {len(recommendations)} optimization recommendations from {len(df)} points")
            return recommendations

        except Exception as e:
            handle_error(self.logger, "Optimization analysis", e)
            raise

    def _analyze_damping_optimization(self, df: pd.DataFrame) -> List[OptimizationRecommendation]:
        """Damping-force variability and damping-mode usage.

        Energy harvesting mode usage below 30% triggers a recommendation. A
        window with no energy harvesting samples at all counts as 0% usage,
        so it triggers the recommendation too.
        """
        recommendations = []

        damping_forces = df['shock_damping_force']
        average_damping_force = float(damping_forces.mean())
        if coefficient_of_variation(damping_forces) > 0.3:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.DAMPING,
                priority=Severity.HIGH,
                title='Optimize Damping Force Control',
                description=('High variability in damping force indicates suboptimal control algorithms. '
                             'Implementing adaptive damping control can improve ride quality and energy '
                             'harvesting efficiency.'),
                expected_improvement=15,
                implementation_complexity=Complexity.MEDIUM,
                estimated_cost=5000,
                actions=[
                    OptimizationAction(
                        action='Implement adaptive damping algorithm',
                        parameter='damping_control_algorithm',
                        current_value=0,
                        recommended_value=1,
                        confidence=0.85
                    ),
                    OptimizationAction(
                        action='Tune damping coefficients',
                        parameter='damping_coefficient',
                        current_value=average_damping_force,
                        recommended_value=average_damping_force * 0.9,
                        confidence=0.75
                    ),
                ]
            ))

        mode_distribution = self._calculate_mode_distribution(df['damping_mode'])
        if mode_distribution.get(DampingMode.ENERGY_HARVESTING.value, 0.0) < 0.3:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.DAMPING,
                priority=Severity.MEDIUM,
                title='Increase Energy Harvesting Mode Usage',
                description=('The system is not utilizing energy harvesting mode optimally. Adjusting mode '
                             'switching thresholds can increase energy recovery.'),
                expected_improvement=12,
                implementation_complexity=Complexity.LOW,
                estimated_cost=1000,
                actions=[
                    # Vehicle speed threshold in km/h
                    OptimizationAction(
                        action='Lower energy harvesting mode threshold',
                        parameter='energy_harvesting_threshold',
                        current_value=50,
                        recommended_value=40,
                        confidence=0.8
                    ),
                ]
            ))

        return recommendations

    def _analyze_energy_harvesting_optimization(self, df: pd.DataFrame) -> List[OptimizationRecommendation]:
        recommendations = []

        if df['average_efficiency'].mean() < 0.7:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.ENERGY_HARVESTING,
                priority=Severity.HIGH,
                title='Improve Energy Conversion Efficiency',
                description=('System efficiency is below optimal levels. Optimizing electromagnetic parameters '
                             'and reducing losses can significantly improve energy harvesting.'),
                expected_improvement=20,
                implementation_complexity=Complexity.HIGH,
                estimated_cost=15000,
                actions=[
                    OptimizationAction(
                        action='Optimize magnetic field strength',
                        parameter='magnetic_flux_density',
                        current_value=0.5,
                        recommended_value=0.65,
                        confidence=0.9
                    ),
                    OptimizationAction(
                        action='Reduce coil resistance',
                        parameter='coil_resistance',
                        current_value=2.0,
                        recommended_value=1.5,
                        confidence=0.85
                    ),
                ]
            ))

        power = df['total_power']
        peak_ratio = float((power > power.mean() * 1.5).mean())
        if peak_ratio < 0.1:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.ENERGY_HARVESTING,
                priority=Severity.MEDIUM,
                title='Optimize Power Generation Timing',
                description=('Power generation peaks are infrequent. Adjusting harvesting algorithms to capture '
                             'more energy during favorable conditions can improve overall performance.'),
                expected_improvement=10,
                implementation_complexity=Complexity.MEDIUM,
                estimated_cost=3000,
                actions=[
                    OptimizationAction(
                        action='Implement predictive harvesting algorithm',
                        parameter='harvesting_algorithm',
                        current_value=0,
                        recommended_value=1,
                        confidence=0.75
                    ),
                ]
            ))

        return recommendations

    def _analyze_thermal_optimization(self, df: pd.DataFrame) -> List[OptimizationRecommendation]:
        shock_temps = df['shock_temperature']
        damper_temps = df['damper_temperature']
        average_shock_temp = float(shock_temps.mean())

        if shock_temps.max() > 100 or damper_temps.max() > 100:
            return [OptimizationRecommendation(
                category=OptimizationCategory.THERMAL,
                priority=Severity.CRITICAL,
                title='Implement Enhanced Cooling System',
                description=('System temperatures are reaching critical levels, which can cause performance '
                             'degradation and component damage. Enhanced cooling is required.'),
                expected_improvement=25,
                implementation_complexity=Complexity.HIGH,
                estimated_cost=20000,
                actions=[
                    OptimizationAction(
                        action='Install active cooling system',
                        parameter='cooling_system',
                        current_value=0,
                        recommended_value=1,
                        confidence=0.95
                    ),
                    OptimizationAction(
                        action='Improve heat dissipation',
                        parameter='heat_dissipation_rate',
                        current_value=average_shock_temp,
                        recommended_value=average_shock_temp * 0.8,
                        confidence=0.9
                    ),
                ]
            )]

        if average_shock_temp > 80 or damper_temps.mean() > 80:
            return [OptimizationRecommendation(
                category=OptimizationCategory.THERMAL,
                priority=Severity.MEDIUM,
                title='Optimize Thermal Management',
                description=('Average operating temperatures are elevated. Improving thermal management can '
                             'enhance efficiency and component longevity.'),
                expected_improvement=8,
                implementation_complexity=Complexity.MEDIUM,
                estimated_cost=8000,
                actions=[
                    OptimizationAction(
                        action='Improve heat sink design',
                        parameter='heat_sink_efficiency',
                        current_value=0.7,
                        recommended_value=0.85,
                        confidence=0.8
                    ),
                ]
            )]

        return []

    def _analyze_maintenance_optimization(self, df: pd.DataFrame,
                                          metrics: PerformanceMetrics) -> List[OptimizationRecommendation]:
        recommendations = []

        if metrics.system_uptime < 0.95:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.MAINTENANCE,
                priority=Severity.HIGH,
                title='Improve System Reliability',
                description=('System uptime is below target levels. Implementing predictive maintenance and '
                             'improving component reliability can reduce downtime.'),
                expected_improvement=18,
                implementation_complexity=Complexity.MEDIUM,
                estimated_cost=12000,
                actions=[
                    OptimizationAction(
                        action='Implement predictive maintenance',
                        parameter='maintenance_strategy',
                        current_value=0,
                        recommended_value=1,
                        confidence=0.85
                    ),
                ]
            ))

        # Cycles per hour, assuming one point per second
        cycle_rate = metrics.operational_cycles / (len(df) / 3600)
        if cycle_rate > 1000:
            recommendations.append(OptimizationRecommendation(
                category=OptimizationCategory.MAINTENANCE,
                priority=Severity.MEDIUM,
                title='Optimize Operating Cycles',
                description=('High operational cycle rate may lead to accelerated wear. Optimizing control '
                             'algorithms can reduce unnecessary cycles.'),
                expected_improvement=5,
                implementation_complexity=Complexity.LOW,
                estimated_cost=2000,
                actions=[
                    OptimizationAction(
                        action='Implement cycle optimization',
                        parameter='cycle_optimization',
                        current_value=0,
                        recommended_value=1,
                        confidence=0.7
                    ),
                ]
            ))

        return recommendations

    @staticmethod
    def _calculate_mode_distribution(modes: pd.Series) -> Dict[str, float]:
        total = len(modes)
        if total == 0:
            return {}
        return {mode: count / total for mode, count in Counter(modes).items()}

    def _update_performance_baseline(self, metrics: PerformanceMetrics):
        if self.performance_baseline is None:
            self.performance_baseline = metrics
            return

        baseline = self.performance_baseline
        self.performance_baseline = replace(
            baseline,
            average_power_generation=ema(baseline.average_power_generation,
                                         metrics.average_power_generation, BASELINE_SMOOTHING),
            average_efficiency=ema(baseline.average_efficiency, metrics.average_efficiency, BASELINE_SMOOTHING),
            system_uptime=ema(baseline.system_uptime, metrics.system_uptime, BASELINE_SMOOTHING)
        )

    def evaluate_optimization_effectiveness(
        self,
        before_metrics: PerformanceMetrics,
        after_metrics: PerformanceMetrics,
        implemented_recommendations: Sequence[OptimizationRecommendation]
    ) -> OptimizationEffectiveness:
        """Compare metrics before and after implementing recommendations."""
        improvements = {
            'power': _relative_change(before_metrics.average_power_generation,
                                      after_metrics.average_power_generation),
            'efficiency': _relative_change(before_metrics.average_efficiency, after_metrics.average_efficiency),
            'uptime': _relative_change(before_metrics.system_uptime, after_metrics.system_uptime),
        }
        overall_improvement = float(np.mean(list(improvements.values())))

        category_improvements: Dict[OptimizationCategory, float] = {}
        successful = []
        failed = []
        for recommendation in implemented_recommendations:
            actual = improvements[CATEGORY_METRIC[recommendation.category]]
            category_improvements[recommendation.category] = actual

            if actual >= recommendation.expected_improvement * SUCCESS_FRACTION:
                successful.append(recommendation)
            else:
                failed.append(recommendation)

        self.logger.info(
            f"Optimization effectiveness: overall {overall_improvement:.3f}, "
            f"{len(successful)} successful, {len(failed)} failed"
        )

        return OptimizationEffectiveness(
            overall_improvement=overall_improvement,
            category_improvements=category_improvements,
            successful_recommendations=successful,
            failed_recommendations=failed
        )

    def get_optimization_stats(self) -> Dict[str, Any]:
        by_category = Counter(r.category.value for r in self.optimization_history)
        by_priority = Counter(r.priority.value for r in self.optimization_history)
        improvements = [r.expected_improvement for r in self.optimization_history]
        return {
            'total_recommendations': len(self.optimization_history),
            'recommendations_by_category': dict(by_category),
            'recommendations_by_priority': dict(by_priority),
            'last_optimization_time': self.last_optimization_time,
            'average_expected_improvement': float(np.mean(improvements)) if improvements else 0.0
        }

    def get_performance_baseline(self) -> Optional[PerformanceMetrics]:
        return self.performance_baseline

    def clear_optimization_history(self):
        self.optimization_history = []
        self.performance_baseline = None
        self.logger.info("Optimization history cleared")
