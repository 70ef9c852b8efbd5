import uuid
import numpy as np
from typing import Dict, List, Any, Optional, Union, Mapping, Sequence
from datetime import datetime, timedelta

from .common.configuration import AnalyticsConfiguration
from .common.error_handling import InsufficientDataError, handle_error
from .common.logging import setup_logging
from .models import (
    AnalyticsReport,
    ComprehensiveAnalysis,
    DataQualityMetrics,
    HealthScore,
    MaintenancePrediction,
    OptimizationRecommendation,
    PatternAnalysisResult,
    PerformanceMetrics,
    ReportPeriod,
    ReportSummary,
    Severity,
    SuspensionDataPoint,
    TemperatureRange,
    TrendDirection,
    points_to_frame,
)
from .analysis.data_processor import DataProcessor, RawReading
from .analysis.pattern_recognition import PatternRecognitionEngine, MIN_DATA_POINTS as PATTERN_MIN_POINTS
from .predictive.maintenance_analyzer import (
    PredictiveMaintenanceAnalyzer,
    MIN_DATA_POINTS as MAINTENANCE_MIN_POINTS,
)
from .predictive.performance_optimizer import (
    PerformanceOptimizer,
    MIN_DATA_POINTS as OPTIMIZATION_MIN_POINTS,
)

REPORT_HISTORY_LIMIT = 100
REPORT_MIN_POINTS = PATTERN_MIN_POINTS
COMPREHENSIVE_MIN_POINTS = 100
REAL_TIME_WINDOW = 100
DEFAULT_REPORT_WINDOW = timedelta(hours=24)
STATUS_WINDOW = 10
# Average power treated as full marks in the performance score
REFERENCE_POWER = 200.0


class SuspensionDataAnalytics:
    """Orchestrates ingestion, pattern recognition, optimization and predictive maintenance."""
    def __init__(self, config: Union[AnalyticsConfiguration, Mapping[str, Any], None] = None):
        """Initializes SuspensionDataAnalytics with config and components."""
        self.config = AnalyticsConfiguration.coerce(config)
        self.data_processor = None
        self.pattern_engine = None
        self.performance_optimizer = None
        self.maintenance_analyzer = None
        self.is_real_time_mode = self.config.enable_real_time_analysis
        self.analytics_history: List[AnalyticsReport] = []
        self.active_alerts: List[str] = []
        self.last_report_generation: Optional[datetime] = None
        self.setup_logging()
        self.initialize_components()

    def setup_logging(self):
        """Sets up logging for the engine."""
        self.logger = setup_logging('SuspensionDataAnalytics', self.config.log_file)

    def initialize_components(self):
        """Initialize all analytics components"""
        try:
            self.data_processor = DataProcessor(self.config)
            self.pattern_engine = PatternRecognitionEngine(self.config)
            self.performance_optimizer = PerformanceOptimizer(self.config)
            self.maintenance_analyzer = PredictiveMaintenanceAnalyzer(self.config)
            self.logger.info(
                f"All components initialized (buffer capacity {self.data_processor.max_buffer_size} points, "
                f"real-time analysis {'on' if self.is_real_time_mode else 'off'})"
            )
        except Exception as e:
            handle_error(self.logger, "Component initialization", e)
            raise

    def process_system_data(
        self,
        shock_absorber_data: RawReading,
        damper_data: RawReading,
        integration_data: RawReading,
        environmental_data: RawReading,
        timestamp: Optional[datetime] = None
    ) -> SuspensionDataPoint:
        """Ingest one reading, check alert thresholds and, in real-time mode, scan for critical anomalies."""
        data_point = self.data_processor.process_data_point(
            shock_absorber_data,
            damper_data,
            integration_data,
            environmental_data,
            timestamp=timestamp
        )

        self.active_alerts = self._check_alert_thresholds(data_point)

        if self.is_real_time_mode:
            self._perform_real_time_analysis()

        return data_point

    def _check_alert_thresholds(self, data_point: SuspensionDataPoint) -> List[str]:
        thresholds = self.config.alert_thresholds
        shock = data_point.shock_absorber
        damper = data_point.damper
        alerts = []

        if shock.operating_temperature > thresholds.temperature_high:
            alerts.append(f"High shock absorber temperature: {shock.operating_temperature}°C")
        if damper.system_temperature > thresholds.temperature_critical:
            alerts.append(f"Critical damper temperature: {damper.system_temperature}°C")
        if shock.efficiency < thresholds.efficiency_low:
            alerts.append(f"Low shock absorber efficiency: {shock.efficiency * 100:.1f}%")
        if data_point.total_power < thresholds.power_low:
            alerts.append(f"Low power generation: {data_point.total_power:.1f}W")
        if damper.hydraulic_pressure > thresholds.pressure_high:
            alerts.append(f"High hydraulic pressure: {damper.hydraulic_pressure / 1_000_000:.1f} MPa")

        if alerts:
            self.logger.warning(f"System alerts: {'; '.join(alerts)}")
        return alerts

    def _perform_real_time_analysis(self):
        recent_data = self.data_processor.get_recent_data(REAL_TIME_WINDOW)
        if len(recent_data) < REAL_TIME_WINDOW:
            return

        try:
            patterns = self.pattern_engine.analyze_patterns(recent_data)
        except InsufficientDataError as e:
            self.logger.warning(f"Real-time pattern analysis skipped: {str(e)}")
            return

        critical = [a for a in patterns.anomalies if a.severity == Severity.CRITICAL]
        if critical:
            self.logger.warning(
                f"Critical anomalies detected: {len(critical)} "
                f"({', '.join(sorted({a.description for a in critical}))})"
            )

    def calculate_performance_metrics(self, data: Sequence[SuspensionDataPoint]) -> PerformanceMetrics:
        """Aggregate power, energy, efficiency, uptime, temperature and cycle metrics."""
        if len(data) == 0:
            raise InsufficientDataError('performance metrics calculation', 1, 0)

        df = points_to_frame(data)
        temperatures = np.concatenate([
            df['shock_temperature'].to_numpy(dtype=float),
            df['damper_temperature'].to_numpy(dtype=float),
        ])

        return PerformanceMetrics(
            average_power_generation=float(df['total_power'].mean()),
            peak_power_generation=float(df['total_power'].max()),
            total_energy_harvested=float(df['harvested_energy'].sum()),
            average_efficiency=float(df['average_efficiency'].mean()),
            system_uptime=float(df['is_operational'].astype(bool).mean()),
            temperature_range=TemperatureRange(min=float(temperatures.min()), max=float(temperatures.max())),
            operational_cycles=float(df['operation_cycles'].max() - df['operation_cycles'].min())
        )

    def generate_analytics_report(self, start_time: Optional[datetime] = None,
                                  end_time: Optional[datetime] = None) -> AnalyticsReport:
        """Build a report over ``[start_time, end_time]`` (default: the last 24 hours)."""
        try:
            current_time = datetime.now()
            report_end = end_time or current_time
            report_start = start_time or (current_time - DEFAULT_REPORT_WINDOW)

            data = self.data_processor.get_data_range(report_start, report_end)
            if len(data) < REPORT_MIN_POINTS:
                raise InsufficientDataError('analytics report generation', REPORT_MIN_POINTS, len(data))

            performance_metrics = self.calculate_performance_metrics(data)
            pattern_analysis = self.pattern_engine.analyze_patterns(data)

            optimization_recommendations: List[OptimizationRecommendation] = []
            if len(data) >= OPTIMIZATION_MIN_POINTS:
                optimization_recommendations = self.performance_optimizer.generate_optimization_recommendations(
                    data, performance_metrics)
            else:
                self.logger.info(
                    f"Skipping optimization analysis: {len(data)} points in range, "
                    f"{OPTIMIZATION_MIN_POINTS} required")

            health_score: Optional[HealthScore] = None
            maintenance_predictions: List[MaintenancePrediction] = []
            component_recommendations: List[str] = []
            if not self.config.enable_predictive_maintenance:
                self.logger.info("Predictive maintenance disabled; skipping maintenance analysis")
            elif len(data) >= MAINTENANCE_MIN_POINTS:
                maintenance = self.maintenance_analyzer.analyze_predictive_maintenance(data)
                health_score = maintenance.health_score
                maintenance_predictions = maintenance.maintenance_predictions
                component_recommendations = maintenance.component_recommendations
            else:
                self.logger.info(
                    f"Skipping maintenance analysis: {len(data)} points in range, "
                    f"{MAINTENANCE_MIN_POINTS} required")

            summary = self._generate_report_summary(
                data,
                performance_metrics,
                pattern_analysis,
                optimization_recommendations,
                maintenance_predictions
            )

            report = AnalyticsReport(
                report_id=f"report_{int(current_time.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
                generated_at=current_time,
                report_period=ReportPeriod(start=report_start, end=report_end),
                summary=summary,
                performance_metrics=performance_metrics,
                pattern_analysis=pattern_analysis,
                optimization_recommendations=optimization_recommendations,
                maintenance_predictions=maintenance_predictions,
                data_quality=self.data_processor.get_data_quality_metrics(),
                health_score=health_score,
                component_recommendations=component_recommendations
            )

            self.analytics_history.append(report)
            if len(self.analytics_history) > REPORT_HISTORY_LIMIT:
                self.analytics_history = self.analytics_history[-REPORT_HISTORY_LIMIT:]
            self.last_report_generation = current_time

            self.logger.info(
                f"Generated report {report.report_id} over {len(data)} points "
                f"(performance {summary.average_system_performance:.1f})"
            )
            return report

        except Exception as e:
            handle_error(self.logger, "Analytics report generation", e)
            raise

    def _generate_report_summary(
        self,
        data: Sequence[SuspensionDataPoint],
        metrics: PerformanceMetrics,
        patterns: PatternAnalysisResult,
        optimizations: List[OptimizationRecommendation],
        predictions: List[MaintenancePrediction]
    ) -> ReportSummary:
        key_findings = []
        critical_issues = []
        recommendations = []

        if metrics.average_efficiency > 0.8:
            key_findings.append('System operating at high efficiency levels')
        elif metrics.average_efficiency < 0.6:
            critical_issues.append('System efficiency below acceptable levels')

        if metrics.system_uptime < 0.95:
            critical_issues.append('System uptime below target (95%)')

        if patterns.trend_direction == TrendDirection.DECREASING:
            critical_issues.append('Performance trend is decreasing')
        elif patterns.trend_direction == TrendDirection.INCREASING:
            key_findings.append('Performance trend is improving')

        critical_anomalies = [a for a in patterns.anomalies if a.severity == Severity.CRITICAL]
        if critical_anomalies:
            critical_issues.append(f"{len(critical_anomalies)} critical anomalies detected")

        high_priority = [o for o in optimizations if o.priority in (Severity.HIGH, Severity.CRITICAL)]
        if high_priority:
            recommendations.append(f"{len(high_priority)} high-priority optimizations available")

        critical_predictions = [p for p in predictions if p.severity == Severity.CRITICAL]
        if critical_predictions:
            critical_issues.append(f"{len(critical_predictions)} components require immediate maintenance")

        performance_factors = [
            metrics.average_efficiency,
            metrics.system_uptime,
            min(metrics.average_power_generation / REFERENCE_POWER, 1.0),
            max(0.0, 1 - len(critical_anomalies) / 10),
        ]

        return ReportSummary(
            total_data_points=len(data),
            average_system_performance=float(np.mean(performance_factors) * 100),
            key_findings=key_findings,
            critical_issues=critical_issues,
            recommendations=recommendations
        )

    def perform_comprehensive_analysis(self) -> ComprehensiveAnalysis:
        """Run every analysis over the whole buffer (at least 100 points)."""
        try:
            all_data = self.data_processor.get_all_data()
            if len(all_data) < COMPREHENSIVE_MIN_POINTS:
                raise InsufficientDataError('comprehensive analysis', COMPREHENSIVE_MIN_POINTS, len(all_data))

            performance_metrics = self.calculate_performance_metrics(all_data)
            pattern_analysis = self.pattern_engine.analyze_patterns(all_data)
            optimization_recommendations = self.performance_optimizer.generate_optimization_recommendations(
                all_data, performance_metrics)
            maintenance = self.maintenance_analyzer.analyze_predictive_maintenance(all_data)

            system_recommendations = self._generate_system_recommendations(
                performance_metrics,
                pattern_analysis,
                optimization_recommendations,
                maintenance.maintenance_predictions
            )

            return ComprehensiveAnalysis(
                performance_metrics=performance_metrics,
                pattern_analysis=pattern_analysis,
                optimization_recommendations=optimization_recommendations,
                maintenance_predictions=maintenance.maintenance_predictions,
                health_score=maintenance.health_score,
                system_recommendations=system_recommendations
            )

        except Exception as e:
            handle_error(self.logger, "Comprehensive analysis", e)
            raise

    def _generate_system_recommendations(
        self,
        metrics: PerformanceMetrics,
        patterns: PatternAnalysisResult,
        optimizations: List[OptimizationRecommendation],
        predictions: List[MaintenancePrediction]
    ) -> List[str]:
        recommendations = []

        if metrics.average_efficiency < 0.7:
            recommendations.append(
                'System efficiency is below optimal. Consider implementing efficiency optimization measures.')
        if metrics.system_uptime < 0.95:
            recommendations.append(
                'System uptime is below target. Investigate reliability issues and implement preventive measures.')
        if patterns.trend_direction == TrendDirection.DECREASING:
            recommendations.append(
                'Performance is declining. Immediate investigation and corrective action required.')
        if any(a.severity == Severity.CRITICAL for a in patterns.anomalies):
            recommendations.append('Critical anomalies detected. Perform immediate system inspection.')
        if any(o.priority == Severity.CRITICAL for o in optimizations):
            recommendations.append(
                'Critical optimizations available. Implement immediately to prevent system degradation.')
        if any(p.severity in (Severity.CRITICAL, Severity.HIGH) for p in predictions):
            recommendations.append(
                'Urgent maintenance required. Schedule immediate service to prevent failures.')

        if not recommendations:
            recommendations.append('System is operating within normal parameters. Continue regular monitoring.')

        return recommendations

    def get_system_status(self) -> Dict[str, Any]:
        recent_data = self.data_processor.get_recent_data(STATUS_WINDOW)
        recent_performance = 0.0
        if recent_data:
            recent_performance = float(np.mean([dp.average_efficiency for dp in recent_data]) * 100)

        return {
            'is_operational': bool(recent_data) and recent_data[-1].shock_absorber.is_operational,
            'data_quality': self.data_processor.get_data_quality_metrics(),
            'recent_performance': recent_performance,
            'active_alerts': len(self.active_alerts),
            'last_analysis': self.last_report_generation
        }

    def get_analytics_statistics(self) -> Dict[str, Any]:
        all_data = self.data_processor.get_all_data()
        uptime = float(np.mean([dp.shock_absorber.is_operational for dp in all_data])) if all_data else 0.0

        return {
            'total_data_points': len(all_data),
            'total_reports': len(self.analytics_history),
            'system_uptime': uptime,
            'average_data_quality': self.data_processor.get_data_quality_metrics().average,
            'last_report_time': self.last_report_generation
        }

    def get_report_history(self) -> List[AnalyticsReport]:
        return list(self.analytics_history)

    def get_data_range(self, start_time: datetime, end_time: datetime) -> List[SuspensionDataPoint]:
        return self.data_processor.get_data_range(start_time, end_time)

    def get_recent_data(self, count: int) -> List[SuspensionDataPoint]:
        return self.data_processor.get_recent_data(count)

    def get_all_data(self) -> List[SuspensionDataPoint]:
        return self.data_processor.get_all_data()

    def get_data_quality_metrics(self) -> DataQualityMetrics:
        return self.data_processor.get_data_quality_metrics()

    def get_buffer_stats(self) -> Dict[str, Any]:
        return self.data_processor.get_buffer_stats()

    def clear_all_data(self):
        self.data_processor.clear_data()
        self.pattern_engine.clear_cache()
        self.performance_optimizer.clear_optimization_history()
        self.maintenance_analyzer.clear_maintenance_history()
        self.analytics_history = []
        self.active_alerts = []
        self.logger.info("All analytics data cleared")
