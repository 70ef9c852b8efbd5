"""
Data model for suspension telemetry and analytics results.

Readings are immutable once ingested. Result records expose ``to_dict()``
returning JSON-ready primitives (enums as values, datetimes as ISO-8601).
"""

import math
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo

from .common.validation import (
    MAX_SAFE_INTEGER,
    sanitize_bool,
    sanitize_choice,
    sanitize_number,
    sanitize_number_list,
)


class DampingMode(str, Enum):
    COMFORT = 'comfort'
    SPORT = 'sport'
    ENERGY_HARVESTING = 'energy_harvesting'
    ADAPTIVE = 'adaptive'


class SystemStatus(str, Enum):
    OPTIMAL = 'optimal'
    GOOD = 'good'
    DEGRADED = 'degraded'
    CRITICAL = 'critical'


class RoadCondition(str, Enum):
    SMOOTH = 'smooth'
    ROUGH = 'rough'
    VERY_ROUGH = 'very_rough'


class TrendDirection(str, Enum):
    INCREASING = 'increasing'
    DECREASING = 'decreasing'
    STABLE = 'stable'
    FLUCTUATING = 'fluctuating'


class HealthTrend(str, Enum):
    IMPROVING = 'improving'
    STABLE = 'stable'
    DEGRADING = 'degrading'


class HealthStatus(str, Enum):
    EXCELLENT = 'excellent'
    GOOD = 'good'
    FAIR = 'fair'
    POOR = 'poor'
    CRITICAL = 'critical'

    @classmethod
    def from_score(cls, score: float) -> 'HealthStatus':
        if score >= 90:
            return cls.EXCELLENT
        elif score >= 75:
            return cls.GOOD
        elif score >= 60:
            return cls.FAIR
        elif score >= 40:
            return cls.POOR
        return cls.CRITICAL


class IndicatorStatus(str, Enum):
    NORMAL = 'normal'
    WARNING = 'warning'
    CRITICAL = 'critical'


class Severity(str, Enum):
    """Shared low..critical scale for anomalies, failures and optimization priority."""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class AnomalyType(str, Enum):
    TEMPERATURE = 'temperature'
    POWER = 'power'
    EFFICIENCY = 'efficiency'
    FORCE = 'force'
    PRESSURE = 'pressure'


class Relationship(str, Enum):
    POSITIVE = 'positive'
    NEGATIVE = 'negative'
    NONE = 'none'


class Impact(str, Enum):
    POSITIVE = 'positive'
    NEGATIVE = 'negative'
    NEUTRAL = 'neutral'


class OptimizationCategory(str, Enum):
    DAMPING = 'damping'
    ENERGY_HARVESTING = 'energy_harvesting'
    THERMAL = 'thermal'
    MAINTENANCE = 'maintenance'


class Complexity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class Component(str, Enum):
    SHOCK_ABSORBER = 'shock_absorber'
    ELECTROMAGNETIC_GENERATOR = 'electromagnetic_generator'
    HYDRAULIC_DAMPER = 'hydraulic_damper'
    CONTROL_SYSTEM = 'control_system'
    THERMAL_MANAGEMENT = 'thermal_management'


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json')
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _serialize(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {_serialize(k): _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, np.generic):
        return value.item()
    return value


class Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


# --- Sensor readings -------------------------------------------------------

def bounded(minimum: float, maximum: float, **kwargs: Any) -> Any:
    """A float field clamped into ``[minimum, maximum]``; missing values become ``minimum``."""
    return Field(default=None, ge=minimum, le=maximum, **kwargs)


def _field_bounds(field_info: FieldInfo) -> Tuple[float, float]:
    minimum, maximum = -math.inf, math.inf
    for constraint in field_info.metadata:
        minimum = getattr(constraint, 'ge', minimum)
        maximum = getattr(constraint, 'le', maximum)
    return minimum, maximum


class SensorReading(BaseModel):
    """Immutable sensor sub-reading that sanitizes instead of rejecting.

    Numbers are clamped into their field bounds, unknown enumeration values
    fall back to the first member and missing fields take their minimum.
    Keys may be given in snake_case or camelCase.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel,
                              populate_by_name=True, validate_default=True)

    @field_validator('*', mode='before')
    @classmethod
    def sanitize_field(cls, value: Any, info: ValidationInfo) -> Any:
        field_info = cls.model_fields[info.field_name]
        annotation = field_info.annotation
        if annotation is bool:
            return sanitize_bool(value)
        if annotation is float:
            return sanitize_number(value, *_field_bounds(field_info))
        if isinstance(annotation, type) and issubclass(annotation, Enum):
            return annotation(sanitize_choice(value, [member.value for member in annotation]))
        return value

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')


class ShockAbsorberReading(SensorReading):
    generated_power: float = bounded(0, 1000)
    damping_force: float = bounded(-10000, 10000)
    generator_rpm: float = bounded(0, 10000, validation_alias=AliasChoices(
        'generator_rpm', 'generatorRpm', 'generatorRPM'))
    efficiency: float = bounded(0, 1)
    output_voltage: float = bounded(0, 100)
    output_current: float = bounded(0, 50)
    operating_temperature: float = bounded(-40, 200)
    accumulated_energy: float = bounded(0, MAX_SAFE_INTEGER)
    damping_mode: DampingMode = DampingMode.COMFORT
    is_operational: bool = False


class DamperReading(SensorReading):
    generated_power: float = bounded(0, 1000)
    damping_force: float = bounded(0, 20000)
    energy_efficiency: float = bounded(0, 1)
    electromagnetic_force: float = bounded(0, 15000)
    hydraulic_pressure: float = bounded(0, 50_000_000)
    system_temperature: float = bounded(-40, 200)
    harvested_energy: float = bounded(0, MAX_SAFE_INTEGER)
    total_energy_harvested: float = bounded(0, MAX_SAFE_INTEGER)
    operation_cycles: float = bounded(0, MAX_SAFE_INTEGER)


ENERGY_DISTRIBUTION_BOUNDS = (0.0, 1000.0)
DEFAULT_ENERGY_DISTRIBUTION = (0.0, 0.0, 0.0, 0.0)


class IntegrationReading(SensorReading):
    total_generated_power: float = bounded(0, 4000)
    total_damping_force: float = bounded(0, 80000)
    average_efficiency: float = bounded(0, 1)
    energy_distribution: Tuple[float, ...] = DEFAULT_ENERGY_DISTRIBUTION
    system_status: SystemStatus = SystemStatus.OPTIMAL
    performance_score: float = bounded(0, 100)

    @field_validator('energy_distribution', mode='before')
    @classmethod
    def sanitize_distribution(cls, value: Any) -> Tuple[float, ...]:
        return sanitize_number_list(value, *ENERGY_DISTRIBUTION_BOUNDS, default=DEFAULT_ENERGY_DISTRIBUTION)


class EnvironmentalReading(SensorReading):
    vehicle_speed: float = bounded(0, 300)
    road_condition: RoadCondition = RoadCondition.SMOOTH
    road_roughness: float = bounded(0, 1)
    ambient_temperature: float = bounded(-50, 60)
    battery_soc: float = bounded(0, 1, validation_alias=AliasChoices(
        'battery_soc', 'batterySoc', 'batterySOC'))
    load_factor: float = bounded(0, 1)


@dataclass(frozen=True)
class SuspensionDataPoint(Serializable):
    timestamp: datetime
    shock_absorber: ShockAbsorberReading
    damper: DamperReading
    integration: IntegrationReading
    environmental: EnvironmentalReading

    @property
    def total_power(self) -> float:
        return self.shock_absorber.generated_power + self.damper.generated_power

    @property
    def average_efficiency(self) -> float:
        return (self.shock_absorber.efficiency + self.damper.energy_efficiency) / 2


# --- Quality and metrics -----------------------------------------------------

@dataclass
class DataQualityMetrics(Serializable):
    completeness: float = 1.0
    accuracy: float = 1.0
    consistency: float = 1.0
    timeliness: float = 1.0
    validity: float = 1.0

    @property
    def average(self) -> float:
        return (self.completeness + self.accuracy + self.consistency +
                self.timeliness + self.validity) / 5


@dataclass(frozen=True)
class TemperatureRange(Serializable):
    min: float
    max: float


@dataclass(frozen=True)
class PerformanceMetrics(Serializable):
    average_power_generation: float
    peak_power_generation: float
    total_energy_harvested: float
    average_efficiency: float
    system_uptime: float
    temperature_range: TemperatureRange
    operational_cycles: float


# --- Pattern recognition ---------------------------------------------------

@dataclass(frozen=True)
class AnomalyDetection(Serializable):
    type: AnomalyType
    severity: Severity
    value: float
    expected_value: float
    deviation: float
    timestamp: datetime
    description: str


@dataclass(frozen=True)
class CorrelationAnalysis(Serializable):
    variable1: str
    variable2: str
    correlation_coefficient: float
    significance: float
    relationship: Relationship


@dataclass(frozen=True)
class PerformancePattern(Serializable):
    pattern: str
    frequency: float
    conditions: List[str]
    impact: Impact
    recommendation: str


@dataclass(frozen=True)
class PatternAnalysisResult(Serializable):
    trend_direction: TrendDirection
    seasonality: bool
    anomalies: List[AnomalyDetection] = field(default_factory=list)
    correlations: List[CorrelationAnalysis] = field(default_factory=list)
    performance_patterns: List[PerformancePattern] = field(default_factory=list)


# --- Maintenance ---------------------------------------------------------------

@dataclass(frozen=True)
class HealthIndicator(Serializable):
    name: str
    value: float
    threshold: float
    status: IndicatorStatus


@dataclass(frozen=True)
class ComponentHealthScore(Serializable):
    component: Component
    score: float
    status: HealthStatus
    key_indicators: List[HealthIndicator] = field(default_factory=list)


@dataclass(frozen=True)
class HealthScore(Serializable):
    overall: float
    components: List[ComponentHealthScore]
    trend: HealthTrend
    last_updated: datetime

    def component(self, component: Component) -> Optional[ComponentHealthScore]:
        for entry in self.components:
            if entry.component == component:
                return entry
        return None


@dataclass(frozen=True)
class MaintenancePrediction(Serializable):
    component: Component
    predicted_failure_date: datetime
    confidence: float
    remaining_useful_life: float
    failure_mode: str
    severity: Severity
    recommended_action: str
    cost_impact: float


@dataclass(frozen=True)
class MaintenanceAnalysis(Serializable):
    health_score: HealthScore
    maintenance_predictions: List[MaintenancePrediction]
    component_recommendations: List[str]


# --- Optimization ------------------------------------------------------------

@dataclass(frozen=True)
class OptimizationAction(Serializable):
    action: str
    parameter: str
    current_value: float
    recommended_value: float
    confidence: float


@dataclass(frozen=True)
class OptimizationRecommendation(Serializable):
    category: OptimizationCategory
    priority: Severity
    title: str
    description: str
    expected_improvement: float
    implementation_complexity: Complexity
    estimated_cost: float
    actions: List[OptimizationAction] = field(default_factory=list)


@dataclass(frozen=True)
class OptimizationEffectiveness(Serializable):
    overall_improvement: float
    category_improvements: Dict[OptimizationCategory, float]
    successful_recommendations: List[OptimizationRecommendation]
    failed_recommendations: List[OptimizationRecommendation]


# --- Reports -------------------------------------------------------------------

@dataclass(frozen=True)
class ReportPeriod(Serializable):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class ReportSummary(Serializable):
    total_data_points: int
    average_system_performance: float
    key_findings: List[str]
    critical_issues: List[str]
    recommendations: List[str]


@dataclass(frozen=True)
class AnalyticsReport(Serializable):
    report_id: str
    generated_at: datetime
    report_period: ReportPeriod
    summary: ReportSummary
    performance_metrics: PerformanceMetrics
    pattern_analysis: PatternAnalysisResult
    optimization_recommendations: List[OptimizationRecommendation]
    maintenance_predictions: List[MaintenancePrediction]
    data_quality: DataQualityMetrics
    health_score: Optional[HealthScore] = None
    component_recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComprehensiveAnalysis(Serializable):
    performance_metrics: PerformanceMetrics
    pattern_analysis: PatternAnalysisResult
    optimization_recommendations: List[OptimizationRecommendation]
    maintenance_predictions: List[MaintenancePrediction]
    health_score: HealthScore
    system_recommendations: List[str]


def points_to_frame(points: Sequence[SuspensionDataPoint]) -> pd.DataFrame:
    """Flatten data points into a column-per-metric DataFrame, one row per point."""
    rows = []
    for dp in points:
        shock = dp.shock_absorber
        damper = dp.damper
        env = dp.environmental
        rows.append({
            'timestamp': dp.timestamp,
            'shock_power': shock.generated_power,
            'damper_power': damper.generated_power,
            'total_power': dp.total_power,
            'shock_efficiency': shock.efficiency,
            'damper_efficiency': damper.energy_efficiency,
            'average_efficiency': dp.average_efficiency,
            'shock_temperature': shock.operating_temperature,
            'damper_temperature': damper.system_temperature,
            'shock_damping_force': shock.damping_force,
            'generator_rpm': shock.generator_rpm,
            'output_voltage': shock.output_voltage,
            'damping_mode': shock.damping_mode.value,
            'is_operational': shock.is_operational,
            'electromagnetic_force': damper.electromagnetic_force,
            'hydraulic_pressure': damper.hydraulic_pressure,
            'harvested_energy': damper.harvested_energy,
            'operation_cycles': damper.operation_cycles,
            'performance_score': dp.integration.performance_score,
            'vehicle_speed': env.vehicle_speed,
            'road_roughness': env.road_roughness,
            'ambient_temperature': env.ambient_temperature,
            'battery_soc': env.battery_soc,
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


FRAME_COLUMNS = [
    'timestamp', 'shock_power', 'damper_power', 'total_power',
    'shock_efficiency', 'damper_efficiency', 'average_efficiency',
    'shock_temperature', 'damper_temperature', 'shock_damping_force',
    'generator_rpm', 'output_voltage', 'damping_mode', 'is_operational',
    'electromagnetic_force', 'hydraulic_pressure', 'harvested_energy',
    'operation_cycles', 'performance_score', 'vehicle_speed',
    'road_roughness', 'ambient_temperature', 'battery_soc',
]
