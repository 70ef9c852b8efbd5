import pytest
import os
import sys
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

# Ensure tests can import from the repo's src/ directory (e.g., `from suspension_analytics...`).
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../src')))

from suspension_analytics.common.configuration import AnalyticsConfiguration
from suspension_analytics.analysis.data_processor import DataProcessor

# Steady, healthy operating point: every alert threshold is satisfied and
# the anomaly-tracked channels are constant.
BASE_SHOCK_ABSORBER = {
    'generated_power': 120.0,
    'damping_force': 2000.0,
    'generator_rpm': 1500.0,
    'efficiency': 0.85,
    'output_voltage': 48.0,
    'output_current': 2.5,
    'operating_temperature': 60.0,
    'accumulated_energy': 1000.0,
    'damping_mode': 'energy_harvesting',
    'is_operational': True,
}

BASE_DAMPER = {
    'generated_power': 80.0,
    'damping_force': 3000.0,
    'energy_efficiency': 0.82,
    'electromagnetic_force': 1500.0,
    'hydraulic_pressure': 10_000_000.0,
    'system_temperature': 62.0,
    'harvested_energy': 5.0,
    'total_energy_harvested': 500.0,
}

BASE_INTEGRATION = {
    'total_generated_power': 200.0,
    'total_damping_force': 5000.0,
    'average_efficiency': 0.835,
    'energy_distribution': [50.0, 50.0, 50.0, 50.0],
    'system_status': 'optimal',
    'performance_score': 90.0,
}

BASE_ENVIRONMENTAL = {
    'vehicle_speed': 60.0,
    'road_condition': 'smooth',
    'road_roughness': 0.2,
    'ambient_temperature': 20.0,
    'battery_soc': 0.7,
    'load_factor': 0.5,
}


def build_reading(
    index: int = 0,
    shock: Optional[Dict[str, Any]] = None,
    damper: Optional[Dict[str, Any]] = None,
    integration: Optional[Dict[str, Any]] = None,
    environmental: Optional[Dict[str, Any]] = None
) -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, Any], Dict[str, Any]]:
    """Return the four raw sub-readings for sample ``index`` with per-part overrides."""
    damper_reading = {**BASE_DAMPER, 'operation_cycles': index * 0.1}
    return (
        {**BASE_SHOCK_ABSORBER, **(shock or {})},
        {**damper_reading, **(damper or {})},
        {**BASE_INTEGRATION, **(integration or {})},
        {**BASE_ENVIRONMENTAL, **(environmental or {})},
    )


def feed(
    target: Any,
    count: int,
    start: datetime,
    modifier: Optional[Callable[[int], Dict[str, Dict[str, Any]]]] = None,
    interval: timedelta = timedelta(seconds=1)
):
    """Ingest ``count`` readings into a DataProcessor or SuspensionDataAnalytics."""
    ingest = getattr(target, 'process_system_data', None) or target.process_data_point
    points = []
    for i in range(count):
        overrides = modifier(i) if modifier else {}
        points.append(ingest(*build_reading(i, **overrides), timestamp=start + i * interval))
    return points


@pytest.fixture
def reading_factory():
    return build_reading


@pytest.fixture
def feed_readings():
    return feed


@pytest.fixture
def start_time():
    return datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def recent_start():
    """A start time inside the default 24-hour report window."""
    return datetime.now() - timedelta(minutes=30)


@pytest.fixture
def analytics_config():
    return AnalyticsConfiguration(enable_real_time_analysis=False)


@pytest.fixture
def data_processor(analytics_config):
    return DataProcessor(analytics_config)


@pytest.fixture
def healthy_points(data_processor, start_time):
    """120 steady, healthy data points, one second apart."""
    return feed(data_processor, 120, start_time)
