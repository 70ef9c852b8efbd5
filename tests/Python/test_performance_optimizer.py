import pytest
from dataclasses import replace

from suspension_analytics.common.error_handling import InsufficientDataError
from suspension_analytics.models import (
    Complexity,
    OptimizationCategory,
    PerformanceMetrics,
    Severity,
    TemperatureRange,
)
from suspension_analytics.predictive.performance_optimizer import PerformanceOptimizer


@pytest.fixture
def optimizer(analytics_config):
    return PerformanceOptimizer(analytics_config)


@pytest.fixture
def healthy_metrics():
    return PerformanceMetrics(
        average_power_generation=200.0,
        peak_power_generation=200.0,
        total_energy_harvested=300.0,
        average_efficiency=0.835,
        system_uptime=1.0,
        temperature_range=TemperatureRange(min=60.0, max=62.0),
        operational_cycles=5.9
    )


def _struggling_system(i):
    return {
        'shock': {
            'damping_force': 1000.0 if i % 2 else 3000.0,
            'damping_mode': 'comfort',
            'efficiency': 0.5,
            'operating_temperature': 105.0,
        },
        'damper': {'energy_efficiency': 0.5},
    }


class TestRecommendations:
    def test_requires_fifty_points(self, optimizer, data_processor, feed_readings, start_time, healthy_metrics):
        points = feed_readings(data_processor, 49, start_time)

        with pytest.raises(InsufficientDataError):
            optimizer.generate_optimization_recommendations(points, healthy_metrics)

    def test_healthy_system_only_needs_timing_tuning(self, optimizer, data_processor, feed_readings,
                                                      start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time)

        recommendations = optimizer.generate_optimization_recommendations(points, healthy_metrics)

        assert [r.title for r in recommendations] == ['Optimize Power Generation Timing']
        assert 'Optimize Damping Force Control' not in [r.title for r in recommendations]
        timing = recommendations[0]
        assert timing.category == OptimizationCategory.ENERGY_HARVESTING
        assert timing.priority == Severity.MEDIUM
        assert timing.implementation_complexity == Complexity.MEDIUM
        assert timing.estimated_cost == 3000

    def test_struggling_system_gets_ranked_recommendations(self, optimizer, data_processor, feed_readings,
                                                           start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time, modifier=_struggling_system)
        metrics = replace(healthy_metrics, system_uptime=0.9, operational_cycles=100_000.0)

        recommendations = optimizer.generate_optimization_recommendations(points, metrics)

        assert [r.title for r in recommendations] == [
            'Implement Enhanced Cooling System',
            'Improve Energy Conversion Efficiency',
            'Improve System Reliability',
            'Optimize Damping Force Control',
            'Increase Energy Harvesting Mode Usage',
            'Optimize Power Generation Timing',
            'Optimize Operating Cycles',
        ]
        assert recommendations[0].priority == Severity.CRITICAL

        damping = recommendations[3]
        tune = next(a for a in damping.actions if a.parameter == 'damping_coefficient')
        assert tune.current_value == pytest.approx(2000.0)
        assert tune.recommended_value == pytest.approx(1800.0)

        cooling = recommendations[0]
        dissipation = next(a for a in cooling.actions if a.parameter == 'heat_dissipation_rate')
        assert dissipation.current_value == pytest.approx(105.0)
        assert dissipation.recommended_value == pytest.approx(84.0)

    def test_window_without_energy_harvesting_mode_counts_as_zero_usage(
            self, optimizer, data_processor, feed_readings, start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time, modifier=lambda i: {
            'shock': {'damping_mode': 'sport'},
        })

        titles = [r.title for r in optimizer.generate_optimization_recommendations(points, healthy_metrics)]

        assert 'Increase Energy Harvesting Mode Usage' in titles

    def test_elevated_average_temperature(self, optimizer, data_processor, feed_readings,
                                          start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time, modifier=lambda i: {
            'damper': {'system_temperature': 85.0},
        })

        titles = [r.title for r in optimizer.generate_optimization_recommendations(points, healthy_metrics)]

        assert 'Optimize Thermal Management' in titles
        assert 'Implement Enhanced Cooling System' not in titles


class TestBaselineAndStats:
    def test_baseline_is_smoothed(self, optimizer, data_processor, feed_readings, start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time)

        optimizer.generate_optimization_recommendations(points, healthy_metrics)
        assert optimizer.get_performance_baseline() == healthy_metrics

        optimizer.generate_optimization_recommendations(
            points, replace(healthy_metrics, average_power_generation=100.0))
        assert optimizer.get_performance_baseline().average_power_generation == pytest.approx(190.0)

    def test_stats_and_clear(self, optimizer, data_processor, feed_readings, start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time)
        optimizer.generate_optimization_recommendations(points, healthy_metrics)
        optimizer.generate_optimization_recommendations(points, healthy_metrics)

        stats = optimizer.get_optimization_stats()
        assert stats['total_recommendations'] == 2
        assert stats['recommendations_by_category'] == {'energy_harvesting': 2}
        assert stats['recommendations_by_priority'] == {'medium': 2}
        assert stats['average_expected_improvement'] == pytest.approx(10.0)
        assert stats['last_optimization_time'] is not None

        optimizer.clear_optimization_history()
        assert optimizer.get_optimization_stats()['total_recommendations'] == 0
        assert optimizer.get_performance_baseline() is None


class TestEffectiveness:
    def test_successful_and_failed_recommendations(self, optimizer, data_processor, feed_readings,
                                                   start_time, healthy_metrics):
        points = feed_readings(data_processor, 60, start_time, modifier=_struggling_system)
        recommendations = optimizer.generate_optimization_recommendations(
            points, replace(healthy_metrics, system_uptime=0.9))
        conversion = next(r for r in recommendations if r.title == 'Improve Energy Conversion Efficiency')
        damping = next(r for r in recommendations if r.title == 'Optimize Damping Force Control')

        before = replace(healthy_metrics, average_power_generation=100.0, average_efficiency=0.6)
        after = replace(before, average_power_generation=120.0)

        result = optimizer.evaluate_optimization_effectiveness(before, after, [conversion, damping])

        assert result.overall_improvement == pytest.approx(0.2 / 3)
        assert result.category_improvements == {
            OptimizationCategory.ENERGY_HARVESTING: pytest.approx(0.2),
            OptimizationCategory.DAMPING: pytest.approx(0.0),
        }
        assert result.successful_recommendations == [conversion]
        assert result.failed_recommendations == [damping]

    def test_zero_baseline_counts_as_no_change(self, optimizer, healthy_metrics):
        before = replace(healthy_metrics, average_power_generation=0.0)
        after = replace(healthy_metrics, average_power_generation=150.0)

        result = optimizer.evaluate_optimization_effectiveness(before, after, [])

        assert result.overall_improvement == pytest.approx(0.0)
        assert result.successful_recommendations == []
        assert result.failed_recommendations == []
