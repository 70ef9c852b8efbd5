"""
Predictive Components
Provides health scoring, maintenance forecasting and performance optimization
"""

from . import maintenance_analyzer, performance_optimizer
from .maintenance_analyzer import PredictiveMaintenanceAnalyzer
from .performance_optimizer import PerformanceOptimizer

__all__ = [
    'PredictiveMaintenanceAnalyzer',
    'PerformanceOptimizer'
]

# Predictive configuration
PREDICTIVE_CONFIG = {
    'maintenance': {
        'min_data_points': maintenance_analyzer.MIN_DATA_POINTS,
        'critical_health_threshold': maintenance_analyzer.CRITICAL_HEALTH_THRESHOLD,
        'prediction_score_ceiling': maintenance_analyzer.PREDICTION_SCORE_CEILING,
        'history_limit': maintenance_analyzer.HEALTH_HISTORY_LIMIT
    },
    'optimization': {
        'min_data_points': performance_optimizer.MIN_DATA_POINTS,
        'baseline_smoothing': performance_optimizer.BASELINE_SMOOTHING,
        'history_limit': performance_optimizer.OPTIMIZATION_HISTORY_LIMIT
    }
}
