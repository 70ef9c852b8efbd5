"""
Suspension Analytics
Data analytics for energy-harvesting suspension systems
"""

from .analytics_engine import SuspensionDataAnalytics
from .analysis import DataProcessor, PatternRecognitionEngine
from .predictive import PredictiveMaintenanceAnalyzer, PerformanceOptimizer
from .common import (
    AnalyticsConfiguration,
    AlertThresholds,
    load_analytics_configuration,
    SuspensionAnalyticsError,
    InsufficientDataError,
    InvalidConfigurationError
)

__version__ = '1.0.0'

__all__ = [
    'SuspensionDataAnalytics',
    'DataProcessor',
    'PatternRecognitionEngine',
    'PredictiveMaintenanceAnalyzer',
    'PerformanceOptimizer',
    'AnalyticsConfiguration',
    'AlertThresholds',
    'load_analytics_configuration',
    'SuspensionAnalyticsError',
    'InsufficientDataError',
    'InvalidConfigurationError'
]
