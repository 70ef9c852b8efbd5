"""
Analysis Components
Provides data ingestion and pattern recognition capabilities
"""

from . import data_processor, pattern_recognition
from .data_processor import DataProcessor
from .pattern_recognition import PatternRecognitionEngine

__all__ = [
    'DataProcessor',
    'PatternRecognitionEngine'
]

# Analysis configuration
ANALYSIS_CONFIG = {
    'data_processing': {
        'interpolation_window': data_processor.INTERPOLATION_WINDOW,
        'accuracy_window': data_processor.ACCURACY_WINDOW,
        'consistency_window': data_processor.CONSISTENCY_WINDOW,
        'quality_smoothing': data_processor.QUALITY_SMOOTHING
    },
    'pattern_recognition': {
        'min_data_points': pattern_recognition.MIN_DATA_POINTS,
        'min_seasonality_points': pattern_recognition.MIN_SEASONALITY_POINTS,
        'seasonality_threshold': pattern_recognition.SEASONALITY_THRESHOLD,
        'trend_slope_threshold': pattern_recognition.TREND_SLOPE_THRESHOLD,
        'correlation_threshold': pattern_recognition.CORRELATION_THRESHOLD
    }
}
