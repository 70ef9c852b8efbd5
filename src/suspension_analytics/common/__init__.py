"""
Common Utilities
Provides shared functionality across components
"""

from .logging import setup_logging, LOG_FORMAT, LOG_LEVEL
from .validation import validate_input, sanitize_number, sanitize_choice, sanitize_bool, MAX_SAFE_INTEGER
from .error_handling import (
    handle_error,
    SuspensionAnalyticsError,
    InsufficientDataError,
    InvalidConfigurationError
)
from .configuration import (
    load_config,
    save_config,
    load_analytics_configuration,
    AnalyticsConfiguration,
    AlertThresholds
)

__all__ = [
    'setup_logging',
    'validate_input',
    'sanitize_number',
    'sanitize_choice',
    'sanitize_bool',
    'handle_error',
    'SuspensionAnalyticsError',
    'InsufficientDataError',
    'InvalidConfigurationError',
    'load_config',
    'save_config',
    'load_analytics_configuration',
    'AnalyticsConfiguration',
    'AlertThresholds'
]

# Common configurations
COMMON_CONFIG = {
    'logging': {
        'level': LOG_LEVEL,
        'format': LOG_FORMAT
    },
    'validation': {
        'max_safe_integer': MAX_SAFE_INTEGER
    },
    'error_handling': {
        'log_traceback': True
    },
    'configuration': {
        'supported_formats': ['yaml', 'yml', 'json']
    }
}
