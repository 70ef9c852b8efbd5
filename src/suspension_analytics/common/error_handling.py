import logging


class SuspensionAnalyticsError(Exception):
    """Base class for errors raised by the analytics pipeline."""


class InsufficientDataError(SuspensionAnalyticsError):
    """Raised when an analysis is requested over too few data points."""

    def __init__(self, operation: str, required: int, actual: int):
        self.operation = operation
        self.required = required
        self.actual = actual
        super().__init__(
            f"Insufficient data for {operation}: need at least {required} data points, got {actual}"
        )


class InvalidConfigurationError(SuspensionAnalyticsError):
    """Raised when an analytics configuration is missing, malformed or out of range."""


def handle_error(logger: logging.Logger, context: str, error: Exception,
                 log_traceback: bool = True) -> None:
    """Log a failed operation.

    Expected pipeline conditions (``SuspensionAnalyticsError``) are logged
    without a traceback. The caller decides whether to re-raise.
    """
    include_traceback = log_traceback and not isinstance(error, SuspensionAnalyticsError)
    logger.error(f"{context} failed: {str(error)}", exc_info=include_traceback)
