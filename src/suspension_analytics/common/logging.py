import logging
import os
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVEL = 'INFO'


def _resolve_level(level: Union[str, int, None]) -> int:
    if level is None:
        return logging.getLevelName(LOG_LEVEL)
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level}")
    return resolved


def setup_logging(
    name: str,
    log_file: Optional[str] = None,
    level: Union[str, int, None] = None
) -> logging.Logger:
    """Configure and return the named component logger.

    Root logging is configured once with the package format. When
    ``log_file`` is given a file handler is attached to the component
    logger, at most once per file.
    """
    resolved_level = _resolve_level(level)
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)

    if log_file:
        log_path = os.path.abspath(log_file)
        already_attached = any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == log_path
            for handler in logger.handlers
        )
        if not already_attached:
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

    return logger
