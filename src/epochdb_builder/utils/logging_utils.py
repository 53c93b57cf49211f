"""Logging utilities for EpochDB Builder."""
import logging
from pathlib import Path
from typing import Optional
import structlog


VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True
) -> structlog.BoundLogger:
    """Setup structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path that receives a copy of every log line
        console_output: Render human-friendly console lines instead of JSON

    Returns:
        Configured structured logger

    Raises:
        ValueError: If log level is invalid
    """
    if level.upper() not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {VALID_LEVELS}")

    numeric_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=numeric_level,
        format='%(message)s'
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(numeric_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.ConsoleRenderer() if console_output else structlog.processors.JSONRenderer()
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        root = logging.getLogger()
        # Avoid stacking handlers when logging is set up more than once
        for handler in list(root.handlers):
            if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file.resolve():
                root.removeHandler(handler)
                handler.close()
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        root.addHandler(file_handler)

    logger = structlog.get_logger()
    logger.info("Logging initialized", level=level, log_file=str(log_file) if log_file else None)

    return logger
