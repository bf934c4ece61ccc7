"""Logging configuration."""

import logging
import os
import sys

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    console_level: str | None = None
    log_file: str | None = None
    file_level: str | None = None


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging for the CLI and the HTTP service.

    Console output goes to stderr so that reports on stdout stay machine-readable.
    When ``log_file`` is set, records are also appended to that file.
    """
    if config is None:
        config = LogConfig()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, (config.console_level or config.level).upper()))
    handlers: list[logging.Handler] = [console_handler]

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(getattr(logging, (config.file_level or config.level).upper()))
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Set specific log levels for third-party libraries
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level; otherwise LOG_LEVEL, otherwise inherited from the root logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level or os.getenv("LOG_LEVEL")
    if log_level:
        logger.setLevel(log_level.upper())

    return logger
