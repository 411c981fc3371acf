"""
Logging setup

Applies a LoggingConfig to the root logger. Modules obtain their own
logger with ``logging.getLogger(__name__)``.
"""

import logging
from typing import Optional

from core.config import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure root logging from config and return the service logger"""
    if config is None:
        config = LoggingConfig.from_env()

    handlers = []
    if config.enable_console:
        handlers.append(logging.StreamHandler())
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format,
        handlers=handlers or None,
        force=True,
    )

    driver_level = getattr(logging, config.driver_log_level.upper(), logging.WARNING)
    for name in config.driver_loggers:
        logging.getLogger(name).setLevel(driver_level)

    logger = logging.getLogger(config.service_name)
    logger.info(f"Logging configured for {config.service_name} ({config.environment}) at {config.log_level}")
    return logger
