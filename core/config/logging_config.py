#!/usr/bin/env python3
"""Logging configuration"""
import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _names(val: str) -> List[str]:
    return [name.strip() for name in val.split(",") if name.strip()]


@dataclass
class LoggingConfig:
    """Logging for the denim operations process"""
    log_level: str = "INFO"
    log_format: str = DEFAULT_FORMAT
    log_file: str = ""
    enable_console: bool = True

    # Database and bus drivers log every round trip at DEBUG
    driver_log_level: str = "WARNING"
    driver_loggers: List[str] = field(default_factory=lambda: ["asyncpg", "nats"])

    service_name: str = "denim_ops"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> 'LoggingConfig':
        """Load logging config from environment variables"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO"),
            log_format=os.getenv("LOG_FORMAT", DEFAULT_FORMAT),
            log_file=os.getenv("LOG_FILE", ""),
            enable_console=_bool(os.getenv("LOG_CONSOLE", "true")),
            driver_log_level=os.getenv("DRIVER_LOG_LEVEL", "WARNING"),
            driver_loggers=_names(os.getenv("DRIVER_LOGGERS", "asyncpg,nats")),
            service_name=os.getenv("SERVICE_NAME", "denim_ops"),
            environment=env,
        )
