#!/usr/bin/env python3
"""
Core infrastructure for the denim operations services

COMPONENTS:
    - config/: dataclass configuration loaded from environment / dotenv files
    - logger.py: logging setup
    - nats_client.py: NATS JetStream event bus
    - postgres_client.py: asyncpg pool wrapper with task-local transactions

USAGE:
    from core.config import settings
    from core.logger import setup_logging

    setup_logging(settings.logging)
"""

__version__ = "1.0.0"
