"""
Denim Operations Factory

Factory for creating the denim operations services with real dependencies.
This is the ONLY module that imports concrete I/O implementations.
"""

import logging
from typing import Optional

from core.config import DenimOpsConfig, get_settings
from core.nats_client import get_event_bus
from core.postgres_client import get_postgres_client

from .denim_repository import DenimRepository
from .notifications import EventBusNotificationSink, LoggingNotificationSink
from .services import DenimOpsServices, build_services

logger = logging.getLogger(__name__)


async def create_denim_ops(
    config: Optional[DenimOpsConfig] = None,
    event_bus=None,
    notification_sink=None,
) -> DenimOpsServices:
    """
    Create the denim operations services with all real dependencies

    Args:
        config: Optional application config (global settings if not provided)
        event_bus: Optional event bus (connects to NATS when enabled and not provided)
        notification_sink: Optional sink (event bus sink when a bus exists, else logging)

    Returns:
        Fully wired DenimOpsServices
    """
    if config is None:
        config = get_settings()

    db = await get_postgres_client(config.logging.service_name, config=config.infrastructure)
    repository = DenimRepository(db, schema=config.infrastructure.postgres_schema)
    await repository.initialize()

    if event_bus is None and config.infrastructure.nats_enabled:
        try:
            event_bus = await get_event_bus(config.logging.service_name, config=config.infrastructure)
            logger.info("✅ Event bus initialized for denim operations")
        except Exception as e:
            logger.warning(f"⚠️ Failed to initialize event bus: {e}")
            logger.warning("Denim operations will run without event publishing")

    if notification_sink is None:
        notification_sink = EventBusNotificationSink(event_bus) if event_bus else LoggingNotificationSink()

    return build_services(
        repository,
        config=config.allocation,
        notifications=notification_sink,
        event_bus=event_bus,
    )


__all__ = ["create_denim_ops"]
