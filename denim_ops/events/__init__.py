"""
Denim Operations Events Module

Exports all event-related functionality for the denim operations core
"""

from .models import (
    DenimEventType,
    DenimStreamConfig,
    InventoryCommittedEvent,
    ProductionRequestedEvent,
    ProductionAcceptedEvent,
    RequestCompletedEvent,
    WaitlistMatchedEvent,
    NotificationSentEvent,
)

from .publishers import (
    publish_inventory_committed,
    publish_production_requested,
    publish_production_accepted,
    publish_request_completed,
    publish_waitlist_matched,
    publish_notification_sent,
)

__all__ = [
    # Event Types
    "DenimEventType",
    "DenimStreamConfig",
    # Event Models
    "InventoryCommittedEvent",
    "ProductionRequestedEvent",
    "ProductionAcceptedEvent",
    "RequestCompletedEvent",
    "WaitlistMatchedEvent",
    "NotificationSentEvent",
    # Publishers
    "publish_inventory_committed",
    "publish_production_requested",
    "publish_production_accepted",
    "publish_request_completed",
    "publish_waitlist_matched",
    "publish_notification_sent",
]
