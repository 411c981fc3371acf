"""
Denim Operations Event Models

Pydantic payloads for events published on the NATS event bus
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Event Type Definitions
# =============================================================================

class DenimEventType(str, Enum):
    """
    Events published by the denim operations core.

    Streams: inventory-stream, production-stream, request-stream, waitlist-stream
    """
    INVENTORY_COMMITTED = "inventory.committed"
    PRODUCTION_REQUESTED = "production.requested"
    PRODUCTION_ACCEPTED = "production.accepted"
    REQUEST_COMPLETED = "request.completed"
    WAITLIST_MATCHED = "waitlist.matched"
    NOTIFICATION_SENT = "notification.sent"


class DenimStreamConfig:
    """Stream configuration for the denim operations core"""
    STREAMS = {
        "inventory-stream": ["inventory.>"],
        "production-stream": ["production.>"],
        "request-stream": ["request.>"],
        "waitlist-stream": ["waitlist.>"],
        "notification-stream": ["notification.>"],
    }
    SOURCE = "denim_ops"


# =============================================================================
# Event Data Models
# =============================================================================

class InventoryCommittedEvent(BaseModel):
    """Published when an inventory item is committed to an order"""
    item_id: str
    order_id: str
    sku: str
    status2: str
    match_type: Optional[str] = None
    wash_request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)


class ProductionRequestedEvent(BaseModel):
    """Published when unmet demand raises or extends a pending production request"""
    pending_request_id: str
    sku: str
    quantity: int
    added_quantity: int
    priority: str
    order_id: Optional[str] = None
    created: bool = True
    timestamp: datetime = Field(default_factory=_now)


class ProductionAcceptedEvent(BaseModel):
    """Published when a pending production request becomes a batch"""
    pending_request_id: str
    batch_id: str
    sku: str
    quantity: int
    item_ids: List[str]
    pattern_request_id: str
    timestamp: datetime = Field(default_factory=_now)


class RequestCompletedEvent(BaseModel):
    """Published when the last step of a pipeline request completes"""
    request_id: str
    request_type: str
    item_ids: List[str]
    next_request_ids: List[str] = Field(default_factory=list)
    terminal: bool = False
    timestamp: datetime = Field(default_factory=_now)


class WaitlistMatchedEvent(BaseModel):
    """Published when a newly available item is paired with waiting demand"""
    waitlist_entry_id: str
    order_id: str
    item_id: str
    sku: str
    raw_sku: str
    timestamp: datetime = Field(default_factory=_now)


class NotificationSentEvent(BaseModel):
    """Published for every notification when the bus is the notification sink"""
    notification_id: str
    notification_type: str
    message: str
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_now)
