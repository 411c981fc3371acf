"""
Denim Operations Event Publishers

Functions to publish domain events. A missing bus is skipped with a warning
and a failing bus is logged; neither reaches the caller.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from core.nats_client import Event
from .models import (
    DenimEventType,
    DenimStreamConfig,
    InventoryCommittedEvent,
    NotificationSentEvent,
    ProductionAcceptedEvent,
    ProductionRequestedEvent,
    RequestCompletedEvent,
    WaitlistMatchedEvent,
)

logger = logging.getLogger(__name__)


async def _publish(event_bus, event_type: DenimEventType, payload: BaseModel, subject: Optional[str] = None) -> bool:
    if not event_bus:
        logger.warning(f"Event bus not available, skipping {event_type.value} event")
        return False

    try:
        event = Event(
            event_type=event_type.value,
            source=DenimStreamConfig.SOURCE,
            data=payload.model_dump(mode='json'),
            subject=subject,
        )
        published = await event_bus.publish_event(event)
        if published is False:
            logger.warning(f"Event bus rejected {event_type.value} event")
            return False
        logger.info(f"Published {event_type.value} event")
        return True

    except Exception as e:
        logger.error(f"Failed to publish {event_type.value} event: {e}")
        return False


async def publish_inventory_committed(
    event_bus,
    item_id: str,
    order_id: str,
    sku: str,
    status2: str,
    match_type: Optional[str] = None,
    wash_request_id: Optional[str] = None,
) -> bool:
    """Publish inventory.committed event"""
    payload = InventoryCommittedEvent(
        item_id=item_id,
        order_id=order_id,
        sku=sku,
        status2=status2,
        match_type=match_type,
        wash_request_id=wash_request_id,
    )
    return await _publish(event_bus, DenimEventType.INVENTORY_COMMITTED, payload, subject=item_id)


async def publish_production_requested(
    event_bus,
    pending_request_id: str,
    sku: str,
    quantity: int,
    added_quantity: int,
    priority: str,
    order_id: Optional[str] = None,
    created: bool = True,
) -> bool:
    """Publish production.requested event"""
    payload = ProductionRequestedEvent(
        pending_request_id=pending_request_id,
        sku=sku,
        quantity=quantity,
        added_quantity=added_quantity,
        priority=priority,
        order_id=order_id,
        created=created,
    )
    return await _publish(event_bus, DenimEventType.PRODUCTION_REQUESTED, payload, subject=pending_request_id)


async def publish_production_accepted(
    event_bus,
    pending_request_id: str,
    batch_id: str,
    sku: str,
    quantity: int,
    item_ids: List[str],
    pattern_request_id: str,
) -> bool:
    """Publish production.accepted event"""
    payload = ProductionAcceptedEvent(
        pending_request_id=pending_request_id,
        batch_id=batch_id,
        sku=sku,
        quantity=quantity,
        item_ids=item_ids,
        pattern_request_id=pattern_request_id,
    )
    return await _publish(event_bus, DenimEventType.PRODUCTION_ACCEPTED, payload, subject=batch_id)


async def publish_request_completed(
    event_bus,
    request_id: str,
    request_type: str,
    item_ids: List[str],
    next_request_ids: Optional[List[str]] = None,
    terminal: bool = False,
) -> bool:
    """Publish request.completed event"""
    payload = RequestCompletedEvent(
        request_id=request_id,
        request_type=request_type,
        item_ids=item_ids,
        next_request_ids=next_request_ids or [],
        terminal=terminal,
    )
    return await _publish(event_bus, DenimEventType.REQUEST_COMPLETED, payload, subject=request_id)


async def publish_waitlist_matched(
    event_bus,
    waitlist_entry_id: str,
    order_id: str,
    item_id: str,
    sku: str,
    raw_sku: str,
) -> bool:
    """Publish waitlist.matched event"""
    payload = WaitlistMatchedEvent(
        waitlist_entry_id=waitlist_entry_id,
        order_id=order_id,
        item_id=item_id,
        sku=sku,
        raw_sku=raw_sku,
    )
    return await _publish(event_bus, DenimEventType.WAITLIST_MATCHED, payload, subject=order_id)


async def publish_notification_sent(
    event_bus,
    notification_id: str,
    notification_type: str,
    message: str,
) -> bool:
    """Publish notification.sent event"""
    payload = NotificationSentEvent(
        notification_id=notification_id,
        notification_type=notification_type,
        message=message,
    )
    return await _publish(event_bus, DenimEventType.NOTIFICATION_SENT, payload)
