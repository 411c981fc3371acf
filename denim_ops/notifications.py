"""
Notification sinks

Notifications are fire-and-forget: ``send_notification`` logs and swallows
any sink failure so the calling operation is never blocked.
"""

import logging
from typing import List, Optional

from .events.publishers import publish_notification_sent
from .models import Notification, NotificationType
from .protocols import NotificationSinkProtocol

logger = logging.getLogger(__name__)


class LoggingNotificationSink:
    """Writes notifications to the log and keeps the most recent ones"""

    def __init__(self, history_size: int = 100):
        self.history_size = history_size
        self.history: List[Notification] = []

    async def notify(self, notification_type: NotificationType, message: str) -> None:
        notification = Notification(type=notification_type, message=message)
        self.history.append(notification)
        del self.history[:-self.history_size]
        logger.info(f"[{notification_type.value}] {message}")


class EventBusNotificationSink:
    """Publishes notifications as ``notification.sent`` events"""

    def __init__(self, event_bus):
        self.event_bus = event_bus

    async def notify(self, notification_type: NotificationType, message: str) -> None:
        notification = Notification(type=notification_type, message=message)
        await publish_notification_sent(
            self.event_bus,
            notification_id=notification.id,
            notification_type=notification_type.value,
            message=message,
        )


async def send_notification(
    sink: Optional[NotificationSinkProtocol],
    notification_type: NotificationType,
    message: str,
) -> bool:
    """Hand a notification to the sink; failures are logged, never raised"""
    if sink is None:
        logger.debug(f"No notification sink, dropping [{notification_type.value}] {message}")
        return False
    try:
        await sink.notify(notification_type, message)
        return True
    except Exception as e:
        logger.error(f"Notification sink failed for [{notification_type.value}]: {e}")
        return False
