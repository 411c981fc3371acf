"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS, notifications).
"""

from .db_mock import MockPostgresClient
from .nats_mock import MockEventBus
from .notification_mock import MockNotificationSink
from .store_mock import MockDenimRepository

__all__ = [
    'MockPostgresClient',
    'MockEventBus',
    'MockNotificationSink',
    'MockDenimRepository',
]
