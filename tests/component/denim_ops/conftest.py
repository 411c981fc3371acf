"""
Denim Operations - Component Test Configuration

Services wired through build_services around the in-memory store.
"""
from typing import List

import pytest

from core.config import AllocationConfig
from denim_ops.models import InventoryItem, Status1, Status2
from denim_ops.services import DenimOpsServices, build_services


@pytest.fixture
def allocation_config() -> AllocationConfig:
    """Default allocation settings"""
    return AllocationConfig()


@pytest.fixture
def services(mock_store, mock_notifications, mock_event_bus, allocation_config) -> DenimOpsServices:
    """All denim operations services with mocked dependencies"""
    return build_services(
        mock_store,
        config=allocation_config,
        notifications=mock_notifications,
        event_bus=mock_event_bus,
    )


@pytest.fixture
def services_no_event_bus(mock_store, mock_notifications, allocation_config) -> DenimOpsServices:
    """Services without an event bus, for testing fallback behavior"""
    return build_services(mock_store, config=allocation_config, notifications=mock_notifications)


@pytest.fixture
def create_raw_items(mock_store):
    """Insert items straight into the store, bypassing stock entry and the waitlist"""

    async def _create(sku: str, quantity: int = 1, status1: Status1 = Status1.STOCK) -> List[InventoryItem]:
        return await mock_store.create_items([
            InventoryItem(sku=sku, status1=status1, status2=Status2.UNCOMMITTED, location="WAREHOUSE")
            for _ in range(quantity)
        ])

    return _create
