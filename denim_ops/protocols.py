"""
Denim Operations Protocols

Defines interfaces for dependency injection and testing, plus the typed
errors raised by the allocation core. Every error carries a stable ``code``
so callers can branch on it.
"""

from typing import Any, AsyncContextManager, Dict, List, Optional, Protocol, runtime_checkable

from .models import (
    Commitment,
    InventoryEvent,
    InventoryItem,
    NotificationType,
    Order,
    PendingProductionRequest,
    ProductionBatch,
    ProductionRequest,
    WaitlistEntry,
)


# ====================
# Custom Exceptions
# ====================


class DenimOpsError(Exception):
    """Base exception for denim operations errors"""

    code = "DENIM_OPS_ERROR"
    status = 500

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status


class SKUError(DenimOpsError):
    """Base exception for SKU grammar and conversion errors"""
    code = "SKU_ERROR"
    status = 400


class InvalidSKUError(SKUError):
    """Raised when a SKU string or component set is malformed"""
    code = "INVALID_SKU"


class IncompatibleWashError(SKUError):
    """Raised when a wash code is not a known conversion source"""
    code = "INCOMPATIBLE_WASH"


class UniversalSKUError(SKUError):
    """Raised when no source wash can be finished into the target wash"""
    code = "UNIVERSAL_SKU_ERROR"


class InvalidQuantityError(DenimOpsError):
    """Raised when a quantity is non-positive or a ledger update would go negative"""
    code = "INVALID_QUANTITY"
    status = 400


class OrderNotFoundError(DenimOpsError):
    """Raised when an order is not found"""
    code = "ORDER_NOT_FOUND"
    status = 404


class NoInventoryAvailableError(DenimOpsError):
    """Raised when no inventory item can satisfy a SKU"""
    code = "NO_INVENTORY"
    status = 404


class InventoryItemNotFoundError(DenimOpsError):
    """Raised when an inventory item is not found"""
    code = "ITEM_NOT_FOUND"
    status = 404


class ProductionRequestNotFoundError(DenimOpsError):
    """Raised when a pending production request is not found"""
    code = "PRODUCTION_REQUEST_NOT_FOUND"
    status = 404


class BatchNotFoundError(DenimOpsError):
    """Raised when a production batch is not found"""
    code = "BATCH_NOT_FOUND"
    status = 404


class RequestNotFoundError(DenimOpsError):
    """Raised when a pipeline request is not found"""
    code = "REQUEST_NOT_FOUND"
    status = 404


class InvalidStateTransitionError(DenimOpsError):
    """Raised when an entity is not in a state that allows the operation"""
    code = "INVALID_STATE_TRANSITION"
    status = 409


class BlockedTransitionError(DenimOpsError):
    """Raised when a request is completed while its item sits at a blocking location"""
    code = "BLOCKED_TRANSITION"
    status = 409

    def __init__(self, message: str, location: Optional[str] = None, request_type: Optional[str] = None):
        super().__init__(message)
        self.location = location
        self.request_type = request_type


class ConcurrentModificationError(DenimOpsError):
    """Raised when a save loses an optimistic version check"""
    code = "CONCURRENT_MODIFICATION"
    status = 409

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.entity_id = entity_id


# ====================
# Store Protocol
# ====================


@runtime_checkable
class DenimStoreProtocol(Protocol):
    """Persistent inventory/order store"""

    def transaction(self) -> AsyncContextManager[Any]:
        """
        Open an atomic unit of work.

        Every store call made inside the context commits or rolls back
        together. Nested calls join the outer unit.
        """
        ...

    # Items

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        """Get inventory item by id"""
        ...

    async def list_items(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[InventoryItem]:
        """
        List inventory items matching every filter by equality.

        Args:
            filters: Field/value pairs (sku, status1, status2, order_id, batch_id, location)
            limit: Maximum number of items
            offset: Items to skip

        Returns:
            Items in creation order
        """
        ...

    async def create_items(self, items: List[InventoryItem]) -> List[InventoryItem]:
        """Insert new items, returned at version 1"""
        ...

    async def save_item(self, item: InventoryItem) -> InventoryItem:
        """
        Update an existing item.

        The stored version must equal ``item.version``; the returned copy
        carries the incremented version.

        Raises:
            ConcurrentModificationError: If another writer saved first
        """
        ...

    # Orders

    async def get_order(self, order_id: str) -> Optional[Order]:
        ...

    async def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        ...

    async def save_order(self, order: Order) -> Order:
        """Insert or replace an order"""
        ...

    async def next_order_number(self) -> int:
        """Allocate the next sequential order number"""
        ...

    # Commitment ledger

    async def get_commitment(self, sku: str) -> Optional[Commitment]:
        ...

    async def save_commitment(self, commitment: Commitment) -> Commitment:
        ...

    async def seed_commitment(self, commitment: Commitment) -> None:
        """Store ``commitment`` unless an entry for its SKU already exists"""
        ...

    async def adjust_commitment(
        self, sku: str, delta_committed: int, delta_uncommitted: int
    ) -> Optional[Commitment]:
        """
        Atomically add the deltas to the stored entry for ``sku``.

        Returns None, leaving the entry unchanged, when there is no entry
        or either quantity would go negative.
        """
        ...

    # Waitlist

    async def list_waitlist(
        self, raw_sku: Optional[str] = None, order_id: Optional[str] = None
    ) -> List[WaitlistEntry]:
        """List waitlist entries, oldest first"""
        ...

    async def save_waitlist_entry(self, entry: WaitlistEntry) -> WaitlistEntry:
        ...

    async def delete_waitlist_entry(self, entry_id: str) -> bool:
        ...

    # Production

    async def get_pending_production(self, request_id: str) -> Optional[PendingProductionRequest]:
        ...

    async def list_pending_production(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[PendingProductionRequest]:
        ...

    async def save_pending_production(self, request: PendingProductionRequest) -> PendingProductionRequest:
        ...

    async def get_batch(self, batch_id: str) -> Optional[ProductionBatch]:
        ...

    async def list_batches(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductionBatch]:
        ...

    async def save_batch(self, batch: ProductionBatch) -> ProductionBatch:
        ...

    # Requests

    async def get_request(self, request_id: str) -> Optional[ProductionRequest]:
        ...

    async def list_requests(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductionRequest]:
        ...

    async def save_request(self, request: ProductionRequest) -> ProductionRequest:
        ...

    # Events

    async def save_event(self, event: InventoryEvent) -> InventoryEvent:
        ...

    async def list_events(self, item_id: str) -> List[InventoryEvent]:
        ...


# ====================
# Notification / Event Bus Protocols
# ====================


@runtime_checkable
class NotificationSinkProtocol(Protocol):
    """Fire-and-forget notification log"""

    async def notify(self, notification_type: NotificationType, message: str) -> None:
        ...


@runtime_checkable
class ItemCommitterProtocol(Protocol):
    """The commit step: binds one uncommitted item to an order line"""

    async def commit_item_to_order(
        self,
        item: InventoryItem,
        order_id: str,
        line_index: Optional[int] = None,
        match_type: Optional[Any] = None,
    ) -> Any:
        ...


class EventBusProtocol(Protocol):
    """Event bus interface for publishing events"""

    async def publish_event(self, event: Any) -> bool:
        """
        Publish event to NATS.

        Args:
            event: core.nats_client.Event envelope
        """
        ...


__all__ = [
    "DenimOpsError",
    "SKUError",
    "InvalidSKUError",
    "IncompatibleWashError",
    "UniversalSKUError",
    "InvalidQuantityError",
    "OrderNotFoundError",
    "NoInventoryAvailableError",
    "InventoryItemNotFoundError",
    "BatchNotFoundError",
    "ProductionRequestNotFoundError",
    "RequestNotFoundError",
    "InvalidStateTransitionError",
    "BlockedTransitionError",
    "ConcurrentModificationError",
    "DenimStoreProtocol",
    "NotificationSinkProtocol",
    "EventBusProtocol",
    "ItemCommitterProtocol",
]
