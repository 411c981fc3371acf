"""
Inventory service

Manual stock entry, item moves and the commitment ledger's public face.
"""

import logging
from typing import Any, Dict, List, Optional

from core.config import AllocationConfig
from .commitment_ledger import CommitmentLedger
from .models import (
    ActiveStage,
    Commitment,
    InventoryEvent,
    InventoryItem,
    LocationChangedDetails,
    Status1,
    Status2,
    StockAddedDetails,
    utc_now,
)
from .pipeline import manual_stock_timeline
from .protocols import (
    DenimStoreProtocol,
    InvalidQuantityError,
    InventoryItemNotFoundError,
    ItemCommitterProtocol,
)
from .sku import build_sku, parse_sku
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


class InventoryService:
    """Inventory items and their commitments"""

    def __init__(
        self,
        store: DenimStoreProtocol,
        ledger: CommitmentLedger,
        waitlist: Optional[WaitlistService] = None,
        committer: Optional[ItemCommitterProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.waitlist = waitlist
        self.committer = committer
        self.config = config or AllocationConfig()

    async def get_item(self, item_id: str) -> InventoryItem:
        item = await self.store.get_item(item_id)
        if item is None:
            raise InventoryItemNotFoundError(f"Inventory item not found: {item_id}")
        return item

    async def list_items(
        self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None, offset: int = 0
    ) -> List[InventoryItem]:
        return await self.store.list_items(filters or {}, limit=limit, offset=offset)

    async def get_item_events(self, item_id: str) -> List[InventoryEvent]:
        return await self.store.list_events(item_id)

    async def add_stock_items(self, sku: str, quantity: int, location: Optional[str] = None) -> List[InventoryItem]:
        """
        Enter finished stock by hand.

        Items start STOCK/UNCOMMITTED with cutting and sewing already done
        on their timeline, and are offered to the waitlist straight away.

        Raises:
            InvalidSKUError: If the SKU is malformed
            InvalidQuantityError: If quantity is not positive
        """
        components = parse_sku(sku)
        sku = build_sku(components)
        if quantity <= 0:
            raise InvalidQuantityError(f"Stock quantity must be positive, got {quantity}")
        location = location or self.config.default_stock_location

        async with self.store.transaction():
            await self.ledger.update_commitments(sku, 0, quantity)
            items = await self.store.create_items([
                InventoryItem(
                    sku=sku,
                    status1=Status1.STOCK,
                    status2=Status2.UNCOMMITTED,
                    location=location,
                    timeline=manual_stock_timeline(components.wash),
                )
                for _ in range(quantity)
            ])
            for item in items:
                await self.store.save_event(InventoryEvent(
                    item_id=item.id,
                    event_name="STOCK_ADDED",
                    description=f"Added to stock at {location}",
                    details=StockAddedDetails(sku=sku, location=location),
                ))

        logger.info(f"Added {quantity} x {sku} to stock at {location}")

        if self.waitlist is not None and self.committer is not None:
            await self.waitlist.process_waitlist_for_new_items(items, self.committer)
            items = [await self.get_item(item.id) for item in items]
        return items

    async def move_item(self, item_id: str, new_location: str) -> InventoryItem:
        """
        Record a location change.

        A washed item entering the laundry is AT_WASH; leaving it, the item
        is back at QC.

        Raises:
            InventoryItemNotFoundError: If the item does not exist
        """
        item = await self.get_item(item_id)
        laundry = self.config.laundry_location
        previous_location = item.location

        update: Dict[str, Any] = {"location": new_location, "updated_at": utc_now()}
        event_name = "LOCATION_CHANGED"
        description = f"Moved from {previous_location or 'unknown'} to {new_location}"

        if item.status1 == Status1.WASH and new_location == laundry and previous_location != laundry:
            update["active_stage"] = ActiveStage.AT_WASH
            event_name = "AT_WASH"
            description = f"Arrived at {laundry}"
        elif item.status1 == Status1.WASH and previous_location == laundry and new_location != laundry:
            update["active_stage"] = ActiveStage.QC
            event_name = "RETURNED_FROM_WASH"
            description = f"Returned from {laundry} to {new_location}"

        async with self.store.transaction():
            item = await self.store.save_item(item.model_copy(update=update))
            await self.store.save_event(InventoryEvent(
                item_id=item.id,
                event_name=event_name,
                description=description,
                details=LocationChangedDetails(previous_location=previous_location, new_location=new_location),
            ))

        logger.info(f"Item {item_id}: {description}")
        return item

    # ====================
    # Commitments
    # ====================

    async def get_commitments(self, sku: str) -> Commitment:
        return await self.ledger.get_commitments(build_sku(parse_sku(sku)))

    async def update_commitments(self, sku: str, delta_committed: int, delta_uncommitted: int) -> Commitment:
        return await self.ledger.update_commitments(build_sku(parse_sku(sku)), delta_committed, delta_uncommitted)

    async def reconcile_commitments(self, sku: str) -> Commitment:
        return await self.ledger.reconcile_commitments(build_sku(parse_sku(sku)))
