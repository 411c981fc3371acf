"""
Commit step

Binds one inventory item to an order. The ledger update, the item's status
change, the order line bookkeeping and, for stock, the WASH_REQUEST that
starts finishing all happen inside one store transaction.
"""

import logging
from typing import Optional

from core.config import AllocationConfig
from .commitment_ledger import CommitmentLedger
from .events.publishers import publish_inventory_committed
from .models import (
    ActiveStage,
    CommitOutcome,
    InventoryEvent,
    InventoryItem,
    ItemCommittedDetails,
    MatchType,
    Order,
    Priority,
    RequestType,
    Status1,
    Status2,
    utc_now,
)
from .order_status import line_status, refresh_order_status
from .protocols import (
    DenimStoreProtocol,
    EventBusProtocol,
    InvalidStateTransitionError,
    OrderNotFoundError,
)
from .request_service import RequestService

logger = logging.getLogger(__name__)


class InventoryCommitter:
    """The commit step shared by the allocator and the waitlist"""

    def __init__(
        self,
        store: DenimStoreProtocol,
        ledger: CommitmentLedger,
        requests: RequestService,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.requests = requests
        self.event_bus = event_bus
        self.config = config or AllocationConfig()

    async def commit_item_to_order(
        self,
        item: InventoryItem,
        order_id: str,
        line_index: Optional[int] = None,
        match_type: Optional[MatchType] = None,
    ) -> CommitOutcome:
        """
        Commit ``item`` to order ``order_id``.

        Stock is ASSIGNED and gets a WASH_REQUEST; production items are
        COMMITTED and continue through their pipeline. ``item`` must be the
        version the caller read: if another writer changed it since, the
        save fails and nothing is written.

        Args:
            item: Uncommitted item as last read
            order_id: Order to bind to
            line_index: Order line credited with the unit (none: no line bookkeeping)
            match_type: How the item was matched, recorded on the event

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidStateTransitionError: If the item is already committed
            ConcurrentModificationError: If the item changed since it was read
            InvalidQuantityError: If the ledger has no uncommitted unit to move
        """
        if item.status2 != Status2.UNCOMMITTED:
            raise InvalidStateTransitionError(f"Item {item.id} is already {item.status2.value}")

        was_stock = item.status1 == Status1.STOCK
        new_status2 = Status2.ASSIGNED if was_stock else Status2.COMMITTED
        wash_request = None

        async with self.store.transaction():
            order = await self.store.get_order(order_id)
            if order is None:
                raise OrderNotFoundError(f"Order not found: {order_id}")

            await self.ledger.update_commitments(item.sku, 1, -1)

            update = {
                "status2": new_status2,
                "order_id": order_id,
                "updated_at": utc_now(),
            }
            if was_stock:
                update["active_stage"] = ActiveStage.WASHING
            saved = await self.store.save_item(item.model_copy(update=update))

            await self.store.save_event(InventoryEvent(
                item_id=saved.id,
                event_name="ITEM_COMMITTED",
                description=f"Item {saved.sku} committed to order #{order.number}",
                details=ItemCommittedDetails(
                    order_id=order_id,
                    match_type=match_type,
                    previous_status2=item.status2,
                    new_status2=new_status2,
                ),
            ))

            if was_stock:
                wash_request = await self.requests.create_request(
                    RequestType.WASH_REQUEST,
                    item_id=saved.id,
                    order_id=order_id,
                    priority=Priority(self.config.order_priority),
                )
                saved = await self.store.get_item(saved.id)

            if line_index is not None:
                await self.store.save_order(self._record_line_commit(order, line_index, saved.id))

        logger.info(
            f"Committed item {saved.id} ({saved.sku}) to order {order_id} as {new_status2.value}"
        )

        if self.event_bus:
            await publish_inventory_committed(
                self.event_bus,
                item_id=saved.id,
                order_id=order_id,
                sku=saved.sku,
                status2=new_status2.value,
                match_type=match_type.value if match_type else None,
                wash_request_id=wash_request.id if wash_request else None,
            )

        return CommitOutcome(item=saved, order_id=order_id, wash_request=wash_request)

    def _record_line_commit(self, order: Order, line_index: int, item_id: str) -> Order:
        if not 0 <= line_index < len(order.items):
            raise InvalidStateTransitionError(f"Order {order.id} has no line {line_index}")
        line = order.items[line_index]
        if line.remaining_quantity <= 0:
            raise InvalidStateTransitionError(f"Line {line_index} of order {order.id} is already fully committed")

        line.committed_quantity += 1
        line.committed_item_ids.append(item_id)
        line.status = line_status(line)
        order.updated_at = utc_now()
        return refresh_order_status(order)
