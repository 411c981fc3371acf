"""
Allocation service

Places orders and allocates each line unit by unit: best inventory match
first, and whatever inventory cannot cover goes to the waitlist and to
production under the line's universal SKU.
"""

import asyncio
import logging
import weakref
from typing import Dict, List, MutableMapping, Optional, Sequence, Union

from core.config import AllocationConfig
from .inventory_committer import InventoryCommitter
from .matcher import InventoryMatcher
from .models import (
    AllocationResult,
    CommitOutcome,
    InventoryItem,
    LineAllocation,
    MatchResult,
    NotificationType,
    Order,
    OrderItem,
    OrderItemRequest,
    OrderProcessingResult,
    OrderStatus,
    utc_now,
)
from .notifications import send_notification
from .order_status import line_status, refresh_order_status
from .production_service import ProductionService
from .protocols import (
    ConcurrentModificationError,
    DenimStoreProtocol,
    InvalidQuantityError,
    NotificationSinkProtocol,
    OrderNotFoundError,
)
from .sku import build_sku, parse_sku
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

OPEN_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PARTIALLY_COMMITTED,
    OrderStatus.PENDING_PRODUCTION,
)


class AllocationService:
    """
    Allocator / order processor

    One writer per SKU family (style, waist, shape) at a time within this
    process; across processes the store's version check decides, and a
    lost race moves on to the next candidate.
    """

    def __init__(
        self,
        store: DenimStoreProtocol,
        matcher: InventoryMatcher,
        committer: InventoryCommitter,
        waitlist: WaitlistService,
        production: ProductionService,
        notifications: Optional[NotificationSinkProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.matcher = matcher
        self.committer = committer
        self.waitlist = waitlist
        self.production = production
        self.notifications = notifications
        self.config = config or AllocationConfig()
        self._locks: MutableMapping[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, sku: str) -> asyncio.Lock:
        c = parse_sku(sku)
        key = f"{c.style}-{c.waist}-{c.shape}"
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # ====================
    # Entry points
    # ====================

    async def place_order(
        self,
        customer_id: str,
        items: Sequence[Union[OrderItemRequest, Dict]],
        customer_name: Optional[str] = None,
    ) -> AllocationResult:
        """
        Create an order and allocate it.

        Every line is validated before anything is stored.

        Raises:
            ValueError: If customer_id is empty or there are no lines
            InvalidSKUError: If a line SKU is malformed
            InvalidQuantityError: If a line quantity is not positive
        """
        if not customer_id or not customer_id.strip():
            raise ValueError("customer_id is required")
        if not items:
            raise ValueError("An order needs at least one item")

        lines = []
        for raw in items:
            request = raw if isinstance(raw, OrderItemRequest) else OrderItemRequest(**raw)
            sku = build_sku(parse_sku(request.sku))
            if request.quantity <= 0:
                raise InvalidQuantityError(f"Quantity for {sku} must be positive, got {request.quantity}")
            lines.append(OrderItem(sku=sku, quantity=request.quantity))

        number = await self.store.next_order_number()
        order = await self.store.save_order(Order(
            number=number,
            customer_id=customer_id,
            customer_name=customer_name,
            items=lines,
        ))
        logger.info(f"Placed order #{order.number} ({order.id}) for customer {customer_id} with {len(lines)} line(s)")
        return await self.allocate_order(order.id)

    async def allocate_order(self, order_id: str) -> AllocationResult:
        """
        Allocate every line of an order that is not yet fully committed.

        Running it again on a fully committed order changes nothing.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        order = await self.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")

        if order.items and all(line.status == OrderStatus.COMMITTED for line in order.items):
            logger.debug(f"Order #{order.number} already committed, nothing to allocate")
            return self._result(order, [], skipped=True)

        results: List[LineAllocation] = []
        for index in range(len(order.items)):
            line = order.items[index]
            if line.status == OrderStatus.COMMITTED:
                results.append(self._line_result(line, 0, None))
                continue
            async with self._lock_for(line.sku):
                results.append(await self._allocate_line(order_id, index))

        order = await self.store.get_order(order_id)
        newly_committed = sum(r.newly_committed for r in results)
        logger.info(
            f"Allocated order #{order.number}: {newly_committed} unit(s) committed, status {order.status.value}"
        )
        if newly_committed:
            await send_notification(
                self.notifications,
                NotificationType.ORDER_ALLOCATED,
                f"Order #{order.number}: {newly_committed} unit(s) committed ({order.status.value})",
            )
        return self._result(order, results)

    async def process_uncommitted_orders(self) -> List[OrderProcessingResult]:
        """
        Allocate every open order, oldest first.

        A failing order is logged and reported; the others still run.
        """
        orders = []
        for status in OPEN_ORDER_STATUSES:
            orders.extend(await self.store.list_orders({"status": status}))
        orders.sort(key=lambda o: (o.created_at, o.number))

        results = []
        for order in orders:
            try:
                result = await self.allocate_order(order.id)
                results.append(OrderProcessingResult(order_id=order.id, success=True, status=result.status))
            except Exception as e:
                logger.error(f"Failed to allocate order #{order.number} ({order.id}): {e}")
                results.append(OrderProcessingResult(
                    order_id=order.id,
                    success=False,
                    error=str(e),
                    error_code=getattr(e, "code", None),
                ))

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Processed {len(results)} open order(s), {succeeded} succeeded")
        return results

    async def commit_item_to_order(
        self, item: InventoryItem, order_id: str, line_index: Optional[int] = None
    ) -> CommitOutcome:
        """The commit step on its own; see InventoryCommitter"""
        return await self.committer.commit_item_to_order(item, order_id, line_index=line_index)

    async def find_sku_match(self, sku: str) -> Optional[MatchResult]:
        return await self.matcher.find_match(build_sku(parse_sku(sku)))

    # ====================
    # Line allocation
    # ====================

    async def _allocate_line(self, order_id: str, index: int) -> LineAllocation:
        order = await self.store.get_order(order_id)
        line = order.items[index]
        needed = line.remaining_quantity

        candidates = await self.matcher.find_candidates(line.sku)
        committed = 0
        for _ in range(needed):
            if not await self._commit_next(candidates, order_id, index):
                break
            committed += 1

        order = await self.store.get_order(order_id)
        line = order.items[index]
        pending_id = None

        if line.remaining_quantity > 0 and line.waitlist_sku is None:
            entry = await self.waitlist.add_to_waitlist(order, line, line_index=index)
            first = entry.position == 1
            pending = await self.production.raise_pending_production(
                line.sku,
                line.remaining_quantity,
                order_id=order.id,
                merge_with_any_order=not first,
            )
            pending_id = pending.id
            order = await self.store.get_order(order_id)
            line = order.items[index]
            line.waitlist_sku = entry.raw_sku
            line.waitlist_position = entry.position
        elif committed and line.waitlist_sku is not None:
            await self.waitlist.reduce_entry(order.id, index, committed)
            order = await self.store.get_order(order_id)
            line = order.items[index]

        line.status = line_status(line)
        order.updated_at = utc_now()
        await self.store.save_order(refresh_order_status(order))
        return self._line_result(line, committed, pending_id)

    async def _commit_next(self, candidates: List[MatchResult], order_id: str, index: int) -> bool:
        """Commit the best remaining candidate; gives up after max_commit_retries lost races"""
        races = 0
        while candidates and races < self.config.max_commit_retries:
            match = candidates.pop(0)
            try:
                await self.committer.commit_item_to_order(
                    match.item, order_id, line_index=index, match_type=match.match_type
                )
                return True
            except ConcurrentModificationError as e:
                races += 1
                logger.warning(f"Lost race for item {match.item.id}, trying next candidate: {e}")
        return False

    def _line_result(self, line: OrderItem, newly_committed: int, pending_id: Optional[str]) -> LineAllocation:
        return LineAllocation(
            sku=line.sku,
            quantity=line.quantity,
            status=line.status,
            committed_item_ids=list(line.committed_item_ids),
            newly_committed=newly_committed,
            waitlist_position=line.waitlist_position,
            pending_production_id=pending_id,
        )

    def _result(self, order: Order, lines: List[LineAllocation], skipped: bool = False) -> AllocationResult:
        return AllocationResult(
            order_id=order.id,
            order_number=order.number,
            status=order.status,
            lines=lines,
            skipped=skipped,
        )
