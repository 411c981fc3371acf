"""
Waitlist service

FIFO queue of unmet demand per raw SKU. New inventory is offered to the
oldest waiting entries first. Matched entries stay in the store (without a
queue position) until their items finish the pipeline.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from core.config import AllocationConfig
from .events.publishers import publish_waitlist_matched
from .matcher import can_fulfil
from .models import (
    ActiveStage,
    CommitOutcome,
    InventoryEvent,
    InventoryItem,
    NotificationType,
    Order,
    OrderItem,
    Priority,
    Status2,
    WaitlistEntry,
    WaitlistMatchedDetails,
    utc_now,
)
from .notifications import send_notification
from .protocols import (
    ConcurrentModificationError,
    DenimStoreProtocol,
    EventBusProtocol,
    InvalidSKUError,
    InvalidStateTransitionError,
    ItemCommitterProtocol,
    NotificationSinkProtocol,
)
from .wash import convert_to_raw_sku, is_production_sku

logger = logging.getLogger(__name__)


def fifo(entries: List[WaitlistEntry]) -> List[WaitlistEntry]:
    """Oldest first; stable, so equal timestamps keep store order"""
    return sorted(entries, key=lambda entry: entry.created_at)


def pair_entries(
    entries: List[WaitlistEntry], items: List[InventoryItem]
) -> List[Tuple[WaitlistEntry, InventoryItem]]:
    """
    Pair items with waiting entries, oldest entry first.

    Each entry takes as many items as it has outstanding units, and only
    items that can be made into the SKU it asked for.
    """
    capacity = {entry.id: entry.outstanding_quantity for entry in entries}
    queue = fifo(entries)
    pairs = []
    for item in items:
        for entry in queue:
            if capacity[entry.id] > 0 and can_fulfil(item.sku, entry.sku):
                capacity[entry.id] -= 1
                pairs.append((entry, item))
                break
    return pairs


class WaitlistService:
    """Waitlist manager"""

    def __init__(
        self,
        store: DenimStoreProtocol,
        notifications: Optional[NotificationSinkProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.notifications = notifications
        self.event_bus = event_bus
        self.config = config or AllocationConfig()

    async def get_waitlist(self, raw_sku: Optional[str] = None) -> List[WaitlistEntry]:
        return fifo(await self.store.list_waitlist(raw_sku=raw_sku))

    async def get_outstanding(self, raw_sku: str) -> List[WaitlistEntry]:
        return [entry for entry in await self.get_waitlist(raw_sku) if entry.outstanding_quantity > 0]

    async def get_entry(self, order_id: str, sku: str) -> Optional[WaitlistEntry]:
        for entry in fifo(await self.store.list_waitlist(order_id=order_id)):
            if entry.sku == sku:
                return entry
        return None

    async def add_to_waitlist(
        self,
        order: Order,
        order_item: OrderItem,
        line_index: Optional[int] = None,
        quantity: Optional[int] = None,
    ) -> WaitlistEntry:
        """
        Queue the unmet part of an order line behind earlier demand for the same raw SKU.

        Raises:
            InvalidSKUError: If the line SKU is malformed
            UniversalSKUError: If the line SKU has no raw equivalent
        """
        raw_sku = convert_to_raw_sku(order_item.sku, max_inseam=self.config.max_inseam)
        outstanding = await self.get_outstanding(raw_sku)
        entry = WaitlistEntry(
            order_id=order.id,
            order_number=order.number,
            line_index=line_index,
            sku=order_item.sku,
            raw_sku=raw_sku,
            quantity=quantity or order_item.remaining_quantity,
            position=len(outstanding) + 1,
            priority=Priority(self.config.order_priority),
        )
        entry = await self.store.save_waitlist_entry(entry)
        logger.info(
            f"Order #{order.number} waitlisted for {entry.quantity} x {order_item.sku} "
            f"(raw {raw_sku}) at position {entry.position}"
        )
        return entry

    async def remove_from_waitlist(self, order_id: str, sku: str) -> bool:
        """Remove the entry for an order line and close the gap it leaves"""
        entry = await self.get_entry(order_id, sku)
        if entry is None:
            return False
        await self._delete_and_renumber(entry)
        logger.info(f"Removed waitlist entry {entry.id} for order {order_id} ({sku})")
        return True

    async def reduce_entry(self, order_id: str, line_index: int, units: int) -> Optional[WaitlistEntry]:
        """
        Shrink an entry after some of its units were found in inventory.

        An entry with nothing left outstanding and no matched items is removed.
        """
        entries = [e for e in await self.store.list_waitlist(order_id=order_id) if e.line_index == line_index]
        if not entries:
            return None
        entry = entries[0]
        quantity = max(entry.quantity - units, len(entry.matched_item_ids))
        if quantity == 0:
            await self._delete_and_renumber(entry)
            return None
        entry = await self.store.save_waitlist_entry(entry.model_copy(update={"quantity": quantity}))
        await self.renumber(entry.raw_sku)
        return entry

    async def release_completed_item(self, item_id: str) -> int:
        """
        Drop entries whose matched items have all finished the pipeline.

        Returns:
            Number of entries removed
        """
        removed = 0
        for entry in await self.store.list_waitlist():
            if item_id not in entry.matched_item_ids or entry.outstanding_quantity > 0:
                continue
            finished = True
            for matched_id in entry.matched_item_ids:
                if matched_id == item_id:
                    continue
                matched = await self.store.get_item(matched_id)
                if matched is not None and matched.active_stage != ActiveStage.COMPLETE:
                    finished = False
                    break
            if finished:
                await self._delete_and_renumber(entry)
                removed += 1
                logger.info(f"Waitlist entry {entry.id} for order {entry.order_id} fulfilled")
        return removed

    async def _delete_and_renumber(self, entry: WaitlistEntry) -> None:
        async with self.store.transaction():
            await self.store.delete_waitlist_entry(entry.id)
            await self._sync_order_positions(entry.order_id, [entry.model_copy(update={"position": None})])
            await self.renumber(entry.raw_sku)

    async def renumber(self, raw_sku: str) -> List[WaitlistEntry]:
        """
        Give outstanding entries positions 1..n by age; fully matched entries get none.

        Order lines are kept in step with their entry's position.
        """
        entries = await self.get_waitlist(raw_sku)
        position = 0
        changed: Dict[str, List[WaitlistEntry]] = OrderedDict()
        for entry in entries:
            if entry.outstanding_quantity > 0:
                position += 1
                new_position = position
            else:
                new_position = None
            if entry.position != new_position:
                entry = await self.store.save_waitlist_entry(entry.model_copy(update={"position": new_position}))
                changed.setdefault(entry.order_id, []).append(entry)

        for order_id, order_entries in changed.items():
            await self._sync_order_positions(order_id, order_entries)
        return await self.get_waitlist(raw_sku)

    async def _sync_order_positions(self, order_id: str, entries: List[WaitlistEntry]) -> None:
        order = await self.store.get_order(order_id)
        if order is None:
            logger.warning(f"Waitlist entries reference missing order {order_id}")
            return
        for entry in entries:
            for index, line in enumerate(order.items):
                if index == entry.line_index or (entry.line_index is None and line.sku == entry.sku):
                    line.waitlist_position = entry.position
        order.updated_at = utc_now()
        await self.store.save_order(order)

    def _raw_keys(self, sku: str) -> List[str]:
        keys = []
        if is_production_sku(sku):
            keys.append(sku)
        try:
            raw = convert_to_raw_sku(sku, max_inseam=self.config.max_inseam)
        except InvalidSKUError:
            return keys
        if raw not in keys:
            keys.append(raw)
        return keys

    async def process_waitlist_for_new_items(
        self, new_items: List[InventoryItem], committer: ItemCommitterProtocol
    ) -> List[Tuple[WaitlistEntry, InventoryItem]]:
        """
        Offer newly created items to waiting demand.

        Items are grouped by SKU; within a group the oldest entry gets the
        first item, the next oldest the second, and so on. Each pairing is
        committed through ``committer`` together with the entry update.

        Returns:
            The (entry, committed item) pairs
        """
        groups: Dict[str, List[InventoryItem]] = OrderedDict()
        for item in new_items:
            if item.status2 == Status2.UNCOMMITTED:
                groups.setdefault(item.sku, []).append(item)

        matched: List[Tuple[WaitlistEntry, InventoryItem]] = []
        for sku, items in groups.items():
            raw_keys = self._raw_keys(sku)
            entries: List[WaitlistEntry] = []
            for raw_sku in raw_keys:
                entries.extend(await self.get_outstanding(raw_sku))
            if not entries:
                continue

            for entry, item in pair_entries(entries, items):
                try:
                    outcome, entry = await self._commit_pair(entry, item, committer)
                except (ConcurrentModificationError, InvalidStateTransitionError) as e:
                    logger.warning(f"Could not commit item {item.id} to waitlisted order {entry.order_id}: {e}")
                    continue
                matched.append((entry, outcome.item))
                if self.event_bus:
                    await publish_waitlist_matched(
                        self.event_bus,
                        waitlist_entry_id=entry.id,
                        order_id=entry.order_id,
                        item_id=outcome.item.id,
                        sku=entry.sku,
                        raw_sku=entry.raw_sku,
                    )

            for raw_sku in raw_keys:
                await self.renumber(raw_sku)

        if matched:
            logger.info(f"Matched {len(matched)} new item(s) to waitlisted orders")
            await send_notification(
                self.notifications,
                NotificationType.WAITLIST,
                f"{len(matched)} waitlisted unit(s) matched to new inventory",
            )
        return matched

    async def _commit_pair(
        self, entry: WaitlistEntry, item: InventoryItem, committer: ItemCommitterProtocol
    ) -> Tuple[CommitOutcome, WaitlistEntry]:
        async with self.store.transaction():
            outcome = await committer.commit_item_to_order(item, entry.order_id, line_index=entry.line_index)
            current = await self.store.list_waitlist(order_id=entry.order_id)
            entry = next(e for e in current if e.id == entry.id)
            entry = await self.store.save_waitlist_entry(entry.model_copy(update={
                "matched_item_ids": entry.matched_item_ids + [outcome.item.id],
            }))
            await self.store.save_event(InventoryEvent(
                item_id=outcome.item.id,
                event_name="WAITLIST_MATCHED",
                description=f"Matched to waitlisted order #{entry.order_number}",
                details=WaitlistMatchedDetails(
                    waitlist_entry_id=entry.id,
                    order_id=entry.order_id,
                    position=entry.position,
                ),
            ))
        return outcome, entry
