"""
Waitlist Service - Component Tests

Tests for:
- FIFO positions per raw SKU
- Matching new inventory to the oldest waiting demand
- Removal and renumbering
- Release once matched items finish the pipeline
"""
import pytest

from denim_ops.models import NotificationType, OrderStatus, Status2

pytestmark = [pytest.mark.component]


async def _waitlisted_orders(services, count, sku="ST-32-S-30-STA"):
    results = []
    for i in range(count):
        results.append(await services.allocation.place_order(f"cust_{i}", [{"sku": sku, "quantity": 1}]))
    return results


class TestPositions:

    async def test_positions_follow_arrival(self, services, mock_store):
        a, b, c = await _waitlisted_orders(services, 3)

        entries = await services.waitlist.get_waitlist("ST-32-S-36-RAW")
        assert [(e.order_id, e.position) for e in entries] == [
            (a.order_id, 1), (b.order_id, 2), (c.order_id, 3),
        ]
        assert mock_store.orders[c.order_id].items[0].waitlist_position == 3

    async def test_raw_skus_queue_separately(self, services):
        await _waitlisted_orders(services, 1, sku="ST-32-S-30-STA")
        other = (await _waitlisted_orders(services, 1, sku="ST-30-S-30-STA"))[0]

        entries = await services.waitlist.get_waitlist("ST-30-S-36-RAW")
        assert [(e.order_id, e.position) for e in entries] == [(other.order_id, 1)]

    async def test_remove_closes_gap(self, services, mock_store):
        a, b, c = await _waitlisted_orders(services, 3)

        removed = await services.waitlist.remove_from_waitlist(a.order_id, "ST-32-S-30-STA")

        assert removed is True
        entries = await services.waitlist.get_waitlist("ST-32-S-36-RAW")
        assert [(e.order_id, e.position) for e in entries] == [(b.order_id, 1), (c.order_id, 2)]
        assert mock_store.orders[a.order_id].items[0].waitlist_position is None
        assert mock_store.orders[b.order_id].items[0].waitlist_position == 1

    async def test_remove_unknown_entry(self, services):
        assert await services.waitlist.remove_from_waitlist("ord_missing", "ST-32-S-30-STA") is False

    async def test_get_entry(self, services):
        a = (await _waitlisted_orders(services, 1))[0]
        entry = await services.waitlist.get_entry(a.order_id, "ST-32-S-30-STA")
        assert entry.raw_sku == "ST-32-S-36-RAW"
        assert entry.line_index == 0


class TestMatchingNewInventory:

    async def test_fifo_matching(self, services, mock_store, mock_notifications):
        """Two new units go to A and B; C moves to the front"""
        a, b, c = await _waitlisted_orders(services, 3)
        mock_notifications.clear()

        await services.inventory.add_stock_items("ST-32-S-36-RAW", 2)

        assert mock_store.orders[a.order_id].status == OrderStatus.COMMITTED
        assert mock_store.orders[b.order_id].status == OrderStatus.COMMITTED
        assert mock_store.orders[c.order_id].status == OrderStatus.PENDING_PRODUCTION
        entry_c = await services.waitlist.get_entry(c.order_id, "ST-32-S-30-STA")
        assert entry_c.position == 1
        assert mock_store.orders[c.order_id].items[0].waitlist_position == 1
        assert len(mock_notifications.of_type(NotificationType.WAITLIST)) == 1

    async def test_matched_entries_keep_their_items(self, services):
        a = (await _waitlisted_orders(services, 1))[0]

        items = await services.inventory.add_stock_items("ST-32-S-36-RAW", 1)

        entry = await services.waitlist.get_entry(a.order_id, "ST-32-S-30-STA")
        assert entry.matched_item_ids == [items[0].id]
        assert entry.position is None
        assert items[0].status2 == Status2.ASSIGNED
        assert items[0].order_id == a.order_id

    async def test_matched_event_recorded(self, services, mock_store, mock_event_bus):
        await _waitlisted_orders(services, 1)

        item = (await services.inventory.add_stock_items("ST-32-S-36-RAW", 1))[0]

        assert "WAITLIST_MATCHED" in mock_store.event_names(item.id)
        mock_event_bus.assert_event_published("waitlist.matched", {"item_id": item.id})

    async def test_incompatible_items_not_matched(self, services):
        """A shorter garment of the same raw family cannot serve the entry"""
        a = (await _waitlisted_orders(services, 1, sku="ST-32-S-34-STA"))[0]

        items = await services.inventory.add_stock_items("ST-32-S-32-RAW", 1)

        assert items[0].status2 == Status2.UNCOMMITTED
        entry = await services.waitlist.get_entry(a.order_id, "ST-32-S-34-STA")
        assert entry.position == 1

    async def test_exact_finished_stock_offered_to_waitlist(self, services, mock_store):
        """Finished stock of the exact SKU reaches the waitlist through its raw key"""
        a = (await _waitlisted_orders(services, 1))[0]

        await services.inventory.add_stock_items("ST-32-S-30-STA", 1)

        assert mock_store.orders[a.order_id].status == OrderStatus.COMMITTED

    async def test_nothing_waiting(self, services, mock_notifications):
        items = await services.inventory.add_stock_items("ST-32-S-36-RAW", 1)
        assert items[0].status2 == Status2.UNCOMMITTED
        assert mock_notifications.of_type(NotificationType.WAITLIST) == []


class TestReduceEntry:

    async def test_reduce_to_zero_removes_entry(self, services):
        a, b = await _waitlisted_orders(services, 2)

        assert await services.waitlist.reduce_entry(a.order_id, 0, 1) is None

        entries = await services.waitlist.get_waitlist("ST-32-S-36-RAW")
        assert [(e.order_id, e.position) for e in entries] == [(b.order_id, 1)]
