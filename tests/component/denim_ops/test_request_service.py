"""
Request Pipeline - Component Tests

Tests for:
- Request creation with step templates
- Strictly ordered step completion
- Stage transitions from pattern to finishing
- Laundry blocking of wash and QC completion
- Cancellation
"""
import pytest
import pytest_asyncio

from denim_ops.models import (
    ActiveStage,
    BatchStatus,
    RequestStatus,
    RequestType,
    StageStatus,
    Status1,
    StepStatus,
)
from denim_ops.protocols import (
    BlockedTransitionError,
    InvalidStateTransitionError,
    InventoryItemNotFoundError,
    RequestNotFoundError,
)

pytestmark = [pytest.mark.component]


@pytest_asyncio.fixture
async def wash_request(services):
    """An ASSIGNED stock item with its WASH_REQUEST"""
    await services.inventory.add_stock_items("ST-32-S-30-STA", 1)
    result = await services.allocation.place_order("cust_1", [{"sku": "ST-32-S-30-STA", "quantity": 1}])
    item_id = result.lines[0].committed_item_ids[0]
    requests = await services.requests.list_requests({"item_id": item_id})
    return requests[0]


class TestCreateRequest:

    async def test_steps_from_template(self, wash_request):
        assert [s.name for s in wash_request.steps] == ["Scan Item", "Scan Wash Bin", "Confirm Actions"]
        assert wash_request.status == RequestStatus.PENDING

    async def test_marks_timeline_and_records_event(self, services, mock_store, wash_request):
        item = await services.inventory.get_item(wash_request.item_id)
        washing = next(t for t in item.timeline if t.stage == ActiveStage.WASHING)
        assert washing.status == StageStatus.IN_PROGRESS
        assert washing.request_id == wash_request.id
        assert "WASH_REQUEST_CREATED" in mock_store.event_names(item.id)

    async def test_requires_target(self, services):
        with pytest.raises(ValueError):
            await services.requests.create_request(RequestType.MOVE_REQUEST)

    async def test_unknown_item(self, services):
        with pytest.raises(InventoryItemNotFoundError):
            await services.requests.create_request(RequestType.MOVE_REQUEST, item_id="item_missing")

    async def test_unknown_request(self, services):
        with pytest.raises(RequestNotFoundError):
            await services.requests.get_request("req_missing")


class TestCompleteStep:

    async def test_first_step_starts_request(self, services, wash_request):
        completion = await services.requests.complete_step(wash_request.id, 1)

        assert completion.completed is False
        assert completion.request.status == RequestStatus.IN_PROGRESS
        assert completion.request.started_at is not None
        assert completion.request.steps[0].status == StepStatus.COMPLETED

    async def test_out_of_order_rejected(self, services, wash_request):
        with pytest.raises(InvalidStateTransitionError):
            await services.requests.complete_step(wash_request.id, 2)

    async def test_repeated_step_rejected(self, services, wash_request):
        await services.requests.complete_step(wash_request.id, 1)
        with pytest.raises(InvalidStateTransitionError):
            await services.requests.complete_step(wash_request.id, 1)

    async def test_last_step_applies_transition(self, services, mock_store, wash_request):
        completion = await services.requests.complete_request(wash_request.id)

        assert completion.completed is True
        assert completion.request.status == RequestStatus.COMPLETED
        item = await services.inventory.get_item(wash_request.item_id)
        assert item.status1 == Status1.WASH
        assert item.active_stage == ActiveStage.QC
        assert [r.request_type for r in completion.next_requests] == [RequestType.QC_REQUEST]
        assert completion.next_requests[0].previous_request == wash_request.id
        assert "WASH_REQUEST_COMPLETED" in mock_store.event_names(item.id)

    async def test_completed_request_is_closed(self, services, wash_request):
        await services.requests.complete_request(wash_request.id)
        with pytest.raises(InvalidStateTransitionError):
            await services.requests.complete_step(wash_request.id, 3)

    async def test_publishes_completion(self, services, mock_event_bus, wash_request):
        await services.requests.complete_request(wash_request.id)
        mock_event_bus.assert_event_published(
            "request.completed", {"request_id": wash_request.id, "request_type": "WASH_REQUEST"}
        )


class TestFinishingChain:

    async def test_wash_qc_finishing_is_terminal(self, services, wash_request):
        """WASH leads to QC, QC to FINISHING, and FINISHING ends the chain"""
        wash = await services.requests.complete_request(wash_request.id)
        qc = await services.requests.complete_request(wash.next_requests[0].id)

        item = await services.inventory.get_item(wash_request.item_id)
        assert (item.status1, item.active_stage) == (Status1.QC, ActiveStage.FINISHING)
        assert qc.next_requests[0].request_type == RequestType.FINISHING_REQUEST

        finishing = await services.requests.complete_request(qc.next_requests[0].id)

        assert finishing.terminal is True
        assert finishing.next_requests == []
        item = await services.inventory.get_item(wash_request.item_id)
        assert (item.status1, item.active_stage) == (Status1.FINISHING, ActiveStage.COMPLETE)

    async def test_batch_chain_from_pattern(self, services, mock_store):
        """Pattern, cutting and sewing act on the batch; washing fans out per item"""
        pending = await services.production.raise_pending_production("ST-30-R-30-IND", 2)
        acceptance = await services.production.accept_production_request(pending.id)

        cutting = await services.requests.complete_request(acceptance.pattern_request.id)
        assert [r.request_type for r in cutting.next_requests] == [RequestType.CUTTING_REQUEST]
        assert cutting.next_requests[0].batch_id == acceptance.batch.id

        sewing = await services.requests.complete_request(cutting.next_requests[0].id)
        assert [r.request_type for r in sewing.next_requests] == [RequestType.SEWING_REQUEST]

        washing = await services.requests.complete_request(sewing.next_requests[0].id)
        assert [r.request_type for r in washing.next_requests] == [RequestType.WASH_REQUEST] * 2
        assert {r.item_id for r in washing.next_requests} == {item.id for item in acceptance.items}

        for item in acceptance.items:
            stored = await services.inventory.get_item(item.id)
            assert (stored.status1, stored.active_stage) == (Status1.PRODUCTION, ActiveStage.WASHING)
            statuses = {t.stage: t.status for t in stored.timeline}
            assert statuses[ActiveStage.SEWING] == StageStatus.COMPLETED
            assert statuses[ActiveStage.WASHING] == StageStatus.IN_PROGRESS

    async def test_terminal_completion_releases_waitlist_entry(self, services, mock_store):
        await services.allocation.place_order("cust_1", [{"sku": "ST-32-S-30-STA", "quantity": 1}])
        pending = (await services.production.list_pending_production())[0]
        acceptance = await services.production.accept_production_request(pending.id)
        assert len(mock_store.waitlist) == 1

        completion = await services.requests.complete_request(acceptance.pattern_request.id)
        while completion.next_requests:
            assert len(completion.next_requests) == 1
            completion = await services.requests.complete_request(completion.next_requests[0].id)

        assert completion.terminal is True
        assert mock_store.waitlist == {}


class TestBatchLifecycle:
    """A batch advances with its pattern request and completes with its last item"""

    async def test_pattern_completion_starts_production(self, services):
        pending = await services.production.raise_pending_production("ST-30-R-30-IND", 2)
        acceptance = await services.production.accept_production_request(pending.id)
        assert acceptance.batch.status == BatchStatus.PATTERN_REQUESTED

        await services.requests.complete_request(acceptance.pattern_request.id)

        batch = await services.production.get_batch(acceptance.batch.id)
        assert batch.status == BatchStatus.IN_PRODUCTION

    async def test_completed_once_every_item_finishes(self, services):
        pending = await services.production.raise_pending_production("ST-30-R-30-IND", 2)
        acceptance = await services.production.accept_production_request(pending.id)

        completion = await services.requests.complete_request(acceptance.pattern_request.id)
        while len(completion.next_requests) == 1:
            completion = await services.requests.complete_request(completion.next_requests[0].id)
        first, second = completion.next_requests

        completion = await services.requests.complete_request(first.id)
        while completion.next_requests:
            completion = await services.requests.complete_request(completion.next_requests[0].id)
        assert completion.terminal is True
        batch = await services.production.get_batch(acceptance.batch.id)
        assert batch.status == BatchStatus.IN_PRODUCTION

        completion = await services.requests.complete_request(second.id)
        while completion.next_requests:
            completion = await services.requests.complete_request(completion.next_requests[0].id)

        batch = await services.production.get_batch(acceptance.batch.id)
        assert batch.status == BatchStatus.COMPLETED
        assert await services.production.list_batches(BatchStatus.COMPLETED) == [batch]

    async def test_stock_items_leave_batches_alone(self, services, mock_store, wash_request):
        wash = await services.requests.complete_request(wash_request.id)
        qc = await services.requests.complete_request(wash.next_requests[0].id)
        await services.requests.complete_request(qc.next_requests[0].id)

        assert mock_store.batches == {}


class TestLaundryBlocking:

    async def test_wash_completion_blocked_in_laundry(self, services, wash_request):
        await services.inventory.move_item(wash_request.item_id, "LAUNDRY")
        await services.requests.complete_step(wash_request.id, 1)
        await services.requests.complete_step(wash_request.id, 2)

        with pytest.raises(BlockedTransitionError) as exc_info:
            await services.requests.complete_step(wash_request.id, 3)

        assert exc_info.value.location == "LAUNDRY"
        assert exc_info.value.request_type == "WASH_REQUEST"
        request = await services.requests.get_request(wash_request.id)
        assert request.status == RequestStatus.IN_PROGRESS
        assert request.steps[2].status == StepStatus.PENDING
        item = await services.inventory.get_item(wash_request.item_id)
        assert item.status1 == Status1.STOCK

    async def test_completes_after_leaving_laundry(self, services, wash_request):
        await services.inventory.move_item(wash_request.item_id, "LAUNDRY")
        await services.inventory.move_item(wash_request.item_id, "WAREHOUSE")

        completion = await services.requests.complete_request(wash_request.id)

        assert completion.completed is True

    async def test_qc_blocked_while_at_wash(self, services, wash_request):
        wash = await services.requests.complete_request(wash_request.id)
        item = await services.inventory.move_item(wash_request.item_id, "LAUNDRY")
        assert item.active_stage == ActiveStage.AT_WASH

        with pytest.raises(BlockedTransitionError):
            await services.requests.complete_request(wash.next_requests[0].id)

        item = await services.inventory.move_item(wash_request.item_id, "QC_BENCH")
        assert item.active_stage == ActiveStage.QC
        qc = await services.requests.complete_request(wash.next_requests[0].id)
        assert qc.completed is True


class TestMoveAndCancel:

    async def test_move_request_changes_nothing(self, services):
        item = (await services.inventory.add_stock_items("ST-32-S-30-STA", 1))[0]
        request = await services.requests.create_request(RequestType.MOVE_REQUEST, item_id=item.id)

        completion = await services.requests.complete_request(request.id)

        assert completion.completed is True
        assert completion.terminal is False
        assert completion.next_requests == []
        stored = await services.inventory.get_item(item.id)
        assert stored.status1 == Status1.STOCK

    async def test_cancel(self, services, wash_request):
        cancelled = await services.requests.cancel_request(wash_request.id, reason="customer cancelled")

        assert cancelled.status == RequestStatus.CANCELLED
        assert cancelled.cancel_reason == "customer cancelled"
        with pytest.raises(InvalidStateTransitionError):
            await services.requests.cancel_request(wash_request.id)
        with pytest.raises(InvalidStateTransitionError):
            await services.requests.complete_step(wash_request.id, 1)
