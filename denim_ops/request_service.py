"""
Request pipeline service

Creates typed requests with their step templates, completes steps in
order and, when the last step completes, applies the transition table:
records the event, moves the item's status1/active_stage, and spawns the
next request or ends the chain.
"""

import logging
from typing import Any, Dict, List, Optional

from core.config import AllocationConfig
from .events.publishers import publish_request_completed
from .models import (
    ActiveStage,
    BatchStatus,
    InventoryEvent,
    InventoryItem,
    NotificationType,
    Priority,
    ProductionRequest,
    RequestCompletedDetails,
    RequestCompletion,
    RequestCreatedDetails,
    RequestStatus,
    RequestType,
    StageStatus,
    StepStatus,
    utc_now,
)
from .notifications import send_notification
from .pipeline import (
    BATCH_REQUEST_TYPES,
    REQUEST_STAGE,
    StageTransition,
    build_steps,
    get_transition,
    is_request_open,
    mark_stage,
)
from .protocols import (
    BlockedTransitionError,
    DenimStoreProtocol,
    EventBusProtocol,
    InvalidStateTransitionError,
    InventoryItemNotFoundError,
    NotificationSinkProtocol,
    RequestNotFoundError,
)
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


class RequestService:
    """
    Request pipeline

    Batch-level requests (pattern, cutting, sewing) act on every item of a
    production batch; from washing on, each item has its own request.
    """

    def __init__(
        self,
        store: DenimStoreProtocol,
        waitlist: Optional[WaitlistService] = None,
        notifications: Optional[NotificationSinkProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.waitlist = waitlist
        self.notifications = notifications
        self.event_bus = event_bus
        self.config = config or AllocationConfig()

    # ====================
    # Queries
    # ====================

    async def get_request(self, request_id: str) -> ProductionRequest:
        request = await self.store.get_request(request_id)
        if request is None:
            raise RequestNotFoundError(f"Request not found: {request_id}")
        return request

    async def list_requests(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductionRequest]:
        return await self.store.list_requests(filters or {})

    async def _target_items(self, item_id: Optional[str], batch_id: Optional[str]) -> List[InventoryItem]:
        if item_id:
            item = await self.store.get_item(item_id)
            if item is None:
                raise InventoryItemNotFoundError(f"Inventory item not found: {item_id}")
            return [item]
        return await self.store.list_items({"batch_id": batch_id})

    # ====================
    # Creation
    # ====================

    async def create_request(
        self,
        request_type: RequestType,
        item_id: Optional[str] = None,
        batch_id: Optional[str] = None,
        priority: Priority = Priority.MEDIUM,
        previous_request_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> ProductionRequest:
        """
        Create a request with the steps of its type.

        The items it targets get the matching timeline stage set IN_PROGRESS
        and a ``request_created`` event.

        Raises:
            ValueError: If neither an item nor a batch is given
            InventoryItemNotFoundError: If ``item_id`` does not exist
        """
        if not item_id and not batch_id:
            raise ValueError("A request needs an item_id or a batch_id")

        items = await self._target_items(item_id, batch_id)
        request = ProductionRequest(
            request_type=request_type,
            priority=priority,
            item_id=item_id,
            batch_id=batch_id if not item_id else None,
            order_id=order_id,
            previous_request=previous_request_id,
            steps=build_steps(request_type),
        )
        stage = REQUEST_STAGE.get(request_type)

        async with self.store.transaction():
            request = await self.store.save_request(request)
            for item in items:
                if stage is not None:
                    await self.store.save_item(item.model_copy(update={
                        "timeline": mark_stage(item.timeline, stage, StageStatus.IN_PROGRESS, request.id),
                        "updated_at": utc_now(),
                    }))
                await self.store.save_event(InventoryEvent(
                    item_id=item.id,
                    event_name=f"{request_type.value}_CREATED",
                    description=f"{request_type.value} created",
                    details=RequestCreatedDetails(
                        request_id=request.id,
                        request_type=request_type,
                        previous_request=previous_request_id,
                    ),
                ))

        target = f"item {item_id}" if item_id else f"batch {batch_id}"
        logger.info(f"Created {request_type.value} {request.id} for {target}")
        await send_notification(
            self.notifications,
            NotificationType.REQUEST,
            f"New {request_type.value} created for {target}",
        )
        return request

    # ====================
    # Step completion
    # ====================

    async def complete_step(self, request_id: str, step_number: int) -> RequestCompletion:
        """
        Complete one step of a request.

        Steps complete strictly in order. The first completed step moves the
        request to IN_PROGRESS; the last one completes it and applies the
        pipeline transition.

        Raises:
            RequestNotFoundError: If the request does not exist
            InvalidStateTransitionError: If the request is closed or the step is out of order
            BlockedTransitionError: If completing now would move an item away from a blocking location
        """
        request = await self.get_request(request_id)
        if not is_request_open(request):
            raise InvalidStateTransitionError(
                f"Request {request_id} is {request.status.value} and cannot be updated"
            )

        step = request.next_step
        if step is None or step.step_number != step_number:
            expected = step.step_number if step else None
            raise InvalidStateTransitionError(
                f"Step {step_number} of request {request_id} cannot be completed (next step: {expected})"
            )

        is_last = step.step_number == request.steps[-1].step_number
        transition = get_transition(request.request_type)
        items = await self._target_items(request.item_id, request.batch_id)

        if is_last and transition is not None:
            self._check_not_blocked(request, transition, items)

        now = utc_now()
        steps = [
            s.model_copy(update={"status": StepStatus.COMPLETED, "completed_at": now})
            if s.step_number == step_number else s
            for s in request.steps
        ]
        update: Dict[str, Any] = {"steps": steps}
        if request.status == RequestStatus.PENDING:
            update["status"] = RequestStatus.IN_PROGRESS
            update["started_at"] = now
        if is_last:
            update["status"] = RequestStatus.COMPLETED
            update["completed_at"] = now
        request = request.model_copy(update=update)

        completion = RequestCompletion(request=request)
        async with self.store.transaction():
            request = await self.store.save_request(request)
            completion.request = request
            if is_last:
                completion = await self._apply_transition(request, transition, items)

        if not is_last:
            logger.debug(f"Completed step {step_number} of {request.request_type.value} {request_id}")
            return completion

        logger.info(
            f"Completed {request.request_type.value} {request_id}"
            f"{' (terminal)' if completion.terminal else ''}"
        )
        await send_notification(
            self.notifications,
            NotificationType.REQUEST,
            f"{request.request_type.value} completed for {len(completion.item_ids)} item(s)",
        )
        if self.event_bus:
            await publish_request_completed(
                self.event_bus,
                request_id=request.id,
                request_type=request.request_type.value,
                item_ids=completion.item_ids,
                next_request_ids=[r.id for r in completion.next_requests],
                terminal=completion.terminal,
            )
        return completion

    async def complete_request(self, request_id: str) -> RequestCompletion:
        """Complete every remaining step of a request in order"""
        request = await self.get_request(request_id)
        completion = RequestCompletion(request=request)
        for step in request.steps:
            if step.status != StepStatus.COMPLETED:
                completion = await self.complete_step(request_id, step.step_number)
        return completion

    def _check_not_blocked(
        self, request: ProductionRequest, transition: StageTransition, items: List[InventoryItem]
    ) -> None:
        if not transition.blocked_at_laundry:
            return
        laundry = self.config.laundry_location
        for item in items:
            if item.location == laundry:
                raise BlockedTransitionError(
                    f"Cannot complete {request.request_type.value}: item {item.id} is at {laundry}. "
                    f"Move it out of {laundry} first.",
                    location=laundry,
                    request_type=request.request_type.value,
                )

    async def _apply_transition(
        self,
        request: ProductionRequest,
        transition: Optional[StageTransition],
        items: List[InventoryItem],
    ) -> RequestCompletion:
        now = utc_now()
        stage = REQUEST_STAGE.get(request.request_type)
        completion = RequestCompletion(request=request, completed=True)

        for item in items:
            timeline = item.timeline
            if stage is not None:
                timeline = mark_stage(timeline, stage, StageStatus.COMPLETED, request.id, now)
            update: Dict[str, Any] = {"timeline": timeline, "updated_at": now}
            if transition is not None:
                update["timeline"] = mark_stage(timeline, transition.next_stage, StageStatus.IN_PROGRESS)
                update["status1"] = transition.status1
                update["active_stage"] = transition.next_stage
            saved = await self.store.save_item(item.model_copy(update=update))
            completion.item_ids.append(saved.id)

            await self.store.save_event(InventoryEvent(
                item_id=saved.id,
                event_name=f"{request.request_type.value}_COMPLETED",
                description=f"{request.request_type.value} completed",
                details=RequestCompletedDetails(
                    request_id=request.id,
                    request_type=request.request_type,
                    previous_status=item.status1,
                    new_status=saved.status1,
                    next_stage=transition.next_stage if transition else None,
                ),
            ))

        await self._advance_batches(request, transition, items)

        if transition is None:
            return completion

        if transition.next_request is None:
            completion.terminal = True
            if self.waitlist is not None:
                for item_id in completion.item_ids:
                    await self.waitlist.release_completed_item(item_id)
            return completion

        if transition.next_request in BATCH_REQUEST_TYPES and request.batch_id:
            completion.next_requests.append(await self.create_request(
                transition.next_request,
                batch_id=request.batch_id,
                priority=request.priority,
                previous_request_id=request.id,
                order_id=request.order_id,
            ))
        else:
            for item in items:
                completion.next_requests.append(await self.create_request(
                    transition.next_request,
                    item_id=item.id,
                    priority=request.priority,
                    previous_request_id=request.id,
                    order_id=item.order_id or request.order_id,
                ))
        return completion

    async def _advance_batches(
        self,
        request: ProductionRequest,
        transition: Optional[StageTransition],
        items: List[InventoryItem],
    ) -> None:
        """Move batches to IN_PRODUCTION after their pattern and to COMPLETED once every item is finished"""
        if request.request_type == RequestType.PATTERN_REQUEST and request.batch_id:
            await self._set_batch_status(request.batch_id, BatchStatus.IN_PRODUCTION)

        if transition is None or transition.next_request is not None:
            return
        for batch_id in sorted({item.batch_id for item in items if item.batch_id}):
            batch_items = await self.store.list_items({"batch_id": batch_id})
            if all(item.active_stage == ActiveStage.COMPLETE for item in batch_items):
                await self._set_batch_status(batch_id, BatchStatus.COMPLETED)

    async def _set_batch_status(self, batch_id: str, status: BatchStatus) -> None:
        batch = await self.store.get_batch(batch_id)
        if batch is None or batch.status == status:
            return
        await self.store.save_batch(batch.model_copy(update={"status": status, "updated_at": utc_now()}))
        logger.info(f"Batch {batch_id} is now {status.value}")

    # ====================
    # Cancellation
    # ====================

    async def cancel_request(self, request_id: str, reason: Optional[str] = None) -> ProductionRequest:
        """
        Cancel an open request. Its items stay where they are.

        Raises:
            RequestNotFoundError: If the request does not exist
            InvalidStateTransitionError: If the request is already closed
        """
        request = await self.get_request(request_id)
        if not is_request_open(request):
            raise InvalidStateTransitionError(
                f"Request {request_id} is {request.status.value} and cannot be cancelled"
            )
        request = await self.store.save_request(request.model_copy(update={
            "status": RequestStatus.CANCELLED,
            "cancel_reason": reason,
            "completed_at": utc_now(),
        }))
        logger.info(f"Cancelled {request.request_type.value} {request_id}: {reason or 'no reason given'}")
        await send_notification(
            self.notifications,
            NotificationType.REQUEST,
            f"{request.request_type.value} {request_id} cancelled",
        )
        return request
