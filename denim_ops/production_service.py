"""
Production service

Raises pending production for demand inventory could not meet, and turns
an accepted request into a batch of new PRODUCTION items that are offered
to the waitlist before anyone else can take them.
"""

import logging
from typing import List, Optional

from core.config import AllocationConfig
from .commitment_ledger import CommitmentLedger
from .events.publishers import publish_production_accepted, publish_production_requested
from .models import (
    ActiveStage,
    BatchStatus,
    InventoryItem,
    NotificationType,
    PendingProductionRequest,
    PendingProductionStatus,
    Priority,
    ProductionAcceptance,
    ProductionBatch,
    RequestType,
    StageStatus,
    Status1,
    Status2,
    utc_now,
)
from .notifications import send_notification
from .pipeline import build_timeline, mark_stage
from .protocols import (
    BatchNotFoundError,
    DenimStoreProtocol,
    EventBusProtocol,
    InvalidQuantityError,
    InvalidSKUError,
    InvalidStateTransitionError,
    ItemCommitterProtocol,
    NotificationSinkProtocol,
    ProductionRequestNotFoundError,
)
from .request_service import RequestService
from .waitlist_service import WaitlistService
from .wash import convert_to_raw_sku, is_production_sku

logger = logging.getLogger(__name__)


class ProductionService:
    """Pending production and batch creation"""

    def __init__(
        self,
        store: DenimStoreProtocol,
        ledger: CommitmentLedger,
        requests: RequestService,
        waitlist: WaitlistService,
        committer: ItemCommitterProtocol,
        notifications: Optional[NotificationSinkProtocol] = None,
        event_bus: Optional[EventBusProtocol] = None,
        config: Optional[AllocationConfig] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.requests = requests
        self.waitlist = waitlist
        self.committer = committer
        self.notifications = notifications
        self.event_bus = event_bus
        self.config = config or AllocationConfig()

    # ====================
    # Pending production
    # ====================

    async def raise_pending_production(
        self,
        sku: str,
        quantity: int,
        order_id: Optional[str] = None,
        priority: Optional[Priority] = None,
        merge_with_any_order: bool = False,
    ) -> PendingProductionRequest:
        """
        Ask production for ``quantity`` units that can become ``sku``.

        The request is raised for the universal SKU. A PENDING request for
        the same universal SKU and order is extended instead of duplicated;
        with ``merge_with_any_order`` the oldest PENDING request for the SKU
        is extended whatever order raised it.

        Raises:
            InvalidQuantityError: If quantity is not positive
            InvalidSKUError: If the SKU is malformed or has no production form
            UniversalSKUError: If the wash has no universal source
        """
        if quantity <= 0:
            raise InvalidQuantityError(f"Production quantity must be positive, got {quantity}")

        universal_sku = convert_to_raw_sku(sku, max_inseam=self.config.max_inseam)
        if not is_production_sku(universal_sku):
            raise InvalidSKUError("Production requests must use RAW or BRW SKUs")

        if priority is None:
            priority = Priority(self.config.order_priority if order_id else self.config.default_priority)

        pending = await self.store.list_pending_production({
            "sku": universal_sku,
            "status": PendingProductionStatus.PENDING,
        })
        existing = next(
            (r for r in pending if merge_with_any_order or r.order_id == order_id),
            None,
        )

        if existing is not None:
            request = await self.store.save_pending_production(existing.model_copy(update={
                "quantity": existing.quantity + quantity,
                "updated_at": utc_now(),
            }))
            created = False
            message = f"Updated production request: {quantity} additional units added for {universal_sku}"
        else:
            request = await self.store.save_pending_production(PendingProductionRequest(
                sku=universal_sku,
                quantity=quantity,
                priority=priority,
                order_id=order_id,
            ))
            created = True
            message = f"New production request created for {quantity} units of {universal_sku}"

        logger.info(f"{message} (request {request.id}, order {order_id})")
        await send_notification(self.notifications, NotificationType.PRODUCTION_REQUEST, message)

        if self.event_bus:
            await publish_production_requested(
                self.event_bus,
                pending_request_id=request.id,
                sku=request.sku,
                quantity=request.quantity,
                added_quantity=quantity,
                priority=request.priority.value,
                order_id=request.order_id,
                created=created,
            )
        return request

    async def get_pending_production(self, request_id: str) -> PendingProductionRequest:
        request = await self.store.get_pending_production(request_id)
        if request is None:
            raise ProductionRequestNotFoundError(f"Production request not found: {request_id}")
        return request

    async def list_pending_production(
        self, status: Optional[PendingProductionStatus] = None
    ) -> List[PendingProductionRequest]:
        filters = {"status": status} if status else {}
        return await self.store.list_pending_production(filters)

    async def get_batch(self, batch_id: str) -> ProductionBatch:
        batch = await self.store.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError(f"Production batch not found: {batch_id}")
        return batch

    async def list_batches(self, status: Optional[BatchStatus] = None) -> List[ProductionBatch]:
        filters = {"status": status} if status else {}
        return await self.store.list_batches(filters)

    # ====================
    # Acceptance
    # ====================

    async def accept_production_request(self, request_id: str) -> ProductionAcceptance:
        """
        Accept a pending request and start production.

        Creates the batch, its PRODUCTION/UNCOMMITTED items at the PATTERN
        stage and the batch's PATTERN_REQUEST, and marks the request
        ACCEPTED, all in one transaction. The new items are then offered to
        the waitlist.

        Raises:
            ProductionRequestNotFoundError: If the request does not exist
            InvalidStateTransitionError: If the request is not PENDING
            InvalidSKUError: If the request SKU is not a production SKU
        """
        pending = await self.get_pending_production(request_id)
        if pending.status != PendingProductionStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Production request {request_id} is {pending.status.value}, only PENDING requests can be accepted"
            )
        if not is_production_sku(pending.sku):
            raise InvalidSKUError("Production requests must use RAW or BRW SKUs")

        async with self.store.transaction():
            batch = await self.store.save_batch(ProductionBatch(
                pending_request_id=pending.id,
                sku=pending.sku,
                quantity=pending.quantity,
            ))

            await self.ledger.update_commitments(pending.sku, 0, pending.quantity)

            timeline = mark_stage(build_timeline(), ActiveStage.PATTERN, StageStatus.IN_PROGRESS)
            await self.store.create_items([
                InventoryItem(
                    sku=pending.sku,
                    status1=Status1.PRODUCTION,
                    status2=Status2.UNCOMMITTED,
                    location=self.config.production_location,
                    batch_id=batch.id,
                    active_stage=ActiveStage.PATTERN,
                    timeline=timeline,
                )
                for _ in range(pending.quantity)
            ])

            pattern_request = await self.requests.create_request(
                RequestType.PATTERN_REQUEST,
                batch_id=batch.id,
                priority=pending.priority,
                order_id=pending.order_id,
            )

            pending = await self.store.save_pending_production(pending.model_copy(update={
                "status": PendingProductionStatus.ACCEPTED,
                "batch_id": batch.id,
                "accepted_at": utc_now(),
                "updated_at": utc_now(),
            }))

        items = await self.store.list_items({"batch_id": batch.id})
        logger.info(f"Accepted production request {request_id}: batch {batch.id} with {len(items)} x {pending.sku}")

        matches = await self.waitlist.process_waitlist_for_new_items(items, self.committer)
        items = await self.store.list_items({"batch_id": batch.id})

        await send_notification(
            self.notifications,
            NotificationType.PRODUCTION_REQUEST,
            f"Production request accepted: batch {batch.id} with {len(items)} units of {pending.sku}",
        )
        if self.event_bus:
            await publish_production_accepted(
                self.event_bus,
                pending_request_id=pending.id,
                batch_id=batch.id,
                sku=pending.sku,
                quantity=pending.quantity,
                item_ids=[item.id for item in items],
                pattern_request_id=pattern_request.id,
            )

        return ProductionAcceptance(
            pending_request=pending,
            batch=batch,
            pattern_request=pattern_request,
            items=items,
            waitlist_matches=len(matches),
        )
