"""
Denim Operations Data Models

Inventory items, orders, commitments, waitlist entries, production requests
and the audit events recorded against inventory items.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# ====================
# Enumerations
# ====================


class Status1(str, Enum):
    """Manufacturing stage of an inventory item"""
    STOCK = "STOCK"
    PRODUCTION = "PRODUCTION"
    WASH = "WASH"
    QC = "QC"
    FINISHING = "FINISHING"
    PACKING = "PACKING"


class Status2(str, Enum):
    """Fulfillment state of an inventory item"""
    UNCOMMITTED = "UNCOMMITTED"
    COMMITTED = "COMMITTED"
    ASSIGNED = "ASSIGNED"


class ActiveStage(str, Enum):
    """Pipeline stage an item is currently in"""
    PATTERN = "PATTERN"
    CUTTING = "CUTTING"
    SEWING = "SEWING"
    WASHING = "WASHING"
    AT_WASH = "AT_WASH"
    QC = "QC"
    FINISHING = "FINISHING"
    PACKING = "PACKING"
    COMPLETE = "COMPLETE"


class StageStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class OrderStatus(str, Enum):
    """Order and order line status"""
    PENDING = "PENDING"
    COMMITTED = "COMMITTED"
    PARTIALLY_COMMITTED = "PARTIALLY_COMMITTED"
    PENDING_PRODUCTION = "PENDING_PRODUCTION"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class PendingProductionStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class BatchStatus(str, Enum):
    PATTERN_REQUESTED = "PATTERN_REQUESTED"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"


class RequestType(str, Enum):
    """Unit-of-work types moving items through the pipeline"""
    PATTERN_REQUEST = "PATTERN_REQUEST"
    CUTTING_REQUEST = "CUTTING_REQUEST"
    SEWING_REQUEST = "SEWING_REQUEST"
    WASH_REQUEST = "WASH_REQUEST"
    QC_REQUEST = "QC_REQUEST"
    FINISHING_REQUEST = "FINISHING_REQUEST"
    MOVE_REQUEST = "MOVE_REQUEST"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class StepStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class MatchType(str, Enum):
    EXACT = "EXACT"
    UNIVERSAL = "UNIVERSAL"


class NotificationType(str, Enum):
    PRODUCTION_REQUEST = "PRODUCTION_REQUEST"
    ORDER_ALLOCATED = "ORDER_ALLOCATED"
    WAITLIST = "WAITLIST"
    REQUEST = "REQUEST"


# ====================
# SKU
# ====================


class SKUComponents(BaseModel):
    """The five fields of a SKU: STYLE-WAIST-SHAPE-INSEAM-WASH"""
    model_config = ConfigDict(frozen=True)

    style: str = Field(..., description="2-letter style code")
    waist: int = Field(..., description="Waist size, 20-50")
    shape: str = Field(..., description="1-letter shape code")
    inseam: int = Field(..., description="Inseam length, 26-36")
    wash: str = Field(..., description="3-letter wash code")


# ====================
# Inventory
# ====================


class TimelineStage(BaseModel):
    """One stage of an item's production timeline"""
    stage: ActiveStage
    status: StageStatus = StageStatus.PENDING
    request_id: Optional[str] = None
    completed_at: Optional[datetime] = None


class InventoryItem(BaseModel):
    """A physical garment"""
    id: str = Field(default_factory=lambda: new_id("item"))
    sku: str
    status1: Status1 = Status1.STOCK
    status2: Status2 = Status2.UNCOMMITTED
    order_id: Optional[str] = None
    location: Optional[str] = None
    batch_id: Optional[str] = None
    active_stage: Optional[ActiveStage] = None
    timeline: List[TimelineStage] = Field(default_factory=list)
    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Commitment(BaseModel):
    """Committed vs. uncommitted quantity for one SKU"""
    sku: str
    committed_quantity: int = Field(default=0, ge=0)
    uncommitted_quantity: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utc_now)


class MatchResult(BaseModel):
    """An inventory item selected for a target SKU"""
    item: InventoryItem
    match_type: MatchType
    inseam_surplus: int = 0


# ====================
# Orders
# ====================


class OrderItem(BaseModel):
    """One line of an order"""
    sku: str
    quantity: int = Field(..., gt=0)
    status: OrderStatus = OrderStatus.PENDING
    committed_quantity: int = Field(default=0, ge=0)
    committed_item_ids: List[str] = Field(default_factory=list)
    waitlist_position: Optional[int] = None
    waitlist_sku: Optional[str] = None

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - self.committed_quantity


class Order(BaseModel):
    """Customer order"""
    id: str = Field(default_factory=lambda: new_id("ord"))
    number: int
    customer_id: str
    customer_name: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OrderItemRequest(BaseModel):
    """Order line as submitted by the caller"""
    sku: str
    quantity: int


class LineAllocation(BaseModel):
    """Outcome of allocating one order line"""
    sku: str
    quantity: int
    status: OrderStatus
    committed_item_ids: List[str] = Field(default_factory=list)
    newly_committed: int = 0
    waitlist_position: Optional[int] = None
    pending_production_id: Optional[str] = None


class AllocationResult(BaseModel):
    """Outcome of allocating one order"""
    order_id: str
    order_number: int
    status: OrderStatus
    lines: List[LineAllocation] = Field(default_factory=list)
    skipped: bool = False


class OrderProcessingResult(BaseModel):
    """Per-order entry of a bulk allocation run"""
    order_id: str
    success: bool
    status: Optional[OrderStatus] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# ====================
# Waitlist / Production
# ====================


class WaitlistEntry(BaseModel):
    """Unmet demand for one order line, queued per raw SKU"""
    id: str = Field(default_factory=lambda: new_id("wl"))
    order_id: str
    order_number: Optional[int] = None
    line_index: Optional[int] = Field(None, description="Index of the order line the demand belongs to")
    sku: str = Field(..., description="Exact SKU the order asked for")
    raw_sku: str = Field(..., description="Universal SKU the demand is produced as")
    quantity: int = Field(..., gt=0)
    position: Optional[int] = Field(None, description="1-based queue position, None once fully matched")
    priority: Priority = Priority.HIGH
    matched_item_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def outstanding_quantity(self) -> int:
        return self.quantity - len(self.matched_item_ids)


class PendingProductionRequest(BaseModel):
    """Demand that inventory could not satisfy, awaiting acceptance"""
    id: str = Field(default_factory=lambda: new_id("ppr"))
    sku: str = Field(..., description="Universal production SKU")
    quantity: int = Field(..., gt=0)
    priority: Priority = Priority.MEDIUM
    order_id: Optional[str] = None
    status: PendingProductionStatus = PendingProductionStatus.PENDING
    batch_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    accepted_at: Optional[datetime] = None


class ProductionBatch(BaseModel):
    """Garments cut together from one accepted production request"""
    id: str = Field(default_factory=lambda: new_id("batch"))
    pending_request_id: str
    sku: str
    quantity: int = Field(..., gt=0)
    status: BatchStatus = BatchStatus.PATTERN_REQUESTED
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# ====================
# Requests
# ====================


class RequestStep(BaseModel):
    """Ordered step within a request"""
    step_number: int = Field(..., ge=1)
    name: str
    status: StepStatus = StepStatus.PENDING
    completed_at: Optional[datetime] = None


class ProductionRequest(BaseModel):
    """Typed unit of work moving an item (or a whole batch) through one stage"""
    id: str = Field(default_factory=lambda: new_id("req"))
    request_type: RequestType
    status: RequestStatus = RequestStatus.PENDING
    priority: Priority = Priority.MEDIUM
    item_id: Optional[str] = None
    batch_id: Optional[str] = None
    order_id: Optional[str] = None
    previous_request: Optional[str] = None
    steps: List[RequestStep] = Field(default_factory=list)
    cancel_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def next_step(self) -> Optional[RequestStep]:
        for step in self.steps:
            if step.status != StepStatus.COMPLETED:
                return step
        return None


class RequestCompletion(BaseModel):
    """What completing a request did to its items"""
    request: ProductionRequest
    completed: bool = False
    item_ids: List[str] = Field(default_factory=list)
    next_requests: List[ProductionRequest] = Field(default_factory=list)
    terminal: bool = False


class ProductionAcceptance(BaseModel):
    """Outcome of accepting a pending production request"""
    pending_request: PendingProductionRequest
    batch: ProductionBatch
    pattern_request: ProductionRequest
    items: List[InventoryItem]
    waitlist_matches: int = 0


# ====================
# Inventory events
# ====================


class StockAddedDetails(BaseModel):
    kind: Literal["stock_added"] = "stock_added"
    sku: str
    location: Optional[str] = None


class ItemCommittedDetails(BaseModel):
    kind: Literal["item_committed"] = "item_committed"
    order_id: str
    match_type: Optional[MatchType] = None
    previous_status2: Status2
    new_status2: Status2


class WaitlistMatchedDetails(BaseModel):
    kind: Literal["waitlist_matched"] = "waitlist_matched"
    waitlist_entry_id: str
    order_id: str
    position: Optional[int] = None


class RequestCreatedDetails(BaseModel):
    kind: Literal["request_created"] = "request_created"
    request_id: str
    request_type: RequestType
    previous_request: Optional[str] = None


class RequestCompletedDetails(BaseModel):
    kind: Literal["request_completed"] = "request_completed"
    request_id: str
    request_type: RequestType
    previous_status: Status1
    new_status: Status1
    next_stage: Optional[ActiveStage] = None


class LocationChangedDetails(BaseModel):
    kind: Literal["location_changed"] = "location_changed"
    previous_location: Optional[str] = None
    new_location: str


EventDetails = Annotated[
    Union[
        StockAddedDetails,
        ItemCommittedDetails,
        WaitlistMatchedDetails,
        RequestCreatedDetails,
        RequestCompletedDetails,
        LocationChangedDetails,
    ],
    Field(discriminator="kind"),
]


class InventoryEvent(BaseModel):
    """Audit record of something that happened to an item"""
    id: str = Field(default_factory=lambda: new_id("evt"))
    item_id: str
    event_name: str
    description: str
    details: EventDetails
    created_at: datetime = Field(default_factory=utc_now)


class Notification(BaseModel):
    """Message handed to the notification sink"""
    id: str = Field(default_factory=lambda: new_id("ntf"))
    type: NotificationType
    message: str
    created_at: datetime = Field(default_factory=utc_now)


class CommitOutcome(BaseModel):
    """Result of binding one item to an order"""
    item: InventoryItem
    order_id: str
    wash_request: Optional[ProductionRequest] = None
