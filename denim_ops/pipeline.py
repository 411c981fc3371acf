"""
Production pipeline definition

The transition table keyed by completed request type, the step templates
each request type starts with, and the default item timeline.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .models import (
    ActiveStage,
    ProductionRequest,
    RequestStatus,
    RequestStep,
    RequestType,
    StageStatus,
    Status1,
    TimelineStage,
)
from .wash import is_finished_wash


@dataclass(frozen=True)
class StageTransition:
    """Effect of completing one request type"""
    status1: Status1
    next_stage: ActiveStage
    next_request: Optional[RequestType]
    blocked_at_laundry: bool = False


PRODUCTION_FLOW: Dict[RequestType, StageTransition] = {
    RequestType.PATTERN_REQUEST: StageTransition(
        status1=Status1.PRODUCTION,
        next_stage=ActiveStage.CUTTING,
        next_request=RequestType.CUTTING_REQUEST,
    ),
    RequestType.CUTTING_REQUEST: StageTransition(
        status1=Status1.PRODUCTION,
        next_stage=ActiveStage.SEWING,
        next_request=RequestType.SEWING_REQUEST,
    ),
    RequestType.SEWING_REQUEST: StageTransition(
        status1=Status1.PRODUCTION,
        next_stage=ActiveStage.WASHING,
        next_request=RequestType.WASH_REQUEST,
    ),
    RequestType.WASH_REQUEST: StageTransition(
        status1=Status1.WASH,
        next_stage=ActiveStage.QC,
        next_request=RequestType.QC_REQUEST,
        blocked_at_laundry=True,
    ),
    RequestType.QC_REQUEST: StageTransition(
        status1=Status1.QC,
        next_stage=ActiveStage.FINISHING,
        next_request=RequestType.FINISHING_REQUEST,
        blocked_at_laundry=True,
    ),
    RequestType.FINISHING_REQUEST: StageTransition(
        status1=Status1.FINISHING,
        next_stage=ActiveStage.COMPLETE,
        next_request=None,
    ),
}

# Request types that operate on a whole production batch rather than one item
BATCH_REQUEST_TYPES: FrozenSet[RequestType] = frozenset({
    RequestType.PATTERN_REQUEST,
    RequestType.CUTTING_REQUEST,
    RequestType.SEWING_REQUEST,
})

# Timeline stage each request type works on
REQUEST_STAGE: Dict[RequestType, ActiveStage] = {
    RequestType.PATTERN_REQUEST: ActiveStage.PATTERN,
    RequestType.CUTTING_REQUEST: ActiveStage.CUTTING,
    RequestType.SEWING_REQUEST: ActiveStage.SEWING,
    RequestType.WASH_REQUEST: ActiveStage.WASHING,
    RequestType.QC_REQUEST: ActiveStage.QC,
    RequestType.FINISHING_REQUEST: ActiveStage.FINISHING,
}

STEP_TEMPLATES: Dict[RequestType, Tuple[str, ...]] = {
    RequestType.PATTERN_REQUEST: ("Create Pattern", "Review Pattern", "Submit for Cutting"),
    RequestType.CUTTING_REQUEST: ("Scan Pattern", "Cut Panels", "Bundle Panels"),
    RequestType.SEWING_REQUEST: ("Scan Bundle", "Sew Garment", "Inspect Seams"),
    RequestType.WASH_REQUEST: ("Scan Item", "Scan Wash Bin", "Confirm Actions"),
    RequestType.QC_REQUEST: ("Scan Item", "Quality Check", "Record Measurements"),
    RequestType.FINISHING_REQUEST: ("Scan Item", "Apply Finishing", "Final Check"),
    RequestType.MOVE_REQUEST: ("Scan Item", "Scan New Location", "Confirm Move"),
}

DEFAULT_TIMELINE: Tuple[ActiveStage, ...] = (
    ActiveStage.PATTERN,
    ActiveStage.CUTTING,
    ActiveStage.SEWING,
    ActiveStage.WASHING,
    ActiveStage.QC,
    ActiveStage.FINISHING,
    ActiveStage.PACKING,
)

# Stock entered by hand has already been cut and sewn
MANUAL_STOCK_COMPLETED: Tuple[ActiveStage, ...] = (
    ActiveStage.PATTERN,
    ActiveStage.CUTTING,
    ActiveStage.SEWING,
)


def get_transition(request_type: RequestType) -> Optional[StageTransition]:
    """Transition for a completed request; None for types that do not move the item"""
    return PRODUCTION_FLOW.get(request_type)


def build_steps(request_type: RequestType) -> List[RequestStep]:
    return [
        RequestStep(step_number=number, name=name)
        for number, name in enumerate(STEP_TEMPLATES[request_type], start=1)
    ]


def build_timeline(completed: Iterable[ActiveStage] = ()) -> List[TimelineStage]:
    done = set(completed)
    return [
        TimelineStage(stage=stage, status=StageStatus.COMPLETED if stage in done else StageStatus.PENDING)
        for stage in DEFAULT_TIMELINE
    ]


def manual_stock_timeline(wash: str) -> List[TimelineStage]:
    """Timeline for stock entered by hand; finished washes have been washed too"""
    completed = list(MANUAL_STOCK_COMPLETED)
    if is_finished_wash(wash):
        completed.append(ActiveStage.WASHING)
    return build_timeline(completed)


def mark_stage(
    timeline: List[TimelineStage],
    stage: ActiveStage,
    status: StageStatus,
    request_id: Optional[str] = None,
    at: Optional[datetime] = None,
) -> List[TimelineStage]:
    """Return a copy of ``timeline`` with ``stage`` updated; unknown stages are ignored"""
    updated = []
    for entry in timeline:
        if entry.stage == stage:
            entry = entry.model_copy(update={
                "status": status,
                "request_id": request_id or entry.request_id,
                "completed_at": at if status == StageStatus.COMPLETED else entry.completed_at,
            })
        updated.append(entry)
    return updated


def is_request_open(request: ProductionRequest) -> bool:
    return request.status in (RequestStatus.PENDING, RequestStatus.IN_PROGRESS)
