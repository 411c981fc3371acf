"""
Service wiring

Builds the full set of denim operations services around one store. No I/O
happens here; factory.py supplies the real store and event bus.
"""

from dataclasses import dataclass
from typing import Optional

from core.config import AllocationConfig
from .allocation_service import AllocationService
from .commitment_ledger import CommitmentLedger
from .inventory_committer import InventoryCommitter
from .inventory_service import InventoryService
from .matcher import InventoryMatcher
from .production_service import ProductionService
from .protocols import DenimStoreProtocol, EventBusProtocol, NotificationSinkProtocol
from .request_service import RequestService
from .waitlist_service import WaitlistService


@dataclass
class DenimOpsServices:
    """Every service of the allocation core, sharing one store"""
    store: DenimStoreProtocol
    ledger: CommitmentLedger
    matcher: InventoryMatcher
    waitlist: WaitlistService
    requests: RequestService
    committer: InventoryCommitter
    production: ProductionService
    inventory: InventoryService
    allocation: AllocationService


def build_services(
    store: DenimStoreProtocol,
    config: Optional[AllocationConfig] = None,
    notifications: Optional[NotificationSinkProtocol] = None,
    event_bus: Optional[EventBusProtocol] = None,
) -> DenimOpsServices:
    config = config or AllocationConfig()

    ledger = CommitmentLedger(store)
    matcher = InventoryMatcher(store)
    waitlist = WaitlistService(store, notifications=notifications, event_bus=event_bus, config=config)
    requests = RequestService(
        store, waitlist=waitlist, notifications=notifications, event_bus=event_bus, config=config
    )
    committer = InventoryCommitter(store, ledger, requests, event_bus=event_bus, config=config)
    production = ProductionService(
        store,
        ledger,
        requests,
        waitlist,
        committer,
        notifications=notifications,
        event_bus=event_bus,
        config=config,
    )
    inventory = InventoryService(store, ledger, waitlist=waitlist, committer=committer, config=config)
    allocation = AllocationService(
        store,
        matcher,
        committer,
        waitlist,
        production,
        notifications=notifications,
        config=config,
    )

    return DenimOpsServices(
        store=store,
        ledger=ledger,
        matcher=matcher,
        waitlist=waitlist,
        requests=requests,
        committer=committer,
        production=production,
        inventory=inventory,
        allocation=allocation,
    )
