"""
Commitment ledger

Committed vs. uncommitted quantity per SKU. A stored entry is kept up to
date alongside every inventory mutation; SKUs without an entry are counted
from live inventory. No update may drive either quantity below zero.
"""

import logging

from .models import Commitment, Status2, utc_now
from .protocols import DenimStoreProtocol, InvalidQuantityError

logger = logging.getLogger(__name__)

COMMITTED_STATES = (Status2.COMMITTED, Status2.ASSIGNED)


def apply_deltas(commitment: Commitment, delta_committed: int, delta_uncommitted: int) -> Commitment:
    """
    Return a new Commitment with the deltas applied.

    Raises:
        InvalidQuantityError: If either resulting quantity would be negative
    """
    committed = commitment.committed_quantity + delta_committed
    uncommitted = commitment.uncommitted_quantity + delta_uncommitted

    if committed < 0:
        raise InvalidQuantityError(
            f"Cannot update commitments: resulting committed quantity ({committed}) would be negative"
        )
    if uncommitted < 0:
        raise InvalidQuantityError(
            f"Cannot update commitments: resulting uncommitted quantity ({uncommitted}) would be negative"
        )

    return Commitment(
        sku=commitment.sku,
        committed_quantity=committed,
        uncommitted_quantity=uncommitted,
        updated_at=utc_now(),
    )


class CommitmentLedger:
    """Ledger of commitments backed by the store"""

    def __init__(self, store: DenimStoreProtocol):
        self.store = store

    async def count_commitments(self, sku: str) -> Commitment:
        """Count committed and uncommitted items for ``sku`` in live inventory"""
        items = await self.store.list_items({"sku": sku})
        committed = sum(1 for item in items if item.status2 in COMMITTED_STATES)
        uncommitted = sum(1 for item in items if item.status2 == Status2.UNCOMMITTED)
        return Commitment(sku=sku, committed_quantity=committed, uncommitted_quantity=uncommitted)

    async def get_commitments(self, sku: str) -> Commitment:
        """Current commitment for ``sku``; unseen SKUs report zero"""
        stored = await self.store.get_commitment(sku)
        if stored is not None:
            return stored
        return await self.count_commitments(sku)

    async def update_commitments(self, sku: str, delta_committed: int, delta_uncommitted: int) -> Commitment:
        """
        Apply deltas to the ledger entry for ``sku``.

        The store adds the deltas in a single guarded write, so concurrent
        updates cannot overwrite each other and a rejected update leaves
        the prior entry untouched.

        Raises:
            InvalidQuantityError: If either quantity would go negative
        """
        if await self.store.get_commitment(sku) is None:
            await self.store.seed_commitment(await self.count_commitments(sku))

        saved = await self.store.adjust_commitment(sku, delta_committed, delta_uncommitted)
        if saved is None:
            apply_deltas(await self.get_commitments(sku), delta_committed, delta_uncommitted)
            raise InvalidQuantityError(
                f"Cannot update commitments for {sku}: entry changed during update"
            )

        logger.debug(
            f"Commitments for {sku}: committed={saved.committed_quantity} "
            f"uncommitted={saved.uncommitted_quantity}"
        )
        return saved

    async def reconcile_commitments(self, sku: str) -> Commitment:
        """Rebuild the ledger entry for ``sku`` from live inventory"""
        counted = await self.count_commitments(sku)
        stored = await self.store.get_commitment(sku)
        if stored is not None and (
            stored.committed_quantity != counted.committed_quantity
            or stored.uncommitted_quantity != counted.uncommitted_quantity
        ):
            logger.warning(
                f"Ledger drift for {sku}: stored {stored.committed_quantity}/{stored.uncommitted_quantity}, "
                f"counted {counted.committed_quantity}/{counted.uncommitted_quantity}"
            )
        return await self.store.save_commitment(counted)
