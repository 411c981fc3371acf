"""
Inventory matcher

Ranks uncommitted inventory against a target SKU: exact matches first, then
universal matches (same style/waist/shape, inseam at least the target's,
convertible wash) ordered by the smallest inseam surplus.
"""

import logging
from typing import Iterable, List, Optional, Set, Union

from .models import InventoryItem, MatchResult, MatchType, SKUComponents, Status2
from .protocols import DenimStoreProtocol, IncompatibleWashError, InvalidSKUError, NoInventoryAvailableError
from .sku import build_sku, normalize_sku, parse_sku
from .wash import is_wash_compatible

logger = logging.getLogger(__name__)


def universal_surplus(candidate: SKUComponents, target: SKUComponents) -> Optional[int]:
    """
    Inseam surplus if ``candidate`` can be converted into ``target``, else None.

    An unknown candidate wash is treated as not convertible.
    """
    if (candidate.style, candidate.waist, candidate.shape) != (target.style, target.waist, target.shape):
        return None
    if candidate.inseam < target.inseam:
        return None
    try:
        if not is_wash_compatible(candidate.wash, target.wash):
            return None
    except IncompatibleWashError:
        logger.warning(f"Skipping candidate with unknown wash {candidate.wash}")
        return None
    return candidate.inseam - target.inseam


def can_fulfil(item_sku: str, target_sku: str) -> bool:
    """Whether an item of ``item_sku`` can be made into ``target_sku``"""
    if item_sku == target_sku:
        return True
    try:
        return universal_surplus(parse_sku(item_sku), parse_sku(target_sku)) is not None
    except InvalidSKUError:
        return False


def rank_candidates(
    target: Union[str, SKUComponents],
    items: Iterable[InventoryItem],
    exclude_ids: Optional[Set[str]] = None,
) -> List[MatchResult]:
    """
    Order every usable item for ``target``, best first.

    Only UNCOMMITTED items are considered. Exact matches keep store order;
    universal matches are sorted by inseam surplus (stable, so ties keep
    store order too).
    """
    target_components = normalize_sku(target)
    target_sku = build_sku(target_components)
    exclude_ids = exclude_ids or set()

    exact: List[MatchResult] = []
    universal: List[MatchResult] = []

    for item in items:
        if item.status2 != Status2.UNCOMMITTED or item.id in exclude_ids:
            continue
        if item.sku == target_sku:
            exact.append(MatchResult(item=item, match_type=MatchType.EXACT))
            continue
        try:
            candidate = parse_sku(item.sku)
        except InvalidSKUError:
            logger.warning(f"Item {item.id} has malformed SKU {item.sku!r}, skipping")
            continue
        surplus = universal_surplus(candidate, target_components)
        if surplus is not None:
            universal.append(MatchResult(item=item, match_type=MatchType.UNIVERSAL, inseam_surplus=surplus))

    universal.sort(key=lambda match: match.inseam_surplus)
    return exact + universal


def find_match(
    target: Union[str, SKUComponents],
    items: Iterable[InventoryItem],
    exclude_ids: Optional[Set[str]] = None,
) -> Optional[MatchResult]:
    """Best single match, or None when the unit must be escalated"""
    ranked = rank_candidates(target, items, exclude_ids)
    return ranked[0] if ranked else None


class InventoryMatcher:
    """Runs the ranking against the store's uncommitted inventory"""

    def __init__(self, store: DenimStoreProtocol):
        self.store = store

    async def find_candidates(
        self, target_sku: str, exclude_ids: Optional[Set[str]] = None
    ) -> List[MatchResult]:
        items = await self.store.list_items({"status2": Status2.UNCOMMITTED})
        candidates = rank_candidates(target_sku, items, exclude_ids)
        logger.debug(f"{len(candidates)} candidate(s) for {target_sku}")
        return candidates

    async def find_match(self, target_sku: str) -> Optional[MatchResult]:
        candidates = await self.find_candidates(target_sku)
        return candidates[0] if candidates else None

    async def require_match(self, target_sku: str) -> MatchResult:
        """
        Best match for ``target_sku``.

        Raises:
            NoInventoryAvailableError: If nothing in inventory can become the target
        """
        match = await self.find_match(target_sku)
        if match is None:
            raise NoInventoryAvailableError(f"No inventory available for SKU {target_sku}")
        return match
