"""
Wash compatibility

A source wash is an unfinished state that can still be finished into any
wash in its compatibility set. Finished washes map only to themselves.
"""

from typing import Dict, FrozenSet, Union

from .models import SKUComponents
from .protocols import IncompatibleWashError, InvalidSKUError, UniversalSKUError
from .sku import MAX_INSEAM, build_sku, normalize_sku, parse_sku

RAW = "RAW"
BRW = "BRW"

# Order matters: get_universal_wash returns the first source containing the target
WASH_COMPATIBILITY: Dict[str, FrozenSet[str]] = {
    RAW: frozenset({"RAW", "STA", "IND", "BLK", "BRW"}),
    "STA": frozenset({"STA"}),
    "IND": frozenset({"IND"}),
    "BLK": frozenset({"BLK"}),
    BRW: frozenset({"BRW", "ONX", "JAG"}),
}

# Washes production can cut new garments in
SOURCE_WASHES: FrozenSet[str] = frozenset({RAW, BRW})


def is_wash_compatible(source: str, target: str) -> bool:
    """
    Whether a garment in ``source`` wash can be finished into ``target``.

    Raises:
        IncompatibleWashError: If ``source`` is not a known wash
    """
    if source == target:
        return True
    compatible = WASH_COMPATIBILITY.get(source)
    if compatible is None:
        raise IncompatibleWashError(f"Unknown source wash: {source}")
    return target in compatible


def get_universal_wash(target: str) -> str:
    """
    Find the source wash that can be finished into ``target``.

    Raises:
        UniversalSKUError: If no source wash covers the target
    """
    for source, compatible in WASH_COMPATIBILITY.items():
        if target in compatible:
            return source
    raise UniversalSKUError(f"No universal wash found for target wash: {target}")


def is_finished_wash(wash: str) -> bool:
    return wash not in SOURCE_WASHES


def create_universal_sku(components: SKUComponents, max_inseam: int = MAX_INSEAM) -> SKUComponents:
    """
    The longest, least finished SKU that can still become ``components``.

    Style, waist and shape are kept; inseam goes to the maximum and wash to
    its universal source.
    """
    universal = SKUComponents(
        style=components.style,
        waist=components.waist,
        shape=components.shape,
        inseam=max_inseam,
        wash=get_universal_wash(components.wash),
    )
    try:
        build_sku(universal)
    except InvalidSKUError as e:
        raise UniversalSKUError(f"Cannot build universal SKU for {components!r}: {e}") from e
    return universal


def convert_to_raw_sku(sku: Union[str, SKUComponents], max_inseam: int = MAX_INSEAM) -> str:
    """String form of create_universal_sku"""
    return build_sku(create_universal_sku(normalize_sku(sku), max_inseam=max_inseam))


def is_production_sku(sku: str) -> bool:
    """Valid SKU whose wash is one production can cut in"""
    try:
        components = parse_sku(sku)
    except InvalidSKUError:
        return False
    return components.wash in SOURCE_WASHES
