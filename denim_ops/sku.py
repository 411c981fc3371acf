"""
SKU codec

A SKU is ``STYLE-WAIST-SHAPE-INSEAM-WASH``, e.g. ``ST-32-S-30-STA``.
Malformed input is rejected with InvalidSKUError, never coerced.
"""

import re
from typing import Union

from .models import SKUComponents
from .protocols import InvalidSKUError

MIN_WAIST = 20
MAX_WAIST = 50
MIN_INSEAM = 26
MAX_INSEAM = 36

STYLE_LENGTH = 2
SHAPE_LENGTH = 1
WASH_LENGTH = 3

_DIGITS = re.compile(r"[1-9][0-9]*")


def _validate(style: str, waist: int, shape: str, inseam: int, wash: str, source: str) -> None:
    if len(style) != STYLE_LENGTH:
        raise InvalidSKUError(f"Invalid SKU {source!r}: style must be {STYLE_LENGTH} characters")
    if len(shape) != SHAPE_LENGTH:
        raise InvalidSKUError(f"Invalid SKU {source!r}: shape must be {SHAPE_LENGTH} character")
    if len(wash) != WASH_LENGTH:
        raise InvalidSKUError(f"Invalid SKU {source!r}: wash must be {WASH_LENGTH} characters")
    if not MIN_WAIST <= waist <= MAX_WAIST:
        raise InvalidSKUError(f"Invalid SKU {source!r}: waist must be between {MIN_WAIST} and {MAX_WAIST}")
    if not MIN_INSEAM <= inseam <= MAX_INSEAM:
        raise InvalidSKUError(f"Invalid SKU {source!r}: inseam must be between {MIN_INSEAM} and {MAX_INSEAM}")


def _parse_int(value: str, field: str, source: str) -> int:
    if not _DIGITS.fullmatch(value):
        raise InvalidSKUError(f"Invalid SKU {source!r}: {field} must be an integer")
    return int(value)


def parse_sku(sku: str) -> SKUComponents:
    """
    Parse a SKU string into its components.

    Raises:
        InvalidSKUError: If the string does not have five valid parts
    """
    if not isinstance(sku, str) or not sku:
        raise InvalidSKUError(f"Invalid SKU {sku!r}: expected a non-empty string")

    parts = sku.split("-")
    if len(parts) != 5 or any(not part for part in parts):
        raise InvalidSKUError(f"Invalid SKU {sku!r}: expected STYLE-WAIST-SHAPE-INSEAM-WASH")

    style, waist_str, shape, inseam_str, wash = parts
    waist = _parse_int(waist_str, "waist", sku)
    inseam = _parse_int(inseam_str, "inseam", sku)
    _validate(style, waist, shape, inseam, wash, sku)

    return SKUComponents(style=style, waist=waist, shape=shape, inseam=inseam, wash=wash)


def build_sku(components: SKUComponents) -> str:
    """
    Format components as a SKU string, re-validating them first.

    Raises:
        InvalidSKUError: If any component is out of range
    """
    c = components
    _validate(c.style, c.waist, c.shape, c.inseam, c.wash, repr(c))
    return f"{c.style}-{c.waist}-{c.shape}-{c.inseam}-{c.wash}"


def is_valid_sku(sku: str) -> bool:
    try:
        parse_sku(sku)
    except InvalidSKUError:
        return False
    return True


def normalize_sku(sku: Union[str, SKUComponents]) -> SKUComponents:
    """Accept either form and return validated components"""
    if isinstance(sku, SKUComponents):
        build_sku(sku)
        return sku
    return parse_sku(sku)
