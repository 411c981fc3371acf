#!/usr/bin/env python3
"""Allocation and production settings

Business constants for SKU conversion, production priority and the
allocation retry policy.
"""
import os
from dataclasses import dataclass

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class AllocationConfig:
    """Domain settings for the allocation core"""

    # Longest producible inseam; universal SKUs are cut from this length
    max_inseam: int = 36

    # Production request priorities
    default_priority: str = "MEDIUM"
    order_priority: str = "HIGH"

    # Attempts per unit when another writer wins the race for a candidate item
    max_commit_retries: int = 3

    # Locations
    laundry_location: str = "LAUNDRY"
    default_stock_location: str = "WAREHOUSE"
    production_location: str = "PRODUCTION_FLOOR"

    @classmethod
    def from_env(cls) -> 'AllocationConfig':
        """Load allocation settings from environment"""
        return cls(
            max_inseam=_int(os.getenv("DENIM_MAX_INSEAM", "36"), 36),
            default_priority=os.getenv("DENIM_DEFAULT_PRIORITY", "MEDIUM"),
            order_priority=os.getenv("DENIM_ORDER_PRIORITY", "HIGH"),
            max_commit_retries=_int(os.getenv("ALLOCATION_MAX_RETRIES", "3"), 3),
            laundry_location=os.getenv("DENIM_LAUNDRY_LOCATION", "LAUNDRY"),
            default_stock_location=os.getenv("DENIM_STOCK_LOCATION", "WAREHOUSE"),
            production_location=os.getenv("DENIM_PRODUCTION_LOCATION", "PRODUCTION_FLOOR"),
        )
