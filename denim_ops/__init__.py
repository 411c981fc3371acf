"""
Denim Operations

Made-to-order allocation core: SKU codec and wash conversion, inventory
matching, the commitment ledger, order allocation, the waitlist, pending
production and the request pipeline that moves items to completion.

Usage:
    from denim_ops.factory import create_denim_ops

    services = await create_denim_ops()
    result = await services.allocation.place_order("cust_1", [{"sku": "ST-32-S-30-STA", "quantity": 1}])
"""

from .protocols import DenimOpsError
from .services import DenimOpsServices, build_services

__all__ = ["DenimOpsError", "DenimOpsServices", "build_services"]
