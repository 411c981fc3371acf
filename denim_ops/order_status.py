"""Order and order line status rules"""

from typing import Iterable

from .models import Order, OrderItem, OrderStatus


def line_status(line: OrderItem) -> OrderStatus:
    """Status of a line after an allocation attempt"""
    if line.committed_quantity >= line.quantity:
        return OrderStatus.COMMITTED
    if line.committed_quantity > 0:
        return OrderStatus.PARTIALLY_COMMITTED
    return OrderStatus.PENDING_PRODUCTION


def aggregate_order_status(statuses: Iterable[OrderStatus]) -> OrderStatus:
    """
    Order status from its line statuses.

    All COMMITTED gives COMMITTED; any committed units give PARTIALLY_COMMITTED;
    all PENDING_PRODUCTION gives PENDING_PRODUCTION; anything else is PENDING.
    """
    statuses = list(statuses)
    if not statuses:
        return OrderStatus.PENDING
    if all(status == OrderStatus.COMMITTED for status in statuses):
        return OrderStatus.COMMITTED
    if any(status in (OrderStatus.COMMITTED, OrderStatus.PARTIALLY_COMMITTED) for status in statuses):
        return OrderStatus.PARTIALLY_COMMITTED
    if all(status == OrderStatus.PENDING_PRODUCTION for status in statuses):
        return OrderStatus.PENDING_PRODUCTION
    return OrderStatus.PENDING


def refresh_order_status(order: Order) -> Order:
    order.status = aggregate_order_status(line.status for line in order.items)
    return order
