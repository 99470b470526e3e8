"""Saving the order screen: new orders from a local cart, notes on existing ones."""

from __future__ import annotations

import logging

from retail_pos.api import BackOfficeClient, money
from retail_pos.cart import LocalCart, RemoteOrderCart
from retail_pos.errors import EMPTY_CART, ValidationError
from retail_pos.models import Order, OrderStatus

log = logging.getLogger(__name__)

ORDER_STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.DRAFT: "Draft",
    OrderStatus.PENDING: "Pending",
    OrderStatus.PROCESSING: "Processing",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}


def order_status_label(status: OrderStatus | None) -> str:
    if status is None:
        return ORDER_STATUS_LABELS[OrderStatus.DRAFT]
    return ORDER_STATUS_LABELS.get(status, status.value)


async def save_new_order(client: BackOfficeClient, cart: LocalCart, notes: str = "") -> Order:
    """Create an order from the local cart lines and empty the cart."""
    if cart.is_empty:
        raise ValidationError("The order has no items", EMPTY_CART)

    items = [
        {"product": line.product_id, "quantity": line.quantity, "unitPrice": money(line.unit_price)}
        for line in cart.lines
    ]
    order = await client.create_order(items, notes=notes)
    log.info("order_created id=%s code=%s items=%s", order.id, order.code, len(items))
    await cart.clear()
    return order


async def save_order_notes(client: BackOfficeClient, cart: RemoteOrderCart, notes: str) -> Order | None:
    """Update the notes of an existing order and refetch it."""
    await client.update_order(cart.order_id, notes)
    await cart.load()
    return cart.order
