"""Editable display labels for payment methods and fulfillment states."""

from __future__ import annotations

from retail_pos.models import FulfillmentStatus, PaymentMethod

PAYMENT_METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.YAPE: "Yape",
    PaymentMethod.PLIN: "Plin",
    PaymentMethod.CARD: "Card",
    PaymentMethod.TRANSFER: "Transfer",
    PaymentMethod.CREDIT: "Credit",
    PaymentMethod.OTHER: "Other",
}

# Methods offered in the payment dialog, in cycling order.
PAYMENT_METHOD_CHOICES: list[PaymentMethod] = [
    PaymentMethod.CASH,
    PaymentMethod.YAPE,
    PaymentMethod.PLIN,
    PaymentMethod.CARD,
    PaymentMethod.TRANSFER,
]

FULFILLMENT_LABELS: dict[FulfillmentStatus, str] = {
    FulfillmentStatus.PENDING: "pending",
    FulfillmentStatus.DISPATCHED: "dispatched",
    FulfillmentStatus.CANCELLED: "cancelled",
}
