"""Payment dialog state: method, reference code and cash tendered."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from retail_pos.models import PaymentMethod


def parse_amount(raw: str) -> Decimal | None:
    """Parse a typed amount; blank or malformed input yields None."""
    text = raw.strip().replace(",", ".")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


class PaymentSession:
    """Ephemeral settlement choices for one opening of the payment dialog."""

    def __init__(self, method: PaymentMethod = PaymentMethod.CASH) -> None:
        self.method = method
        self.reference: str | None = None
        self.amount_received: Decimal | None = None

    def set_method(self, method: PaymentMethod) -> None:
        if method == self.method:
            return
        self.method = method
        self.reference = None
        self.amount_received = None

    def set_reference(self, value: str | None) -> None:
        self.reference = value

    def set_amount_received(self, value: Decimal | None) -> None:
        self.amount_received = value

    def change(self, total: Decimal) -> Decimal | None:
        """Change owed to a cash customer, or None when not applicable."""
        if self.method is not PaymentMethod.CASH or self.amount_received is None:
            return None
        if self.amount_received < total:
            return None
        return self.amount_received - total

    def is_ready_to_settle(self, total: Decimal) -> bool:
        # Tendered cash below the total does not block the sale.
        return True
