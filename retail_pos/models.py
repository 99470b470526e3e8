"""Domain models for retail-pos."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number (or numeric string) to Decimal without float noise."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    OK = "ok"
    ERROR = "error"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    YAPE = "YAPE"
    PLIN = "PLIN"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    CREDIT = "CREDIT"
    OTHER = "OTHER"


class FulfillmentStatus(str, enum.Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    CANCELLED = "cancelled"


class OrderStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StockLevel:
    current: int
    minimum: int = 0


@dataclass(frozen=True)
class Price:
    amount: Decimal
    currency: str = "PEN"
    label: str = ""


@dataclass(frozen=True)
class Product:
    """A catalog product as returned by the listing service."""

    id: str
    name: str
    sku: str
    brand: str
    stock: StockLevel
    price: Price
    brand_name: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Product:
        stock = payload.get("stock") or {}
        price = payload.get("price") or {}
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            sku=str(payload.get("sku", "")),
            brand=str(payload.get("brand") or ""),
            brand_name=payload.get("brandName") or None,
            stock=StockLevel(
                current=max(0, int(stock.get("current", 0))),
                minimum=max(0, int(stock.get("minimum", 0))),
            ),
            price=Price(
                amount=to_decimal(price.get("amount")),
                currency=str(price.get("currency", "PEN")),
                label=str(price.get("label", "")),
            ),
        )


@dataclass
class CartLine:
    """One product entry in a cart with aggregated quantity."""

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    brand: str | None = None
    brand_name: str | None = None
    # Only set when the line mirrors an item of a remote order.
    line_id: str | None = None
    fulfillment_status: FulfillmentStatus | None = None


@dataclass(frozen=True)
class TransactionSummary:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    per_page: int = 9
    total_items: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], per_page: int = 9) -> Pagination:
        return cls(
            page=int(payload.get("page", 1)),
            per_page=int(payload.get("perPage", per_page)),
            total_items=int(payload.get("totalItems", 0)),
            total_pages=int(payload.get("totalPages", 0)),
            has_next=bool(payload.get("hasNext", False)),
            has_prev=bool(payload.get("hasPrev", False)),
        )


@dataclass(frozen=True)
class ProductFilters:
    """Listing filters; blank values are not sent."""

    name: str = ""
    brand: str = ""
    category: str = ""
    sku: str = ""

    def to_payload(self) -> dict[str, str]:
        raw = {"name": self.name, "brand": self.brand, "category": self.category, "sku": self.sku}
        return {key: value.strip() for key, value in raw.items() if value and value.strip()}


@dataclass(frozen=True)
class OrderItem:
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    status: FulfillmentStatus = FulfillmentStatus.PENDING

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> OrderItem:
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            product_id=str(payload["product"]),
            product_name=str(payload.get("productName") or ""),
            quantity=int(payload.get("quantity", 0)),
            unit_price=to_decimal(payload.get("unitPrice")),
            subtotal=to_decimal(payload.get("subtotal")),
            status=FulfillmentStatus(payload.get("status") or FulfillmentStatus.PENDING.value),
        )


@dataclass(frozen=True)
class Order:
    """Server-held order with its items in server order."""

    id: str
    code: str
    status: OrderStatus
    items: list[OrderItem] = field(default_factory=list)
    notes: str = ""
    customer_name: str | None = None
    total_amount: Decimal = Decimal("0")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Order:
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            code=str(payload.get("code") or ""),
            status=OrderStatus(payload.get("status") or OrderStatus.DRAFT.value),
            items=[OrderItem.from_payload(item) for item in payload.get("items") or []],
            notes=str(payload.get("notes") or ""),
            customer_name=payload.get("customerName") or None,
            total_amount=to_decimal(payload.get("totalAmount")),
        )
