"""Shared test fixtures.

The back-office services are replaced by an in-memory fake that records every
call, so cart, catalog and settlement behaviour can be checked without HTTP.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Callable

import pytest

from retail_pos.errors import PosError
from retail_pos.models import (
    FulfillmentStatus,
    Order,
    OrderItem,
    OrderStatus,
    Pagination,
    Price,
    Product,
    ProductFilters,
    StockLevel,
)


def make_product(
    product_id: str = "P1",
    price: str = "10.00",
    stock: int = 10,
    name: str | None = None,
    brand: str = "ACME",
    brand_name: str | None = None,
) -> Product:
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        sku=f"SKU-{product_id}",
        brand=brand,
        brand_name=brand_name,
        stock=StockLevel(current=stock, minimum=0),
        price=Price(amount=Decimal(price), currency="PEN", label=f"S/. {price}"),
    )


class FakeBackOffice:
    """In-memory stand-in for BackOfficeClient."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.products: list[Product] = []
        self.total_pages = 1
        self.transaction_code = "V-0001"
        self.failures: dict[str, PosError] = {}
        self.orders: dict[str, Order] = {}
        self._item_seq = 0
        self.on_create_transaction: Callable[[], Any] | None = None

    def fail(self, operation: str, error: PosError) -> None:
        self.failures[operation] = error

    def _maybe_fail(self, operation: str) -> None:
        error = self.failures.get(operation)
        if error is not None:
            raise error

    async def aclose(self) -> None:
        self.calls.append(("aclose",))

    async def list_products(self, filters: ProductFilters, page: int, per_page: int = 9) -> tuple[list[Product], Pagination]:
        self.calls.append(("list_products", page, filters))
        self._maybe_fail("list_products")
        return list(self.products), Pagination(
            page=page,
            per_page=per_page,
            total_items=len(self.products),
            total_pages=self.total_pages,
            has_next=page < self.total_pages,
            has_prev=page > 1,
        )

    async def create_transaction(self, payload: dict[str, Any]) -> str:
        self.calls.append(("create_transaction", payload))
        await asyncio.sleep(0)
        if self.on_create_transaction is not None:
            await self.on_create_transaction()
        self._maybe_fail("create_transaction")
        return self.transaction_code

    def seed_order(self, order_id: str = "O1", items: list[tuple[str, int, str]] | None = None) -> Order:
        order_items = []
        for product_id, quantity, unit_price in items or []:
            self._item_seq += 1
            order_items.append(
                OrderItem(
                    id=f"I{self._item_seq}",
                    product_id=product_id,
                    product_name=f"Product {product_id}",
                    quantity=quantity,
                    unit_price=Decimal(unit_price),
                    subtotal=Decimal(unit_price) * quantity,
                    status=FulfillmentStatus.PENDING,
                )
            )
        order = Order(id=order_id, code=f"ORD-{order_id}", status=OrderStatus.DRAFT, items=order_items)
        self.orders[order_id] = order
        return order

    async def get_order(self, order_id: str) -> Order:
        self.calls.append(("get_order", order_id))
        await asyncio.sleep(0)
        self._maybe_fail("get_order")
        return self.orders[order_id]

    async def create_order(self, items: Any, notes: str = "") -> Order:
        items = list(items)
        self.calls.append(("create_order", items, notes))
        self._maybe_fail("create_order")
        order = self.seed_order(
            f"O{len(self.orders) + 1}",
            [(item["product"], item["quantity"], str(item["unitPrice"])) for item in items],
        )
        order = Order(id=order.id, code=order.code, status=order.status, items=order.items, notes=notes)
        self.orders[order.id] = order
        return order

    async def update_order(self, order_id: str, notes: str) -> None:
        self.calls.append(("update_order", order_id, notes))
        self._maybe_fail("update_order")
        order = self.orders[order_id]
        self.orders[order_id] = Order(id=order.id, code=order.code, status=order.status, items=order.items, notes=notes)

    async def add_order_item(self, order_id: str, product_id: str, quantity: int, unit_price: Decimal) -> None:
        self.calls.append(("add_order_item", order_id, product_id, quantity, unit_price))
        self._maybe_fail("add_order_item")
        order = self.orders[order_id]
        self._item_seq += 1
        item = OrderItem(
            id=f"I{self._item_seq}",
            product_id=product_id,
            product_name=f"Product {product_id}",
            quantity=quantity,
            unit_price=unit_price,
            subtotal=unit_price * quantity,
        )
        self._replace_items(order, [*order.items, item])

    async def update_order_item(self, order_id: str, item_id: str, quantity: int) -> None:
        self.calls.append(("update_order_item", order_id, item_id, quantity))
        await asyncio.sleep(0)
        self._maybe_fail("update_order_item")
        order = self.orders[order_id]
        items = [
            OrderItem(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=quantity if item.id == item_id else item.quantity,
                unit_price=item.unit_price,
                subtotal=item.unit_price * (quantity if item.id == item_id else item.quantity),
                status=item.status,
            )
            for item in order.items
        ]
        self._replace_items(order, items)

    async def delete_order_item(self, order_id: str, item_id: str) -> None:
        self.calls.append(("delete_order_item", order_id, item_id))
        self._maybe_fail("delete_order_item")
        order = self.orders[order_id]
        self._replace_items(order, [item for item in order.items if item.id != item_id])

    def _replace_items(self, order: Order, items: list[OrderItem]) -> None:
        self.orders[order.id] = Order(id=order.id, code=order.code, status=order.status, items=items, notes=order.notes)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeScheduler:
    """Captures timer requests instead of arming real timers."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[float, Callable[[], None]]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> None:
        self.scheduled.append((delay, callback))

    def fire_all(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            callback()


@pytest.fixture()
def backoffice() -> FakeBackOffice:
    return FakeBackOffice()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()
