"""Cart container with a client-held and a server-held backing strategy."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from retail_pos.api import BackOfficeClient
from retail_pos.errors import CartBusyError, PosError
from retail_pos.models import CartLine, LoadState, Order, Product, TransactionSummary
from retail_pos.pricing import line_subtotal, summarize

log = logging.getLogger(__name__)


class Cart(ABC):
    """
    Line-item container shared by the direct-sale and order screens.

    Mutations are coroutines so both strategies are driven from the same
    call sites; the local strategy never suspends.
    """

    @property
    @abstractmethod
    def lines(self) -> list[CartLine]:
        """Current lines, in display order."""

    @abstractmethod
    async def add_line(self, product: Product) -> None:
        """Add one unit of ``product``, creating the line if needed."""

    @abstractmethod
    async def change_quantity(self, product_id: str, delta: int) -> None:
        """Apply ``delta`` to a line's quantity; reaching 0 removes the line."""

    @abstractmethod
    async def remove_line(self, product_id: str) -> None:
        """Remove the line for ``product_id`` if it exists."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every line the cart owns."""

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_id: str) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def summary(self) -> TransactionSummary:
        return summarize(self.lines)


class LocalCart(Cart):
    """Cart owned entirely in memory until the sale is settled."""

    def __init__(self) -> None:
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    async def add_line(self, product: Product) -> None:
        existing = self.find(product.id)
        if existing is not None:
            # Advisory ceiling; stock may have moved since the listing loaded.
            ceiling = max(product.stock.current, existing.quantity)
            quantity = min(existing.quantity + 1, ceiling)
            self._set_quantity(existing, quantity)
            return

        if product.stock.current < 1:
            log.info("add_line_skipped product=%s reason=no_stock", product.id)
            return

        unit_price = product.price.amount
        self._lines.append(
            CartLine(
                product_id=product.id,
                name=product.name,
                unit_price=unit_price,
                quantity=1,
                subtotal=line_subtotal(1, unit_price),
                brand=product.brand,
                brand_name=product.brand_name,
            )
        )

    async def change_quantity(self, product_id: str, delta: int) -> None:
        line = self.find(product_id)
        if line is None:
            return
        self._set_quantity(line, max(line.quantity + delta, 0))

    async def remove_line(self, product_id: str) -> None:
        self._lines = [line for line in self._lines if line.product_id != product_id]

    async def clear(self) -> None:
        self._lines.clear()

    def _set_quantity(self, line: CartLine, quantity: int) -> None:
        if quantity <= 0:
            self._lines = [row for row in self._lines if row.product_id != line.product_id]
            return
        line.quantity = quantity
        line.subtotal = line_subtotal(quantity, line.unit_price)


class RemoteOrderCart(Cart):
    """
    Live projection of a server-held order.

    Every mutation is persisted through the order-item service and then the
    whole order is refetched; nothing is applied optimistically. Only one
    mutation may be in flight at a time, a second one is rejected with
    :class:`CartBusyError`.
    """

    def __init__(self, client: BackOfficeClient, order_id: str) -> None:
        self.client = client
        self.order_id = order_id
        self.order: Order | None = None
        self.load_state = LoadState.IDLE
        self.last_error: PosError | None = None
        self._lines: list[CartLine] = []
        self._busy = False

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_busy(self) -> bool:
        return self._busy

    async def load(self) -> None:
        await self._run("load", None)

    async def add_line(self, product: Product) -> None:
        existing = self.find(product.id)
        if existing is not None and existing.line_id:
            line_id = existing.line_id
            quantity = existing.quantity + 1
            await self._run(
                f"add_line product={product.id}",
                lambda: self.client.update_order_item(self.order_id, line_id, quantity),
            )
            return

        await self._run(
            f"add_line product={product.id}",
            lambda: self.client.add_order_item(self.order_id, product.id, 1, product.price.amount),
        )

    async def change_quantity(self, product_id: str, delta: int) -> None:
        line = self.find(product_id)
        if line is None or not line.line_id:
            return
        line_id = line.line_id
        quantity = max(line.quantity + delta, 0)
        if quantity == 0:
            await self._run(
                f"delete_line product={product_id}",
                lambda: self.client.delete_order_item(self.order_id, line_id),
            )
            return
        await self._run(
            f"change_quantity product={product_id} quantity={quantity}",
            lambda: self.client.update_order_item(self.order_id, line_id, quantity),
        )

    async def remove_line(self, product_id: str) -> None:
        line = self.find(product_id)
        if line is None or not line.line_id:
            return
        line_id = line.line_id
        await self._run(
            f"delete_line product={product_id}",
            lambda: self.client.delete_order_item(self.order_id, line_id),
        )

    async def clear(self) -> None:
        # The server owns the order; there is nothing local to drop.
        return

    async def _run(self, label: str, request: Callable[[], Awaitable[None]] | None) -> None:
        if self._busy:
            raise CartBusyError()

        self._busy = True
        self.load_state = LoadState.LOADING
        log.debug("order_mutation_enter order=%s %s", self.order_id, label)
        try:
            if request is not None:
                await request()
            order = await self.client.get_order(self.order_id)
        except PosError as exc:
            self.load_state = LoadState.ERROR
            self.last_error = exc
            log.warning("order_mutation_failed order=%s %s error=%r", self.order_id, label, exc)
            raise
        finally:
            self._busy = False

        self._apply(order)
        self.load_state = LoadState.OK
        self.last_error = None

    def _apply(self, order: Order) -> None:
        self.order = order
        self._lines = [
            CartLine(
                product_id=item.product_id,
                name=item.product_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                subtotal=line_subtotal(item.quantity, item.unit_price),
                line_id=item.id,
                fulfillment_status=item.status,
            )
            for item in order.items
            if item.quantity > 0
        ]
