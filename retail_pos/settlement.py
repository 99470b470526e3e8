"""Final submission of a cart as a recorded sale."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Callable

from retail_pos.api import BackOfficeClient, money
from retail_pos.cart import Cart
from retail_pos.catalog import CatalogBrowser
from retail_pos.config import SUCCESS_NOTICE_SECONDS
from retail_pos.errors import (
    EMPTY_CART,
    GENERIC_SALE_MESSAGE,
    SALE_ERROR,
    PosError,
    ServerRejection,
    SettlementInProgressError,
    ValidationError,
)
from retail_pos.models import CartLine, PaymentMethod, TransactionSummary
from retail_pos.payment import PaymentSession

log = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


class SettlementState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass(frozen=True)
class SettledSale:
    """Snapshot of a settled cart, kept for receipts after the cart is cleared."""

    code: str
    lines: list[CartLine]
    summary: TransactionSummary
    method: PaymentMethod
    reference: str | None = None
    amount_received: Decimal | None = None
    change: Decimal | None = None


def build_payload(cart: Cart, session: PaymentSession) -> dict[str, Any]:
    return {
        "items": [
            {
                "product": {
                    "id": line.product_id,
                    "name": line.name,
                    "price": money(line.unit_price),
                    "brand": line.brand or "",
                    "brandName": line.brand_name or "",
                },
                "quantity": line.quantity,
            }
            for line in cart.lines
        ],
        "paymentMethod": session.method.value,
    }


def _default_scheduler(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class TransactionSettler:
    """
    Drives ``idle -> submitting -> settled | failed`` for one screen.

    A failed attempt returns to ``idle`` with the cart and payment session
    untouched so the user can retry. A successful one clears the cart,
    refreshes the catalog, shows a transient success notice and notifies
    ``on_settled`` listeners (the payment dialog closes itself there).
    """

    def __init__(
        self,
        client: BackOfficeClient,
        catalog: CatalogBrowser | None = None,
        notice_seconds: float = SUCCESS_NOTICE_SECONDS,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.client = client
        self.catalog = catalog
        self.notice_seconds = notice_seconds
        self.state = SettlementState.IDLE
        self.success_message: str | None = None
        self.last_error: PosError | None = None
        self.last_sale: SettledSale | None = None
        self.on_settled: list[Callable[[SettledSale], None]] = []
        self._scheduler = scheduler or _default_scheduler
        self._notice_handle: Any = None

    @property
    def is_submitting(self) -> bool:
        return self.state is SettlementState.SUBMITTING

    async def settle(self, cart: Cart, session: PaymentSession) -> str:
        """Record the cart as a sale and return its transaction code."""
        if self.is_submitting:
            raise SettlementInProgressError()
        if cart.is_empty:
            raise ValidationError("The cart is empty", EMPTY_CART)

        lines = [replace(line) for line in cart.lines]
        summary = cart.summary()
        payload = build_payload(cart, session)
        self.state = SettlementState.SUBMITTING
        log.info("settle_enter lines=%s method=%r total=%s", len(lines), session.method.value, summary.total)

        try:
            code = await self.client.create_transaction(payload)
            self.state = SettlementState.SETTLED
        except PosError as exc:
            self.state = SettlementState.FAILED
            if isinstance(exc, ServerRejection) and exc.server_message:
                failure: PosError = exc
            else:
                failure = PosError(GENERIC_SALE_MESSAGE, SALE_ERROR)
            self.last_error = failure
            log.warning("settle_failed error=%r", exc)
            self.state = SettlementState.IDLE
            if failure is exc:
                raise
            raise failure from exc
        finally:
            # Cancellation or an unexpected error must not wedge the settler.
            if self.state is SettlementState.SUBMITTING:
                log.warning("settle_aborted lines=%s", len(lines))
                self.state = SettlementState.IDLE

        self.last_error = None
        sale = SettledSale(
            code=code,
            lines=lines,
            summary=summary,
            method=session.method,
            reference=session.reference,
            amount_received=session.amount_received,
            change=session.change(summary.total),
        )
        self.last_sale = sale
        log.info("settle_ok code=%s", code)

        await cart.clear()
        self._show_notice(f"Sale registered: {code}")
        for listener in list(self.on_settled):
            listener(sale)
        if self.catalog is not None:
            await self.catalog.refresh()
        return code

    def dismiss_notice(self) -> None:
        self.success_message = None
        self._notice_handle = None

    def _show_notice(self, message: str) -> None:
        if self._notice_handle is not None:
            # asyncio handles cancel(), Textual timers stop().
            stop = getattr(self._notice_handle, "cancel", None) or getattr(self._notice_handle, "stop", None)
            if stop is not None:
                stop()
        self.success_message = message
        self._notice_handle = self._scheduler(self.notice_seconds, self.dismiss_notice)
