"""Payment dialog screen."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from retail_pos.constant import PAYMENT_METHOD_CHOICES, PAYMENT_METHOD_LABELS
from retail_pos.models import PaymentMethod
from retail_pos.payment import PaymentSession, parse_amount
from retail_pos.rendering import format_money


class PaymentModal(ModalScreen[None]):
    """Collect the payment method and its details before settling."""

    CSS = """
    PaymentModal {
        align: center middle;
        background: $background 60%;
    }

    #payment-dialog {
        width: 60;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #payment-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #payment-body {
        color: white;
        margin-bottom: 1;
    }

    #payment-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #payment-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        session: PaymentSession,
        total: Decimal,
        on_confirm: Callable[[], None],
        is_submitting: Callable[[], bool],
    ) -> None:
        super().__init__()
        self.session = session
        self.total = total
        self.on_confirm = on_confirm
        self.is_submitting = is_submitting
        self.value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="payment-dialog"):
            yield Static("Process Payment", id="payment-title")
            yield Static(id="payment-body")
            yield Static(id="payment-error")
            yield Static(
                "Tab/←/→ method. Type amount or reference. Enter confirm. Esc cancel.",
                id="payment-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            if not self.is_submitting():
                self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            if not self.is_submitting():
                self.error = ""
                self.on_confirm()
            event.stop()
            return

        if event.key in {"tab", "right"}:
            self._cycle_method(1)
            event.stop()
            return

        if event.key in {"shift+tab", "left"}:
            self._cycle_method(-1)
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self._set_value(self.value[:-1])
            event.stop()
            return

        if event.is_printable and event.character:
            if self.session.method is PaymentMethod.CASH:
                if event.character.isdigit() or event.character in {".", ","}:
                    self._set_value(self.value + event.character)
            else:
                self._set_value(self.value + event.character)
            event.stop()

    def show_error(self, message: str) -> None:
        self.error = message
        self._refresh_content()

    def refresh_state(self) -> None:
        self._refresh_content()

    def _cycle_method(self, delta: int) -> None:
        try:
            idx = PAYMENT_METHOD_CHOICES.index(self.session.method)
        except ValueError:
            idx = 0
        self.session.set_method(PAYMENT_METHOD_CHOICES[(idx + delta) % len(PAYMENT_METHOD_CHOICES)])
        self.value = ""
        self.error = ""
        self._refresh_content()

    def _set_value(self, value: str) -> None:
        self.value = value
        if self.session.method is PaymentMethod.CASH:
            self.session.set_amount_received(parse_amount(value))
        else:
            self.session.set_reference(value or None)
        self._refresh_content()

    def _refresh_content(self) -> None:
        body = self.query_one("#payment-body", Static)
        error_widget = self.query_one("#payment-error", Static)

        content = Text(style="white")
        content.append(f"Total to pay: {format_money(self.total)}\n\n", style="bold")
        for idx, method in enumerate(PAYMENT_METHOD_CHOICES):
            if idx > 0:
                content.append("  ")
            label = PAYMENT_METHOD_LABELS[method]
            if method is self.session.method:
                content.append(f"[{label}]", style="bold reverse")
            else:
                content.append(label)
        content.append("\n\n")

        if self.session.method is PaymentMethod.CASH:
            content.append(f"Amount received: {self.value}|")
            change = self.session.change(self.total)
            if change is not None:
                content.append(f"\nChange: {format_money(change)}", style="bold #5fbf72")
        else:
            content.append(f"Reference: {self.value}|")

        if self.is_submitting():
            content.append("\n\nProcessing…", style="dim")

        body.update(content)
        error_widget.update(self.error or "")
