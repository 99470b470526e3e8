"""Main Textual app class."""

from __future__ import annotations

import logging
from typing import Any, Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from retail_pos.api import BackOfficeClient
from retail_pos.cart import Cart, LocalCart, RemoteOrderCart
from retail_pos.catalog import CatalogBrowser
from retail_pos.config import SUCCESS_NOTICE_SECONDS
from retail_pos.errors import PosError
from retail_pos.models import LoadState, ProductFilters
from retail_pos.orders import order_status_label, save_new_order, save_order_notes
from retail_pos.payment import PaymentSession
from retail_pos.payment_modal import PaymentModal
from retail_pos.printer import check_printer_dependencies, print_sale_receipt
from retail_pos.rendering import format_cart_line, format_page_indicator, format_product_row, format_summary
from retail_pos.settlement import SettledSale, TransactionSettler

log = logging.getLogger(__name__)


class PosApp(App):
    """A Textual app for direct sales and order editing over one cart."""

    TITLE = "Retail POS"
    SUB_TITLE = "Direct Sale"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #catalog-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #cart-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    #results {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #summary {
        border: tall $success;
        padding: 0 1;
        height: 5;
    }

    #status-bar {
        height: 2;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    search_text = reactive("")
    notes_text = reactive("")
    selected_index = reactive(0)
    cart_selected_index = reactive(None)

    BINDINGS = [
        ("up", "move_product(-1)", "Previous product"),
        ("down", "move_product(1)", "Next product"),
        ("enter", "confirm", "Add / search"),
        ("backspace", "backspace_input", "Delete char"),
        Binding("ctrl+s", "save_order", "Save order", priority=True),
        ("ctrl+r", "retry_search", "Retry search"),
        ("ctrl+c", "cancel_input", "Exit input"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        client: BackOfficeClient,
        mode: str = "sales",
        order_id: str | None = None,
        print_receipts: bool = True,
    ) -> None:
        super().__init__()
        if mode not in {"sales", "order"}:
            raise ValueError("mode must be 'sales' or 'order'")
        self.client = client
        self.mode = mode
        self.print_receipts = print_receipts
        self.cart: Cart = RemoteOrderCart(client, order_id) if order_id else LocalCart()
        self.catalog = CatalogBrowser(client, self.cart)
        self.settler = TransactionSettler(
            client,
            self.catalog,
            notice_seconds=SUCCESS_NOTICE_SECONDS,
            scheduler=self._schedule_notice,
        )
        self.settler.on_settled.append(self._on_settled)
        self.payment_session: PaymentSession | None = None
        self.payment_modal: PaymentModal | None = None
        self.system_status = ""
        self.printer_ready = False
        self._settle_scheduled = False
        if mode == "order":
            self.sub_title = "Order"

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="catalog-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")
                yield Static(id="page-indicator")
            with Vertical(id="cart-pane"):
                yield Static("Cart", id="cart-title", classes="pane-title")
                yield Static("(cart is empty)", id="cart-list")
                yield Static(id="summary")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        if self.mode == "sales" and self.print_receipts:
            self.printer_ready, msg = check_printer_dependencies()
            self.system_status = msg
            log.info("on_mount printer_status=%r", msg)
        self._refresh_all()
        self.run_worker(self._initial_load(), group="load")

    async def on_unmount(self) -> None:
        await self.client.aclose()

    async def _initial_load(self) -> None:
        if isinstance(self.cart, RemoteOrderCart):
            await self._cart_call(self.cart.load)
            if self.cart.order is not None:
                self.notes_text = self.cart.order.notes
        await self.catalog.on_mount()
        self._refresh_all()

    # ─── Keyboard ───────────────────────────────────────────────────────

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, PaymentModal):
            return

        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        if self.input_state == "search":
            self.search_text += event.character
            self._refresh_search_bar()
            event.stop()
            return

        if self.input_state == "notes":
            self.notes_text += event.character
            self._refresh_status()
            event.stop()
            return

        key = event.character
        handlers: dict[str, Callable[[], None]] = {
            "/": self._start_search,
            "j": lambda: self._move_cart_selection(1),
            "k": lambda: self._move_cart_selection(-1),
            "+": lambda: self._change_selected_quantity(1),
            "-": lambda: self._change_selected_quantity(-1),
            "d": self._remove_selected_line,
            "]": lambda: self._run(self.catalog.next_page),
            "[": lambda: self._run(self.catalog.previous_page),
            "c": lambda: self._run(self.catalog.reset_filters),
            "p": self._open_payment,
            "n": self._start_notes,
        }
        handler = handlers.get(key)
        if handler is None:
            return
        handler()
        event.stop()

    def action_move_product(self, delta: int) -> None:
        if isinstance(self.screen, PaymentModal) or self.input_state != "normal":
            return
        items = self.catalog.items
        if not items:
            self.selected_index = 0
            return
        self.selected_index = (self.selected_index + delta) % len(items)
        self._refresh_results()

    def action_confirm(self) -> None:
        if isinstance(self.screen, PaymentModal):
            return

        if self.input_state == "search":
            self.input_state = "normal"
            filters = ProductFilters(name=self.search_text)
            self.selected_index = 0
            self._run(lambda: self.catalog.search(1, filters))
            return

        if self.input_state == "notes":
            self.input_state = "normal"
            self._refresh_status()
            return

        items = self.catalog.items
        if not items or not (0 <= self.selected_index < len(items)):
            return
        product = items[self.selected_index]
        log.debug("add_selected product=%s", product.id)
        self._cart_task(lambda: self.catalog.on_select(product))

    def action_backspace_input(self) -> None:
        if isinstance(self.screen, PaymentModal):
            return
        if self.input_state == "search" and self.search_text:
            self.search_text = self.search_text[:-1]
            self._refresh_search_bar()
        elif self.input_state == "notes" and self.notes_text:
            self.notes_text = self.notes_text[:-1]
            self._refresh_status()

    def action_cancel_input(self) -> None:
        if isinstance(self.screen, PaymentModal):
            return
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self._refresh_all()

    def action_retry_search(self) -> None:
        if isinstance(self.screen, PaymentModal):
            return
        self._run(self.catalog.refresh)

    def action_save_order(self) -> None:
        if isinstance(self.screen, PaymentModal) or self.mode != "order":
            return
        self.run_worker(self._save_order(), group="order")

    # ─── Catalog and cart ───────────────────────────────────────────────

    def _start_search(self) -> None:
        self.input_state = "search"
        self.search_text = self.catalog.filters.name
        self._refresh_search_bar()

    def _start_notes(self) -> None:
        if self.mode != "order":
            return
        self.input_state = "notes"
        self._refresh_status()

    def _run(self, factory: Callable[[], Any]) -> None:
        if self.catalog.is_loading:
            log.debug("catalog_busy skip")
            return

        async def runner() -> None:
            self._refresh_all()
            await factory()
            if self.catalog.load_state is LoadState.ERROR:
                self.notify("Could not load products", severity="error")
            self._refresh_all()

        self.run_worker(runner(), group="catalog")

    def _cart_task(self, factory: Callable[[], Any]) -> None:
        async def runner() -> None:
            await self._cart_call(factory)
            self._refresh_all()

        self.run_worker(runner(), group="cart")

    async def _cart_call(self, factory: Callable[[], Any]) -> None:
        try:
            await factory()
        except PosError as exc:
            self.notify(exc.message, title=exc.code, severity="error")

    def _selected_line_id(self) -> str | None:
        lines = self.cart.lines
        if self.cart_selected_index is None or not (0 <= self.cart_selected_index < len(lines)):
            return None
        return lines[self.cart_selected_index].product_id

    def _move_cart_selection(self, delta: int) -> None:
        lines = self.cart.lines
        if not lines:
            return
        if self.cart_selected_index is None:
            self.cart_selected_index = 0 if delta > 0 else len(lines) - 1
        else:
            self.cart_selected_index = (self.cart_selected_index + delta) % len(lines)
        self._refresh_cart()

    def _change_selected_quantity(self, delta: int) -> None:
        product_id = self._selected_line_id()
        if product_id is None:
            return
        self._cart_task(lambda: self.cart.change_quantity(product_id, delta))

    def _remove_selected_line(self) -> None:
        product_id = self._selected_line_id()
        if product_id is None:
            return
        self._cart_task(lambda: self.cart.remove_line(product_id))

    async def _save_order(self) -> None:
        log.info("save_order_enter lines=%s", len(self.cart.lines))
        try:
            if isinstance(self.cart, RemoteOrderCart):
                await save_order_notes(self.client, self.cart, self.notes_text)
                self.system_status = "Order saved"
            else:
                order = await save_new_order(self.client, self.cart, self.notes_text)
                remote = self._switch_to_order(order.id)
                await self._cart_call(remote.load)
                self.system_status = f"Order created: {order.code}"
        except PosError as exc:
            self.notify(exc.message, title=exc.code, severity="error")
            log.warning("save_order_failed error=%r", exc)
        self._refresh_all()

    def _switch_to_order(self, order_id: str) -> RemoteOrderCart:
        remote = RemoteOrderCart(self.client, order_id)
        self.cart = remote
        self.catalog.cart = remote
        self.cart_selected_index = None
        return remote

    # ─── Payment ────────────────────────────────────────────────────────

    def _is_settling(self) -> bool:
        return self._settle_scheduled or self.settler.is_submitting

    def _open_payment(self) -> None:
        if self.mode != "sales":
            return
        if self.cart.is_empty or self._is_settling():
            return
        self.payment_session = PaymentSession()
        self.payment_modal = PaymentModal(
            self.payment_session,
            self.cart.summary().total,
            on_confirm=self._confirm_payment,
            is_submitting=self._is_settling,
        )
        self.push_screen(self.payment_modal, callback=self._on_payment_closed)

    def _on_payment_closed(self, _result: object = None) -> None:
        self.payment_modal = None
        self.payment_session = None
        self._refresh_all()

    def _confirm_payment(self) -> None:
        if self._is_settling() or self.payment_session is None:
            return
        self._settle_scheduled = True
        if self.payment_modal is not None:
            self.payment_modal.refresh_state()
        self.run_worker(self._settle(self.payment_session), group="settle")

    async def _settle(self, session: PaymentSession) -> None:
        log.info("submit_enter rows=%s method=%r", len(self.cart.lines), session.method.value)
        try:
            await self.settler.settle(self.cart, session)
        except PosError as exc:
            log.warning("submit_failed code=%s message=%r", exc.code, exc.message)
            self.notify(exc.message, title=exc.code, severity="error")
            if self.payment_modal is not None:
                self.payment_modal.show_error(exc.message)
        finally:
            self._settle_scheduled = False
            if self.payment_modal is not None:
                self.payment_modal.refresh_state()
        self.cart_selected_index = None
        self._refresh_all()

    def _on_settled(self, sale: SettledSale) -> None:
        if self.payment_modal is not None:
            self.payment_modal.dismiss(None)
        self.notify(f"Sale registered: {sale.code}", title="SALE_SUCCESS", timeout=SUCCESS_NOTICE_SECONDS)

        if not (self.print_receipts and self.printer_ready):
            return
        try:
            print_sale_receipt(sale)
        except Exception as exc:
            self.system_status = f"Sale {sale.code} registered but print failed: {exc}"
            log.warning("receipt_print_failed code=%s error=%r", sale.code, exc)
            return
        self.system_status = f"Sale {sale.code} printed"

    def _schedule_notice(self, delay: float, callback: Callable[[], None]) -> Any:
        def fire() -> None:
            callback()
            self._refresh_status()

        return self.set_timer(delay, fire)

    # ─── Rendering ──────────────────────────────────────────────────────

    def _refresh_all(self) -> None:
        self._refresh_search_bar()
        self._refresh_results()
        self._refresh_cart()
        self._refresh_status()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            start = max(0, selected - rows // 2)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "search":
            bar.update(Text(f"Search: {self.search_text}|", style="bold"))
            return
        name = self.catalog.filters.name
        hint = f"Filter: {name}  " if name else ""
        bar.update(f"{hint}/ search  c clear  [ ] page  Enter add")

    def _refresh_results(self) -> None:
        try:
            results_widget = self.query_one("#results", Static)
            page_widget = self.query_one("#page-indicator", Static)
        except NoMatches:
            return

        page_widget.update(format_page_indicator(self.catalog.pagination))
        items = self.catalog.items
        state = self.catalog.load_state
        if state is LoadState.LOADING and not items:
            results_widget.update("Loading products…")
            return
        if state is LoadState.ERROR and not items:
            results_widget.update(Text("Error loading products. Ctrl+R to retry.", style="#ffb3b3"))
            return
        if not items:
            results_widget.update("No products available")
            return

        if self.selected_index >= len(items):
            self.selected_index = 0

        start, end = self._window_bounds(len(items), self._visible_rows(results_widget), self.selected_index)
        lines = Text()
        if state is LoadState.ERROR:
            lines.append("Error refreshing products. Ctrl+R to retry.\n", style="#ffb3b3")
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_product_row(items[idx]))
        if end < len(items):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)

    def _refresh_cart(self) -> None:
        try:
            title = self.query_one("#cart-title", Static)
            cart_widget = self.query_one("#cart-list", Static)
            summary_widget = self.query_one("#summary", Static)
        except NoMatches:
            return

        lines = self.cart.lines
        heading = f"Cart ({len(lines)})"
        if isinstance(self.cart, RemoteOrderCart) and self.cart.order is not None:
            order = self.cart.order
            heading = f"#{order.code} {order_status_label(order.status)}  {heading}"
        elif self.mode == "order":
            heading = f"#NEW-ORDER  {heading}"
        title.update(heading)
        summary_widget.update(format_summary(self.cart.summary()))

        if not lines:
            self.cart_selected_index = None
            cart_widget.update("(cart is empty)")
            return

        if self.cart_selected_index is not None and self.cart_selected_index >= len(lines):
            self.cart_selected_index = len(lines) - 1

        start, end = self._window_bounds(len(lines), self._visible_rows(cart_widget), self.cart_selected_index)
        text = Text()
        if start > 0:
            text.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                text.append("\n")
            pointer = "➤ " if idx == self.cart_selected_index else "  "
            text.append(pointer)
            text.append_text(format_cart_line(lines[idx]))
        if end < len(lines):
            text.append("\n⋮", style="dim")
        cart_widget.update(text)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        text = Text()
        if self.settler.success_message:
            text.append(self.settler.success_message, style="bold #ffffff on #2e8b57")
            text.append("  ")
        if self.input_state == "notes":
            text.append(f"Notes: {self.notes_text}|", style="bold")
        elif self.mode == "sales":
            text.append("p pay  j/k select line  +/- quantity  d remove", style="dim")
        else:
            text.append("n notes  Ctrl+S save order  j/k select line  +/- quantity  d remove", style="dim")
        if self.system_status:
            text.append(f"\n{self.system_status}")
        bar.update(text)
