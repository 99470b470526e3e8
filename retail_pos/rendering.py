"""Rendering helpers for catalog, cart and totals panes."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text

from retail_pos.config import CURRENCY_SYMBOL
from retail_pos.constant import FULFILLMENT_LABELS
from retail_pos.models import CartLine, FulfillmentStatus, Pagination, Product, TransactionSummary


def format_money(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL} {amount:.2f}"


def fulfillment_style(status: FulfillmentStatus) -> str:
    """Return a consistent badge style for fulfillment tags."""
    if status is FulfillmentStatus.DISPATCHED:
        return "bold #0b1f0f on #5fbf72"
    if status is FulfillmentStatus.CANCELLED:
        return "bold #ffffff on #b23a48"
    return "bold #ffffff on #2f6db5"


def format_product_row(product: Product) -> Text:
    text = Text()
    text.append(product.name, style="bold")
    text.append(f"  SKU {product.sku}", style="dim")
    text.append(f"  stock {product.stock.current}", style="dim")
    brand = product.brand_name or product.brand
    if brand:
        text.append(f"  {brand}", style="italic")
    text.append("  ")
    text.append(product.price.label or format_money(product.price.amount), style="bold #6c63ff")
    return text


def format_cart_line(line: CartLine) -> Text:
    """Render a cart line with an optional fulfillment tag."""
    text = Text()
    if line.fulfillment_status is not None:
        text.append(FULFILLMENT_LABELS[line.fulfillment_status], style=fulfillment_style(line.fulfillment_status))
        text.append(" ")
    text.append(f"{line.quantity} x {line.name}")
    text.append(f"  {format_money(line.subtotal)}", style="bold")
    return text


def format_summary(summary: TransactionSummary) -> Text:
    text = Text()
    text.append(f"Subtotal   {format_money(summary.subtotal)}\n")
    text.append(f"IGV (18%)  {format_money(summary.tax)}\n")
    text.append(f"Total      {format_money(summary.total)}", style="bold")
    return text


def format_page_indicator(pagination: Pagination) -> str:
    total_pages = max(pagination.total_pages, 1)
    return f"Page {pagination.page}/{total_pages} ({pagination.total_items} products)"
