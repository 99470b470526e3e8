"""Thermal receipt printing for settled sales."""

from __future__ import annotations

import os
from pathlib import Path

from retail_pos.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from retail_pos.constant import PAYMENT_METHOD_LABELS
from retail_pos.models import PaymentMethod
from retail_pos.rendering import format_money
from retail_pos.settlement import SettledSale

# A receipt row is a left label and an optional right-aligned amount.
# ``None`` stands for a horizontal rule between sections.
ReceiptRow = tuple[str, str]

_RULE_HEIGHT_PX = 12
_RULE_DASH_PX = 6
_ROW_EXTRA_PX = 12
_COLUMN_GAP_PX = 12
_FONT_OVERRIDE_ENV = "RETAIL_POS_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


def receipt_lines(sale: SettledSale) -> list[ReceiptRow | None]:
    """Rows of a sale ticket from header to tender details."""
    rows: list[ReceiptRow | None] = [(f"Sale {sale.code}", ""), None]
    for line in sale.lines:
        rows.append((f"{line.quantity} x {line.name}", format_money(line.subtotal)))
    rows.append(None)
    rows.append(("Subtotal", format_money(sale.summary.subtotal)))
    rows.append(("IGV 18%", format_money(sale.summary.tax)))
    rows.append(("TOTAL", format_money(sale.summary.total)))
    rows.append(None)
    rows.append((PAYMENT_METHOD_LABELS.get(sale.method, sale.method.value), ""))
    if sale.method is PaymentMethod.CASH:
        if sale.amount_received is not None:
            rows.append(("Received", format_money(sale.amount_received)))
        if sale.change is not None:
            rows.append(("Change", format_money(sale.change)))
    elif sale.reference:
        rows.append(("Ref", sale.reference))
    return rows


def resolve_printer_font_path() -> str:
    """
    Resolve a printer font path.

    Resolution order:
    1. RETAIL_POS_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks
    """
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates = [override, PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS]
    tried: list[str] = []
    for candidate in candidates:
        if not candidate or candidate in tried:
            continue
        tried.append(candidate)
        if Path(candidate).is_file():
            return candidate
    raise RuntimeError(f"No printer font found; set {_FONT_OVERRIDE_ENV}. Tried: {', '.join(tried)}")


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def _truncate(draw: object, text: str, font: object, max_width_px: int) -> str:
    if max_width_px <= 0:
        return ""
    if draw.textlength(text, font=font) <= max_width_px:
        return text
    while text and draw.textlength(f"{text}...", font=font) > max_width_px:
        text = text[:-1]
    return f"{text}..."


def _render_row(row: ReceiptRow, font: object) -> object:
    from PIL import Image, ImageDraw

    left, right = row
    height = PRINTER_FONT_SIZE + _ROW_EXTRA_PX
    img = Image.new("1", (PRINTER_WIDTH_PX, height), color=1)
    draw = ImageDraw.Draw(img)
    usable = PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX * 2

    right_width = int(draw.textlength(right, font=font)) if right else 0
    left_budget = usable - right_width - (_COLUMN_GAP_PX if right else 0)
    left = _truncate(draw, left, font, left_budget)

    top = draw.textbbox((0, 0), left or right, font=font)[1]
    y = _ROW_EXTRA_PX // 2 - top
    draw.text((PRINTER_LEFT_INDENT_PX, y), left, font=font, fill=0)
    if right:
        draw.text((PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX - right_width, y), right, font=font, fill=0)
    return img


def _render_rule() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _RULE_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    y = _RULE_HEIGHT_PX // 2
    for x in range(PRINTER_LEFT_INDENT_PX, PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX, _RULE_DASH_PX * 2):
        draw.line((x, y, x + _RULE_DASH_PX - 1, y), fill=0, width=2)
    return img


def print_sale_receipt(sale: SettledSale) -> None:
    """Print the ticket for a settled sale and cut the paper."""
    try:
        from escpos.printer import Usb
        from PIL import Image, ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)

    for row in receipt_lines(sale):
        printer.image(_render_rule() if row is None else _render_row(row, font))

    # Tail so the ticket clears the cutter.
    printer.image(Image.new("1", (PRINTER_WIDTH_PX, PRINTER_TAIL_SPACER_PX), color=1))
    printer.cut()
