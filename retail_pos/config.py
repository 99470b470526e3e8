"""Runtime configuration defaults for the back-office client and printing."""

from __future__ import annotations

import os
from decimal import Decimal

API_BASE_URL = os.environ.get("RETAIL_POS_API_BASE_URL", "http://localhost:8000/api").rstrip("/")
APPLICATION_NAME = os.environ.get("RETAIL_POS_APPLICATION_NAME", "retail-pos")
HTTP_TIMEOUT_SECONDS = 10.0

TAX_RATE = Decimal("0.18")
CURRENCY_SYMBOL = "S/."
CATALOG_PER_PAGE = 9
SUCCESS_NOTICE_SECONDS = 4

DEBUG_LOG_PATH = os.environ.get("RETAIL_POS_DEBUG_LOG", "/tmp/retail-pos-debug.log")

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_TAIL_SPACER_PX = 70
