"""Entry point for the retail-pos Textual app."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from retail_pos.api import BackOfficeClient
from retail_pos.config import API_BASE_URL, DEBUG_LOG_PATH
from retail_pos.pos_app import PosApp


def setup_logging(path: str = DEBUG_LOG_PATH, level: int = logging.DEBUG) -> None:
    """Send package logs to a file so they never draw over the terminal UI."""
    logger = logging.getLogger("retail_pos")
    logger.setLevel(level)
    try:
        log_file = Path(path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # Logging must never stop the app from starting.
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="retail-pos", description="Point-of-sale terminal for the back office.")
    parser.add_argument("--api", default=API_BASE_URL, help="Back-office API base URL")
    parser.add_argument("--order", metavar="ORDER_ID", help="Edit an existing order instead of a direct sale")
    parser.add_argument("--new-order", action="store_true", help="Build a new order instead of a direct sale")
    parser.add_argument("--no-print", action="store_true", help="Do not print receipts")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging()
    mode = "order" if (args.order or args.new_order) else "sales"
    client = BackOfficeClient(base_url=args.api)
    app = PosApp(client, mode=mode, order_id=args.order, print_receipts=not args.no_print)
    app.run()


if __name__ == "__main__":
    main()
