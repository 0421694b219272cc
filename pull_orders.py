"""Download the order sheet and print it, newest row first."""

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List

from sheet_sync import SessionStore, SheetClient, fetch_orders, get_settings
from sheet_sync.codec import classify_status, format_items
from sheet_sync.schema import Order


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def filter_orders(orders: List[Order], status: str, platform: str) -> List[Order]:
    result = orders
    if status:
        result = [order for order in result if classify_status(order.status) == status]
    if platform:
        wanted = platform.lower()
        result = [order for order in result if order.platform.lower() == wanted]
    return result


def print_table(orders: List[Order]) -> None:
    for order in orders:
        row = "-" if order.row_index is None else str(order.row_index)
        print(
            f"{row:>5}  {order.id:<22} {order.created_at:<12} {order.platform:<9} "
            f"{order.status:<20} {order.total_amount:>10,}  {order.customer_name} | {format_items(order.items)}"
        )
    print(f"{len(orders)} order(s)")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download orders from the Google Sheet export.")
    parser.add_argument("--json", action="store_true", help="Print orders as JSON instead of a table.")
    parser.add_argument("--limit", type=int, default=0, help="Show at most this many orders (0 = all).")
    parser.add_argument(
        "--status",
        default="",
        help="Only show orders in this status category (pending, placed, printed, packed, sent, delivered, cancelled, returned, other).",
    )
    parser.add_argument("--platform", default="", help="Only show orders from this platform.")
    parser.add_argument(
        "--session-db",
        type=Path,
        default=None,
        help="Session database holding custom platform labels (default: SYNC_SESSION_DB or session.db).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(args.verbose)

    settings = get_settings()
    with SessionStore(args.session_db or settings.session_db_path) as store:
        platforms = store.platforms

    orders = fetch_orders(SheetClient(settings), platforms)
    orders = filter_orders(orders, args.status, args.platform)
    if args.limit > 0:
        orders = orders[: args.limit]

    if args.json:
        print(json.dumps([asdict(order) for order in orders], ensure_ascii=False, indent=2))
    else:
        print_table(orders)


if __name__ == "__main__":
    main()
