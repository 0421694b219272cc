"""Create, update, cancel or delete orders on the Google Sheet."""

import argparse
import json
import logging
from pathlib import Path
from typing import List

from sheet_sync import Reconciler, SessionStore, SheetClient, get_settings
from sheet_sync.exceptions import PermissionDenied
from sheet_sync.schema import Order, OrderStatus, order_from_dict


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def parse_id_selector(selector: str) -> List[str]:
    return [part.strip() for part in selector.split(",") if part.strip()]


def load_orders_file(path: Path) -> List[Order]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Cannot read orders from {path}: {exc}")
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise SystemExit("Orders file must contain a JSON object or a list of objects.")
    return [order_from_dict(item) for item in payload if isinstance(item, dict)]


def run(args: argparse.Namespace, store: SessionStore) -> bool:
    settings = get_settings()
    reconciler = Reconciler(SheetClient(settings), settings, store=store)

    if args.command == "add":
        orders = load_orders_file(args.file)
        if not orders:
            logging.info("No orders found in %s", args.file)
            return True
        created = reconciler.create(orders)
        for order in created:
            print(f"Queued {order.id} for {order.customer_name or '<no name>'}")
        return bool(created)

    # Row indexes are only known after a read of the sheet.
    reconciler.refresh()
    ids = parse_id_selector(args.ids)

    if args.command == "update":
        if not args.status and not args.template:
            raise SystemExit("Pass --status and/or --template.")
        return reconciler.update(ids, status=args.status or None, template_status=args.template or None)
    if args.command == "cancel":
        return reconciler.update(ids, status=OrderStatus.CANCELLED)
    if args.command == "delete":
        return reconciler.delete(ids)
    raise SystemExit(f"Unknown command {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Push order changes to the Google Sheet and n8n.")
    parser.add_argument(
        "--session-db",
        type=Path,
        default=None,
        help="Session database with the logged in user (default: SYNC_SESSION_DB or session.db).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Append new orders from a JSON file.")
    add.add_argument("--file", type=Path, required=True, help="JSON object or list of order objects.")

    update = sub.add_parser("update", help="Change status and/or template of orders.")
    update.add_argument("--ids", required=True, help="Comma-separated order ids.")
    update.add_argument("--status", default="", help="New status label.")
    update.add_argument("--template", default="", help="New template status.")

    cancel = sub.add_parser("cancel", help="Mark orders as cancelled.")
    cancel.add_argument("--ids", required=True, help="Comma-separated order ids.")

    delete = sub.add_parser("delete", help="Delete order rows from the sheet.")
    delete.add_argument("--ids", required=True, help="Comma-separated order ids.")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_logging(args.verbose)

    with SessionStore(args.session_db or get_settings().session_db_path) as store:
        try:
            ok = run(args, store)
        except PermissionDenied as exc:
            raise SystemExit(f"Permission denied: {exc}")
    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
