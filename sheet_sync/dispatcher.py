"""Write intents for the script proxy and the n8n webhooks."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Sequence

import requests

from .client import SheetClient
from .codec import encode_row, encode_webhook_payload
from .schema import Order


class WriteOutcome(enum.Enum):
    UNKNOWN = "unknown"  # request left the process, result unobservable
    FAILED = "failed"  # transport error before the request was sent
    SETTLED = "settled"  # a later full refetch has been applied


@dataclass
class PendingWrite:
    action: str
    outcome: WriteOutcome
    detail: str = ""

    def __bool__(self) -> bool:
        return self.outcome is not WriteOutcome.FAILED

    def settle(self) -> None:
        if self.outcome is WriteOutcome.UNKNOWN:
            self.outcome = WriteOutcome.SETTLED


def _post_action(client: SheetClient, action: str, payload: Dict[str, Any]) -> PendingWrite:
    try:
        client.post_opaque(client.settings.script_url, payload)
    except requests.RequestException as exc:
        logging.error("Script proxy %s failed: %s", action, exc)
        return PendingWrite(action, WriteOutcome.FAILED, str(exc))
    return PendingWrite(action, WriteOutcome.UNKNOWN)


def add_orders(client: SheetClient, orders: Sequence[Order]) -> PendingWrite:
    rows = [encode_row(order) for order in orders]
    logging.debug("Sending %d new row(s) to script proxy", len(rows))
    return _post_action(client, "add", {"action": "add", "data": rows})


def update_orders(client: SheetClient, orders: Sequence[Order]) -> PendingWrite:
    updates = []
    for order in orders:
        if not order.is_persisted:
            logging.info("Order %s has no sheet row yet; skipping update", order.id)
            continue
        updates.append({"id": order.row_index, "data": encode_row(order)})

    if not updates:
        return PendingWrite("updateBatch", WriteOutcome.SETTLED, "nothing to update")
    logging.debug("Sending %d row update(s) to script proxy", len(updates))
    return _post_action(client, "updateBatch", {"action": "updateBatch", "data": updates})


def delete_rows(
    client: SheetClient,
    row_indexes: Iterable[int],
    sleep: Callable[[float], None] = time.sleep,
) -> PendingWrite:
    """
    Delete sheet rows one call at a time, bottom row first.

    Deleting a row shifts every row below it, so indexes must be processed
    in descending order for the later ones to stay valid.
    """
    ordered = sorted(row_indexes, reverse=True)
    if not ordered:
        return PendingWrite("delete", WriteOutcome.SETTLED, "nothing to delete")

    for row_index in ordered:
        pending = _post_action(client, "delete", {"action": "delete", "id": row_index})
        if not pending:
            pending.detail = f"row {row_index}: {pending.detail}"
            return pending
        sleep(client.settings.delete_interval_seconds)
    return PendingWrite("delete", WriteOutcome.UNKNOWN, f"{len(ordered)} row(s)")


def _send_webhook(client: SheetClient, method: str, url: str, orders: Sequence[Order], label: str) -> bool:
    if not url:
        logging.debug("No webhook configured for %s; skipping", label)
        return False
    numeric_phone = client.settings.webhook_numeric_phone
    body: List[Dict[str, Any]] = [encode_webhook_payload(order, numeric_phone) for order in orders]
    try:
        client.send_json(method, url, body)
    except requests.RequestException as exc:
        logging.warning("Webhook %s failed: %s", label, exc)
        return False
    logging.debug("Webhook %s delivered for %d order(s)", label, len(body))
    return True


def notify_created(client: SheetClient, orders: Sequence[Order]) -> bool:
    return _send_webhook(client, "POST", client.settings.create_webhook_url, orders, "create")


def notify_updated(client: SheetClient, order: Order) -> bool:
    return _send_webhook(client, "POST", client.settings.update_webhook_url, [order], "update")


def notify_bulk_updated(client: SheetClient, orders: Sequence[Order]) -> bool:
    return _send_webhook(client, "POST", client.settings.bulk_update_webhook_url, orders, "bulk-update")


def notify_deleted(client: SheetClient, orders: Sequence[Order]) -> bool:
    # The n8n delete workflow listens for DELETE with a JSON body.
    return _send_webhook(client, "DELETE", client.settings.delete_webhook_url, orders, "delete")


def unwrap_feed(payload: Any) -> List[Any]:
    """Accept a bare list or a ``{"data": [...]}`` / ``{"orders": [...]}`` wrapper."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("data", "orders"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def fetch_stats_feed(client: SheetClient) -> List[Any]:
    try:
        payload = client.get_json(client.settings.stats_webhook_url)
    except (requests.RequestException, ValueError) as exc:
        logging.error("Failed to fetch stats feed: %s", exc)
        return []
    return unwrap_feed(payload)
