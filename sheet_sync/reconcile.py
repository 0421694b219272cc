"""
Optimistic local mutation followed by a delayed full refetch.

The script proxy never tells us whether a write landed, and the CSV export
lags behind the sheet automation. Every mutating action therefore applies
its change locally, sends the writes, waits a fixed settle delay and then
replaces the whole local list with a fresh read.

Two actions may overlap (for example an update still settling while a manual
refresh runs). Each refetch takes a version number when it starts, and a
result is only applied if no later-started refetch has been applied yet.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
import uuid
from dataclasses import replace
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from . import config, dispatcher
from .client import SheetClient
from .codec import DEFAULT_PLATFORMS, is_cancellation
from .dispatcher import PendingWrite
from .ingest import fetch_orders
from .schema import GENERATED_ID_PREFIX, Order, local_timestamp
from .session_store import SessionStore
from .users import require_permission

Notifier = Callable[[str, str], None]

MSG_REFRESHED = "Dữ liệu đã được làm mới"
MSG_UPDATED = "Cập nhật thành công!"
MSG_CANCELLED = "Hủy đơn thành công!"
MSG_DELETED = "Xóa đơn hàng thành công!"
MSG_SAVED = "Lưu đơn hàng thành công!"
MSG_WRITE_FAILED = "Không gửi được thay đổi lên Google Sheet"


def log_notifier(message: str, kind: str) -> None:
    if kind == "error":
        logging.error("%s", message)
    else:
        logging.info("%s", message)


def temporary_id() -> str:
    return f"{GENERATED_ID_PREFIX}new_{uuid.uuid4().hex[:8]}"


class OrderBook:
    """The shared in-memory order list, newest first."""

    def __init__(self, orders: Optional[Iterable[Order]] = None):
        self._lock = threading.Lock()
        self._orders: List[Order] = list(orders or [])
        self._loading = 0
        self._issued = 0
        self._applied = 0

    def snapshot(self) -> List[Order]:
        with self._lock:
            return list(self._orders)

    def find(self, ids: Iterable[str]) -> List[Order]:
        wanted = set(ids)
        with self._lock:
            return [order for order in self._orders if order.id in wanted]

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._loading > 0

    @contextlib.contextmanager
    def loading(self) -> Iterator[None]:
        with self._lock:
            self._loading += 1
        try:
            yield
        finally:
            with self._lock:
                self._loading -= 1

    def apply(self, ids: Iterable[str], change: Callable[[Order], Order]) -> List[Order]:
        """Replace matching orders in place and return their new values."""
        wanted = set(ids)
        changed: List[Order] = []
        with self._lock:
            for position, order in enumerate(self._orders):
                if order.id in wanted:
                    updated = change(order)
                    self._orders[position] = updated
                    changed.append(updated)
        return changed

    def remove(self, ids: Iterable[str]) -> List[Order]:
        wanted = set(ids)
        with self._lock:
            removed = [order for order in self._orders if order.id in wanted]
            self._orders = [order for order in self._orders if order.id not in wanted]
        return removed

    def prepend(self, orders: Sequence[Order]) -> None:
        with self._lock:
            self._orders = list(orders) + self._orders

    def begin_refetch(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    @property
    def issued_version(self) -> int:
        with self._lock:
            return self._issued

    def apply_refetch(self, version: int, orders: Sequence[Order]) -> bool:
        """Install a refetch result unless a later-started one already won."""
        with self._lock:
            if version <= self._applied:
                logging.debug("Discarding stale refetch v%d (applied v%d)", version, self._applied)
                return False
            self._applied = version
            self._orders = list(orders)
            return True


class Reconciler:
    """Runs the update, delete, create and refresh sequences against one OrderBook."""

    def __init__(
        self,
        client: Optional[SheetClient] = None,
        settings: Optional[config.SyncSettings] = None,
        book: Optional[OrderBook] = None,
        notify: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        store: Optional[SessionStore] = None,
    ):
        self.settings = settings or (client.settings if client else config.get_settings())
        self.client = client or SheetClient(self.settings)
        self.book = book or OrderBook()
        self.notify = notify or log_notifier
        self.sleep = sleep
        self.store = store
        self._pending: List[Tuple[int, PendingWrite]] = []
        self._pending_lock = threading.Lock()

    @property
    def platforms(self) -> Sequence[str]:
        if self.store is not None:
            return self.store.platforms
        return DEFAULT_PLATFORMS

    def _track(self, pending: PendingWrite) -> PendingWrite:
        with self._pending_lock:
            self._pending.append((self.book.issued_version, pending))
        return pending

    def _settle_before(self, version: int) -> None:
        with self._pending_lock:
            remaining = []
            for issued_at, pending in self._pending:
                if issued_at < version:
                    pending.settle()
                else:
                    remaining.append((issued_at, pending))
            self._pending = remaining

    def refresh(self, announce: bool = False) -> List[Order]:
        """Replace the local list with a fresh read of the sheet."""
        version = self.book.begin_refetch()
        with self.book.loading():
            orders = fetch_orders(self.client, self.platforms)
            if self.book.apply_refetch(version, orders):
                self._settle_before(version)
        if announce:
            self.notify(MSG_REFRESHED, "success")
        return self.book.snapshot()

    def update(
        self,
        ids: Sequence[str],
        status: Optional[str] = None,
        template_status: Optional[str] = None,
    ) -> bool:
        """Change status and/or template of the given orders, then reconcile."""
        if not status and not template_status:
            raise ValueError("Nothing to update: pass status and/or template_status.")

        def change(order: Order) -> Order:
            return replace(
                order,
                status=status or order.status,
                template_status=template_status or order.template_status,
            )

        changed = self.book.apply(ids, change)
        if not changed:
            logging.warning("Update requested for unknown order id(s): %s", ", ".join(ids))
            return False

        # A refetch would drop unsaved orders, so their changes stay local.
        if not any(order.is_persisted for order in changed):
            logging.info("Updated %d unsaved order(s) locally", len(changed))
            self.notify(MSG_UPDATED, "success")
            return True

        try:
            with self.book.loading():
                pending = self._track(dispatcher.update_orders(self.client, changed))

                if status and is_cancellation(status):
                    dispatcher.notify_deleted(self.client, changed)
                    message = MSG_CANCELLED
                elif len(changed) == 1:
                    dispatcher.notify_updated(self.client, changed[0])
                    message = MSG_UPDATED
                else:
                    dispatcher.notify_bulk_updated(self.client, changed)
                    message = MSG_UPDATED

                self.sleep(self.settings.update_settle_seconds)
                self.refresh()
        except Exception as exc:  # noqa: BLE001
            logging.error("Update of %d order(s) failed: %s", len(changed), exc)
            self.notify(f"{MSG_WRITE_FAILED}: {exc}", "error")
            return False

        if not pending:
            self.notify(f"{MSG_WRITE_FAILED}: {pending.detail}", "error")
            return False
        self.notify(message, "success")
        return True

    def set_status(self, order_id: str, status: str) -> bool:
        return self.update([order_id], status=status)

    def delete(self, ids: Sequence[str]) -> bool:
        """Remove orders locally and delete their sheet rows, if any."""
        removed = self.book.remove(ids)
        if not removed:
            logging.warning("Delete requested for unknown order id(s): %s", ", ".join(ids))
            return False

        row_indexes = [order.row_index for order in removed if order.is_persisted]
        if not row_indexes:
            logging.info("Removed %d unsaved order(s) locally", len(removed))
            return True

        try:
            with self.book.loading():
                pending = self._track(dispatcher.delete_rows(self.client, row_indexes, self.sleep))
                self.sleep(self.settings.delete_settle_seconds)
                self.refresh()
        except Exception as exc:  # noqa: BLE001
            logging.error("Delete of %d row(s) failed: %s", len(row_indexes), exc)
            self.notify(f"{MSG_WRITE_FAILED}: {exc}", "error")
            return False

        if not pending:
            self.notify(f"{MSG_WRITE_FAILED}: {pending.detail}", "error")
            return False
        self.notify(MSG_DELETED, "success")
        return True

    def create(self, orders: Sequence[Order]) -> List[Order]:
        """
        Append new orders to the sheet and show them locally right away.

        New rows get no refetch, so they carry no row index (and a
        temporary ``_gen_`` id when none was supplied) until the next
        refresh picks them up.
        """
        if self.store is not None:
            require_permission(self.store.current_user, "add_orders")

        prepared = [
            replace(
                order,
                id=order.id or temporary_id(),
                row_index=None,
                created_at=order.created_at or local_timestamp(),
            )
            for order in orders
        ]
        if not prepared:
            return []

        try:
            pending = self._track(dispatcher.add_orders(self.client, prepared))
            dispatcher.notify_created(self.client, prepared)
        except Exception as exc:  # noqa: BLE001
            logging.error("Create of %d order(s) failed: %s", len(prepared), exc)
            self.notify(f"{MSG_WRITE_FAILED}: {exc}", "error")
            return []

        if not pending:
            self.notify(f"{MSG_WRITE_FAILED}: {pending.detail}", "error")
            return []

        self.book.prepend(prepared)
        self.notify(MSG_SAVED, "success")
        return prepared
