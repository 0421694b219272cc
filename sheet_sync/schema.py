"""Typed structures shared across the sheet sync layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

GENERATED_ID_PREFIX = "_gen_"

DEFAULT_STATUS = "Đã in bill"
DEFAULT_DELIVERY_DEADLINE = "Trước 23h59p"
DEFAULT_NOTE = "Đơn thường"
DEFAULT_TEMPLATE_STATUS = "Có mẫu"
DEFAULT_PRODUCT_NAME = "Sản phẩm"
DEFAULT_PAYMENT_METHOD = "COD"
SHEET_ITEM_ID = "SHEET_ITEM"


class OrderStatus:
    """Labels the sheet uses most often. Status stays free text."""

    PENDING = "Chờ xử lý"
    PLACED = "Đã lên đơn"
    PROCESSING = "Đang xử lý"
    PRINTED = "Đã in bill"
    PACKED = "Đã đóng hàng"
    SENT = "Đã gửi"
    DELIVERED = "Đã giao thành công"
    CANCELLED = "Đã hủy"
    RETURNED = "Trả hàng"


def local_timestamp(now: Optional[datetime] = None) -> str:
    """Return ``HH:mm dd-MM`` for ``now`` (local time by default)."""
    now = now or datetime.now()
    return now.strftime("%H:%M %d-%m")


def is_generated_id(value: Optional[str]) -> bool:
    return bool(value) and str(value).startswith(GENERATED_ID_PREFIX)


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int = 1
    price: int = 0


@dataclass(frozen=True)
class Order:
    id: str
    row_index: Optional[int] = None
    tracking_code: str = ""
    carrier: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    address: str = ""
    status: str = DEFAULT_STATUS
    items: List[OrderItem] = field(default_factory=list)
    total_amount: int = 0
    created_at: str = ""
    platform: str = ""
    note: str = DEFAULT_NOTE
    delivery_deadline: str = DEFAULT_DELIVERY_DEADLINE
    template_status: str = DEFAULT_TEMPLATE_STATUS
    payment_method: str = DEFAULT_PAYMENT_METHOD

    @property
    def is_persisted(self) -> bool:
        """True once the order is known to live on a sheet row."""
        return self.row_index is not None

    @property
    def has_generated_id(self) -> bool:
        return is_generated_id(self.id)


def _to_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def order_from_dict(data: dict) -> Order:
    """Build an Order from a JSON object using the dataclass field names."""
    items = []
    for raw in data.get("items") or []:
        if not isinstance(raw, dict):
            continue
        items.append(
            OrderItem(
                product_id=str(raw.get("product_id") or "CUSTOM"),
                product_name=str(raw.get("product_name") or DEFAULT_PRODUCT_NAME),
                quantity=_to_int(raw.get("quantity"), 1),
                price=_to_int(raw.get("price")),
            )
        )

    total = data.get("total_amount")
    if total is None:
        total = sum(item.price * item.quantity for item in items)

    return Order(
        id=str(data.get("id") or ""),
        tracking_code=str(data.get("tracking_code") or ""),
        carrier=str(data.get("carrier") or ""),
        customer_name=str(data.get("customer_name") or ""),
        customer_phone=str(data.get("customer_phone") or ""),
        address=str(data.get("address") or ""),
        status=str(data.get("status") or DEFAULT_STATUS),
        items=items,
        total_amount=max(0, _to_int(total)),
        created_at=str(data.get("created_at") or ""),
        platform=str(data.get("platform") or ""),
        note=str(data.get("note") or DEFAULT_NOTE),
        delivery_deadline=str(data.get("delivery_deadline") or DEFAULT_DELIVERY_DEADLINE),
        template_status=str(data.get("template_status") or DEFAULT_TEMPLATE_STATUS),
        payment_method=str(data.get("payment_method") or DEFAULT_PAYMENT_METHOD),
    )
