"""Mapping between positional sheet rows, Order records and webhook payloads."""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .schema import (
    DEFAULT_DELIVERY_DEADLINE,
    DEFAULT_NOTE,
    DEFAULT_PRODUCT_NAME,
    DEFAULT_STATUS,
    DEFAULT_TEMPLATE_STATUS,
    SHEET_ITEM_ID,
    Order,
    OrderItem,
    is_generated_id,
    local_timestamp,
)

# Column order of the published sheet (A..N).
SHEET_COLUMNS: Tuple[str, ...] = (
    "id",
    "tracking_code",
    "carrier",
    "created_at",
    "customer_name",
    "customer_phone",
    "address",
    "product",
    "platform",
    "total_amount",
    "status",
    "delivery_deadline",
    "note",
    "template_status",
)

DEFAULT_PLATFORMS: Tuple[str, ...] = ("Shopee", "Lazada", "TikTok", "Zalo", "Facebook")


def normalise_text(value: Optional[str]) -> str:
    """NFC + casefold so keyword matching is stable for Vietnamese input."""
    if not value:
        return ""
    return unicodedata.normalize("NFC", str(value)).casefold()


@dataclass(frozen=True)
class PlatformRule:
    keywords: Tuple[str, ...]
    label: str

    def matches(self, text: str) -> bool:
        return any(normalise_text(keyword) in text for keyword in self.keywords)


_BUILTIN_PLATFORM_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Lazada": ("lazada",),
    "TikTok": ("tiktok",),
    "Zalo": ("zalo",),
    "Facebook": ("facebook", "fb"),
    "Shopee": ("shopee",),
}


def build_platform_rules(labels: Sequence[str] = DEFAULT_PLATFORMS) -> List[PlatformRule]:
    """Keyword table for the given platform labels; the first label is the fallback."""
    rules: List[PlatformRule] = []
    for label, keywords in _BUILTIN_PLATFORM_KEYWORDS.items():
        if label in labels:
            rules.append(PlatformRule(keywords, label))
    for label in labels:
        if label not in _BUILTIN_PLATFORM_KEYWORDS and label.strip():
            rules.append(PlatformRule((label.strip(),), label))
    return rules


def parse_platform(raw: Optional[str], labels: Sequence[str] = DEFAULT_PLATFORMS) -> str:
    fallback = labels[0] if labels else DEFAULT_PLATFORMS[0]
    text = normalise_text(raw)
    if not text:
        return fallback
    for rule in build_platform_rules(labels):
        if rule.matches(text):
            return rule.label
    return fallback


@dataclass(frozen=True)
class StatusRule:
    keywords: Tuple[str, ...]
    category: str


# Evaluated top to bottom; the first rule with a matching keyword wins.
# Cancelled and returned come first so "Chờ hủy" or "Đã gửi - khách trả"
# never land in a progress bucket.
STATUS_RULES: Tuple[StatusRule, ...] = (
    StatusRule(("hủy", "cancel"), "cancelled"),
    StatusRule(("trả", "return"), "returned"),
    StatusRule(("chờ", "pending"), "pending"),
    StatusRule(("lên đơn", "placed"), "placed"),
    StatusRule(("in bill", "printed"), "printed"),
    StatusRule(("đóng", "packed"), "packed"),
    StatusRule(("gửi", "sent"), "sent"),
    StatusRule(("thành công", "giao", "delivered"), "delivered"),
)

UNCLASSIFIED = "other"


def classify(text: Optional[str], rules: Iterable) -> Optional[str]:
    """Return the category of the first rule whose keywords occur in ``text``."""
    normalised = normalise_text(text)
    if not normalised:
        return None
    for rule in rules:
        if any(normalise_text(keyword) in normalised for keyword in rule.keywords):
            return rule.category
    return None


def classify_status(status: Optional[str]) -> str:
    return classify(status, STATUS_RULES) or UNCLASSIFIED


def is_cancellation(status: Optional[str]) -> bool:
    return classify_status(status) == "cancelled"


def parse_currency(raw: Optional[str]) -> int:
    digits = re.sub(r"\D", "", str(raw or ""))
    if not digits:
        return 0
    try:
        return int(digits)
    except ValueError:
        return 0


def _clean_date(raw: str) -> str:
    return raw.replace("'", "").replace('"', "").strip()


def _cell(cells: Sequence[str], index: int) -> str:
    if index >= len(cells):
        return ""
    value = cells[index]
    return str(value).strip() if value is not None else ""


def decode_row(
    cells: Sequence[str],
    row_index: int,
    platforms: Sequence[str] = DEFAULT_PLATFORMS,
    now: Optional[datetime] = None,
) -> Optional[Order]:
    """Build an Order from one sheet row. Returns ``None`` for an empty row."""

    if not cells or not any(str(cell or "").strip() for cell in cells):
        return None

    try:
        raw_id = _cell(cells, 0)
        price = parse_currency(_cell(cells, 9))
        created_raw = _clean_date(_cell(cells, 3))
        product_name = _cell(cells, 7) or DEFAULT_PRODUCT_NAME

        return Order(
            id=raw_id or f"_gen_{row_index}",
            row_index=row_index,
            tracking_code=_cell(cells, 1),
            carrier=_cell(cells, 2),
            created_at=created_raw or local_timestamp(now),
            customer_name=_cell(cells, 4),
            customer_phone=_cell(cells, 5),
            address=_cell(cells, 6),
            items=[OrderItem(SHEET_ITEM_ID, product_name, 1, price)],
            platform=parse_platform(_cell(cells, 8), platforms),
            total_amount=price,
            status=_cell(cells, 10) or DEFAULT_STATUS,
            delivery_deadline=_cell(cells, 11) or DEFAULT_DELIVERY_DEADLINE,
            note=_cell(cells, 12) or DEFAULT_NOTE,
            template_status=_cell(cells, 13) or DEFAULT_TEMPLATE_STATUS,
        )
    except (TypeError, ValueError) as exc:
        logging.warning("Skipping sheet row %s: %s", row_index, exc)
        return None


def format_items(items: Sequence[OrderItem]) -> str:
    """Join items into the single product cell, e.g. ``"X (SL: 2) + Y"``."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0].product_name
    parts = []
    for item in items:
        if item.quantity > 1:
            parts.append(f"{item.product_name} (SL: {item.quantity})")
        else:
            parts.append(item.product_name)
    return " + ".join(parts)


def _persisted_id(order: Order) -> str:
    return "" if is_generated_id(order.id) else (order.id or "")


def encode_row(order: Order, now: Optional[datetime] = None) -> List[object]:
    """Return the 14 cells written to the sheet for ``order``."""
    return [
        _persisted_id(order),
        order.tracking_code or "",
        order.carrier or "",
        order.created_at or local_timestamp(now),
        order.customer_name or "",
        order.customer_phone or "",
        order.address or "",
        format_items(order.items),
        order.platform or DEFAULT_PLATFORMS[0],
        order.total_amount or 0,
        order.status or DEFAULT_STATUS,
        order.delivery_deadline or DEFAULT_DELIVERY_DEADLINE,
        order.note or DEFAULT_NOTE,
        order.template_status or DEFAULT_TEMPLATE_STATUS,
    ]


def _phone_value(phone: str, numeric: bool):
    if not phone:
        return None
    if not numeric:
        return phone
    digits = re.sub(r"\D", "", phone)
    return int(digits) if digits else None


def encode_webhook_payload(
    order: Order,
    numeric_phone: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """Describe ``order`` with the field names the n8n workflows expect."""
    return {
        "Mã đơn hàng": _persisted_id(order),
        "Mã vận chuyển": order.tracking_code or None,
        "Đơn vị vận chuyển": order.carrier or "",
        "Ngày": order.created_at or local_timestamp(now),
        "Tên khách": order.customer_name or "",
        "Sđt khách": _phone_value(order.customer_phone or "", numeric_phone),
        "Địa chỉ": order.address or "",
        "Sản phẩm": format_items(order.items),
        "Nền tảng": (order.platform or DEFAULT_PLATFORMS[0]).lower(),
        "Giá": order.total_amount or 0,
        "Trạng thái": order.status or DEFAULT_STATUS,
        "Thời gian giao hàng": order.delivery_deadline or DEFAULT_DELIVERY_DEADLINE,
        "Note": order.note or DEFAULT_NOTE,
        "Mẫu": order.template_status or DEFAULT_TEMPLATE_STATUS,
    }
