"""Read the published sheet as CSV and turn it into Order records."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from .client import SheetClient
from .codec import DEFAULT_PLATFORMS, decode_row
from .schema import Order


def split_fields(line: str) -> List[str]:
    """Split one physical CSV line; quotes are removed and fields trimmed."""
    try:
        fields = next(csv.reader([line], skipinitialspace=True))
    except (csv.Error, StopIteration):
        logging.debug("Unparsable CSV line: %r", line)
        return []
    return [field.strip() for field in fields]


def parse_csv(
    text: str,
    platforms: Sequence[str] = DEFAULT_PLATFORMS,
    now: Optional[datetime] = None,
) -> List[Order]:
    """
    Parse the sheet export in sheet order.

    Line 0 is the header. Every physical line counts towards the row
    index, including blank ones, so ``row_index`` always equals the real
    sheet row (line index + 1).
    """
    lines = text.split("\n")
    if len(lines) < 2:
        return []

    orders: List[Order] = []
    for index in range(1, len(lines)):
        line = lines[index].strip()
        if not line:
            continue
        order = decode_row(split_fields(line), index + 1, platforms, now)
        if order is not None:
            orders.append(order)
    return orders


def fetch_orders(
    client: SheetClient,
    platforms: Sequence[str] = DEFAULT_PLATFORMS,
) -> List[Order]:
    """Fetch and parse the sheet, newest row first. Failures yield ``[]``."""
    url = client.settings.csv_url
    logging.debug("Fetching sheet CSV from %s", url)
    try:
        text = client.get_text(url)
        orders = parse_csv(text, platforms)
    except Exception as exc:  # noqa: BLE001
        logging.error("Failed to fetch sheet orders: %s", exc)
        return []

    orders.reverse()
    logging.info("Fetched %d order(s) from sheet", len(orders))
    return orders
