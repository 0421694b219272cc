"""Day and month counters derived from the n8n "sent orders" feed."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .client import SheetClient
from .codec import StatusRule, classify
from .dispatcher import fetch_stats_feed

SENT = "sent"
RETURNED = "returned"

# Returned/cancelled is checked first: "Đã gửi - khách trả hàng" is a return.
STATS_RULES: Tuple[StatusRule, ...] = (
    StatusRule(("trả", "returned", "hủy", "cancelled"), RETURNED),
    StatusRule(("đã gửi", "sent", "thành công", "delivered"), SENT),
)

DATE_KEYS = ("Ngày", "createdAt", "created_at", "date", "Date")
STATUS_KEYS = ("Trạng thái", "status", "Status")

_SHORT_DATE = re.compile(
    r"^(?:(?P<hour>\d{1,2}):(?P<minute>\d{2})\s+)?"
    r"(?P<day>\d{1,2})[-/](?P<month>\d{1,2})(?:[-/](?P<year>\d{4}))?$"
)


@dataclass
class StatsCounters:
    yesterday: int = 0
    today: int = 0
    last_month_sent: int = 0
    this_month_sent: int = 0
    last_month_returned: int = 0
    this_month_returned: int = 0


def infer_year(month: int, today: date) -> int:
    # December rows read in January belong to last year; anything else is
    # assumed to be the current year.
    if today.month == 1 and month == 12:
        return today.year - 1
    return today.year


def parse_feed_date(raw: Any, today: Optional[date] = None) -> Optional[date]:
    """Parse ``HH:mm dd-MM``, ``dd-MM`` (or ``/``) and fall back to dateutil."""
    if raw in (None, ""):
        return None
    today = today or date.today()
    text = str(raw).strip().strip("'\"")

    match = _SHORT_DATE.match(text)
    if match:
        day = int(match.group("day"))
        month = int(match.group("month"))
        year = int(match.group("year")) if match.group("year") else infer_year(month, today)
        try:
            return date(year, month, day)
        except ValueError:
            return None

    return _parse_loose_date(text, today)


# Two leap-year defaults differing in every field show which parts the text supplied.
_MARKER_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))


def _parse_loose_date(text: str, today: date) -> Optional[date]:
    dayfirst = not text[:4].isdigit()
    try:
        first, second = (date_parser.parse(text, dayfirst=dayfirst, default=default) for default in _MARKER_DEFAULTS)
    except (ValueError, OverflowError):
        logging.debug("Unrecognised feed date %r", text)
        return None

    if first.month != second.month or first.day != second.day:
        logging.debug("Feed date %r has no day or month", text)
        return None
    year = first.year if first.year == second.year else infer_year(first.month, today)
    try:
        return date(year, first.month, first.day)
    except ValueError:
        return None


def classify_stats_status(status: Any) -> Optional[str]:
    return classify(str(status or ""), STATS_RULES)


def _pick(record: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if record.get(key) not in (None, ""):
            return record[key]
    return None


def compute_stats(records: Iterable[Any], today: Optional[date] = None) -> StatsCounters:
    today = today or date.today()
    yesterday = today - timedelta(days=1)
    this_month = (today.year, today.month)
    previous = today - relativedelta(months=1)
    last_month = (previous.year, previous.month)

    counters = StatsCounters()
    for record in records:
        if not isinstance(record, dict):
            continue
        bucket = classify_stats_status(_pick(record, STATUS_KEYS))
        when = parse_feed_date(_pick(record, DATE_KEYS), today)
        if bucket is None or when is None:
            continue

        month_key = (when.year, when.month)
        if bucket == SENT:
            if when == today:
                counters.today += 1
            elif when == yesterday:
                counters.yesterday += 1
            if month_key == this_month:
                counters.this_month_sent += 1
            elif month_key == last_month:
                counters.last_month_sent += 1
        elif bucket == RETURNED:
            if month_key == this_month:
                counters.this_month_returned += 1
            elif month_key == last_month:
                counters.last_month_returned += 1
    return counters


def load_stats(client: SheetClient, today: Optional[date] = None) -> StatsCounters:
    records = fetch_stats_feed(client)
    logging.info("Loaded %d stats record(s)", len(records))
    return compute_stats(records, today)
