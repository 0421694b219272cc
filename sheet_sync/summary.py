"""Monthly revenue summary per platform and the staff commission policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from . import config

MONTH_KEY_FORMAT = "%Y-%m"


@dataclass
class SummaryRecord:
    """One platform's figures for one month (``month_key`` is ``YYYY-MM``)."""

    month_key: str
    platform: str
    total_revenue: float = 0
    total_orders: int = 0
    cancelled_orders: int = 0
    returned_orders: int = 0
    cancelled_amount: float = 0
    returned_amount: float = 0
    ad_spend: float = 0

    @property
    def real_revenue(self) -> float:
        return self.total_revenue - self.cancelled_amount - self.returned_amount

    @property
    def net_profit(self) -> float:
        return self.real_revenue - self.ad_spend


_CAMEL_KEYS = {
    "monthKey": "month_key",
    "totalRevenue": "total_revenue",
    "totalOrders": "total_orders",
    "cancelledOrders": "cancelled_orders",
    "returnedOrders": "returned_orders",
    "cancelledAmount": "cancelled_amount",
    "returnedAmount": "returned_amount",
    "adSpend": "ad_spend",
}


def record_from_dict(data: Dict[str, Any]) -> SummaryRecord:
    """Accept snake_case or the dashboard's camelCase keys."""
    values: Dict[str, Any] = {}
    for key, value in data.items():
        values[_CAMEL_KEYS.get(key, key)] = value

    numbers: Dict[str, Any] = {}
    for item in fields(SummaryRecord):
        if item.name in ("month_key", "platform") or item.name not in values:
            continue
        try:
            number = float(values[item.name] or 0)
        except (TypeError, ValueError):
            logging.warning("Ignoring non-numeric %s=%r", item.name, values[item.name])
            number = 0.0
        numbers[item.name] = int(number) if item.name.endswith("_orders") else number

    return SummaryRecord(
        month_key=str(values.get("month_key") or ""),
        platform=str(values.get("platform") or ""),
        **numbers,
    )


@dataclass(frozen=True)
class CommissionPolicy:
    ad_rate_ceiling: float = 20.0
    fixed_rate: float = 5.0
    headroom_share: float = 0.5

    @classmethod
    def from_settings(cls, settings: Optional[config.SyncSettings] = None) -> "CommissionPolicy":
        settings = settings or config.get_settings()
        return cls(
            ad_rate_ceiling=settings.commission_ad_rate_ceiling,
            fixed_rate=settings.commission_fixed_rate,
            headroom_share=settings.commission_headroom_share,
        )

    def rate(self, ad_rate: float) -> float:
        """Commission percentage for an ad-spend percentage."""
        if ad_rate < self.ad_rate_ceiling:
            return (self.ad_rate_ceiling - ad_rate) * self.headroom_share + self.fixed_rate
        return self.fixed_rate


def percentage(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def ad_rate(record: SummaryRecord) -> float:
    return percentage(record.ad_spend, record.total_revenue)


def commission(record: SummaryRecord, policy: CommissionPolicy) -> float:
    """Commission on one record's net profit; nothing when there is no profit."""
    if record.net_profit <= 0:
        return 0.0
    return record.net_profit * policy.rate(ad_rate(record)) / 100


@dataclass
class MonthlySummary:
    month_key: str
    total_revenue: float = 0
    total_orders: int = 0
    cancelled_orders: int = 0
    returned_orders: int = 0
    cancelled_amount: float = 0
    returned_amount: float = 0
    ad_spend: float = 0
    net_revenue: float = 0
    total_commission: float = 0

    @property
    def ad_rate(self) -> float:
        return percentage(self.ad_spend, self.total_revenue)

    @property
    def cancel_rate(self) -> float:
        return percentage(self.cancelled_orders, self.total_orders)

    @property
    def return_rate(self) -> float:
        return percentage(self.returned_orders, self.total_orders)


def previous_month_key(month_key: str) -> str:
    month = datetime.strptime(month_key, MONTH_KEY_FORMAT)
    return (month - relativedelta(months=1)).strftime(MONTH_KEY_FORMAT)


def summarise_month(records: Iterable[SummaryRecord], month_key: str, policy: CommissionPolicy) -> MonthlySummary:
    """
    Add up every platform record of ``month_key``.

    Commission is computed per record and then summed, so each platform's
    own ad rate decides its commission percentage.
    """
    summary = MonthlySummary(month_key)
    for record in records:
        if record.month_key != month_key:
            continue
        summary.total_revenue += record.total_revenue
        summary.total_orders += record.total_orders
        summary.cancelled_orders += record.cancelled_orders
        summary.returned_orders += record.returned_orders
        summary.cancelled_amount += record.cancelled_amount
        summary.returned_amount += record.returned_amount
        summary.ad_spend += record.ad_spend
        summary.net_revenue += record.net_profit
        summary.total_commission += commission(record, policy)
    return summary


@dataclass
class MonthComparison:
    current: MonthlySummary
    previous: MonthlySummary

    def _delta(self, name: str, denominator: str) -> Optional[float]:
        # No baseline when last month had nothing to divide by.
        if not getattr(self.previous, denominator):
            return None
        return getattr(self.current, name) - getattr(self.previous, name)

    @property
    def cancel_rate_change(self) -> Optional[float]:
        return self._delta("cancel_rate", "total_orders")

    @property
    def return_rate_change(self) -> Optional[float]:
        return self._delta("return_rate", "total_orders")

    @property
    def ad_rate_change(self) -> Optional[float]:
        return self._delta("ad_rate", "total_revenue")


def compare_with_previous(
    records: List[SummaryRecord],
    month_key: str,
    policy: Optional[CommissionPolicy] = None,
) -> MonthComparison:
    policy = policy or CommissionPolicy.from_settings()
    return MonthComparison(
        current=summarise_month(records, month_key, policy),
        previous=summarise_month(records, previous_month_key(month_key), policy),
    )
