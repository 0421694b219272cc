"""Print the monthly revenue summary and commission from exported records."""

import argparse
import json
import logging
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import List, Optional

from sheet_sync import get_settings
from sheet_sync.summary import CommissionPolicy, SummaryRecord, compare_with_previous, record_from_dict


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def load_records(path: Path) -> List[SummaryRecord]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Cannot read summary records from {path}: {exc}")
    if isinstance(payload, dict):
        payload = payload.get("data") or [payload]
    return [record_from_dict(item) for item in payload if isinstance(item, dict)]


def format_change(change: Optional[float]) -> str:
    return "-" if change is None else f"{change:+.2f}%"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarise a month of platform revenue records.")
    parser.add_argument("--file", type=Path, required=True, help="JSON list of monthly platform records.")
    parser.add_argument(
        "--month",
        default=date.today().strftime("%Y-%m"),
        help="Month to summarise as YYYY-MM (default: current month).",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(args.verbose)

    records = load_records(args.file)
    try:
        comparison = compare_with_previous(records, args.month, CommissionPolicy.from_settings(get_settings()))
    except ValueError as exc:
        raise SystemExit(f"Invalid --month {args.month!r}: {exc}")
    current = comparison.current

    if args.json:
        data = asdict(current)
        data.update(
            ad_rate=current.ad_rate,
            cancel_rate=current.cancel_rate,
            return_rate=current.return_rate,
            cancel_rate_change=comparison.cancel_rate_change,
            return_rate_change=comparison.return_rate_change,
            ad_rate_change=comparison.ad_rate_change,
        )
        print(json.dumps(data, indent=2))
        return

    print(f"Tháng {current.month_key}")
    print(f"Doanh thu:        {current.total_revenue:>15,.0f}")
    print(f"Chi phí quảng cáo: {current.ad_spend:>14,.0f}  ({current.ad_rate:.2f}%, {format_change(comparison.ad_rate_change)})")
    print(f"Doanh thu ròng:   {current.net_revenue:>15,.0f}")
    print(f"Hoa hồng:         {current.total_commission:>15,.0f}")
    print(f"Tỉ lệ hủy:  {current.cancel_rate:.2f}% ({format_change(comparison.cancel_rate_change)})")
    print(f"Tỉ lệ hoàn: {current.return_rate:.2f}% ({format_change(comparison.return_rate_change)})")


if __name__ == "__main__":
    main()
