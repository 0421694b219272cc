"""Print day and month counters from the n8n sent-orders feed."""

import argparse
import json
import logging
from dataclasses import asdict
from datetime import date

from sheet_sync import SheetClient, get_settings, load_stats


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show sent/returned order counters.")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference date as YYYY-MM-DD (default: today).",
    )
    parser.add_argument("--json", action="store_true", help="Print the counters as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(args.verbose)

    counters = load_stats(SheetClient(get_settings()), args.today)
    if args.json:
        print(json.dumps(asdict(counters), indent=2))
        return

    print(f"Đơn gửi hôm qua / hôm nay:      {counters.yesterday} / {counters.today}")
    print(f"Đơn gửi tháng trước / tháng này: {counters.last_month_sent} / {counters.this_month_sent}")
    print(f"Đơn hoàn tháng trước / tháng này: {counters.last_month_returned} / {counters.this_month_returned}")


if __name__ == "__main__":
    main()
