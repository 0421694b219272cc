"""Order sync between the local order list, the Google Sheet and n8n."""

from .client import SheetClient  # noqa: F401
from .config import SyncSettings, get_settings  # noqa: F401
from .ingest import fetch_orders, parse_csv  # noqa: F401
from .reconcile import OrderBook, Reconciler  # noqa: F401
from .schema import Order, OrderItem, OrderStatus  # noqa: F401
from .session_store import SessionStore  # noqa: F401
from .stats import StatsCounters, load_stats  # noqa: F401
