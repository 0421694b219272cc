"""Configuration helpers for the sheet sync layer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else default


def _env_flag(name: str, default: str = "0") -> bool:
    return str(_env(name, default)).strip().lower() in ("1", "true", "yes", "on")


SHEET_ID = _env("SHEET_ID", "1HARjln1eTmMPJo1WX6n0KHX-UtLst0PPB8LgBy4-5CQ")
SHEET_GID = _env("SHEET_GID", "1857148256")
N8N_BASE_URL = (_env("N8N_BASE_URL", "https://n8n.hienmauto.com/webhook") or "").rstrip("/")


def _csv_url() -> str:
    override = _env("SHEET_CSV_URL")
    if override:
        return override
    return f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/gviz/tq?tqx=out:csv&gid={SHEET_GID}"


def _hook(name: str, path: str) -> str:
    return _env(name, f"{N8N_BASE_URL}/{path}") or ""


@dataclass(frozen=True)
class SyncSettings:
    """Runtime settings for the read, write and webhook channels."""

    csv_url: str = _csv_url()
    script_url: str = _env("GOOGLE_SCRIPT_URL", "") or ""

    create_webhook_url: str = _hook("N8N_ADD_WEBHOOK_URL", "quan-ly-don-hang/them-don")
    update_webhook_url: str = _hook("N8N_UPDATE_ONE_WEBHOOK_URL", "quan-ly-don-hang/update-nhieu-don")
    bulk_update_webhook_url: str = _hook("N8N_UPDATE_BULK_WEBHOOK_URL", "quan-ly-don-hang/update-nhieu-don")
    delete_webhook_url: str = _hook("N8N_DELETE_WEBHOOK_URL", "quan-ly-don-hang/xoa-don")
    stats_webhook_url: str = _hook("N8N_STATS_WEBHOOK_URL", "quan-ly-don-hang/don-da-gui")
    users_webhook_url: str = _hook("N8N_USERS_WEBHOOK_URL", "user-info")
    add_user_webhook_url: str = _hook("N8N_ADD_USER_WEBHOOK_URL", "add-user")
    update_user_webhook_url: str = _hook("N8N_UPDATE_USER_WEBHOOK_URL", "update-user")
    delete_user_webhook_url: str = _hook("N8N_DELETE_USER_WEBHOOK_URL", "delete-user")

    request_timeout: float = float(_env("SYNC_TIMEOUT_SECONDS", "30"))
    retry_attempts: int = int(_env("SYNC_RETRY_ATTEMPTS", "3"))
    retry_backoff_seconds: float = float(_env("SYNC_RETRY_BACKOFF", "1.0"))

    # Empirical waits for the sheet automation to catch up before a refetch.
    update_settle_seconds: float = float(_env("SYNC_UPDATE_SETTLE_SECONDS", "2.0"))
    delete_settle_seconds: float = float(_env("SYNC_DELETE_SETTLE_SECONDS", "2.5"))
    delete_interval_seconds: float = float(_env("SYNC_DELETE_INTERVAL_SECONDS", "0.1"))

    webhook_numeric_phone: bool = _env_flag("WEBHOOK_NUMERIC_PHONE")
    session_db_path: str = _env("SYNC_SESSION_DB", "session.db") or "session.db"

    # Commission: fixed rate plus a share of the headroom below the ad-rate ceiling.
    commission_ad_rate_ceiling: float = float(_env("COMMISSION_AD_RATE_CEILING", "20"))
    commission_fixed_rate: float = float(_env("COMMISSION_FIXED_RATE", "5"))
    commission_headroom_share: float = float(_env("COMMISSION_HEADROOM_SHARE", "0.5"))


def get_settings() -> SyncSettings:
    """Return the active sync configuration."""

    return SyncSettings()
