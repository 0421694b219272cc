"""Local session state (current user, platforms, colours, roles) kept in SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .codec import DEFAULT_PLATFORMS
from .users import ADMIN_ROLE, User

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS session_values (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

DEFAULT_ROLES: Tuple[str, ...] = (ADMIN_ROLE, "user")
DEFAULT_PLATFORM_COLORS: Dict[str, str] = {
    "Shopee": "#EE4D2D",
    "Lazada": "#0F146D",
    "TikTok": "#000000",
    "Zalo": "#0068FF",
    "Facebook": "#1877F2",
}

KEY_CURRENT_USER = "current_user"
KEY_PLATFORMS = "platforms"
KEY_PLATFORM_COLORS = "platform_colors"
KEY_ROLES = "roles"


def initialise_database(db_path: Union[str, Path]) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    cur = conn.cursor()
    cur.execute(CREATE_TABLE_SQL)
    conn.commit()
    return conn


def ensure_list(value) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            if isinstance(parsed, list):
                return parsed
        except (TypeError, ValueError, json.JSONDecodeError):
            return []
    return []


class SessionStore:
    """
    Explicit load/save store for what the dashboard kept in browser storage.

    A remembered user is written to the database on ``save()``; a
    non-remembered one lives only as long as this object.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = db_path
        self._conn = initialise_database(db_path)
        self._values: Dict[str, Any] = {}
        self._session_user: Optional[User] = None

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SessionStore":
        self.load()
        return self

    def __exit__(self, *exc_info) -> None:
        self.save()
        self.close()

    def load(self) -> "SessionStore":
        cur = self._conn.cursor()
        cur.execute("SELECT key, value FROM session_values")
        values: Dict[str, Any] = {}
        for key, raw in cur.fetchall():
            try:
                values[key] = json.loads(raw)
            except json.JSONDecodeError:
                logging.warning("Ignoring corrupt session value for %s", key)
        self._values = values
        return self

    def save(self) -> None:
        cur = self._conn.cursor()
        cur.execute("DELETE FROM session_values")
        cur.executemany(
            "INSERT INTO session_values (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
            [(key, json.dumps(value, ensure_ascii=False)) for key, value in self._values.items()],
        )
        self._conn.commit()

    # --- current user ---

    @property
    def current_user(self) -> Optional[User]:
        if self._session_user is not None:
            return self._session_user
        data = self._values.get(KEY_CURRENT_USER)
        return User.from_dict(data) if isinstance(data, dict) else None

    def set_current_user(self, user: Optional[User], remember: bool = False) -> None:
        self._session_user = None
        self._values.pop(KEY_CURRENT_USER, None)
        if user is None:
            return
        if remember:
            self._values[KEY_CURRENT_USER] = user.to_dict()
        else:
            self._session_user = user

    def refresh_current_user(self, user: User) -> None:
        """Replace the session user, keeping whether it is remembered."""
        remembered = self._session_user is None and KEY_CURRENT_USER in self._values
        self.set_current_user(user, remember=remembered)

    # --- platforms ---

    @property
    def platforms(self) -> List[str]:
        stored = [str(p) for p in ensure_list(self._values.get(KEY_PLATFORMS)) if str(p).strip()]
        return stored or list(DEFAULT_PLATFORMS)

    def add_platform(self, label: str) -> bool:
        label = label.strip()
        platforms = self.platforms
        if not label or label in platforms:
            return False
        self._values[KEY_PLATFORMS] = platforms + [label]
        return True

    @property
    def platform_colors(self) -> Dict[str, str]:
        colors = dict(DEFAULT_PLATFORM_COLORS)
        stored = self._values.get(KEY_PLATFORM_COLORS)
        if isinstance(stored, dict):
            colors.update({str(k): str(v) for k, v in stored.items()})
        return colors

    def set_platform_color(self, label: str, color: str) -> None:
        stored = self._values.get(KEY_PLATFORM_COLORS)
        colors = dict(stored) if isinstance(stored, dict) else {}
        colors[label] = color
        self._values[KEY_PLATFORM_COLORS] = colors

    # --- roles ---

    @property
    def roles(self) -> List[str]:
        roles = list(DEFAULT_ROLES)
        for role in ensure_list(self._values.get(KEY_ROLES)):
            if role not in roles:
                roles.append(str(role))
        return roles

    def add_role(self, name: str) -> Tuple[bool, str]:
        name = name.strip()
        if not name:
            return False, "Tên vai trò không hợp lệ"
        roles = self.roles
        if name in roles:
            return False, "Vai trò đã tồn tại"
        self._values[KEY_ROLES] = [r for r in roles if r not in DEFAULT_ROLES] + [name]
        return True, "Thêm vai trò thành công"

    def delete_role(self, name: str) -> Tuple[bool, str]:
        if name in DEFAULT_ROLES:
            return False, "Không thể xóa vai trò mặc định"
        self._values[KEY_ROLES] = [r for r in self.roles if r not in DEFAULT_ROLES and r != name]
        return True, "Xóa vai trò thành công"
