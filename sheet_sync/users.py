"""User directory, login and permission checks."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

import requests

from .client import SheetClient
from .exceptions import PermissionDenied

ALL_PERMISSIONS: Tuple[str, ...] = (
    "view_dashboard",
    "view_orders",
    "add_orders",
    "edit_orders",
    "view_customers",
    "view_tasco",
    "add_tasco",
    "edit_tasco",
    "delete_tasco",
    "view_summary",
    "edit_summary",
    "view_settings_personal",
    "view_settings_admin",
    "view_settings_roles",
)

ADMIN_ROLE = "admin"
MIN_PASSWORD_LENGTH = 6


@dataclass
class User:
    username: str
    full_name: str = ""
    email: str = ""
    phone: str = ""
    role: str = "user"
    permissions: List[str] = field(default_factory=list)
    is_active: bool = True
    password: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form without the password."""
        data = asdict(self)
        data.pop("password", None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            username=str(data.get("username") or ""),
            full_name=str(data.get("full_name") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            role=str(data.get("role") or "user"),
            permissions=parse_permissions(data.get("permissions")),
            is_active=bool(data.get("is_active", True)),
        )


def parse_permissions(raw: Any) -> List[str]:
    """Accept a list or the sheet's ``"['view_orders', 'add_orders']"`` string."""
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(item).strip() for item in raw if str(item).strip()]
    if isinstance(raw, str):
        cleaned = raw.strip()
        if cleaned.startswith("["):
            cleaned = cleaned[1:]
        if cleaned.endswith("]"):
            cleaned = cleaned[:-1]
        return [part.strip().strip("'\"") for part in cleaned.split(",") if part.strip().strip("'\"")]
    return []


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() == "TRUE"
    return value is True


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def user_from_sheet(record: Dict[str, Any]) -> User:
    """Map a user-directory row (capitalised sheet headers) to a User."""
    is_active = record.get("IsActive", record.get("isActive"))
    return User(
        username=str(_first(record, "Username", "username") or ""),
        password=_optional_str(_first(record, "Password", "password")),
        full_name=str(_first(record, "FullName", "fullName", "fullname") or ""),
        email=str(_first(record, "Email", "email") or ""),
        phone=str(_first(record, "Phone", "phone") or ""),
        role=str(_first(record, "Role", "role") or "user").lower(),
        permissions=parse_permissions(_first(record, "Permissions", "permissions")),
        is_active=_truthy(is_active),
    )


def fetch_users(client: SheetClient) -> List[User]:
    try:
        payload = client.get_json(client.settings.users_webhook_url)
    except (requests.RequestException, ValueError) as exc:
        logging.error("Failed to load user directory: %s", exc)
        return []

    records = payload if isinstance(payload, list) else (payload or {}).get("data") or []
    users = [user_from_sheet(record) for record in records if isinstance(record, dict)]
    return [user for user in users if user.username]


def login(client: SheetClient, store, username: str, password: str, remember: bool = False) -> Optional[User]:
    """Check credentials against the directory and record the session user."""
    for user in fetch_users(client):
        if user.username == username and user.password == password:
            if not user.is_active:
                logging.info("Login refused for inactive user %s", username)
                return None
            user.password = None
            store.set_current_user(user, remember)
            logging.info("Logged in as %s (%s)", user.username, user.role)
            return user
    logging.info("Login failed for %s", username)
    return None


def logout(store) -> None:
    store.set_current_user(None)


def has_permission(user: Optional[User], permission: str) -> bool:
    if user is None:
        return False
    if user.role == ADMIN_ROLE:
        return True
    return permission in user.permissions


def require_permission(user: Optional[User], permission: str) -> None:
    if not has_permission(user, permission):
        raise PermissionDenied(permission, user.username if user else "")


def check_password_complexity(password: str) -> Tuple[bool, Optional[str]]:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return False, f"Mật khẩu phải có ít nhất {MIN_PASSWORD_LENGTH} ký tự."
    return True, None


# --- directory management through the n8n user webhooks ---

RESERVED_ADMIN_USERNAME = "admin"
MSG_RESERVED = "Tài khoản Admin gốc được quản lý trong mã nguồn, không thể thay đổi tại đây."
MSG_NO_SUCH_USER = "Người dùng không tồn tại"
MSG_SERVER_ERROR = "Lỗi server n8n"

UPDATABLE_FIELDS = ("full_name", "email", "phone", "role", "permissions", "is_active", "password")


def format_permissions(permissions: List[str]) -> str:
    """The sheet stores permissions as ``"['view_orders', 'add_orders']"``."""
    if not permissions:
        return "[]"
    return "[" + ", ".join(f"'{permission}'" for permission in permissions) + "]"


def _phone_number(phone: str) -> int:
    cleaned = (phone or "").strip()
    return int(cleaned) if cleaned.isdigit() else 0


def _find_user(client: SheetClient, username: str) -> Optional[User]:
    for user in fetch_users(client):
        if user.username == username:
            return user
    return None


def _post_directory(client: SheetClient, url: str, record: Dict[str, Any], label: str) -> Tuple[bool, str]:
    try:
        client.send_json("POST", url, [record])
    except requests.HTTPError as exc:
        logging.error("User %s rejected by n8n: %s", label, exc)
        return False, MSG_SERVER_ERROR
    except requests.RequestException as exc:
        logging.error("User %s failed: %s", label, exc)
        return False, f"Lỗi kết nối: {exc}"
    logging.info("User %s sent for %s", label, record.get("Username"))
    return True, ""


def add_user(client: SheetClient, user: User) -> Tuple[bool, str]:
    if user.username == RESERVED_ADMIN_USERNAME:
        return False, "Tên đăng nhập này đã được sử dụng bởi hệ thống."
    if not user.username.strip():
        return False, "Tên đăng nhập không được để trống."
    ok, message = check_password_complexity(user.password or "")
    if not ok:
        return False, message or ""
    if _find_user(client, user.username) is not None:
        return False, "Tên đăng nhập đã tồn tại!"

    record = {
        "Username": user.username,
        "Password": user.password,
        "FullName": user.full_name,
        "Email": user.email,
        "Phone": _phone_number(user.phone),
        "Role": user.role,
        "Permissions": format_permissions(user.permissions),
        "IsActive": True,
    }
    ok, message = _post_directory(client, client.settings.add_user_webhook_url, record, "add")
    return (True, "Thêm tài khoản thành công") if ok else (False, message)


def update_user(client: SheetClient, username: str, updates: Dict[str, Any], store=None) -> Tuple[bool, str]:
    """
    Merge ``updates`` onto the directory record and send the full record.

    The password is only sent when it is part of ``updates``. When the
    updated user is the session user, the session copy is refreshed too.
    """
    if username == RESERVED_ADMIN_USERNAME:
        return False, MSG_RESERVED
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update user field(s): {', '.join(sorted(unknown))}")

    current = _find_user(client, username)
    if current is None:
        return False, MSG_NO_SUCH_USER
    merged = replace(current, **updates)

    record: Dict[str, Any] = {
        "Username": merged.username,
        "FullName": merged.full_name,
        "Email": merged.email,
        "Phone": merged.phone,
        "Role": merged.role,
        "Permissions": format_permissions(merged.permissions),
    }
    if updates.get("password"):
        record["Password"] = updates["password"]

    ok, message = _post_directory(client, client.settings.update_user_webhook_url, record, "update")
    if not ok:
        return False, message

    if store is not None:
        session_user = store.current_user
        if session_user is not None and session_user.username == username:
            store.refresh_current_user(replace(merged, password=None))
    return True, "Cập nhật thành công"


def delete_user(client: SheetClient, username: str) -> Tuple[bool, str]:
    if username == RESERVED_ADMIN_USERNAME:
        return False, "Không thể xóa tài khoản Admin gốc của hệ thống."
    user = _find_user(client, username)
    if user is None:
        return False, MSG_NO_SUCH_USER

    record = {
        "Username": user.username,
        "FullName": user.full_name,
        "Email": user.email,
        "Phone": _phone_number(user.phone),
        "Role": user.role,
        "Permissions": format_permissions(user.permissions),
        "IsActive": user.is_active,
    }
    ok, message = _post_directory(client, client.settings.delete_user_webhook_url, record, "delete")
    return (True, "Xóa tài khoản thành công") if ok else (False, message)
