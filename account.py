"""Log in to the dashboard user directory and manage the local session."""

import argparse
import getpass
import logging
from pathlib import Path
from typing import Any, Dict, List

from sheet_sync import SessionStore, SheetClient, get_settings
from sheet_sync.exceptions import PermissionDenied
from sheet_sync.users import User, add_user, delete_user, fetch_users, login, logout, require_permission, update_user


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


USER_ADMIN_COMMANDS = ("users", "add-user", "update-user", "delete-user")


def parse_permission_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def run_user_admin(args: argparse.Namespace, store: SessionStore) -> None:
    client = SheetClient(get_settings())

    if args.command == "users":
        for user in fetch_users(client):
            state = "active" if user.is_active else "inactive"
            print(f"{user.username:<16} {user.role:<8} {state:<8} {user.full_name}")
        return

    if args.command == "add-user":
        user = User(
            username=args.username,
            password=args.password or getpass.getpass("Password: "),
            full_name=args.full_name,
            email=args.email,
            phone=args.phone,
            role=args.role,
            permissions=parse_permission_list(args.permissions),
        )
        ok, message = add_user(client, user)
    elif args.command == "update-user":
        updates: Dict[str, Any] = {}
        for name in ("full_name", "email", "phone", "role", "password"):
            value = getattr(args, name)
            if value:
                updates[name] = value
        if args.permissions is not None:
            updates["permissions"] = parse_permission_list(args.permissions)
        if not updates:
            raise SystemExit("Nothing to update.")
        ok, message = update_user(client, args.username, updates, store)
    else:
        ok, message = delete_user(client, args.username)

    print(message)
    if not ok:
        raise SystemExit(1)


def run(args: argparse.Namespace, store: SessionStore) -> None:
    if args.command == "login":
        password = args.password or getpass.getpass("Password: ")
        user = login(SheetClient(get_settings()), store, args.username, password, remember=True)
        if user is None:
            raise SystemExit("Sai tên đăng nhập hoặc mật khẩu.")
        print(f"Xin chào, {user.full_name or user.username}")
    elif args.command == "logout":
        logout(store)
        print("Logged out.")
    elif args.command == "whoami":
        user = store.current_user
        if user is None:
            print("Not logged in.")
        else:
            print(f"{user.username} ({user.role}): {', '.join(user.permissions) or '<no permissions>'}")
    elif args.command == "roles":
        if args.add:
            _, message = store.add_role(args.add)
            print(message)
        if args.remove:
            _, message = store.delete_role(args.remove)
            print(message)
        print(", ".join(store.roles))
    elif args.command in USER_ADMIN_COMMANDS:
        require_permission(store.current_user, "view_settings_admin")
        run_user_admin(args, store)
    elif args.command == "platforms":
        if args.add and not store.add_platform(args.add):
            print(f"{args.add} already listed")
        colors = store.platform_colors
        for label in store.platforms:
            print(f"{label:<12} {colors.get(label, '')}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the dashboard session.")
    parser.add_argument(
        "--session-db",
        type=Path,
        default=None,
        help="Session database path (default: SYNC_SESSION_DB or session.db).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    login_cmd = sub.add_parser("login", help="Log in and remember the user.")
    login_cmd.add_argument("username")
    login_cmd.add_argument("--password", default="", help="Password (prompted when omitted).")

    sub.add_parser("logout", help="Forget the current user.")
    sub.add_parser("whoami", help="Show the current user.")

    roles = sub.add_parser("roles", help="List, add or remove custom roles.")
    roles.add_argument("--add", default="", help="Role to add.")
    roles.add_argument("--remove", default="", help="Role to remove.")

    platforms = sub.add_parser("platforms", help="List or add platform labels.")
    platforms.add_argument("--add", default="", help="Platform label to add.")

    sub.add_parser("users", help="List the user directory.")

    add_user_cmd = sub.add_parser("add-user", help="Add a user to the directory.")
    add_user_cmd.add_argument("username")
    add_user_cmd.add_argument("--password", default="", help="Password (prompted when omitted).")
    add_user_cmd.add_argument("--full-name", default="", help="Display name.")
    add_user_cmd.add_argument("--email", default="", help="Email address.")
    add_user_cmd.add_argument("--phone", default="", help="Phone number.")
    add_user_cmd.add_argument("--role", default="user", help="Role name (default: user).")
    add_user_cmd.add_argument("--permissions", default="", help="Comma-separated permissions.")

    update_user_cmd = sub.add_parser("update-user", help="Change fields of a directory user.")
    update_user_cmd.add_argument("username")
    update_user_cmd.add_argument("--password", default="", help="New password.")
    update_user_cmd.add_argument("--full-name", default="", help="New display name.")
    update_user_cmd.add_argument("--email", default="", help="New email address.")
    update_user_cmd.add_argument("--phone", default="", help="New phone number.")
    update_user_cmd.add_argument("--role", default="", help="New role name.")
    update_user_cmd.add_argument(
        "--permissions",
        default=None,
        help="Comma-separated permissions replacing the current ones.",
    )

    delete_user_cmd = sub.add_parser("delete-user", help="Remove a user from the directory.")
    delete_user_cmd.add_argument("username")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_logging(args.verbose)

    with SessionStore(args.session_db or get_settings().session_db_path) as store:
        try:
            run(args, store)
        except PermissionDenied as exc:
            raise SystemExit(f"Permission denied: {exc}")


if __name__ == "__main__":
    main()
