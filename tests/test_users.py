"""
Tests for the user directory and permission checks.
"""

import json
import unittest

import requests

from helpers import json_response, make_client
from sheet_sync.exceptions import PermissionDenied
from sheet_sync.session_store import SessionStore
from sheet_sync.users import (
    User,
    add_user,
    check_password_complexity,
    delete_user,
    format_permissions,
    has_permission,
    login,
    logout,
    parse_permissions,
    require_permission,
    update_user,
    user_from_sheet,
)

DIRECTORY = [
    {
        "Username": "hien",
        "Password": "secret1",
        "FullName": "Hiền",
        "Role": "Admin",
        "Permissions": "",
        "IsActive": "TRUE",
    },
    {
        "Username": "kho",
        "Password": "123456",
        "FullName": "Nhân viên kho",
        "Role": "user",
        "Permissions": "['view_orders', 'edit_orders']",
        "IsActive": True,
    },
    {"Username": "cu", "Password": "abcdef", "Role": "user", "IsActive": "FALSE"},
]


def directory_client(payload=DIRECTORY):
    client = make_client()
    client.session.get.side_effect = [json_response(payload)]
    return client


class TestParsing(unittest.TestCase):

    def test_parse_permissions(self):
        self.assertEqual(parse_permissions("['view_orders', 'add_orders']"), ["view_orders", "add_orders"])
        self.assertEqual(parse_permissions('["a","b"]'), ["a", "b"])
        self.assertEqual(parse_permissions(["x", " ", "y"]), ["x", "y"])
        self.assertEqual(parse_permissions(""), [])
        self.assertEqual(parse_permissions(None), [])
        self.assertEqual(parse_permissions(42), [])

    def test_user_from_sheet(self):
        user = user_from_sheet(DIRECTORY[1])

        self.assertEqual(user.username, "kho")
        self.assertEqual(user.full_name, "Nhân viên kho")
        self.assertEqual(user.permissions, ["view_orders", "edit_orders"])
        self.assertTrue(user.is_active)
        self.assertEqual(user_from_sheet(DIRECTORY[0]).role, "admin")
        self.assertFalse(user_from_sheet(DIRECTORY[2]).is_active)

    def test_to_dict_drops_password(self):
        user = user_from_sheet(DIRECTORY[0])
        data = user.to_dict()

        self.assertNotIn("password", data)
        self.assertEqual(User.from_dict(data).username, "hien")


class TestLogin(unittest.TestCase):

    def setUp(self):
        self.store = SessionStore()

    def tearDown(self):
        self.store.close()

    def test_successful_login_sets_session_user(self):
        user = login(directory_client(), self.store, "kho", "123456")

        self.assertEqual(user.username, "kho")
        self.assertIsNone(user.password)
        self.assertEqual(self.store.current_user.username, "kho")

    def test_wrong_password_or_inactive(self):
        self.assertIsNone(login(directory_client(), self.store, "kho", "nope"))
        self.assertIsNone(login(directory_client(), self.store, "cu", "abcdef"))
        self.assertIsNone(self.store.current_user)

    def test_directory_unreachable(self):
        client = make_client()
        client.session.get.side_effect = requests.ConnectionError("offline")
        self.assertIsNone(login(client, self.store, "kho", "123456"))

    def test_logout(self):
        login(directory_client(), self.store, "hien", "secret1", remember=True)
        logout(self.store)
        self.assertIsNone(self.store.current_user)


def sent_records(client):
    return [
        (call.args[1], json.loads(call.kwargs["data"])) for call in client.session.request.call_args_list
    ]


class TestDirectoryManagement(unittest.TestCase):

    def test_format_permissions(self):
        self.assertEqual(format_permissions(["view_orders", "add_orders"]), "['view_orders', 'add_orders']")
        self.assertEqual(format_permissions([]), "[]")

    def test_add_user_payload(self):
        client = directory_client()
        user = User("moi", password="abcdef", full_name="Mới", phone="0904444037", permissions=["view_orders"])

        self.assertEqual(add_user(client, user), (True, "Thêm tài khoản thành công"))

        url, body = sent_records(client)[0]
        self.assertEqual(url, "https://n8n.test/add-user")
        self.assertEqual(
            body,
            [
                {
                    "Username": "moi",
                    "Password": "abcdef",
                    "FullName": "Mới",
                    "Email": "",
                    "Phone": 904444037,
                    "Role": "user",
                    "Permissions": "['view_orders']",
                    "IsActive": True,
                }
            ],
        )

    def test_add_user_rejections(self):
        client = directory_client()
        ok, message = add_user(client, User("kho", password="abcdef"))
        self.assertFalse(ok)
        self.assertEqual(message, "Tên đăng nhập đã tồn tại!")

        self.assertFalse(add_user(make_client(), User("admin", password="abcdef"))[0])
        self.assertFalse(add_user(make_client(), User("ngan", password="123"))[0])
        client.session.request.assert_not_called()

    def test_add_user_server_error(self):
        client = directory_client([])
        client.session.request.return_value = json_response({}, status=500)
        self.assertEqual(add_user(client, User("moi", password="abcdef")), (False, "Lỗi server n8n"))

    def test_update_merges_onto_directory_record(self):
        client = directory_client()

        ok, _ = update_user(client, "kho", {"role": "manager"})

        self.assertTrue(ok)
        url, body = sent_records(client)[0]
        self.assertEqual(url, "https://n8n.test/update-user")
        self.assertEqual(body[0]["FullName"], "Nhân viên kho")
        self.assertEqual(body[0]["Role"], "manager")
        self.assertEqual(body[0]["Permissions"], "['view_orders', 'edit_orders']")
        self.assertNotIn("Password", body[0])

    def test_update_sends_new_password_and_refreshes_session(self):
        client = directory_client()
        store = SessionStore()
        store.set_current_user(User("kho", full_name="Cũ"), remember=True)

        ok, _ = update_user(client, "kho", {"full_name": "Kho mới", "password": "newpass"}, store)

        self.assertTrue(ok)
        self.assertEqual(sent_records(client)[0][1][0]["Password"], "newpass")
        self.assertEqual(store.current_user.full_name, "Kho mới")
        self.assertIsNone(store.current_user.password)
        store.close()

    def test_update_rejections(self):
        self.assertFalse(update_user(make_client(), "admin", {"role": "user"})[0])
        self.assertEqual(update_user(directory_client(), "ghost", {"role": "user"}), (False, "Người dùng không tồn tại"))
        with self.assertRaises(ValueError):
            update_user(make_client(), "kho", {"username": "other"})

    def test_delete_user(self):
        client = directory_client()

        self.assertEqual(delete_user(client, "kho"), (True, "Xóa tài khoản thành công"))

        url, body = sent_records(client)[0]
        self.assertEqual(url, "https://n8n.test/delete-user")
        self.assertEqual(client.session.request.call_args.args[0], "POST")
        self.assertEqual(body[0]["Username"], "kho")
        self.assertEqual(body[0]["IsActive"], True)

    def test_delete_reserved_or_unreachable(self):
        self.assertFalse(delete_user(make_client(), "admin")[0])
        client = directory_client()
        client.session.request.side_effect = requests.ConnectionError("offline")
        ok, message = delete_user(client, "kho")
        self.assertFalse(ok)
        self.assertTrue(message.startswith("Lỗi kết nối"))


class TestPermissions(unittest.TestCase):

    def test_admin_has_everything(self):
        admin = User("hien", role="admin")
        self.assertTrue(has_permission(admin, "view_settings_roles"))

    def test_user_permissions(self):
        user = User("kho", permissions=["view_orders"])
        self.assertTrue(has_permission(user, "view_orders"))
        self.assertFalse(has_permission(user, "add_orders"))
        self.assertFalse(has_permission(None, "view_orders"))

    def test_require_permission(self):
        with self.assertRaises(PermissionDenied) as ctx:
            require_permission(User("kho"), "add_orders")
        self.assertEqual(ctx.exception.permission, "add_orders")
        self.assertIn("kho", str(ctx.exception))

        with self.assertRaises(PermissionDenied):
            require_permission(None, "add_orders")

    def test_password_complexity(self):
        self.assertEqual(check_password_complexity("123456"), (True, None))
        ok, message = check_password_complexity("12345")
        self.assertFalse(ok)
        self.assertIn("6", message)


if __name__ == "__main__":
    unittest.main()
