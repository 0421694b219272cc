"""
Tests for the sheet row codec and webhook payload mapping.
"""

import unittest
from datetime import datetime

from sheet_sync.codec import (
    SHEET_COLUMNS,
    classify_status,
    decode_row,
    encode_row,
    encode_webhook_payload,
    format_items,
    is_cancellation,
    parse_currency,
    parse_platform,
)
from sheet_sync.schema import Order, OrderItem

NOW = datetime(2026, 3, 14, 9, 5)


def full_row(**overrides):
    row = [
        "DH001",
        "SPX123",
        "SPX",
        "08:30 12-03",
        "Nguyễn Văn A",
        "0904444037",
        "12 Lê Lợi, Q1",
        "Bọc ghế da",
        "Lazada Mall",
        "1.250.000 ₫",
        "Đã gửi",
        "Trước 12h",
        "Đơn hỏa tốc",
        "Chưa có mẫu",
    ]
    for index, value in overrides.items():
        row[int(index[1:])] = value
    return row


class TestDecodeRow(unittest.TestCase):

    def test_full_row(self):
        order = decode_row(full_row(), 2, now=NOW)

        self.assertEqual(order.id, "DH001")
        self.assertEqual(order.row_index, 2)
        self.assertEqual(order.platform, "Lazada")
        self.assertEqual(order.total_amount, 1250000)
        self.assertEqual(order.status, "Đã gửi")
        self.assertEqual(order.created_at, "08:30 12-03")
        self.assertEqual(len(order.items), 1)
        self.assertEqual(order.items[0].product_name, "Bọc ghế da")
        self.assertEqual(order.items[0].quantity, 1)
        self.assertEqual(order.items[0].price, 1250000)

    def test_missing_columns_get_defaults(self):
        order = decode_row(["DH002", "", "", ""], 5, now=NOW)

        self.assertEqual(order.customer_name, "")
        self.assertEqual(order.status, "Đã in bill")
        self.assertEqual(order.platform, "Shopee")
        self.assertEqual(order.delivery_deadline, "Trước 23h59p")
        self.assertEqual(order.template_status, "Có mẫu")
        self.assertEqual(order.note, "Đơn thường")
        self.assertEqual(order.created_at, "09:05 14-03")
        self.assertEqual(order.items[0].product_name, "Sản phẩm")
        self.assertEqual(order.total_amount, 0)

    def test_empty_id_gets_placeholder(self):
        order = decode_row(full_row(c0=""), 7, now=NOW)
        self.assertEqual(order.id, "_gen_7")
        self.assertTrue(order.has_generated_id)

    def test_blank_row_is_skipped(self):
        self.assertIsNone(decode_row(["", " ", ""], 3))
        self.assertIsNone(decode_row([], 3))

    def test_quotes_stripped_from_date(self):
        order = decode_row(full_row(c3="'10:00 01-02'"), 2, now=NOW)
        self.assertEqual(order.created_at, "10:00 01-02")


class TestParsers(unittest.TestCase):

    def test_currency(self):
        self.assertEqual(parse_currency("150.000đ"), 150000)
        self.assertEqual(parse_currency("abc"), 0)
        self.assertEqual(parse_currency(""), 0)
        self.assertEqual(parse_currency(None), 0)
        self.assertEqual(parse_currency("-200"), 200)

    def test_platform(self):
        self.assertEqual(parse_platform("TIKTOK shop"), "TikTok")
        self.assertEqual(parse_platform("fb page"), "Facebook")
        self.assertEqual(parse_platform("Zalo OA"), "Zalo")
        self.assertEqual(parse_platform("website"), "Shopee")
        self.assertEqual(parse_platform(None), "Shopee")

    def test_custom_platform_label(self):
        labels = ["Shopee", "Lazada", "Tiki"]
        self.assertEqual(parse_platform("tiki official", labels), "Tiki")
        # Facebook is not configured, so its keywords do not apply.
        self.assertEqual(parse_platform("facebook", labels), "Shopee")

    def test_status_classification(self):
        self.assertEqual(classify_status("Chờ xử lý"), "pending")
        self.assertEqual(classify_status("Đã in bill"), "printed")
        self.assertEqual(classify_status("Đã gửi"), "sent")
        self.assertEqual(classify_status("Đã giao thành công"), "delivered")
        self.assertEqual(classify_status("Đã hủy"), "cancelled")
        self.assertEqual(classify_status("Trả hàng"), "returned")
        self.assertEqual(classify_status("Đang xử lý"), "other")
        self.assertTrue(is_cancellation("ĐÃ HỦY"))
        self.assertFalse(is_cancellation("Đã gửi"))

    def test_cancel_and_return_win_over_progress_words(self):
        self.assertEqual(classify_status("Chờ hủy"), "cancelled")
        self.assertEqual(classify_status("Hủy - chờ hoàn"), "cancelled")
        self.assertEqual(classify_status("Đã gửi - khách hủy"), "cancelled")
        self.assertEqual(classify_status("Đã gửi - khách trả hàng"), "returned")
        self.assertTrue(is_cancellation("Chờ hủy"))


class TestEncode(unittest.TestCase):

    def test_format_items(self):
        self.assertEqual(format_items([OrderItem("P", "X", 1)]), "X")
        self.assertEqual(format_items([OrderItem("P", "X", 3)]), "X")
        self.assertEqual(
            format_items([OrderItem("P", "X", 2), OrderItem("P", "Y", 1)]),
            "X (SL: 2) + Y",
        )
        self.assertEqual(format_items([]), "")

    def test_encode_row_layout(self):
        order = decode_row(full_row(), 2, now=NOW)
        row = encode_row(order, now=NOW)

        self.assertEqual(len(row), len(SHEET_COLUMNS))
        self.assertEqual(row[0], "DH001")
        self.assertEqual(row[7], "Bọc ghế da")
        self.assertEqual(row[8], "Lazada")
        self.assertEqual(row[9], 1250000)
        self.assertEqual(row[13], "Chưa có mẫu")

    def test_placeholder_id_never_written(self):
        order = decode_row(full_row(c0=""), 4, now=NOW)
        self.assertEqual(order.id, "_gen_4")
        self.assertEqual(encode_row(order)[0], "")
        self.assertEqual(encode_webhook_payload(order)["Mã đơn hàng"], "")

    def test_encode_defaults(self):
        row = encode_row(Order(id="", status="", note="", template_status="", delivery_deadline=""), now=NOW)
        self.assertEqual(row[3], "09:05 14-03")
        self.assertEqual(row[8], "Shopee")
        self.assertEqual(row[9], 0)
        self.assertEqual(row[10:], ["Đã in bill", "Trước 23h59p", "Đơn thường", "Có mẫu"])

    def test_webhook_payload(self):
        order = Order(
            id="DH9",
            customer_phone="0904 444 037",
            platform="TikTok",
            items=[OrderItem("P", "X", 2), OrderItem("P", "Y", 1)],
            total_amount=300000,
            created_at="10:00 01-02",
        )
        payload = encode_webhook_payload(order)

        self.assertEqual(payload["Mã đơn hàng"], "DH9")
        self.assertEqual(payload["Nền tảng"], "tiktok")
        self.assertEqual(payload["Sản phẩm"], "X (SL: 2) + Y")
        self.assertEqual(payload["Sđt khách"], "0904 444 037")
        self.assertIsNone(payload["Mã vận chuyển"])
        self.assertEqual(payload["Giá"], 300000)
        self.assertEqual(payload["Trạng thái"], "Đã in bill")

    def test_webhook_numeric_phone_policy(self):
        payload = encode_webhook_payload(Order(id="A", customer_phone="0904-444-037"), numeric_phone=True)
        self.assertEqual(payload["Sđt khách"], 904444037)
        payload = encode_webhook_payload(Order(id="A"), numeric_phone=True)
        self.assertIsNone(payload["Sđt khách"])


if __name__ == "__main__":
    unittest.main()
