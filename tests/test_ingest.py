"""
Tests for CSV parsing and the fail-soft sheet fetch.
"""

import unittest
from unittest import mock

import requests

from helpers import HEADER, csv_of, make_client, text_response
from sheet_sync.ingest import fetch_orders, parse_csv, split_fields

ROW_A = '"DH001","SPX1","SPX","08:30 12-03","An","0901","HN","Ghế","Shopee","100.000","Đã gửi","","",""'
ROW_B = '"","","","09:00 12-03","Bình","0902","HCM","Thảm","TikTok","200000","","","",""'


class TestSplitFields(unittest.TestCase):

    def test_quoted_comma_and_doubled_quote(self):
        self.assertEqual(split_fields('"a,""b""",c'), ['a,"b"', "c"])

    def test_unquoted_fields_are_trimmed(self):
        self.assertEqual(split_fields(" x , y ,z"), ["x", "y", "z"])

    def test_empty_fields_kept(self):
        self.assertEqual(split_fields("a,,c,"), ["a", "", "c", ""])


class TestParseCsv(unittest.TestCase):

    def test_row_index_follows_physical_lines(self):
        orders = parse_csv(csv_of(ROW_A, ROW_B))

        self.assertEqual([o.row_index for o in orders], [2, 3])
        self.assertEqual(orders[0].id, "DH001")
        self.assertEqual(orders[1].id, "_gen_3")

    def test_blank_lines_skip_without_renumbering(self):
        orders = parse_csv(csv_of(ROW_A, "", "   ", ROW_B))

        self.assertEqual(len(orders), 2)
        self.assertEqual(orders[1].row_index, 5)
        self.assertEqual(orders[1].id, "_gen_5")

    def test_n_rows_give_n_orders(self):
        rows = [f'"DH{n}","","","","Khách {n}","","","SP","","{n}000","","","",""' for n in range(1, 8)]
        orders = parse_csv(csv_of(*rows))

        self.assertEqual(len(orders), 7)
        self.assertEqual([o.row_index for o in orders], list(range(2, 9)))

    def test_header_only_and_empty(self):
        self.assertEqual(parse_csv(HEADER), [])
        self.assertEqual(parse_csv(""), [])

    def test_crlf_line_endings(self):
        orders = parse_csv(HEADER + "\r\n" + ROW_A + "\r\n")
        self.assertEqual(len(orders), 1)
        self.assertEqual(orders[0].template_status, "Có mẫu")

    def test_row_of_empty_cells_is_skipped(self):
        orders = parse_csv(csv_of(",,,,,,,,,,,,,", ROW_A))
        self.assertEqual([o.row_index for o in orders], [3])


class TestFetchOrders(unittest.TestCase):

    def test_newest_first(self):
        client = make_client([csv_of(ROW_A, ROW_B)])
        orders = fetch_orders(client)

        self.assertEqual([o.row_index for o in orders], [3, 2])
        self.assertTrue(orders[0].id.startswith("_gen_"))
        client.session.get.assert_called_once_with("https://sheet.test/export.csv", timeout=30.0)

    def test_body_decoded_as_utf8_without_charset(self):
        body = csv_of(ROW_A)
        response = text_response(body)
        # requests falls back to ISO-8859-1 for text/* replies without a charset.
        response.encoding = "ISO-8859-1"
        response.text = body.encode("utf-8").decode("iso-8859-1")
        client = make_client()
        client.session.get.side_effect = [response]

        orders = fetch_orders(client)

        self.assertEqual(orders[0].customer_name, "An")
        self.assertEqual(orders[0].status, "Đã gửi")
        self.assertEqual(orders[0].items[0].product_name, "Ghế")

    def test_http_error_gives_empty_list(self):
        client = make_client()
        client.session.get.side_effect = [text_response("nope", status=500)]
        self.assertEqual(fetch_orders(client), [])

    def test_network_error_gives_empty_list(self):
        client = make_client()
        client.session.get.side_effect = requests.ConnectionError("dns failure")
        self.assertEqual(fetch_orders(client), [])

    def test_retries_before_giving_up(self):
        client = make_client(retry_attempts=2, retry_backoff_seconds=0)
        client.session.get.side_effect = [requests.Timeout("slow"), text_response(csv_of(ROW_A))]

        with mock.patch("sheet_sync.client.time.sleep"):
            orders = fetch_orders(client)

        self.assertEqual(len(orders), 1)
        self.assertEqual(client.session.get.call_count, 2)


if __name__ == "__main__":
    unittest.main()
