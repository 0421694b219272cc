"""Shared fakes for the sheet sync tests."""

import json
from unittest import mock

import requests

from sheet_sync.client import SheetClient
from sheet_sync.config import SyncSettings

HEADER = "Mã đơn,Mã vận chuyển,ĐVVC,Ngày,Tên khách,SĐT,Địa chỉ,Sản phẩm,Nền tảng,Giá,Trạng thái,Giao,Note,Mẫu"


def make_settings(**overrides) -> SyncSettings:
    values = dict(
        csv_url="https://sheet.test/export.csv",
        script_url="https://script.test/exec",
        create_webhook_url="https://n8n.test/them-don",
        update_webhook_url="https://n8n.test/update-one",
        bulk_update_webhook_url="https://n8n.test/update-bulk",
        delete_webhook_url="https://n8n.test/xoa-don",
        stats_webhook_url="https://n8n.test/don-da-gui",
        users_webhook_url="https://n8n.test/user-info",
        add_user_webhook_url="https://n8n.test/add-user",
        update_user_webhook_url="https://n8n.test/update-user",
        delete_user_webhook_url="https://n8n.test/delete-user",
        retry_attempts=1,
        retry_backoff_seconds=0,
        update_settle_seconds=2.0,
        delete_settle_seconds=2.5,
        delete_interval_seconds=0.1,
    )
    values.update(overrides)
    return SyncSettings(**values)


def text_response(text: str, status: int = 200) -> mock.Mock:
    response = mock.Mock()
    response.status_code = status
    response.text = text
    response.content = text.encode("utf-8")
    response.encoding = "utf-8"
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    return response


def json_response(payload, status: int = 200) -> mock.Mock:
    response = text_response("", status)
    response.json.return_value = payload
    return response


def make_client(csv_texts=(), **overrides) -> SheetClient:
    """SheetClient over a mocked session; each GET returns the next CSV text."""
    session = mock.Mock(spec=requests.Session)
    session.get.side_effect = [text_response(text) for text in csv_texts]
    session.post.return_value = mock.Mock(status_code=0)
    session.request.return_value = json_response([])
    return SheetClient(make_settings(**overrides), session=session)


def csv_of(*rows: str) -> str:
    return "\n".join((HEADER,) + rows)


def posted_payloads(client: SheetClient):
    return [json.loads(call.kwargs["data"].decode("utf-8")) for call in client.session.post.call_args_list]
