"""Thin wrapper around a requests session with timeouts and retry handling."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import requests

from . import config

OPAQUE_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}
JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class SheetClient:
    """
    HTTP access to the sheet export, the script proxy and the n8n webhooks.

    Reads retry with a linear backoff. Writes to the script proxy are sent
    once and their response is never inspected, so a returned call only
    means the request left this process.
    """

    def __init__(
        self,
        settings: Optional[config.SyncSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or config.get_settings()
        self.session = session or requests.Session()

    def _get(self, url: str) -> requests.Response:
        settings = self.settings
        attempts = max(1, settings.retry_attempts)

        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(url, timeout=settings.request_timeout)
                response.raise_for_status()
                return response
            except requests.RequestException as exc:
                last_error = exc
                logging.debug("GET %s failed (attempt %d/%d): %s", url, attempt, attempts, exc)
                if attempt == attempts:
                    break
                time.sleep(settings.retry_backoff_seconds * attempt)

        assert last_error is not None  # for mypy
        raise last_error

    def get_text(self, url: str) -> str:
        """Body decoded as UTF-8 whatever charset the server declared."""
        return self._get(url).content.decode("utf-8", errors="replace")

    def get_json(self, url: str) -> Any:
        return self._get(url).json()

    def post_opaque(self, url: str, payload: Any) -> None:
        """Fire-and-forget POST; raises only on transport failure."""
        if not url:
            raise requests.RequestException("Script proxy URL is not configured.")
        self.session.post(
            url,
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            headers=OPAQUE_HEADERS,
            timeout=self.settings.request_timeout,
        )

    def send_json(self, method: str, url: str, body: Any) -> requests.Response:
        response = self.session.request(
            method,
            url,
            data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
            headers=JSON_HEADERS,
            timeout=self.settings.request_timeout,
        )
        response.raise_for_status()
        return response
