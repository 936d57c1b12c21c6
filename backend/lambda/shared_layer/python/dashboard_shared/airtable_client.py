"""dashboard_shared.airtable_client: Minimal Airtable REST client.

List calls follow the ``offset`` cursor until Airtable stops returning one;
single-record create/update/delete map onto the table endpoints. Any
non-2xx answer is raised immediately (``UpstreamFetchError`` for reads,
``UpstreamWriteError`` for writes) with the status and raw body. Nothing is
retried here.

The client holds no module-level state: build one per request with
``AirtableClient.from_settings`` and pass it to the aggregator/translator.
"""

from __future__ import annotations

import json
import logging
import ssl
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Iterator, List, Optional, Type

import certifi

from dashboard_shared.config import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS, MAX_PAGE_SIZE, Settings
from dashboard_shared.errors import UpstreamError, UpstreamFetchError, UpstreamWriteError

logger = logging.getLogger(__name__)

_SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())


class AirtableClient:
    def __init__(
        self,
        base_id: str,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.base_id = base_id
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.page_size = max(1, min(int(page_size), MAX_PAGE_SIZE))

    @classmethod
    def from_settings(cls, settings: Settings) -> "AirtableClient":
        return cls(
            settings.base_id,
            settings.token,
            api_url=settings.api_url,
            timeout_seconds=settings.timeout_seconds,
            page_size=settings.page_size,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, table: str, record_id: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.api_url}/{urllib.parse.quote(self.base_id, safe='')}/{urllib.parse.quote(table, safe='')}"
        if record_id:
            url = f"{url}/{urllib.parse.quote(record_id, safe='')}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        return url

    def _request(
        self,
        method: str,
        table: str,
        *,
        record_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        error_cls: Type[UpstreamError] = UpstreamFetchError,
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(
            self._url(table, record_id, params),
            method=method,
            data=data,
            headers=headers,
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds, context=_SSL_CONTEXT) as resp:
                status = int(getattr(resp, "status", 200) or 200)
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            logger.error("Airtable %s %s failed: %s %s", method, table, exc.code, body)
            raise error_cls(table, exc.code, body) from exc
        except urllib.error.URLError as exc:
            logger.error("Airtable %s %s unreachable: %s", method, table, exc.reason)
            raise error_cls(table, None, str(exc.reason)) from exc

        if not 200 <= status < 300:
            body = raw.decode("utf-8", errors="replace")
            logger.error("Airtable %s %s failed: %s %s", method, table, status, body)
            raise error_cls(table, status, body)

        try:
            parsed = json.loads(raw or b"{}")
        except json.JSONDecodeError as exc:
            raise error_cls(table, status, f"Invalid JSON response: {exc}") from exc
        if not isinstance(parsed, dict):
            raise error_cls(table, status, "Unexpected response shape (expected an object)")
        return parsed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def iter_records(self, table: str) -> Iterator[Dict[str, Any]]:
        """Yield every record of ``table``, one page at a time."""
        offset: Optional[str] = None
        pages = 0
        while True:
            params: Dict[str, Any] = {"pageSize": self.page_size}
            if offset:
                params["offset"] = offset
            data = self._request("GET", table, params=params)
            pages += 1
            for record in data.get("records") or []:
                yield record
            offset = data.get("offset")
            if not offset:
                break
        logger.debug("fetched %s page(s) from %s", pages, table)

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        return list(self.iter_records(table))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", table, payload={"fields": fields}, error_cls=UpstreamWriteError)

    def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            "PATCH", table, record_id=record_id, payload={"fields": fields}, error_cls=UpstreamWriteError,
        )

    def delete_record(self, table: str, record_id: str) -> Dict[str, Any]:
        return self._request("DELETE", table, record_id=record_id, error_cls=UpstreamWriteError)
