# services/record_store.py

import json
import logging
import os
import time
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request as UrlRequest, urlopen

from services.tables.registry import SCHEMA_REGISTRY
from services.tables.schema import Record

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0").rstrip("/")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID", "appMQ6QuquWCz2uNk")
AIRTABLE_TIMEOUT_SECONDS = int(os.getenv("AIRTABLE_TIMEOUT_SECONDS", "20"))
AIRTABLE_MAX_RETRIES = int(os.getenv("AIRTABLE_MAX_RETRIES", "3"))
AIRTABLE_RETRY_DELAY_SECONDS = float(os.getenv("AIRTABLE_RETRY_DELAY_SECONDS", "2"))


class RecordStoreError(Exception):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(body: bytes, fallback: str) -> str:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return fallback
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return fallback


class AirtableClient:
    def __init__(
        self,
        api_key: str,
        base_id: str = AIRTABLE_BASE_ID,
        base_url: str = AIRTABLE_API_URL,
        max_retries: int = AIRTABLE_MAX_RETRIES,
        retry_delay: float = AIRTABLE_RETRY_DELAY_SECONDS,
        timeout: int = AIRTABLE_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_id = base_id
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table_name: str, record_id: str | None = None) -> str:
        url = f"{self.base_url}/{self.base_id}/{quote(table_name, safe='')}"
        if record_id:
            url += f"/{quote(record_id, safe='')}"
        return url

    def _request(self, url: str, method: str = "GET", body: dict | None = None, fallback: str = "") -> dict:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        retries = 0
        while True:
            req = UrlRequest(url, data=data, headers=self._headers(), method=method)
            try:
                with urlopen(req, timeout=self.timeout) as resp:
                    return json.loads(resp.read().decode("utf-8"))
            except HTTPError as exc:
                if exc.code == 429:
                    retries += 1
                    if retries > self.max_retries:
                        raise RecordStoreError("Rate limited", status=429)
                    logger.warning(
                        "Airtable rate limited: %s %s (retry %s/%s)",
                        method,
                        url,
                        retries,
                        self.max_retries,
                    )
                    time.sleep(self.retry_delay)
                    continue
                message = _error_message(exc.read() or b"", fallback or f"HTTP {exc.code}")
                raise RecordStoreError(message, status=exc.code)
            except (URLError, TimeoutError, OSError) as exc:
                raise RecordStoreError(f"{fallback or 'Request failed'}: {exc}")
            except json.JSONDecodeError:
                raise RecordStoreError(f"{fallback or 'Request failed'}: invalid JSON response")

    # --------------------------------------------------
    # READ
    # --------------------------------------------------
    def fetch_table(
        self,
        table_name: str,
        filter_formula: str | None = None,
        max_records: int | None = None,
        view: str | None = None,
        sort: list[tuple[str, str]] | None = None,
    ) -> list[Record]:
        """
        Fetch every record of a table, following the `offset` cursor until
        Airtable stops returning one.
        """
        records: list[Record] = []
        offset = None
        while True:
            params: list[tuple[str, Any]] = []
            if offset:
                params.append(("offset", offset))
            if filter_formula:
                params.append(("filterByFormula", filter_formula))
            if max_records:
                params.append(("maxRecords", max_records))
            if view:
                params.append(("view", view))
            for i, (sort_field, direction) in enumerate(sort or []):
                params.append((f"sort[{i}][field]", sort_field))
                params.append((f"sort[{i}][direction]", direction))

            url = self._table_url(table_name)
            if params:
                url += "?" + urlencode(params)

            payload = self._request(url, fallback=f"Failed to fetch {table_name}")
            records.extend(Record.from_airtable(r) for r in payload.get("records") or [])
            offset = payload.get("offset")
            if not offset:
                break

        logger.info("AIRTABLE: fetched table=%s records=%s", table_name, len(records))
        return records

    # --------------------------------------------------
    # WRITE-BACK
    # --------------------------------------------------
    def create_record(self, table_name: str, fields: dict[str, Any]) -> Record:
        payload = self._request(
            self._table_url(table_name),
            method="POST",
            body={"fields": fields},
            fallback="Failed to create record",
        )
        return Record.from_airtable(payload)

    def update_record(self, table_name: str, record_id: str, fields: dict[str, Any]) -> Record:
        payload = self._request(
            self._table_url(table_name, record_id),
            method="PATCH",
            body={"fields": fields},
            fallback="Failed to update record",
        )
        return Record.from_airtable(payload)

    def test_connection(self) -> dict[str, Any]:
        for schema in SCHEMA_REGISTRY.values():
            try:
                self.fetch_table(schema.remote_name, max_records=1)
            except RecordStoreError as exc:
                logger.warning("AIRTABLE: connection test failed for %s: %s", schema.remote_name, exc.message)
                return {"success": False, "error": f'Table "{schema.remote_name}" - {exc.message}'}
        return {"success": True, "error": None}
