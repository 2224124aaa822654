"""Async Airtable client for fetching and patching tool records."""

from __future__ import annotations

import logging
from typing import Any, Dict, List
from urllib.parse import quote

import httpx

from hubsync.errors import RemoteError
from hubsync.records import Record, encode_fields

logger = logging.getLogger("hub.airtable")

API_URL = "https://api.airtable.com/v0"
PAGE_SIZE = 100


def _error_message(resp: httpx.Response) -> str:
    message = resp.reason_phrase or f"Status {resp.status_code}"
    try:
        body = resp.json()
    except ValueError:
        return message
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("type") or message
    if isinstance(error, str) and error:
        return error
    return message


class AirtableClient:
    def __init__(
        self,
        api_key: str,
        base_id: str,
        api_url: str = API_URL,
        max_records: int = 50,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_id = base_id
        self._api_url = api_url.rstrip("/")
        self._max_records = max_records
        self._http = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _table_url(self, table: str) -> str:
        return f"{self._api_url}/{self._base_id}/{quote(table, safe='')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("airtable_transport_error method=%s url=%s error=%s", method, url, exc)
            raise RemoteError(str(exc) or exc.__class__.__name__) from exc
        if resp.status_code < 200 or resp.status_code >= 300:
            message = _error_message(resp)
            logger.warning("airtable_http_error method=%s status=%s message=%s", method, resp.status_code, message)
            raise RemoteError(message, status=resp.status_code)
        try:
            body = resp.json()
        except ValueError as exc:
            raise RemoteError("Invalid JSON from Airtable", status=resp.status_code) from exc
        if not isinstance(body, dict):
            raise RemoteError("Unexpected response body from Airtable", status=resp.status_code)
        return body

    async def fetch_records(self, table: str) -> List[Record]:
        records: List[Record] = []
        offset: str | None = None
        while len(records) < self._max_records:
            params: Dict[str, Any] = {
                "maxRecords": self._max_records,
                "pageSize": min(PAGE_SIZE, self._max_records),
            }
            if offset:
                params["offset"] = offset
            body = await self._request("GET", self._table_url(table), params=params)
            try:
                records.extend(Record.from_api(item) for item in body.get("records") or [])
            except ValueError as exc:
                raise RemoteError(f"Malformed record in response: {exc}") from exc
            offset = body.get("offset")
            if not offset:
                break
        logger.debug("airtable_fetch table=%s count=%s", table, len(records))
        return records[: self._max_records]

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Record:
        body = await self._request("POST", self._table_url(table), json={"fields": encode_fields(fields)})
        try:
            return Record.from_api(body)
        except ValueError as exc:
            raise RemoteError(f"Malformed record in response: {exc}") from exc

    async def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> None:
        url = f"{self._table_url(table)}/{quote(record_id, safe='')}"
        await self._request("PATCH", url, json={"fields": encode_fields(fields)})

    async def get_schema(self, table: str) -> List[dict]:
        url = f"{self._api_url}/meta/bases/{self._base_id}/tables"
        body = await self._request("GET", url)
        for item in body.get("tables") or []:
            if isinstance(item, dict) and item.get("name") == table:
                fields = []
                for f in item.get("fields") or []:
                    if not isinstance(f, dict) or not isinstance(f.get("name"), str):
                        continue
                    entry = {"name": f["name"], "type": f.get("type")}
                    if f.get("options") is not None:
                        entry["options"] = f["options"]
                    fields.append(entry)
                return fields
        return []

    async def aclose(self) -> None:
        await self._http.aclose()
