"""
Ads Date Pull – Airtable REST client (async, httpx).

Airtable caps create/update/delete at 10 records per call; callers chunk (see storage.py).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from config import AIRTABLE_API_URL, AIRTABLE_BASE_ID, AIRTABLE_PAT, AIRTABLE_TIMEOUT_SECONDS
from errors import DestinationWriteError

logger = logging.getLogger(__name__)

MAX_RECORDS_PER_CALL = 10
PAGE_SIZE = 100


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class AirtableClient:
    """Thin async wrapper over one Airtable base. Use as ``async with AirtableClient(...) as store``."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        client: Optional[httpx.AsyncClient] = None,
        api_url: str = AIRTABLE_API_URL,
        timeout: float = AIRTABLE_TIMEOUT_SECONDS,
    ):
        self.base_id = base_id
        self.api_url = api_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def __aenter__(self) -> "AirtableClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, table: str, record_id: Optional[str] = None) -> str:
        url = f"{self.api_url}/{self.base_id}/{quote(table, safe='')}"
        return f"{url}/{record_id}" if record_id else url

    @staticmethod
    def _check(response: httpx.Response, action: str, table: str) -> Dict[str, Any]:
        if not response.is_success:
            body = _response_body(response)
            raise DestinationWriteError(
                f"Airtable {action} on {table} failed ({response.status_code}): {response.text[:500]}",
                status_code=response.status_code,
                body=body,
            )
        return response.json()

    async def list_records(
        self,
        table: str,
        max_records: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return every record of a table, following Airtable's offset pagination."""
        records: List[Dict[str, Any]] = []
        offset: Optional[str] = None
        while True:
            params: List[Any] = [("pageSize", PAGE_SIZE)]
            if max_records is not None:
                params.append(("maxRecords", max_records))
            for f in fields or ():
                params.append(("fields[]", f))
            if offset:
                params.append(("offset", offset))
            response = await self._client.get(self._url(table), params=params, headers=self._headers)
            data = self._check(response, "list", table)
            records.extend(data.get("records") or [])
            offset = data.get("offset")
            if not offset or (max_records is not None and len(records) >= max_records):
                break
        return records[:max_records] if max_records is not None else records

    async def delete_records(self, table: str, record_ids: Sequence[str]) -> List[str]:
        if len(record_ids) > MAX_RECORDS_PER_CALL:
            raise ValueError(f"Airtable deletes at most {MAX_RECORDS_PER_CALL} records per call")
        if not record_ids:
            return []
        params = [("records[]", rid) for rid in record_ids]
        response = await self._client.delete(self._url(table), params=params, headers=self._headers)
        data = self._check(response, "delete", table)
        return [r["id"] for r in data.get("records") or [] if r.get("deleted", True)]

    async def create_records(
        self,
        table: str,
        fields_list: Sequence[Dict[str, Any]],
        typecast: bool = True,
    ) -> List[Dict[str, Any]]:
        if len(fields_list) > MAX_RECORDS_PER_CALL:
            raise ValueError(f"Airtable creates at most {MAX_RECORDS_PER_CALL} records per call")
        if not fields_list:
            return []
        payload = {"records": [{"fields": f} for f in fields_list], "typecast": typecast}
        response = await self._client.post(self._url(table), json=payload, headers=self._headers)
        data = self._check(response, "create", table)
        return data.get("records") or []

    async def update_records(
        self,
        table: str,
        updates: Sequence[Dict[str, Any]],
        typecast: bool = False,
    ) -> List[Dict[str, Any]]:
        """Patch records given as [{"id": ..., "fields": {...}}]."""
        if len(updates) > MAX_RECORDS_PER_CALL:
            raise ValueError(f"Airtable updates at most {MAX_RECORDS_PER_CALL} records per call")
        if not updates:
            return []
        payload = {"records": list(updates), "typecast": typecast}
        response = await self._client.patch(self._url(table), json=payload, headers=self._headers)
        data = self._check(response, "update", table)
        return data.get("records") or []

    async def get_record(self, table: str, record_id: str) -> Dict[str, Any]:
        response = await self._client.get(self._url(table, record_id), headers=self._headers)
        return self._check(response, "get", table)


def get_airtable_client(client: Optional[httpx.AsyncClient] = None) -> AirtableClient:
    if not AIRTABLE_PAT or not AIRTABLE_BASE_ID:
        raise RuntimeError("Missing AIRTABLE_PAT (or AIRTABLE_API_KEY) or AIRTABLE_BASE_ID in .env")
    return AirtableClient(AIRTABLE_PAT, AIRTABLE_BASE_ID, client=client)
