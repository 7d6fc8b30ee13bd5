"""Async Airtable REST client for the room inventory table.

Reads are sequential: each page's `offset` token gates the next request. Backend error text is
kept verbatim on raised exceptions so operators can diagnose rejected formulas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.airtable.com/v0"

# Statuses Airtable uses for an unknown view or a formula that references a field the view hides.
_SCOPE_ERROR_STATUSES: frozenset[int] = frozenset({404, 422})


class AirtableError(RuntimeError):
    """Raised when Airtable rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AirtableScopeError(AirtableError):
    """Raised when a view-scoped read is rejected (unknown view or field within the view)."""


@dataclass(frozen=True)
class Record:
    """A row returned by Airtable: its record id plus the field map."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "fields": self.fields}


class AirtableClient:
    """Thin wrapper over the Airtable list-records and metadata endpoints."""

    def __init__(
            self,
            *,
            token: str,
            base_id: str,
            table: str,
            api_base: str = DEFAULT_API_BASE,
            timeout_s: float = 30.0,
            http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_id = base_id
        self.table = table
        self.api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))
        self._headers = {"Authorization": f"Bearer {token}"}

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""

        await self._client.aclose()

    def _table_url(self) -> str:
        return f"{self.api_base}/{self.base_id}/{quote(self.table, safe='')}"

    async def _get_json(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            resp = await self._client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            raise AirtableError(f"Airtable request failed: {exc}") from exc

        if resp.status_code >= 400:
            message = f"Airtable error: {resp.status_code} {resp.text}"
            if resp.status_code in _SCOPE_ERROR_STATUSES:
                raise AirtableScopeError(message, status_code=resp.status_code)
            raise AirtableError(message, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise AirtableError("Airtable returned a non-JSON response") from exc

    async def list_records(
            self,
            formula: str = "",
            *,
            view: str | None = None,
            max_records: int | None = None,
    ) -> list[Record]:
        """Read every page of records matching `formula` (empty means no filter)."""

        base_params: dict[str, str] = {}
        if view:
            base_params["view"] = view
        if formula:
            base_params["filterByFormula"] = formula
        if max_records is not None:
            base_params["maxRecords"] = str(max_records)

        records: list[Record] = []
        offset: str | None = None
        pages = 0
        while True:
            params = dict(base_params)
            if offset:
                params["offset"] = offset

            data = await self._get_json(self._table_url(), params)
            pages += 1
            for raw in data.get("records") or []:
                records.append(Record(id=str(raw.get("id", "")), fields=raw.get("fields") or {}))

            offset = data.get("offset")
            if not offset:
                break

        logger.debug("airtable read view=%s pages=%d rows=%d", view, pages, len(records))
        return records

    async def fetch_with_fallback(
            self,
            formula: str = "",
            *,
            view: str | None = None,
            max_records: int | None = None,
    ) -> list[Record]:
        """Read records scoped to `view`, retrying once over the whole table on a scope error.

        The retry restarts pagination from scratch. Any failure of the retry, or any non-scope
        failure of the first attempt, propagates to the caller.
        """

        if not view:
            return await self.list_records(formula, max_records=max_records)

        try:
            return await self.list_records(formula, view=view, max_records=max_records)
        except AirtableScopeError as exc:
            logger.warning("view-scoped read rejected view=%s; retrying unscoped: %s", view, exc)

        return await self.list_records(formula, max_records=max_records)

    async def list_fields(self) -> list[str]:
        """Return the field names of the configured table from the metadata API."""

        url = f"{self.api_base}/meta/bases/{self.base_id}/tables"
        data = await self._get_json(url, {})
        for table in data.get("tables") or []:
            if self.table in (table.get("name"), table.get("id")):
                return [str(f.get("name")) for f in table.get("fields") or []]
        raise AirtableError(f"Table not found in base metadata: {self.table}")
