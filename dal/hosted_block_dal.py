"""Record store backed by a hosted PostgREST table (e.g. a Supabase project).

Every call goes through a shared `httpx.AsyncClient`; the table is reached at
`<base_url>/rest/v1/<table>`. PostgreSQL unique violations come back as HTTP 409
with code 23505 and are raised as `UniqueViolationError`; transport failures and
5xx answers are raised as `StoreUnavailableError`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from models.block_record import WRITABLE_FIELDS, BlockRecord, next_timestamp
from utils.errors import BlockNotFoundError, BlockStoreError, StoreUnavailableError, UniqueViolationError

LOGGER = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"


def escape_ilike_term(query: str) -> str:
    """Build the quoted `ilike` operand matching `query` anywhere in a column.

    LIKE wildcards in the query are escaped so they match literally, `*` is
    PostgREST's wildcard, and the value is double-quoted so commas and
    parentheses do not break the `or=(...)` filter.
    """
    literal = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    quoted = literal.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{quoted}*"'


class HostedBlockDAL:
    """Async CRUD and search over a hosted `blocks` table."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str, table: str = "blocks") -> None:
        """
        Args:
            client: Shared HTTP client; its lifetime is owned by the application.
            base_url: Project base URL, e.g. "https://xyz.supabase.co".
            api_key: Key sent as `apikey` and bearer credentials.
            table: Table name exposed through the REST endpoint.
        """
        self._client = client
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    async def create(self, fields: Mapping[str, Any]) -> BlockRecord:
        payload = {col: fields.get(col) for col in WRITABLE_FIELDS}
        rows = await self._request(
            "POST",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return self._to_record(rows[0])

    async def get_all(self) -> List[BlockRecord]:
        rows = await self._request("GET", params={"select": "*", "order": "created_at.desc,id.desc"})
        return [self._to_record(r) for r in rows]

    async def get_by_id(self, block_id: int) -> Optional[BlockRecord]:
        rows = await self._request("GET", params={"select": "*", "id": f"eq.{block_id}"})
        return self._to_record(rows[0]) if rows else None

    async def update(self, block_id: int, fields: Mapping[str, Any]) -> BlockRecord:
        """Patch the given columns; `updated_at` is always refreshed.

        Raises:
            BlockNotFoundError: If the PATCH matched no row.
        """
        existing = await self.get_by_id(block_id)
        if existing is None:
            raise BlockNotFoundError(block_id)

        payload: Dict[str, Any] = {col: fields[col] for col in WRITABLE_FIELDS if col in fields}
        payload["updated_at"] = next_timestamp(existing.updated_at)
        rows = await self._request(
            "PATCH",
            params={"id": f"eq.{block_id}"},
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise BlockNotFoundError(block_id)
        return self._to_record(rows[0])

    async def delete(self, block_id: int) -> bool:
        rows = await self._request(
            "DELETE",
            params={"id": f"eq.{block_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    async def search(self, query: str) -> List[BlockRecord]:
        if not query:
            return await self.get_all()
        term = escape_ilike_term(query)
        rows = await self._request(
            "GET",
            params={
                "select": "*",
                "or": f"(code.ilike.{term},material.ilike.{term})",
                "order": "created_at.desc,id.desc",
            },
        )
        # ilike treats `*` as a wildcard; keep only literal substring matches.
        needle = query.casefold()
        records = [self._to_record(r) for r in rows]
        return [r for r in records if needle in (r.code or "").casefold() or needle in (r.material or "").casefold()]

    async def ping(self) -> None:
        """Raise `StoreUnavailableError` unless the table answers a one-row read."""
        try:
            await self._request("GET", params={"select": "id", "limit": "1"})
        except StoreUnavailableError:
            raise
        except BlockStoreError as exc:
            raise StoreUnavailableError(f"Database rejected health check: {exc}") from exc

    async def _request(
        self,
        method: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Send one request to the table endpoint and return the decoded rows."""
        try:
            response = await self._client.request(
                method,
                self._url,
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Hosted table %s %s failed: %s", method, self._url, exc)
            raise StoreUnavailableError("Database unreachable") from exc

        if response.is_success:
            if not response.content:
                return []
            data = response.json()
            return data if isinstance(data, list) else [data]

        detail = self._error_payload(response)
        if response.status_code == 409 or detail.get("code") == UNIQUE_VIOLATION_CODE:
            raise UniqueViolationError("Block code already exists")
        if response.status_code >= 500:
            LOGGER.error("Hosted table returned %s: %s", response.status_code, detail)
            raise StoreUnavailableError(f"Database returned HTTP {response.status_code}")
        LOGGER.error("Hosted table rejected %s request (%s): %s", method, response.status_code, detail)
        raise BlockStoreError(detail.get("message") or f"Database returned HTTP {response.status_code}")

    @staticmethod
    def _error_payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {"message": response.text}
        return data if isinstance(data, dict) else {"message": str(data)}

    @staticmethod
    def _to_record(row: Mapping[str, Any]) -> BlockRecord:
        return BlockRecord.from_mapping(row)
