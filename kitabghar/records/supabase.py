"""Record store backed by a hosted Supabase project (PostgREST over HTTPS).

Rows are exchanged as JSON.  The like toggle calls the server-side function
``toggle_poem_like`` so the vote insert/delete and the counter update commit
in one transaction on the database, never as a client round trip.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from kitabghar.errors import RecordNotFound, StoreOperationFailed
from kitabghar.records.models import POEMS
from kitabghar.records.store import RecordStore, Row

logger = logging.getLogger(__name__)

TOGGLE_LIKE_FUNCTION = "toggle_poem_like"


def _eq(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if value is None:
        return "is.null"
    return f"eq.{value}"


class SupabaseRecordStore(RecordStore):
    """PostgREST client for the club's Supabase tables.

    Parameters
    ----------
    url:
        Project URL, e.g. ``https://xyz.supabase.co``.
    key:
        Service or anon key; sent as both ``apikey`` and bearer token.
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one with a
        mock transport).
    """

    def __init__(
        self,
        url: str,
        key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = url.rstrip("/") + "/rest/v1"
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        if client is None:
            client = httpx.AsyncClient(timeout=timeout)
        self._client = client
        self._headers = headers

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        table: str,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        prefer: str = "",
    ) -> httpx.Response:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}/{path}",
                params=params,
                json=json,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            logger.warning("%s %s failed (%s): %s", operation, table, exc.response.status_code, detail)
            raise StoreOperationFailed(operation, table, detail or str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", operation, table, exc)
            raise StoreOperationFailed(operation, table, str(exc)) from exc
        return response

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Row]:
        params = {"select": "*"}
        for column, value in (filters or {}).items():
            params[column] = _eq(value)
        if order_by:
            direction = "desc" if descending else "asc"
            params["order"] = f"{order_by}.{direction}.nullslast"
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("select", table, "GET", table, params=params)
        return response.json()

    async def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int:
        params = {"select": "id"}
        for column, value in (filters or {}).items():
            params[column] = _eq(value)
        response = await self._request(
            "count", table, "HEAD", table, params=params, prefer="count=exact"
        )
        # Content-Range: 0-9/42  or  */0
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        try:
            return int(total)
        except ValueError:
            raise StoreOperationFailed("count", table, f"bad content-range '{content_range}'") from None

    async def insert(self, table: str, row: Row) -> Row:
        response = await self._request(
            "insert", table, "POST", table, json=row, prefer="return=representation"
        )
        rows = response.json()
        if not rows:
            raise StoreOperationFailed("insert", table, "no row returned")
        return rows[0]

    async def update(self, table: str, record_id: str, patch: Row) -> Row:
        body = {k: v for k, v in patch.items() if k != "id"}
        response = await self._request(
            "update",
            table,
            "PATCH",
            table,
            params={"id": _eq(record_id)},
            json=body,
            prefer="return=representation",
        )
        rows = response.json()
        if not rows:
            raise RecordNotFound(table, record_id)
        return rows[0]

    async def delete(self, table: str, record_id: str) -> None:
        response = await self._request(
            "delete",
            table,
            "DELETE",
            table,
            params={"id": _eq(record_id)},
            prefer="return=representation",
        )
        if not response.json():
            raise RecordNotFound(table, record_id)

    async def toggle_like(self, target_id: str, voter_id: str) -> dict[str, Any]:
        response = await self._request(
            "toggle_like",
            POEMS,
            "POST",
            f"rpc/{TOGGLE_LIKE_FUNCTION}",
            json={"poem_id_param": target_id, "ip_address_param": voter_id},
        )
        data = response.json()
        if not isinstance(data, dict) or "likes_count" not in data:
            raise StoreOperationFailed("toggle_like", POEMS, "unexpected response from toggle_poem_like")
        return {"voted": bool(data.get("user_liked")), "count": int(data["likes_count"])}
