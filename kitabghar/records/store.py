"""Record store contract and the file-based JSON implementation.

The hosted deployment talks to Supabase (see ``kitabghar.records.supabase``);
development and tests use :class:`JsonRecordStore`, which keeps one JSON list
per table under ``~/.kitabghar/store/``.  Both raise
:class:`~kitabghar.errors.StoreOperationFailed` for anything that did not
commit.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from kitabghar.errors import RecordNotFound, StoreOperationFailed
from kitabghar.records.models import (
    ALL_TABLES,
    BOOK_REQUESTS,
    BOOKS,
    POEM_LIKES,
    POEMS,
    new_id,
    utc_now,
)

logger = logging.getLogger(__name__)

Row = dict[str, Any]

# child table -> (column, parent table)
_FOREIGN_KEYS: dict[str, tuple[str, str]] = {
    BOOK_REQUESTS: ("book_id", BOOKS),
    POEM_LIKES: ("poem_id", POEMS),
}


class RecordStore(ABC):
    """Async CRUD interface over the club's tables plus the atomic like toggle."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Row]:
        """Return rows of *table* matching every ``column == value`` filter."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert *row* and return it as stored (with id and timestamps)."""

    @abstractmethod
    async def update(self, table: str, record_id: str, patch: Row) -> Row:
        """Apply *patch* to one record and return the updated row."""

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """Permanently delete one record."""

    @abstractmethod
    async def toggle_like(self, target_id: str, voter_id: str) -> dict[str, Any]:
        """Atomically like or unlike a poem.

        Returns ``{"voted": bool, "count": int}`` where *count* is the poem's
        like counter after the toggle.
        """

    async def get(self, table: str, record_id: str) -> Row:
        rows = await self.select(table, filters={"id": record_id}, limit=1)
        if not rows:
            raise RecordNotFound(table, record_id)
        return rows[0]

    async def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int:
        return len(await self.select(table, filters=filters))

    async def aclose(self) -> None:
        """Release any network resources."""


class JsonRecordStore(RecordStore):
    """File-based record store.

    Storage path: ``~/.kitabghar/store/`` with one ``<table>.json`` file per
    table, each holding a list of row dicts.  Writes and the like toggle run
    under a single :class:`asyncio.Lock`; a write that spans two tables
    restores the first file if the second one fails.

    File access is plain blocking I/O inside the coroutines, which suits a
    single-process development or small-club deployment; use the Supabase
    store when the event loop must never block on disk.
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        if base_dir is None:
            self._base = Path.home() / ".kitabghar" / "store"
        else:
            self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, table: str, operation: str) -> Path:
        if table not in ALL_TABLES:
            raise StoreOperationFailed(operation, table, "unknown table")
        return self._base / f"{table}.json"

    def _read(self, table: str, operation: str = "select") -> list[Row]:
        path = self._path(table, operation)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            raise StoreOperationFailed(operation, table, str(exc)) from exc
        return data if isinstance(data, list) else []

    def _write(self, table: str, rows: list[Row], operation: str) -> None:
        path = self._path(table, operation)
        try:
            path.write_text(json.dumps(rows, indent=2, default=str))
        except OSError as exc:
            raise StoreOperationFailed(operation, table, str(exc)) from exc

    def _write_together(self, operation: str, *changes: tuple[str, list[Row]]) -> None:
        """Write several tables; if one write fails, put back the ones already written."""
        written: list[tuple[Path, Optional[str]]] = []
        try:
            for table, rows in changes:
                path = self._path(table, operation)
                try:
                    previous = path.read_text() if path.exists() else None
                except OSError as exc:
                    raise StoreOperationFailed(operation, table, str(exc)) from exc
                self._write(table, rows, operation)
                written.append((path, previous))
        except StoreOperationFailed:
            for path, previous in reversed(written):
                try:
                    if previous is None:
                        path.unlink(missing_ok=True)
                    else:
                        path.write_text(previous)
                except OSError:
                    logger.exception("Could not restore %s after a failed %s", path.name, operation)
            raise

    @staticmethod
    def _find(rows: list[Row], record_id: str) -> Optional[int]:
        for i, row in enumerate(rows):
            if row.get("id") == record_id:
                return i
        return None

    def _check_foreign_key(self, table: str, row: Row, operation: str) -> None:
        if table not in _FOREIGN_KEYS:
            return
        column, parent = _FOREIGN_KEYS[table]
        if self._find(self._read(parent), row.get(column)) is None:
            raise StoreOperationFailed(
                operation, table, f"{column} '{row.get(column)}' not present in {parent}"
            )

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
        rows = self._read(table)
        if filters:
            rows = [
                r for r in rows if all(r.get(k) == v for k, v in filters.items())
            ]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing
        if limit is not None:
            rows = rows[:limit]
        return [dict(r) for r in rows]

    async def insert(self, table: str, row: Row) -> Row:
        async with self._lock:
            rows = self._read(table, "insert")
            stored = dict(row)
            stored.setdefault("id", new_id())
            if self._find(rows, stored["id"]) is not None:
                raise StoreOperationFailed("insert", table, f"duplicate id '{stored['id']}'")
            if table == POEM_LIKES and any(
                r["poem_id"] == stored.get("poem_id")
                and r["ip_address"] == stored.get("ip_address")
                for r in rows
            ):
                raise StoreOperationFailed("insert", table, "duplicate vote")
            self._check_foreign_key(table, stored, "insert")

            now = utc_now()
            stored.setdefault("created_at", now)
            if table != POEM_LIKES:
                stored.setdefault("updated_at", now)
            rows.append(stored)
            self._write(table, rows, "insert")
            return dict(stored)

    async def update(self, table: str, record_id: str, patch: Row) -> Row:
        async with self._lock:
            rows = self._read(table, "update")
            idx = self._find(rows, record_id)
            if idx is None:
                raise RecordNotFound(table, record_id)
            changes = {k: v for k, v in patch.items() if k != "id"}
            merged = {**rows[idx], **changes}
            self._check_foreign_key(table, merged, "update")
            if table != POEM_LIKES:
                merged["updated_at"] = utc_now()
            rows[idx] = merged
            self._write(table, rows, "update")
            return dict(merged)

    async def delete(self, table: str, record_id: str) -> None:
        async with self._lock:
            rows = self._read(table, "delete")
            idx = self._find(rows, record_id)
            if idx is None:
                raise RecordNotFound(table, record_id)

            if table == BOOKS and any(
                r.get("book_id") == record_id for r in self._read(BOOK_REQUESTS, "delete")
            ):
                raise StoreOperationFailed(
                    "delete", table, "book is still referenced by book_requests"
                )
            if table == POEMS:
                likes = self._read(POEM_LIKES, "delete")
                kept = [r for r in likes if r.get("poem_id") != record_id]
                del rows[idx]
                self._write_together("delete", (POEM_LIKES, kept), (POEMS, rows))
                return

            del rows[idx]
            self._write(table, rows, "delete")

    async def toggle_like(self, target_id: str, voter_id: str) -> dict[str, Any]:
        async with self._lock:
            poems = self._read(POEMS, "toggle_like")
            idx = self._find(poems, target_id)
            if idx is None:
                raise RecordNotFound(POEMS, target_id)

            likes = self._read(POEM_LIKES, "toggle_like")
            existing = next(
                (
                    i
                    for i, r in enumerate(likes)
                    if r.get("poem_id") == target_id and r.get("ip_address") == voter_id
                ),
                None,
            )
            current = int(poems[idx].get("likes_count") or 0)
            if existing is None:
                likes.append(
                    {
                        "id": new_id(),
                        "poem_id": target_id,
                        "ip_address": voter_id,
                        "created_at": utc_now(),
                    }
                )
                voted, count = True, current + 1
            else:
                del likes[existing]
                voted, count = False, max(0, current - 1)

            poems[idx]["likes_count"] = count
            self._write_together("toggle_like", (POEM_LIKES, likes), (POEMS, poems))
            logger.debug("toggle_like poem=%s voted=%s count=%d", target_id, voted, count)
            return {"voted": voted, "count": count}
