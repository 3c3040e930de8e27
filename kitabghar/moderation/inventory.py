"""Copy-count bookkeeping hooks for loan transitions.

Without a hook the workflow leaves ``available_copies`` alone, as the club
site always has.  :class:`CopyCountInventory` keeps the counts in step
with approvals and returns.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from kitabghar.records.models import BOOKS, LoanRequest
from kitabghar.records.store import RecordStore

logger = logging.getLogger(__name__)


class InventoryHook(ABC):
    """Called after a loan transition has committed."""

    @abstractmethod
    async def on_approve(self, request: LoanRequest) -> None:
        """A copy of ``request.book_id`` has been lent out."""

    @abstractmethod
    async def on_return(self, request: LoanRequest) -> None:
        """A copy of ``request.book_id`` came back."""

    async def on_revoke(self, request: LoanRequest) -> None:
        """An approval was overridden (approved -> rejected)."""
        await self.on_return(request)


class CopyCountInventory(InventoryHook):
    """Adjusts ``available_copies`` on the referenced book, clamped to
    ``0..total_copies``."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def _adjust(self, book_id: str, delta: int) -> None:
        book = await self.store.get(BOOKS, book_id)
        total = int(book.get("total_copies") or 0)
        available = int(book.get("available_copies") or 0)
        new_value = min(total, max(0, available + delta))
        if new_value == available:
            logger.info("Copy count for book %s already at %d, not adjusted", book_id, available)
            return
        await self.store.update(BOOKS, book_id, {"available_copies": new_value})

    async def on_approve(self, request: LoanRequest) -> None:
        await self._adjust(request.book_id, -1)

    async def on_return(self, request: LoanRequest) -> None:
        await self._adjust(request.book_id, +1)
