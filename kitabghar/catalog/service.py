"""Catalog service: plain CRUD for books, events and team members, plus the
read-only views the public pages and the admin dashboard are built from.

Writes need an :class:`OperatorCapability` with the ``manage_catalog`` scope;
moderation queues need ``moderate``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from kitabghar.auth.models import OperatorCapability, Scope
from kitabghar.auth.permissions import require_scope
from kitabghar.catalog.models import (
    DashboardStats,
    FeedItem,
    HomeSummary,
    LoanRequestView,
    PoemFeed,
)
from kitabghar.errors import StoreOperationFailed, ValidationError
from kitabghar.records.models import (
    BOOK_REQUESTS,
    BOOKS,
    EVENTS,
    PENDOWN_POSTS,
    POEMS,
    TEAM_MEMBERS,
    Book,
    ContentKind,
    ContentStatus,
    Event,
    LoanRequest,
    LoanStatus,
    TeamMember,
    content_from_row,
    parse_event_day,
)
from kitabghar.records.store import RecordStore
from kitabghar.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)

_RECORD_TYPES = {BOOKS: Book, EVENTS: Event, TEAM_MEMBERS: TeamMember}
_REQUIRED_FIELDS = {
    BOOKS: ("title", "author"),
    EVENTS: ("title",),
    TEAM_MEMBERS: ("name", "position"),
}
_READ_ONLY = {"id", "created_at", "updated_at"}

FEATURED_POEMS = 2
HOME_EVENT_COUNT = 3
PRESIDENT_POSITION = "President"


def _validate_copies(data: dict[str, Any]) -> None:
    total = data.get("total_copies")
    available = data.get("available_copies")
    if total is not None and int(total) < 0:
        raise ValidationError("total_copies cannot be negative")
    if available is not None and int(available) < 0:
        raise ValidationError("available_copies cannot be negative")
    if total is not None and available is not None and int(available) > int(total):
        raise ValidationError("available_copies cannot exceed total_copies")


class CatalogService:
    """Books, events, team roster and the feeds assembled from them."""

    def __init__(self, store: RecordStore, audit: Optional[AuditLogger] = None) -> None:
        self.store = store
        self.audit = audit

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    async def _create(self, capability: OperatorCapability, table: str, data: dict[str, Any]):
        require_scope(capability, Scope.manage_catalog)
        row = {k: v for k, v in data.items() if k not in _READ_ONLY}
        for name in _REQUIRED_FIELDS[table]:
            value = row.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"'{name}' is required")
            row[name] = value.strip()
        if table == BOOKS:
            row.setdefault("total_copies", 1)
            row.setdefault("available_copies", row["total_copies"])
            _validate_copies(row)
        if table == EVENTS:
            row.setdefault("created_by", capability.username)

        stored = await self._write(capability, "create", table, None, self.store.insert(table, row))
        return _RECORD_TYPES[table].from_row(stored)

    async def _update(
        self, capability: OperatorCapability, table: str, record_id: str, changes: dict[str, Any]
    ):
        require_scope(capability, Scope.manage_catalog)
        patch = {k: v for k, v in changes.items() if k not in _READ_ONLY}
        for name in _REQUIRED_FIELDS[table]:
            if name in patch and not str(patch[name] or "").strip():
                raise ValidationError(f"'{name}' cannot be blank")
        if table == BOOKS and ("total_copies" in patch or "available_copies" in patch):
            current = await self.store.get(BOOKS, record_id)
            _validate_copies({**current, **patch})

        stored = await self._write(
            capability, "update", table, record_id, self.store.update(table, record_id, patch)
        )
        return _RECORD_TYPES[table].from_row(stored)

    async def _delete(self, capability: OperatorCapability, table: str, record_id: str) -> None:
        require_scope(capability, Scope.manage_catalog)
        await self._write(capability, "delete", table, record_id, self.store.delete(table, record_id))

    async def _write(self, capability, action, table, record_id, operation):
        try:
            result = await operation
        except StoreOperationFailed:
            logger.error("%s on %s %s failed", action, table, record_id or "(new)")
            self._log(capability, action, table, record_id or "", False)
            raise
        if isinstance(result, dict):
            record_id = result.get("id", record_id)
        self._log(capability, action, table, record_id or "", True)
        return result

    def _log(self, capability, action, table, record_id, success) -> None:
        if self.audit is not None:
            self.audit.record(
                operator=capability.username,
                action=action,
                table=table,
                record_id=record_id,
                success=success,
            )

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    async def list_books(
        self,
        search: str = "",
        genre: str = "",
        featured: Optional[bool] = None,
        recommended: Optional[bool] = None,
    ) -> list[Book]:
        """Newest first; *search* matches title or author, *genre* is case-insensitive."""
        books = [
            Book.from_row(r)
            for r in await self.store.select(BOOKS, order_by="created_at", descending=True)
        ]
        needle = search.strip().lower()
        if needle:
            books = [b for b in books if needle in b.title.lower() or needle in b.author.lower()]
        if genre and genre.lower() != "all":
            books = [b for b in books if (b.genre or "").lower() == genre.lower()]
        if featured is not None:
            books = [b for b in books if b.is_featured == featured]
        if recommended is not None:
            books = [b for b in books if b.is_recommended == recommended]
        return books

    async def genres(self) -> list[str]:
        rows = await self.store.select(BOOKS)
        return sorted({r["genre"] for r in rows if r.get("genre")})

    async def get_book(self, book_id: str) -> Book:
        return Book.from_row(await self.store.get(BOOKS, book_id))

    async def create_book(self, capability: OperatorCapability, data: dict[str, Any]) -> Book:
        return await self._create(capability, BOOKS, data)

    async def update_book(
        self, capability: OperatorCapability, book_id: str, changes: dict[str, Any]
    ) -> Book:
        return await self._update(capability, BOOKS, book_id, changes)

    async def delete_book(self, capability: OperatorCapability, book_id: str) -> None:
        await self._delete(capability, BOOKS, book_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def list_events(self, limit: Optional[int] = None) -> list[Event]:
        rows = await self.store.select(EVENTS, order_by="date", descending=True, limit=limit)
        return [Event.from_row(r) for r in rows]

    async def split_events(self, today: Optional[date] = None) -> tuple[list[Event], list[Event]]:
        """Return ``(upcoming, past)``.

        An event today counts as upcoming; an undated or unparseable one as past.
        """
        today = today or date.today()
        upcoming: list[Event] = []
        past: list[Event] = []
        for event in await self.list_events():
            day = parse_event_day(event.date)
            if day is not None and day >= today:
                upcoming.append(event)
            else:
                past.append(event)
        return upcoming, past

    async def create_event(self, capability: OperatorCapability, data: dict[str, Any]) -> Event:
        return await self._create(capability, EVENTS, data)

    async def update_event(
        self, capability: OperatorCapability, event_id: str, changes: dict[str, Any]
    ) -> Event:
        return await self._update(capability, EVENTS, event_id, changes)

    async def delete_event(self, capability: OperatorCapability, event_id: str) -> None:
        await self._delete(capability, EVENTS, event_id)

    # ------------------------------------------------------------------
    # Team
    # ------------------------------------------------------------------

    async def list_team(self) -> list[TeamMember]:
        rows = await self.store.select(TEAM_MEMBERS, order_by="order_priority")
        return [TeamMember.from_row(r) for r in rows]

    async def create_member(
        self, capability: OperatorCapability, data: dict[str, Any]
    ) -> TeamMember:
        return await self._create(capability, TEAM_MEMBERS, data)

    async def update_member(
        self, capability: OperatorCapability, member_id: str, changes: dict[str, Any]
    ) -> TeamMember:
        return await self._update(capability, TEAM_MEMBERS, member_id, changes)

    async def delete_member(self, capability: OperatorCapability, member_id: str) -> None:
        await self._delete(capability, TEAM_MEMBERS, member_id)

    # ------------------------------------------------------------------
    # Public feeds
    # ------------------------------------------------------------------

    async def home_summary(self) -> HomeSummary:
        events = await self.list_events(limit=HOME_EVENT_COUNT)
        presidents = await self.store.select(
            TEAM_MEMBERS, filters={"position": PRESIDENT_POSITION}, limit=1
        )
        return HomeSummary(
            events=events,
            president=TeamMember.from_row(presidents[0]) if presidents else None,
        )

    async def poem_feed(self) -> PoemFeed:
        """Approved poems and pen-down posts, newest first.

        Pen-down posts have no likes and always show a count of 0.  The first
        two entries are featured.
        """
        approved = {"status": ContentStatus.approved.value}
        poems = await self.store.select(POEMS, filters=approved, order_by="created_at", descending=True)
        posts = await self.store.select(
            PENDOWN_POSTS, filters=approved, order_by="published_at", descending=True
        )

        items = [
            FeedItem(
                id=p["id"],
                kind=ContentKind.poem.value,
                title=p["title"],
                content=p["content"],
                author=p["author"],
                likes_count=int(p.get("likes_count") or 0),
                created_at=p.get("created_at", ""),
                published_at=p.get("published_at"),
            )
            for p in poems
        ] + [
            FeedItem(
                id=p["id"],
                kind=ContentKind.pendown.value,
                title=p["title"],
                content=p["content"],
                author=p["author"],
                likes_count=0,
                created_at=p.get("created_at", ""),
                published_at=p.get("published_at"),
                tags=p.get("tags") or [],
            )
            for p in posts
        ]
        items.sort(key=lambda i: i.created_at or i.published_at or "", reverse=True)
        return PoemFeed(featured=items[:FEATURED_POEMS], recent=items[FEATURED_POEMS:])

    # ------------------------------------------------------------------
    # Admin views
    # ------------------------------------------------------------------

    async def dashboard_stats(self, capability: OperatorCapability) -> DashboardStats:
        require_scope(capability, Scope.moderate)
        pending = ContentStatus.pending.value
        return DashboardStats(
            total_books=await self.store.count(BOOKS),
            pending_posts=await self.store.count(PENDOWN_POSTS, {"status": pending}),
            pending_poems=await self.store.count(POEMS, {"status": pending}),
            total_events=await self.store.count(EVENTS),
            pending_requests=await self.store.count(
                BOOK_REQUESTS, {"status": LoanStatus.pending.value}
            ),
        )

    async def list_content(
        self,
        capability: OperatorCapability,
        kind: ContentKind,
        status: Optional[ContentStatus] = None,
    ) -> list:
        """Moderation queue for one content kind, newest first."""
        require_scope(capability, Scope.moderate)
        kind = ContentKind(kind)
        filters = {"status": ContentStatus(status).value} if status else None
        rows = await self.store.select(
            kind.table, filters=filters, order_by="created_at", descending=True
        )
        return [content_from_row(kind, r) for r in rows]

    async def list_loan_requests(
        self,
        capability: OperatorCapability,
        status: Optional[LoanStatus] = None,
    ) -> list[LoanRequestView]:
        """Loan requests newest first, each with its book's title and author."""
        require_scope(capability, Scope.moderate)
        filters = {"status": LoanStatus(status).value} if status else None
        rows = await self.store.select(
            BOOK_REQUESTS, filters=filters, order_by="request_date", descending=True
        )
        books = {b["id"]: b for b in await self.store.select(BOOKS)}
        views = []
        for row in rows:
            book = books.get(row.get("book_id"), {})
            views.append(
                LoanRequestView(
                    request=LoanRequest.from_row(row),
                    book_title=book.get("title", ""),
                    book_author=book.get("author", ""),
                )
            )
        return views
