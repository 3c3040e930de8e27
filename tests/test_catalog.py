"""Tests for the catalog service and the feeds built from it."""

from datetime import date

import pytest

from conftest import add_book, add_poem
from kitabghar.catalog.service import CatalogService
from kitabghar.errors import PermissionDenied, StoreOperationFailed, ValidationError
from kitabghar.records.models import (
    BOOK_REQUESTS,
    EVENTS,
    PENDOWN_POSTS,
    TEAM_MEMBERS,
    ContentKind,
    ContentStatus,
    LoanStatus,
)
from kitabghar.security.audit_log import AuditLogger


# --- Books ---


@pytest.mark.asyncio
async def test_create_book_defaults_available_copies(store, moderator):
    book = await CatalogService(store).create_book(
        moderator, {"title": " Godan ", "author": "Premchand", "total_copies": 3}
    )
    assert book.title == "Godan"
    assert book.available_copies == 3


@pytest.mark.asyncio
async def test_book_copy_counts_are_validated(store, moderator):
    catalog = CatalogService(store)
    with pytest.raises(ValidationError):
        await catalog.create_book(
            moderator, {"title": "X", "author": "Y", "total_copies": 1, "available_copies": 2}
        )
    book = await catalog.create_book(moderator, {"title": "X", "author": "Y"})
    with pytest.raises(ValidationError):
        await catalog.update_book(moderator, book.id, {"available_copies": -1})
    with pytest.raises(ValidationError):
        await catalog.update_book(moderator, book.id, {"title": ""})


@pytest.mark.asyncio
async def test_book_requires_title_and_author(store, moderator):
    with pytest.raises(ValidationError):
        await CatalogService(store).create_book(moderator, {"title": "Nameless"})


@pytest.mark.asyncio
async def test_viewer_cannot_edit_catalog(store, viewer):
    with pytest.raises(PermissionDenied):
        await CatalogService(store).create_book(viewer, {"title": "X", "author": "Y"})


@pytest.mark.asyncio
async def test_search_and_genre_filter(store):
    await add_book(store, title="Gitanjali", author="Tagore", genre="Poetry")
    await add_book(store, title="Godan", author="Premchand", genre="Fiction", is_featured=True)
    catalog = CatalogService(store)

    assert [b.title for b in await catalog.list_books(search="tag")] == ["Gitanjali"]
    assert [b.title for b in await catalog.list_books(search="GOD")] == ["Godan"]
    assert [b.title for b in await catalog.list_books(genre="poetry")] == ["Gitanjali"]
    assert len(await catalog.list_books(genre="all")) == 2
    assert [b.title for b in await catalog.list_books(featured=True)] == ["Godan"]
    assert await catalog.genres() == ["Fiction", "Poetry"]


@pytest.mark.asyncio
async def test_book_with_requests_cannot_be_deleted(store, moderator, tmp_path):
    audit = AuditLogger(tmp_path / "audit")
    book = await add_book(store)
    await store.insert(
        BOOK_REQUESTS,
        {"book_id": book["id"], "user_name": "K", "user_email": "k@example.com", "status": "pending"},
    )
    with pytest.raises(StoreOperationFailed):
        await CatalogService(store, audit=audit).delete_book(moderator, book["id"])
    [entry] = audit.query(action="delete")
    assert not entry.success


# --- Events and team ---


@pytest.mark.asyncio
async def test_split_events(store, moderator):
    catalog = CatalogService(store)
    await catalog.create_event(moderator, {"title": "Poetry slam", "date": "2026-11-02"})
    await catalog.create_event(moderator, {"title": "Today's meet", "date": "2026-10-19"})
    await catalog.create_event(moderator, {"title": "Last spring", "date": "2026-04-01"})

    upcoming, past = await catalog.split_events(today=date(2026, 10, 19))

    assert [e.title for e in upcoming] == ["Poetry slam", "Today's meet"]
    assert [e.title for e in past] == ["Last spring"]
    assert upcoming[0].created_by == "meera"


@pytest.mark.asyncio
async def test_unparseable_event_dates_count_as_past(store):
    await store.insert(EVENTS, {"title": "Open mic", "date": "TBA"})
    await store.insert(EVENTS, {"title": "Undated"})
    await store.insert(EVENTS, {"title": "Evening reading", "date": "2026-10-20T18:30:00+05:30"})

    upcoming, past = await CatalogService(store).split_events(today=date(2026, 10, 19))

    assert [e.title for e in upcoming] == ["Evening reading"]
    assert sorted(e.title for e in past) == ["Open mic", "Undated"]


@pytest.mark.asyncio
async def test_home_summary(store):
    for i in range(5):
        await store.insert(EVENTS, {"title": f"Event {i}", "date": f"2026-0{i + 1}-01"})
    await store.insert(TEAM_MEMBERS, {"name": "Nisha", "position": "President", "order_priority": 1})
    await store.insert(TEAM_MEMBERS, {"name": "Dev", "position": "Treasurer", "order_priority": 2})

    summary = await CatalogService(store).home_summary()

    assert [e.title for e in summary.events] == ["Event 4", "Event 3", "Event 2"]
    assert summary.president.name == "Nisha"


@pytest.mark.asyncio
async def test_team_ordered_by_priority(store, moderator):
    catalog = CatalogService(store)
    await catalog.create_member(moderator, {"name": "Dev", "position": "Treasurer", "order_priority": 2})
    await catalog.create_member(moderator, {"name": "Nisha", "position": "President", "order_priority": 1})
    assert [m.name for m in await catalog.list_team()] == ["Nisha", "Dev"]


# --- Feeds and queues ---


@pytest.mark.asyncio
async def test_poem_feed_merges_approved_content(store):
    await add_poem(store, title="Old", status="approved", likes_count=3, created_at="2026-01-01T00:00:00+00:00")
    await add_poem(store, title="Hidden", status="pending", created_at="2026-09-01T00:00:00+00:00")
    await store.insert(
        PENDOWN_POSTS,
        {"title": "Essay", "content": "...", "author": "Ira", "status": "approved", "created_at": "2026-06-01T00:00:00+00:00"},
    )
    await add_poem(store, title="New", status="approved", created_at="2026-08-01T00:00:00+00:00")

    feed = await CatalogService(store).poem_feed()

    assert [i.title for i in feed.featured] == ["New", "Essay"]
    assert [i.title for i in feed.recent] == ["Old"]
    assert feed.featured[1].kind == "pendown"
    assert feed.featured[1].likes_count == 0
    assert feed.recent[0].likes_count == 3


@pytest.mark.asyncio
async def test_dashboard_stats(store, moderator, viewer):
    book = await add_book(store)
    await add_poem(store)
    await add_poem(store, status="approved")
    await store.insert(
        BOOK_REQUESTS,
        {"book_id": book["id"], "user_name": "K", "user_email": "k@example.com", "status": "pending"},
    )
    catalog = CatalogService(store)

    stats = await catalog.dashboard_stats(moderator)
    assert stats.total_books == 1
    assert stats.pending_poems == 1
    assert stats.pending_posts == 0
    assert stats.pending_requests == 1

    with pytest.raises(PermissionDenied):
        await catalog.dashboard_stats(viewer)


@pytest.mark.asyncio
async def test_queues(store, moderator):
    book = await add_book(store)
    await add_poem(store)
    await add_poem(store, status="rejected")
    await store.insert(
        BOOK_REQUESTS,
        {"book_id": book["id"], "user_name": "K", "user_email": "k@example.com", "status": "pending"},
    )
    catalog = CatalogService(store)

    pending = await catalog.list_content(moderator, ContentKind.poem, ContentStatus.pending)
    assert len(pending) == 1
    assert len(await catalog.list_content(moderator, "poem")) == 2

    [view] = await catalog.list_loan_requests(moderator, LoanStatus.pending)
    assert view.book_title == "Gitanjali"
    assert view.request.user_name == "K"
