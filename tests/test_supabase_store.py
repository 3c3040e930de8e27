"""Tests for the Supabase (PostgREST) record store against a mock transport."""

import json

import httpx
import pytest

from kitabghar.errors import RecordNotFound, StoreOperationFailed
from kitabghar.records.models import BOOKS, POEMS
from kitabghar.records.supabase import SupabaseRecordStore

URL = "https://club.supabase.co"


def _store(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseRecordStore(URL, "service-key", client=client)


@pytest.mark.asyncio
async def test_select_builds_postgrest_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json=[{"id": "p1", "title": "Dawn"}])

    store = _store(handler)
    rows = await store.select(
        POEMS, filters={"status": "approved"}, order_by="created_at", descending=True, limit=5
    )

    assert rows == [{"id": "p1", "title": "Dawn"}]
    assert seen["path"] == "/rest/v1/poems"
    assert seen["params"]["status"] == "eq.approved"
    assert seen["params"]["order"] == "created_at.desc.nullslast"
    assert seen["params"]["limit"] == "5"
    assert seen["apikey"] == "service-key"


@pytest.mark.asyncio
async def test_bool_and_null_filters():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=[])

    await _store(handler).select(BOOKS, filters={"is_featured": True, "genre": None})
    assert seen["is_featured"] == "eq.true"
    assert seen["genre"] == "is.null"


@pytest.mark.asyncio
async def test_count_reads_content_range():
    def handler(request):
        assert request.method == "HEAD"
        assert request.headers["Prefer"] == "count=exact"
        return httpx.Response(200, headers={"Content-Range": "0-2/3"})

    assert await _store(handler).count(POEMS, {"status": "pending"}) == 3


@pytest.mark.asyncio
async def test_count_with_bad_header_fails():
    store = _store(lambda request: httpx.Response(200, headers={"Content-Range": "garbage"}))
    with pytest.raises(StoreOperationFailed):
        await store.count(POEMS)


@pytest.mark.asyncio
async def test_update_returns_representation():
    def handler(request):
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.r1"
        assert request.headers["Prefer"] == "return=representation"
        body = json.loads(request.content)
        assert "id" not in body
        return httpx.Response(200, json=[{"id": "r1", **body}])

    row = await _store(handler).update("book_requests", "r1", {"id": "x", "status": "approved"})
    assert row == {"id": "r1", "status": "approved"}


@pytest.mark.asyncio
async def test_update_of_missing_row_is_not_found():
    store = _store(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(RecordNotFound):
        await store.update(POEMS, "ghost", {"status": "approved"})
    with pytest.raises(RecordNotFound):
        await store.delete(POEMS, "ghost")


@pytest.mark.asyncio
async def test_http_errors_become_store_failures():
    store = _store(lambda request: httpx.Response(409, text="violates foreign key constraint"))
    with pytest.raises(StoreOperationFailed) as exc_info:
        await store.insert("book_requests", {"book_id": "ghost"})
    assert "foreign key" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_errors_become_store_failures():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreOperationFailed):
        await _store(handler).select(POEMS)


@pytest.mark.asyncio
async def test_toggle_like_calls_database_function():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"user_liked": True, "likes_count": 4})

    result = await _store(handler).toggle_like("p1", "203.0.113.5")

    assert result == {"voted": True, "count": 4}
    assert seen["path"] == "/rest/v1/rpc/toggle_poem_like"
    assert seen["body"] == {"poem_id_param": "p1", "ip_address_param": "203.0.113.5"}


@pytest.mark.asyncio
async def test_toggle_like_with_unexpected_body_fails():
    store = _store(lambda request: httpx.Response(200, json={"error": "unexpected"}))
    with pytest.raises(StoreOperationFailed):
        await store.toggle_like("p1", "203.0.113.5")
