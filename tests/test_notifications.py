"""Tests for the loan-approval notification dispatchers."""

import json

import httpx
import pytest

from kitabghar.notifications.dispatcher import (
    EdgeFunctionDispatcher,
    LoanApprovalNotice,
    LogOnlyDispatcher,
)

NOTICE = LoanApprovalNotice(
    recipient_email="kabir@example.com",
    recipient_name="Kabir",
    item_title="Gitanjali",
    item_author="Rabindranath Tagore",
    due_date="2026-12-01",
)


def _dispatcher(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EdgeFunctionDispatcher("https://club.supabase.co/", "anon-key", client=client)


@pytest.mark.asyncio
async def test_edge_function_receives_payload():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    assert await _dispatcher(handler).send(NOTICE) is True
    assert seen["url"] == "https://club.supabase.co/functions/v1/send-book-approval-email"
    assert seen["auth"] == "Bearer anon-key"
    assert seen["body"] == {
        "userEmail": "kabir@example.com",
        "userName": "Kabir",
        "bookTitle": "Gitanjali",
        "bookAuthor": "Rabindranath Tagore",
        "dueDate": "2026-12-01",
    }


@pytest.mark.asyncio
async def test_edge_function_error_status_is_failure():
    dispatcher = _dispatcher(lambda request: httpx.Response(500, text="smtp down"))
    assert await dispatcher.send(NOTICE) is False


@pytest.mark.asyncio
async def test_edge_function_transport_error_is_failure():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    assert await _dispatcher(handler).send(NOTICE) is False


@pytest.mark.asyncio
async def test_log_only_dispatcher_reports_not_sent(caplog):
    with caplog.at_level("INFO"):
        assert await LogOnlyDispatcher().send(NOTICE) is False
    assert "kabir@example.com" in caplog.text
