"""Tests for the moderation workflow engine."""

import pytest

from conftest import add_book, add_poem
from kitabghar.errors import InvalidTransition, PermissionDenied, RecordNotFound
from kitabghar.moderation.inventory import CopyCountInventory
from kitabghar.moderation.models import NotificationOutcome
from kitabghar.moderation.policy import STRICT
from kitabghar.moderation.workflow import ModerationWorkflow
from kitabghar.notifications.dispatcher import NotificationDispatcher
from kitabghar.records.models import (
    BOOK_REQUESTS,
    BOOKS,
    PENDOWN_POSTS,
    POEMS,
    ContentStatus,
    LoanStatus,
)
from kitabghar.security.audit_log import AuditLogger
from kitabghar.submissions import SubmissionService


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    async def send(self, notice):
        self.sent.append(notice)
        return self.succeed


class ExplodingDispatcher(NotificationDispatcher):
    async def send(self, notice):
        raise RuntimeError("mail server on fire")


async def _add_request(store, book_id, status="pending"):
    return await store.insert(
        BOOK_REQUESTS,
        {
            "book_id": book_id,
            "user_name": "Kabir",
            "user_email": "kabir@example.com",
            "preferred_due_date": "2026-12-01",
            "status": status,
        },
    )


# --- Content ---


@pytest.mark.asyncio
async def test_submit_and_approve_poem(store, moderator):
    poem = await SubmissionService(store).submit_poem("Dawn", "Light spills.", "Asha")
    assert poem.status is ContentStatus.pending
    assert poem.published_at is None

    approved = await ModerationWorkflow(store).transition_content(
        moderator, "poem", poem.id, "approved"
    )
    assert approved.status is ContentStatus.approved
    assert approved.published_at
    assert approved.likes_count == 0


@pytest.mark.asyncio
async def test_published_at_survives_later_transitions(store, moderator):
    poem = await add_poem(store)
    workflow = ModerationWorkflow(store)

    first = await workflow.transition_content(moderator, "poem", poem["id"], "approved")
    again = await workflow.transition_content(moderator, "poem", poem["id"], "approved")
    rejected = await workflow.transition_content(moderator, "poem", poem["id"], "rejected")
    back = await workflow.transition_content(moderator, "poem", poem["id"], "approved")

    assert first.published_at
    assert again.published_at == first.published_at
    assert rejected.published_at == first.published_at
    assert back.published_at == first.published_at


@pytest.mark.asyncio
async def test_reject_does_not_stamp_published_at(store, moderator):
    poem = await add_poem(store)
    rejected = await ModerationWorkflow(store).transition_content(
        moderator, "poem", poem["id"], "rejected"
    )
    assert rejected.status is ContentStatus.rejected
    assert rejected.published_at is None


@pytest.mark.asyncio
async def test_pendown_post_moderation(store, moderator):
    post = await SubmissionService(store).submit_pendown_post(
        "Monsoon notes", "Rain again.", "Ira", tags=["rain", " "]
    )
    assert post.tags == ["rain"]
    approved = await ModerationWorkflow(store).transition_content(
        moderator, "pendown", post.id, ContentStatus.approved
    )
    assert approved.published_at
    assert (await store.get(PENDOWN_POSTS, post.id))["status"] == "approved"


@pytest.mark.asyncio
async def test_content_cannot_go_back_to_pending(store, moderator):
    poem = await add_poem(store)
    with pytest.raises(InvalidTransition):
        await ModerationWorkflow(store).transition_content(moderator, "poem", poem["id"], "pending")


@pytest.mark.asyncio
async def test_unknown_status_is_invalid(store, moderator):
    poem = await add_poem(store)
    with pytest.raises(InvalidTransition):
        await ModerationWorkflow(store).transition_content(moderator, "poem", poem["id"], "archived")


@pytest.mark.asyncio
async def test_strict_policy_makes_decisions_final(store, moderator):
    poem = await add_poem(store)
    workflow = ModerationWorkflow(store, policy=STRICT)
    await workflow.transition_content(moderator, "poem", poem["id"], "approved")
    with pytest.raises(InvalidTransition):
        await workflow.transition_content(moderator, "poem", poem["id"], "rejected")
    assert (await store.get(POEMS, poem["id"]))["status"] == "approved"


@pytest.mark.asyncio
async def test_viewer_cannot_moderate(store, viewer):
    poem = await add_poem(store)
    with pytest.raises(PermissionDenied):
        await ModerationWorkflow(store).transition_content(viewer, "poem", poem["id"], "approved")
    with pytest.raises(PermissionDenied):
        await ModerationWorkflow(store).delete_content(viewer, "poem", poem["id"])
    assert (await store.get(POEMS, poem["id"]))["status"] == "pending"


@pytest.mark.asyncio
async def test_missing_record(store, moderator):
    with pytest.raises(RecordNotFound):
        await ModerationWorkflow(store).transition_content(moderator, "poem", "ghost", "approved")


@pytest.mark.asyncio
async def test_delete_content(store, moderator):
    poem = await add_poem(store)
    await ModerationWorkflow(store).delete_content(moderator, "poem", poem["id"])
    with pytest.raises(RecordNotFound):
        await store.get(POEMS, poem["id"])


# --- Loans ---


@pytest.mark.asyncio
async def test_approval_sends_notice_after_commit(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    dispatcher = RecordingDispatcher()

    result = await ModerationWorkflow(store, dispatcher=dispatcher).transition_loan(
        moderator, request["id"], "approved"
    )

    assert result.request.status is LoanStatus.approved
    assert result.notification is NotificationOutcome.sent
    assert not result.partial
    assert result.message == "Request approved successfully and email notification sent"

    [notice] = dispatcher.sent
    assert notice.to_payload() == {
        "userEmail": "kabir@example.com",
        "userName": "Kabir",
        "bookTitle": "Gitanjali",
        "bookAuthor": "Rabindranath Tagore",
        "dueDate": "2026-12-01",
    }


@pytest.mark.asyncio
async def test_failed_notice_keeps_approval(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])

    result = await ModerationWorkflow(store, dispatcher=RecordingDispatcher(succeed=False)).transition_loan(
        moderator, request["id"], "approved"
    )

    assert (await store.get(BOOK_REQUESTS, request["id"]))["status"] == "approved"
    assert result.notification is NotificationOutcome.failed
    assert result.partial
    assert result.message == "Request approved successfully, but email notification failed"


@pytest.mark.asyncio
async def test_raising_dispatcher_is_contained(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])

    result = await ModerationWorkflow(store, dispatcher=ExplodingDispatcher()).transition_loan(
        moderator, request["id"], "approved"
    )

    assert (await store.get(BOOK_REQUESTS, request["id"]))["status"] == "approved"
    assert result.partial


@pytest.mark.asyncio
async def test_reject_does_not_notify(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    dispatcher = RecordingDispatcher()

    result = await ModerationWorkflow(store, dispatcher=dispatcher).transition_loan(
        moderator, request["id"], "rejected"
    )

    assert result.notification is NotificationOutcome.not_applicable
    assert result.message == "Request rejected successfully"
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_reapproval_does_not_resend(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"], status="approved")
    dispatcher = RecordingDispatcher()

    with pytest.raises(InvalidTransition):
        await ModerationWorkflow(store, dispatcher=dispatcher).transition_loan(
            moderator, request["id"], "approved"
        )
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_pending_loan_cannot_be_returned(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    workflow = ModerationWorkflow(store)

    with pytest.raises(InvalidTransition):
        await workflow.transition_loan(moderator, request["id"], "returned")
    assert (await store.get(BOOK_REQUESTS, request["id"]))["status"] == "pending"

    await workflow.transition_loan(moderator, request["id"], "approved")
    result = await workflow.transition_loan(moderator, request["id"], "returned")
    assert result.request.status is LoanStatus.returned


@pytest.mark.asyncio
async def test_permissive_policy_allows_override(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    dispatcher = RecordingDispatcher()
    workflow = ModerationWorkflow(store, dispatcher=dispatcher)

    await workflow.transition_loan(moderator, request["id"], "rejected")
    result = await workflow.transition_loan(moderator, request["id"], "approved")

    assert result.notification is NotificationOutcome.sent
    assert len(dispatcher.sent) == 1


@pytest.mark.asyncio
async def test_strict_policy_refuses_override(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    workflow = ModerationWorkflow(store, policy=STRICT)

    await workflow.transition_loan(moderator, request["id"], "rejected")
    with pytest.raises(InvalidTransition):
        await workflow.transition_loan(moderator, request["id"], "approved")


@pytest.mark.asyncio
async def test_copy_counts_untouched_without_inventory(store, moderator):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    await ModerationWorkflow(store).transition_loan(moderator, request["id"], "approved")
    assert (await store.get(BOOKS, book["id"]))["available_copies"] == 2


@pytest.mark.asyncio
async def test_inventory_hook_tracks_lending(store, moderator):
    book = await add_book(store, total_copies=1, available_copies=1)
    request = await _add_request(store, book["id"])
    workflow = ModerationWorkflow(store, inventory=CopyCountInventory(store))

    result = await workflow.transition_loan(moderator, request["id"], "approved")
    assert result.inventory_synced
    assert (await store.get(BOOKS, book["id"]))["available_copies"] == 0

    await workflow.transition_loan(moderator, request["id"], "returned")
    assert (await store.get(BOOKS, book["id"]))["available_copies"] == 1


@pytest.mark.asyncio
async def test_inventory_revoke_and_clamp(store, moderator):
    book = await add_book(store, total_copies=1, available_copies=1)
    request = await _add_request(store, book["id"])
    workflow = ModerationWorkflow(store, inventory=CopyCountInventory(store))

    await workflow.transition_loan(moderator, request["id"], "approved")
    await workflow.transition_loan(moderator, request["id"], "rejected")
    assert (await store.get(BOOKS, book["id"]))["available_copies"] == 1

    other = await _add_request(store, book["id"])
    await store.update(BOOKS, book["id"], {"available_copies": 0})
    await workflow.transition_loan(moderator, other["id"], "approved")
    assert (await store.get(BOOKS, book["id"]))["available_copies"] == 0


@pytest.mark.asyncio
async def test_viewer_cannot_decide_loans(store, viewer):
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    with pytest.raises(PermissionDenied):
        await ModerationWorkflow(store).transition_loan(viewer, request["id"], "approved")


@pytest.mark.asyncio
async def test_transitions_are_audited(store, moderator, tmp_path):
    audit = AuditLogger(tmp_path / "audit")
    book = await add_book(store)
    request = await _add_request(store, book["id"])
    workflow = ModerationWorkflow(store, audit=audit, dispatcher=RecordingDispatcher(succeed=False))

    await workflow.transition_loan(moderator, request["id"], "approved")
    with pytest.raises(InvalidTransition):
        await workflow.transition_loan(moderator, request["id"], "pending")

    events = audit.history(BOOK_REQUESTS, request["id"])
    assert len(events) == 2
    ok = [e for e in events if e.success][0]
    assert ok.operator == "meera"
    assert ok.details["to"] == "approved"
    assert ok.details["notification"] == "failed"
    assert any(not e.success for e in events)
