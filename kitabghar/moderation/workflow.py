"""Moderation workflow engine.

Status changes for submitted poems, pen-down posts and book-loan requests go
through :class:`ModerationWorkflow`.  The engine checks the operator's
capability and the active :class:`TransitionPolicy`, commits the status with a
single store update, and only then runs side effects:

- approving content stamps ``published_at`` the first time only
- approving a loan sends the approval e-mail; a failed send leaves the
  request approved and is reported on the result
- an optional inventory hook adjusts the book's copy counts

Nothing is retried and nothing is rolled back.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Type, TypeVar, Union

from kitabghar.auth.models import OperatorCapability, Scope
from kitabghar.auth.permissions import require_scope
from kitabghar.errors import InvalidTransition, StoreOperationFailed
from kitabghar.moderation.inventory import InventoryHook
from kitabghar.moderation.models import LoanTransitionResult, NotificationOutcome
from kitabghar.moderation.policy import PERMISSIVE, RecordFamily, TransitionPolicy
from kitabghar.notifications.dispatcher import (
    LoanApprovalNotice,
    LogOnlyDispatcher,
    NotificationDispatcher,
)
from kitabghar.records.models import (
    BOOK_REQUESTS,
    BOOKS,
    ContentKind,
    ContentStatus,
    LoanRequest,
    LoanStatus,
    PendownPost,
    Poem,
    content_from_row,
    utc_now,
)
from kitabghar.records.store import RecordStore
from kitabghar.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def _parse_status(enum: Type[E], value: Union[str, E], family: str, current: str) -> E:
    try:
        return enum(value)
    except ValueError:
        raise InvalidTransition(family, current, str(value)) from None


class ModerationWorkflow:
    """Operator-driven state machine over moderated records.

    Parameters
    ----------
    store:
        Where the records live.
    dispatcher:
        Sends the loan-approval e-mail. Defaults to a log-only dispatcher.
    policy:
        Allowed transitions. Defaults to the ``permissive`` preset.
    inventory:
        Optional copy-count hook; without it copy counts are never touched.
    audit:
        Optional audit logger for operator actions.
    """

    def __init__(
        self,
        store: RecordStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy: Optional[TransitionPolicy] = None,
        inventory: Optional[InventoryHook] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher or LogOnlyDispatcher()
        self.policy = policy or PERMISSIVE
        self.inventory = inventory
        self.audit = audit

    # ------------------------------------------------------------------
    # Content (poems, pen-down posts)
    # ------------------------------------------------------------------

    async def transition_content(
        self,
        capability: OperatorCapability,
        kind: Union[str, ContentKind],
        record_id: str,
        target: Union[str, ContentStatus],
    ) -> Union[Poem, PendownPost]:
        """Move a poem or pen-down post to ``approved`` or ``rejected``."""
        require_scope(capability, Scope.moderate)
        kind = ContentKind(kind)
        row = await self.store.get(kind.table, record_id)
        current = row.get("status") or ContentStatus.pending.value
        status = _parse_status(ContentStatus, target, kind.value, current)

        if status is ContentStatus.pending or not self.policy.allows(
            RecordFamily.CONTENT, current, status.value
        ):
            self._record(capability, "transition", kind.table, record_id, current, status.value, False)
            raise InvalidTransition(kind.value, current, status.value)

        patch: dict = {"status": status.value}
        if status is ContentStatus.approved and not row.get("published_at"):
            patch["published_at"] = utc_now()

        try:
            updated = await self.store.update(kind.table, record_id, patch)
        except StoreOperationFailed:
            logger.error("Failed to update %s %s status to %s", kind.value, record_id, status.value)
            self._record(capability, "transition", kind.table, record_id, current, status.value, False)
            raise

        logger.info("%s %s: %s -> %s by %s", kind.value, record_id, current, status.value, capability.username)
        self._record(capability, "transition", kind.table, record_id, current, status.value, True)
        return content_from_row(kind, updated)

    async def delete_content(
        self,
        capability: OperatorCapability,
        kind: Union[str, ContentKind],
        record_id: str,
    ) -> None:
        """Permanently delete a poem or pen-down post."""
        require_scope(capability, Scope.moderate)
        kind = ContentKind(kind)
        await self._delete(capability, kind.table, record_id)

    # ------------------------------------------------------------------
    # Loan requests
    # ------------------------------------------------------------------

    async def transition_loan(
        self,
        capability: OperatorCapability,
        request_id: str,
        target: Union[str, LoanStatus],
    ) -> LoanTransitionResult:
        """Approve, reject or mark returned a book-loan request.

        The status update is awaited before any notification is attempted,
        so a failing e-mail can never block or undo the decision.
        """
        require_scope(capability, Scope.moderate)
        row = await self.store.get(BOOK_REQUESTS, request_id)
        current = row.get("status") or LoanStatus.pending.value
        status = _parse_status(LoanStatus, target, "loan request", current)

        if status is LoanStatus.pending or not self.policy.allows(
            RecordFamily.LOAN, current, status.value
        ):
            self._record(capability, "transition", BOOK_REQUESTS, request_id, current, status.value, False)
            raise InvalidTransition("loan request", current, status.value)

        try:
            updated = await self.store.update(BOOK_REQUESTS, request_id, {"status": status.value})
        except StoreOperationFailed:
            logger.error("Failed to update loan request %s status to %s", request_id, status.value)
            self._record(capability, "transition", BOOK_REQUESTS, request_id, current, status.value, False)
            raise

        request = LoanRequest.from_row(updated)
        result = LoanTransitionResult(request=request)
        newly_approved = status is LoanStatus.approved and current != LoanStatus.approved.value

        if newly_approved:
            result.notification = await self._notify(request)

        if self.inventory is not None:
            result.inventory_synced = await self._sync_inventory(request, current, status)

        logger.info(
            "loan request %s: %s -> %s by %s (%s)",
            request_id, current, status.value, capability.username, result.message,
        )
        self._record(
            capability, "transition", BOOK_REQUESTS, request_id, current, status.value, True,
            notification=result.notification.value,
            inventory_synced=result.inventory_synced,
        )
        return result

    async def delete_loan(self, capability: OperatorCapability, request_id: str) -> None:
        """Permanently delete a loan request."""
        require_scope(capability, Scope.moderate)
        await self._delete(capability, BOOK_REQUESTS, request_id)

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _notify(self, request: LoanRequest) -> NotificationOutcome:
        try:
            book = await self.store.get(BOOKS, request.book_id)
        except StoreOperationFailed as exc:
            logger.error("Cannot build approval e-mail for request %s: %s", request.id, exc)
            return NotificationOutcome.failed

        notice = LoanApprovalNotice(
            recipient_email=request.user_email,
            recipient_name=request.user_name,
            item_title=book.get("title", ""),
            item_author=book.get("author", ""),
            due_date=request.preferred_due_date,
        )
        try:
            sent = await self.dispatcher.send(notice)
        except Exception:
            logger.exception("Notification dispatcher raised for request %s", request.id)
            sent = False
        return NotificationOutcome.sent if sent else NotificationOutcome.failed

    async def _sync_inventory(
        self, request: LoanRequest, current: str, status: LoanStatus
    ) -> bool:
        try:
            if status is LoanStatus.approved and current != LoanStatus.approved.value:
                await self.inventory.on_approve(request)
            elif status is LoanStatus.returned:
                await self.inventory.on_return(request)
            elif status is LoanStatus.rejected and current == LoanStatus.approved.value:
                await self.inventory.on_revoke(request)
        except StoreOperationFailed as exc:
            logger.error("Copy count for book %s not updated: %s", request.book_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _delete(self, capability: OperatorCapability, table: str, record_id: str) -> None:
        try:
            await self.store.delete(table, record_id)
        except StoreOperationFailed:
            self._log_action(capability, "delete", table, record_id, {}, False)
            raise
        logger.info("%s %s deleted by %s", table, record_id, capability.username)
        self._log_action(capability, "delete", table, record_id, {}, True)

    def _record(
        self,
        capability: OperatorCapability,
        action: str,
        table: str,
        record_id: str,
        current: str,
        target: str,
        success: bool,
        **extra,
    ) -> None:
        self._log_action(
            capability, action, table, record_id, {"from": current, "to": target, **extra}, success
        )

    def _log_action(
        self,
        capability: OperatorCapability,
        action: str,
        table: str,
        record_id: str,
        details: dict,
        success: bool,
    ) -> None:
        if self.audit is None:
            return
        self.audit.record(
            operator=capability.username,
            action=action,
            table=table,
            record_id=record_id,
            details=details,
            success=success,
        )
