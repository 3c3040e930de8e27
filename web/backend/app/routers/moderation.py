"""Moderation router -- review queues, status transitions and the dashboard.

Every endpoint needs a signed-in operator.  The workflow engine checks the
operator's capability, so a viewer gets ``403`` rather than a silent no-op.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from kitabghar.auth.models import Operator, OperatorCapability
from kitabghar.catalog.models import LoanRequestView
from kitabghar.errors import StoreOperationFailed
from kitabghar.records.models import ContentKind, ContentStatus, LoanStatus
from kitabghar.services import Services
from web.backend.app.dependencies import get_services
from web.backend.app.middleware.auth import get_capability, require_admin
from web.backend.app.models.api import (
    AuditEntryResponse,
    DashboardStatsResponse,
    LoanRequestResponse,
    LoanTransitionResponse,
    PendownResponse,
    PoemResponse,
    StatusChangeRequest,
)

router = APIRouter(prefix="/api/admin", tags=["moderation"])


def _loan_view(view: LoanRequestView) -> LoanRequestResponse:
    return LoanRequestResponse(
        **view.request.to_row(),
        book_title=view.book_title,
        book_author=view.book_author,
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=DashboardStatsResponse, summary="Dashboard counts")
async def dashboard_stats(
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    stats = await services.catalog.dashboard_stats(capability)
    return DashboardStatsResponse(
        total_books=stats.total_books,
        pending_posts=stats.pending_posts,
        pending_poems=stats.pending_poems,
        total_events=stats.total_events,
        pending_requests=stats.pending_requests,
    )


@router.get("/audit", response_model=list[AuditEntryResponse], summary="Audit log")
async def audit_log(
    operator: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    table: Optional[str] = Query(None),
    record_id: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    admin: Operator = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Operator actions, newest first (admin only)."""
    entries = services.audit.query(
        operator=operator, action=action, table=table, record_id=record_id, limit=limit
    )
    return [
        AuditEntryResponse(
            id=e.id,
            timestamp=e.timestamp,
            operator=e.operator,
            action=e.action,
            table=e.table,
            record_id=e.record_id,
            details=e.details,
            success=e.success,
        )
        for e in entries
    ]


# ---------------------------------------------------------------------------
# Poems
# ---------------------------------------------------------------------------


@router.get("/poems", response_model=list[PoemResponse], summary="Poem queue")
async def list_poems(
    status_filter: Optional[ContentStatus] = Query(None, alias="status"),
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    poems = await services.catalog.list_content(capability, ContentKind.poem, status_filter)
    return [PoemResponse(**p.to_row()) for p in poems]


@router.post("/poems/{poem_id}/status", response_model=PoemResponse, summary="Approve or reject a poem")
async def transition_poem(
    poem_id: str,
    body: StatusChangeRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    poem = await services.workflow.transition_content(
        capability, ContentKind.poem, poem_id, body.status
    )
    return PoemResponse(**poem.to_row())


@router.delete("/poems/{poem_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a poem")
async def delete_poem(
    poem_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.workflow.delete_content(capability, ContentKind.poem, poem_id)


# ---------------------------------------------------------------------------
# Pen-down posts
# ---------------------------------------------------------------------------


@router.get("/pendown", response_model=list[PendownResponse], summary="Pen-down queue")
async def list_pendown(
    status_filter: Optional[ContentStatus] = Query(None, alias="status"),
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    posts = await services.catalog.list_content(capability, ContentKind.pendown, status_filter)
    return [PendownResponse(**p.to_row()) for p in posts]


@router.post(
    "/pendown/{post_id}/status",
    response_model=PendownResponse,
    summary="Approve or reject a pen-down post",
)
async def transition_pendown(
    post_id: str,
    body: StatusChangeRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    post = await services.workflow.transition_content(
        capability, ContentKind.pendown, post_id, body.status
    )
    return PendownResponse(**post.to_row())


@router.delete(
    "/pendown/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a pen-down post",
)
async def delete_pendown(
    post_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.workflow.delete_content(capability, ContentKind.pendown, post_id)


# ---------------------------------------------------------------------------
# Loan requests
# ---------------------------------------------------------------------------


@router.get("/requests", response_model=list[LoanRequestResponse], summary="Loan request queue")
async def list_requests(
    status_filter: Optional[LoanStatus] = Query(None, alias="status"),
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    views = await services.catalog.list_loan_requests(capability, status_filter)
    return [_loan_view(v) for v in views]


@router.post(
    "/requests/{request_id}/status",
    response_model=LoanTransitionResponse,
    summary="Approve, reject or return a loan request",
)
async def transition_request(
    request_id: str,
    body: StatusChangeRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    """Commit the new status, then report how the e-mail and copy counts went.

    A failed approval e-mail still answers ``200``; ``partial`` is set and
    ``message`` says what did not happen.
    """
    result = await services.workflow.transition_loan(capability, request_id, body.status)
    try:
        book = await services.catalog.get_book(result.request.book_id)
        title, author = book.title, book.author
    except StoreOperationFailed:
        title, author = "", ""
    return LoanTransitionResponse(
        request=LoanRequestResponse(
            **result.request.to_row(), book_title=title, book_author=author
        ),
        notification=result.notification.value,
        inventory_synced=result.inventory_synced,
        partial=result.partial,
        message=result.message,
    )


@router.delete(
    "/requests/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a loan request",
)
async def delete_request(
    request_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.workflow.delete_loan(capability, request_id)
