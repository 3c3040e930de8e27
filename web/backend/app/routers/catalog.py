"""Catalog router -- admin CRUD for books, events and the team roster."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from kitabghar.auth.models import OperatorCapability
from kitabghar.services import Services
from web.backend.app.dependencies import get_services
from web.backend.app.middleware.auth import get_capability
from web.backend.app.models.api import (
    BookCreateRequest,
    BookResponse,
    BookUpdateRequest,
    EventCreateRequest,
    EventResponse,
    EventUpdateRequest,
    TeamMemberCreateRequest,
    TeamMemberResponse,
    TeamMemberUpdateRequest,
)

router = APIRouter(prefix="/api/admin", tags=["catalog"])


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


@router.post(
    "/books",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a book",
)
async def create_book(
    body: BookCreateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    """Add a book; ``available_copies`` defaults to ``total_copies``."""
    book = await services.catalog.create_book(capability, body.model_dump(exclude_none=True))
    return BookResponse(**book.to_row())


@router.put("/books/{book_id}", response_model=BookResponse, summary="Edit a book")
async def update_book(
    book_id: str,
    body: BookUpdateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    book = await services.catalog.update_book(
        capability, book_id, body.model_dump(exclude_unset=True)
    )
    return BookResponse(**book.to_row())


@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a book")
async def delete_book(
    book_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.catalog.delete_book(capability, book_id)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an event",
)
async def create_event(
    body: EventCreateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    event = await services.catalog.create_event(capability, body.model_dump(exclude_none=True))
    return EventResponse(**event.to_row())


@router.put("/events/{event_id}", response_model=EventResponse, summary="Edit an event")
async def update_event(
    event_id: str,
    body: EventUpdateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    event = await services.catalog.update_event(
        capability, event_id, body.model_dump(exclude_unset=True)
    )
    return EventResponse(**event.to_row())


@router.delete(
    "/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove an event"
)
async def delete_event(
    event_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.catalog.delete_event(capability, event_id)


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------


@router.post(
    "/team",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a team member",
)
async def create_member(
    body: TeamMemberCreateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    member = await services.catalog.create_member(capability, body.model_dump(exclude_none=True))
    return TeamMemberResponse(**member.to_row())


@router.put("/team/{member_id}", response_model=TeamMemberResponse, summary="Edit a team member")
async def update_member(
    member_id: str,
    body: TeamMemberUpdateRequest,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    member = await services.catalog.update_member(
        capability, member_id, body.model_dump(exclude_unset=True)
    )
    return TeamMemberResponse(**member.to_row())


@router.delete(
    "/team/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a team member",
)
async def delete_member(
    member_id: str,
    capability: OperatorCapability = Depends(get_capability),
    services: Services = Depends(get_services),
):
    await services.catalog.delete_member(capability, member_id)
