"""Pydantic models for API request/response serialization.

These models mirror the kitabghar dataclasses and provide JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Auth models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str
    password: str


class OperatorResponse(BaseModel):
    """Public representation of an operator (never includes password data)."""

    id: str
    username: str
    display_name: str = ""
    email: str = ""
    role: str = "moderator"
    scopes: list[str] = Field(default_factory=list)
    created_at: str = ""
    last_login: str = ""


class LoginResponse(BaseModel):
    token: str
    expires_at: str = ""
    operator: OperatorResponse


class CreateOperatorRequest(BaseModel):
    username: str
    password: str = Field(min_length=8)
    role: str = "moderator"
    display_name: str = ""
    email: str = ""


class APIKeyCreateRequest(BaseModel):
    name: str
    expires_in_days: int = Field(default=90, ge=1, le=365)


class APIKeyResponse(BaseModel):
    id: str
    name: str
    prefix: str
    created_at: str = ""
    expires_at: str = ""
    last_used: str = ""


class APIKeyCreateResponse(BaseModel):
    """Returned once; the raw key cannot be retrieved again."""

    key: APIKeyResponse
    raw_key: str


# ---------------------------------------------------------------------------
# Submission models
# ---------------------------------------------------------------------------


class PoemSubmission(BaseModel):
    title: str
    content: str
    author: str
    email: Optional[str] = None


class PendownSubmission(BaseModel):
    title: str
    content: str
    author: str
    tags: list[str] = Field(default_factory=list)


class LoanRequestSubmission(BaseModel):
    user_name: str
    user_email: str
    preferred_due_date: str
    mobile_no: Optional[str] = None
    academic_year: Optional[str] = None
    roll_no: Optional[str] = None
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------


class PoemResponse(BaseModel):
    """Mirrors kitabghar.records.models.Poem."""

    id: str
    title: str
    content: str
    author: str
    likes_count: int = 0
    status: str = "pending"
    submitted_by_email: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    published_at: Optional[str] = None


class PendownResponse(BaseModel):
    """Mirrors kitabghar.records.models.PendownPost."""

    id: str
    title: str
    content: str
    author: str
    status: str = "pending"
    excerpt: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    is_featured: bool = False
    created_at: str = ""
    updated_at: str = ""
    published_at: Optional[str] = None


class LoanRequestResponse(BaseModel):
    """Mirrors kitabghar.records.models.LoanRequest, plus its book."""

    id: str
    book_id: str
    user_name: str
    user_email: str
    mobile_no: Optional[str] = None
    academic_year: Optional[str] = None
    roll_no: Optional[str] = None
    preferred_due_date: Optional[str] = None
    notes: Optional[str] = None
    status: str = "pending"
    request_date: str = ""
    book_title: str = ""
    book_author: str = ""


class BookResponse(BaseModel):
    """Mirrors kitabghar.records.models.Book."""

    id: str
    title: str
    author: str
    description: Optional[str] = None
    genre: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    image_url: Optional[str] = None
    total_copies: int = 1
    available_copies: int = 1
    is_featured: bool = False
    is_recommended: bool = False
    created_at: str = ""
    updated_at: str = ""


class BookCreateRequest(BaseModel):
    title: str
    author: str
    description: Optional[str] = None
    genre: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    image_url: Optional[str] = None
    total_copies: int = 1
    available_copies: Optional[int] = None
    is_featured: bool = False
    is_recommended: bool = False


class BookUpdateRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    image_url: Optional[str] = None
    total_copies: Optional[int] = None
    available_copies: Optional[int] = None
    is_featured: Optional[bool] = None
    is_recommended: Optional[bool] = None


def _iso_event_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("date must be an ISO date or datetime, e.g. 2026-11-01T18:00") from None
    return value


class EventResponse(BaseModel):
    """Mirrors kitabghar.records.models.Event."""

    id: str
    title: str
    description: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    registration_link: Optional[str] = None
    status: str = "upcoming"
    created_by: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class EventCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    registration_link: Optional[str] = None
    status: str = "upcoming"

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _iso_event_date(v)


class EventUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    registration_link: Optional[str] = None
    status: Optional[str] = None

    @field_validator("date")
    @classmethod
    def iso_date(cls, v):
        return _iso_event_date(v)


class EventsResponse(BaseModel):
    upcoming: list[EventResponse] = Field(default_factory=list)
    past: list[EventResponse] = Field(default_factory=list)


class TeamMemberResponse(BaseModel):
    """Mirrors kitabghar.records.models.TeamMember."""

    id: str
    name: str
    position: str
    department: Optional[str] = None
    year: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    order_priority: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


class TeamMemberCreateRequest(BaseModel):
    name: str
    position: str
    department: Optional[str] = None
    year: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    order_priority: Optional[int] = None


class TeamMemberUpdateRequest(BaseModel):
    name: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    year: Optional[str] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    order_priority: Optional[int] = None


# ---------------------------------------------------------------------------
# Feed models
# ---------------------------------------------------------------------------


class FeedItemResponse(BaseModel):
    id: str
    kind: str
    title: str
    content: str
    author: str
    likes_count: int = 0
    created_at: str = ""
    published_at: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class PoemFeedResponse(BaseModel):
    featured: list[FeedItemResponse] = Field(default_factory=list)
    recent: list[FeedItemResponse] = Field(default_factory=list)


class HomeResponse(BaseModel):
    events: list[EventResponse] = Field(default_factory=list)
    president: Optional[TeamMemberResponse] = None


class LikeResponse(BaseModel):
    voted: bool
    count: int


# ---------------------------------------------------------------------------
# Moderation models
# ---------------------------------------------------------------------------


class StatusChangeRequest(BaseModel):
    """Request body for a moderation transition."""

    status: str


class LoanTransitionResponse(BaseModel):
    """A committed loan transition and what happened to its side effects."""

    request: LoanRequestResponse
    notification: str = "not_applicable"
    inventory_synced: bool = True
    partial: bool = False
    message: str = ""


class DashboardStatsResponse(BaseModel):
    total_books: int = 0
    pending_posts: int = 0
    pending_poems: int = 0
    total_events: int = 0
    pending_requests: int = 0


class AuditEntryResponse(BaseModel):
    id: str
    timestamp: str
    operator: str
    action: str
    table: str
    record_id: str
    details: dict = Field(default_factory=dict)
    success: bool = True
