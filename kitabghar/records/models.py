"""Typed records for every table the club site persists.

Rows travel to and from the store as plain dicts; these dataclasses give the
workflow and the web layer a checked shape with exhaustive status enums.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Table names
# ---------------------------------------------------------------------------

BOOKS = "books"
BOOK_REQUESTS = "book_requests"
EVENTS = "events"
PENDOWN_POSTS = "pendown_posts"
POEMS = "poems"
POEM_LIKES = "poem_likes"
TEAM_MEMBERS = "team_members"

ALL_TABLES = (BOOKS, BOOK_REQUESTS, EVENTS, PENDOWN_POSTS, POEMS, POEM_LIKES, TEAM_MEMBERS)


# ---------------------------------------------------------------------------
# Status enums
# ---------------------------------------------------------------------------


class ContentStatus(str, Enum):
    """Lifecycle of a submitted poem or pen-down post."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LoanStatus(str, Enum):
    """Lifecycle of a book-loan request."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    returned = "returned"


class ContentKind(str, Enum):
    """Moderated content variants and the tables that hold them."""

    poem = "poem"
    pendown = "pendown"

    @property
    def table(self) -> str:
        return {ContentKind.poem: POEMS, ContentKind.pendown: PENDOWN_POSTS}[self]


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class Record:
    """Mixin for dict round-tripping; unknown keys in a row are ignored."""

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in row.items() if k in names})

    def to_row(self) -> dict[str, Any]:
        row = asdict(self)  # type: ignore[call-overload]
        for key, value in row.items():
            if isinstance(value, Enum):
                row[key] = value.value
        return row


# ---------------------------------------------------------------------------
# Moderated content
# ---------------------------------------------------------------------------


@dataclass
class Poem(Record):
    """A poem submitted to the club's poem wall."""

    id: str
    title: str
    content: str
    author: str
    likes_count: int = 0
    status: ContentStatus = ContentStatus.pending
    submitted_by_email: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    published_at: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = ContentStatus(self.status)
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at


@dataclass
class PendownPost(Record):
    """A longer prose submission for the pen-down column."""

    id: str
    title: str
    content: str
    author: str
    status: ContentStatus = ContentStatus.pending
    excerpt: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    image_url: Optional[str] = None
    is_featured: bool = False
    created_at: str = ""
    updated_at: str = ""
    published_at: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = ContentStatus(self.status)
        if self.tags is None:
            self.tags = []
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at


def content_from_row(kind: ContentKind, row: dict[str, Any]):
    """Build the record type matching *kind* from a store row."""
    if kind is ContentKind.poem:
        return Poem.from_row(row)
    return PendownPost.from_row(row)


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------


@dataclass
class LoanRequest(Record):
    """A request to borrow a book from the club library."""

    id: str
    book_id: str
    user_name: str
    user_email: str
    mobile_no: Optional[str] = None
    academic_year: Optional[str] = None
    roll_no: Optional[str] = None
    preferred_due_date: Optional[str] = None
    notes: Optional[str] = None
    status: LoanStatus = LoanStatus.pending
    request_date: str = ""
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = LoanStatus(self.status)
        if not self.request_date:
            self.request_date = utc_now()
        if not self.created_at:
            self.created_at = self.request_date
        if not self.updated_at:
            self.updated_at = self.created_at


@dataclass
class LikeVote(Record):
    """One voter's like on one poem."""

    id: str
    poem_id: str
    ip_address: str
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now()


# ---------------------------------------------------------------------------
# Plain CRUD records
# ---------------------------------------------------------------------------


@dataclass
class Book(Record):
    """A catalog item in the club library."""

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

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at


def parse_event_day(value: Optional[str]):
    """The calendar day of an ISO date or datetime string, or None if unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value[:10]).date()
    except ValueError:
        return None


@dataclass
class Event(Record):
    """A club event."""

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

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at


@dataclass
class TeamMember(Record):
    """A member of the club's core team."""

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

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at
