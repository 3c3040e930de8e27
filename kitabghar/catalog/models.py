"""View models assembled by the catalog service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from kitabghar.records.models import Event, LoanRequest, TeamMember


@dataclass
class FeedItem:
    """One entry on the public poem wall (a poem or a pen-down post)."""

    id: str
    kind: str  # "poem" | "pendown"
    title: str
    content: str
    author: str
    likes_count: int = 0
    created_at: str = ""
    published_at: Optional[str] = None
    tags: list[str] = field(default_factory=list)


@dataclass
class PoemFeed:
    featured: list[FeedItem] = field(default_factory=list)
    recent: list[FeedItem] = field(default_factory=list)

    @property
    def all(self) -> list[FeedItem]:
        return self.featured + self.recent


@dataclass
class HomeSummary:
    events: list[Event] = field(default_factory=list)
    president: Optional[TeamMember] = None


@dataclass
class DashboardStats:
    """Counts shown at the top of the admin dashboard."""

    total_books: int = 0
    pending_posts: int = 0
    pending_poems: int = 0
    total_events: int = 0
    pending_requests: int = 0


@dataclass
class LoanRequestView:
    """A loan request joined with the title and author of its book."""

    request: LoanRequest
    book_title: str = ""
    book_author: str = ""
