"""Public router -- the pages anyone can read, and anonymous submissions.

Nothing here needs an operator session.  Submissions land in ``pending``
and wait for moderation.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from kitabghar.catalog.models import FeedItem
from kitabghar.records.models import Book, Event, TeamMember
from kitabghar.services import Services
from web.backend.app.dependencies import get_services
from web.backend.app.models.api import (
    BookResponse,
    EventResponse,
    EventsResponse,
    FeedItemResponse,
    HomeResponse,
    LikeResponse,
    LoanRequestResponse,
    LoanRequestSubmission,
    PendownResponse,
    PendownSubmission,
    PoemFeedResponse,
    PoemResponse,
    PoemSubmission,
    TeamMemberResponse,
)

router = APIRouter(prefix="/api", tags=["public"])


def _book(b: Book) -> BookResponse:
    return BookResponse(**b.to_row())


def _event(e: Event) -> EventResponse:
    return EventResponse(**e.to_row())


def _member(m: TeamMember) -> TeamMemberResponse:
    return TeamMemberResponse(**m.to_row())


def _feed_item(item: FeedItem) -> FeedItemResponse:
    return FeedItemResponse(
        id=item.id,
        kind=item.kind,
        title=item.title,
        content=item.content,
        author=item.author,
        likes_count=item.likes_count,
        created_at=item.created_at,
        published_at=item.published_at,
        tags=list(item.tags),
    )


async def _voter_token(request: Request, services: Services) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    client_host = request.client.host if request.client else None
    if services.ip_lookup is not None and not services.remote_resolver.address(
        forwarded_for, client_host
    ):
        return await services.ip_lookup.resolve()
    return services.remote_resolver.resolve(forwarded_for, client_host)


# ---------------------------------------------------------------------------
# Home
# ---------------------------------------------------------------------------


@router.get("/home", response_model=HomeResponse, summary="Home page summary")
async def home(services: Services = Depends(get_services)):
    """The three latest events and the club President."""
    summary = await services.catalog.home_summary()
    return HomeResponse(
        events=[_event(e) for e in summary.events],
        president=_member(summary.president) if summary.president else None,
    )


# ---------------------------------------------------------------------------
# Poems and pen-down posts
# ---------------------------------------------------------------------------


@router.get("/poems", response_model=PoemFeedResponse, summary="Approved poem wall")
async def poem_feed(services: Services = Depends(get_services)):
    feed = await services.catalog.poem_feed()
    return PoemFeedResponse(
        featured=[_feed_item(i) for i in feed.featured],
        recent=[_feed_item(i) for i in feed.recent],
    )


@router.post(
    "/poems",
    response_model=PoemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a poem",
)
async def submit_poem(body: PoemSubmission, services: Services = Depends(get_services)):
    poem = await services.submissions.submit_poem(
        title=body.title, content=body.content, author=body.author, email=body.email
    )
    return PoemResponse(**poem.to_row())


@router.post(
    "/pendown",
    response_model=PendownResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a pen-down post",
)
async def submit_pendown(body: PendownSubmission, services: Services = Depends(get_services)):
    post = await services.submissions.submit_pendown_post(
        title=body.title, content=body.content, author=body.author, tags=body.tags
    )
    return PendownResponse(**post.to_row())


@router.post("/poems/{poem_id}/like", response_model=LikeResponse, summary="Toggle a like")
async def toggle_like(
    poem_id: str,
    request: Request,
    services: Services = Depends(get_services),
):
    """Like the poem, or take the like back if this voter already liked it."""
    voter = await _voter_token(request, services)
    result = await services.likes.toggle(poem_id, voter)
    return LikeResponse(voted=result.voted, count=result.count)


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


@router.get("/books", response_model=list[BookResponse], summary="Browse the library")
async def list_books(
    search: str = Query("", description="Matches title or author"),
    genre: str = Query("", description="Exact genre, or 'all'"),
    featured: Optional[bool] = Query(None),
    recommended: Optional[bool] = Query(None),
    services: Services = Depends(get_services),
):
    books = await services.catalog.list_books(
        search=search, genre=genre, featured=featured, recommended=recommended
    )
    return [_book(b) for b in books]


@router.get("/books/genres", response_model=list[str], summary="Genres in the library")
async def list_genres(services: Services = Depends(get_services)):
    return await services.catalog.genres()


@router.get("/books/{book_id}", response_model=BookResponse, summary="One book")
async def get_book(book_id: str, services: Services = Depends(get_services)):
    return _book(await services.catalog.get_book(book_id))


@router.post(
    "/books/{book_id}/requests",
    response_model=LoanRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request to borrow a book",
)
async def request_book(
    book_id: str,
    body: LoanRequestSubmission,
    services: Services = Depends(get_services),
):
    loan = await services.submissions.submit_loan_request(
        book_id=book_id,
        user_name=body.user_name,
        user_email=body.user_email,
        preferred_due_date=body.preferred_due_date,
        mobile_no=body.mobile_no,
        academic_year=body.academic_year,
        roll_no=body.roll_no,
        notes=body.notes,
    )
    book = await services.catalog.get_book(book_id)
    return LoanRequestResponse(**loan.to_row(), book_title=book.title, book_author=book.author)


# ---------------------------------------------------------------------------
# Events and team
# ---------------------------------------------------------------------------


@router.get("/events", response_model=EventsResponse, summary="Upcoming and past events")
async def list_events(services: Services = Depends(get_services)):
    upcoming, past = await services.catalog.split_events()
    return EventsResponse(
        upcoming=[_event(e) for e in upcoming],
        past=[_event(e) for e in past],
    )


@router.get("/team", response_model=list[TeamMemberResponse], summary="Core team")
async def list_team(services: Services = Depends(get_services)):
    return [_member(m) for m in await services.catalog.list_team()]
