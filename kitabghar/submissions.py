"""Public submissions: poems, pen-down posts and book-loan requests.

Submitters are anonymous.  Everything they create starts in ``pending`` and
waits for an operator in the moderation workflow.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from kitabghar.errors import ValidationError
from kitabghar.records.models import (
    BOOK_REQUESTS,
    BOOKS,
    PENDOWN_POSTS,
    POEMS,
    ContentStatus,
    LoanRequest,
    LoanStatus,
    PendownPost,
    Poem,
    utc_now,
)
from kitabghar.records.store import RecordStore

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _required(**values: Optional[str]) -> dict[str, str]:
    cleaned = {k: (v or "").strip() for k, v in values.items()}
    missing = [k for k, v in cleaned.items() if not v]
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")
    return cleaned


def _optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class SubmissionService:
    """Creates pending records on behalf of anonymous submitters."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def submit_poem(
        self,
        title: str,
        content: str,
        author: str,
        email: Optional[str] = None,
    ) -> Poem:
        fields = _required(title=title, content=content, author=author)
        email = _optional(email)
        if email and not _EMAIL_RE.match(email):
            raise ValidationError(f"'{email}' is not a valid e-mail address")
        row = await self.store.insert(
            POEMS,
            {
                **fields,
                "likes_count": 0,
                "status": ContentStatus.pending.value,
                "submitted_by_email": email,
                "published_at": None,
            },
        )
        logger.info("Poem '%s' submitted by %s", fields["title"], fields["author"])
        return Poem.from_row(row)

    async def submit_pendown_post(
        self,
        title: str,
        content: str,
        author: str,
        tags: Optional[list[str]] = None,
    ) -> PendownPost:
        fields = _required(title=title, content=content, author=author)
        row = await self.store.insert(
            PENDOWN_POSTS,
            {
                **fields,
                "status": ContentStatus.pending.value,
                "tags": [t.strip() for t in (tags or []) if t and t.strip()],
                "is_featured": False,
                "published_at": None,
            },
        )
        logger.info("Pen-down post '%s' submitted by %s", fields["title"], fields["author"])
        return PendownPost.from_row(row)

    async def submit_loan_request(
        self,
        book_id: str,
        user_name: str,
        user_email: str,
        preferred_due_date: str,
        mobile_no: Optional[str] = None,
        academic_year: Optional[str] = None,
        roll_no: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LoanRequest:
        """Ask to borrow a book.

        The book must exist and have a copy on the shelf, the e-mail must look
        like one and the preferred due date (``YYYY-MM-DD``) must not be in
        the past.
        """
        fields = _required(
            user_name=user_name, user_email=user_email, preferred_due_date=preferred_due_date
        )
        if not _EMAIL_RE.match(fields["user_email"]):
            raise ValidationError(f"'{fields['user_email']}' is not a valid e-mail address")
        try:
            due = date.fromisoformat(fields["preferred_due_date"][:10])
        except ValueError:
            raise ValidationError("preferred_due_date must be a YYYY-MM-DD date") from None
        if due < (today or date.today()):
            raise ValidationError("preferred_due_date cannot be in the past")

        book = await self.store.get(BOOKS, book_id)
        if int(book.get("available_copies") or 0) <= 0:
            raise ValidationError(f"'{book.get('title', book_id)}' is out of stock")

        now = utc_now()
        row = await self.store.insert(
            BOOK_REQUESTS,
            {
                "book_id": book_id,
                "user_name": fields["user_name"],
                "user_email": fields["user_email"],
                "mobile_no": _optional(mobile_no),
                "academic_year": _optional(academic_year),
                "roll_no": _optional(roll_no),
                "preferred_due_date": due.isoformat(),
                "notes": _optional(notes),
                "status": LoanStatus.pending.value,
                "request_date": now,
            },
        )
        logger.info("Loan request for book %s from %s", book_id, fields["user_email"])
        return LoanRequest.from_row(row)
