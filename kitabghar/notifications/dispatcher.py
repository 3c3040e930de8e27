"""Loan-approval e-mail dispatch.

The message itself is rendered and sent by the hosted edge function
``send-book-approval-email``; this module only delivers the payload and
reports whether that single attempt succeeded.  There are no retries and no
queue.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

APPROVAL_EMAIL_FUNCTION = "send-book-approval-email"


@dataclass
class LoanApprovalNotice:
    """Everything the approval e-mail needs."""

    recipient_email: str
    recipient_name: str
    item_title: str
    item_author: str
    due_date: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body the edge function expects."""
        return {
            "userEmail": self.recipient_email,
            "userName": self.recipient_name,
            "bookTitle": self.item_title,
            "bookAuthor": self.item_author,
            "dueDate": self.due_date,
        }


class NotificationDispatcher(ABC):
    """Abstract base class for approval notifiers."""

    @abstractmethod
    async def send(self, notice: LoanApprovalNotice) -> bool:
        """Send *notice* once. Returns True if it was accepted for delivery."""


class EdgeFunctionDispatcher(NotificationDispatcher):
    """Invokes the Supabase edge function that sends the approval e-mail."""

    def __init__(
        self,
        supabase_url: str,
        key: str,
        function_name: str = APPROVAL_EMAIL_FUNCTION,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.endpoint = f"{supabase_url.rstrip('/')}/functions/v1/{function_name}"
        self.key = key
        self._client = client
        self._timeout = timeout

    async def send(self, notice: LoanApprovalNotice) -> bool:
        headers = {
            "Authorization": f"Bearer {self.key}",
            "apikey": self.key,
            "Content-Type": "application/json",
        }
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.endpoint, json=notice.to_payload(), headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self.endpoint, json=notice.to_payload(), headers=headers
                    )
        except httpx.HTTPError as exc:
            logger.error("Approval e-mail to %s failed: %s", notice.recipient_email, exc)
            return False

        if response.status_code >= 400:
            logger.error(
                "Approval e-mail to %s rejected (%s): %s",
                notice.recipient_email,
                response.status_code,
                response.text[:200],
            )
            return False

        logger.info("Approval e-mail sent to %s for '%s'", notice.recipient_email, notice.item_title)
        return True


class LogOnlyDispatcher(NotificationDispatcher):
    """Used when no hosted functions are configured: logs, never sends."""

    async def send(self, notice: LoanApprovalNotice) -> bool:
        logger.warning("Edge functions not configured -- approval e-mail logged but not sent.")
        logger.info(
            "[EMAIL LOG] To: %s, Book: %s by %s, Due: %s",
            notice.recipient_email,
            notice.item_title,
            notice.item_author,
            notice.due_date or "-",
        )
        return False
