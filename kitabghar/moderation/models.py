"""Result types returned by the moderation workflow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from kitabghar.records.models import LoanRequest


class NotificationOutcome(str, Enum):
    """What happened to the approval e-mail for a loan transition."""

    not_applicable = "not_applicable"  # transition does not notify
    sent = "sent"
    failed = "failed"


@dataclass
class LoanTransitionResult:
    """Outcome of a loan-request transition.

    The status change has always committed when this is returned; a failed
    notification or inventory sync is reported here instead of raised.
    """

    request: LoanRequest
    notification: NotificationOutcome = NotificationOutcome.not_applicable
    inventory_synced: bool = True

    @property
    def partial(self) -> bool:
        """True when the status changed but a side effect did not happen."""
        return self.notification is NotificationOutcome.failed or not self.inventory_synced

    @property
    def message(self) -> str:
        status = self.request.status.value
        if self.notification is NotificationOutcome.sent:
            return f"Request {status} successfully and email notification sent"
        if self.notification is NotificationOutcome.failed:
            return f"Request {status} successfully, but email notification failed"
        if not self.inventory_synced:
            return f"Request {status} successfully, but copy counts were not updated"
        return f"Request {status} successfully"
