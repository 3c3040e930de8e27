"""Outbound notifications sent after moderation decisions."""

from kitabghar.notifications.dispatcher import (
    EdgeFunctionDispatcher,
    LoanApprovalNotice,
    LogOnlyDispatcher,
    NotificationDispatcher,
)

__all__ = [
    "EdgeFunctionDispatcher",
    "LoanApprovalNotice",
    "LogOnlyDispatcher",
    "NotificationDispatcher",
]
