"""Exception hierarchy shared by the store, workflow and web layers."""

from __future__ import annotations


class KitabgharError(Exception):
    """Base class for every error raised by the kitabghar package."""


class StoreOperationFailed(KitabgharError):
    """A create/read/update/delete against the record store did not commit."""

    def __init__(self, operation: str, table: str, reason: str = "") -> None:
        self.operation = operation
        self.table = table
        self.reason = reason
        message = f"{operation} on '{table}' failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class RecordNotFound(StoreOperationFailed):
    """The addressed record does not exist."""

    def __init__(self, table: str, record_id: str) -> None:
        self.record_id = record_id
        super().__init__("lookup", table, f"no record with id '{record_id}'")


class ModerationError(KitabgharError):
    """Base class for workflow errors."""


class InvalidTransition(ModerationError):
    """The requested status change is not in the active transition policy."""

    def __init__(self, family: str, current: str, target: str) -> None:
        self.family = family
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {family} from '{current}' to '{target}'")


class PermissionDenied(ModerationError):
    """The caller's capability lacks the scope an operation needs."""

    def __init__(self, scope: str) -> None:
        self.scope = scope
        super().__init__(f"Operation requires the '{scope}' scope")


class ValidationError(KitabgharError):
    """Submitted data is incomplete or malformed."""
