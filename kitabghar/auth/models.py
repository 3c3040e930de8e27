"""Auth domain models for operators, sessions, API keys and capabilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Role(str, Enum):
    """Role hierarchy: admin > moderator > viewer."""

    admin = "admin"
    moderator = "moderator"
    viewer = "viewer"

    @property
    def level(self) -> int:
        """Return numeric level for comparison (higher = more privileges)."""
        return {
            Role.admin: 30,
            Role.moderator: 20,
            Role.viewer: 10,
        }[self]


class Scope(str, Enum):
    """What a capability lets its holder do."""

    moderate = "moderate"
    manage_catalog = "manage_catalog"
    manage_operators = "manage_operators"


@dataclass
class Operator:
    """A club member allowed to sign in to the management panels."""

    id: str
    username: str
    display_name: str = ""
    email: str = ""
    role: Role = Role.moderator
    password_hash: str = ""
    created_at: str = ""
    last_login: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = _now()
        if isinstance(self.role, str):
            self.role = Role(self.role)


@dataclass
class Session:
    """Represents an active operator session."""

    id: str
    operator_id: str
    token: str
    created_at: str = ""
    expires_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = _now()


@dataclass
class APIKey:
    """Represents an API key for scripted access."""

    id: str
    operator_id: str
    name: str
    key_hash: str
    prefix: str  # First 8 chars for display
    created_at: str = ""
    expires_at: str = ""
    last_used: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = _now()


@dataclass(frozen=True)
class OperatorCapability:
    """Proof that an authenticated operator may perform scoped actions.

    Issued by :func:`kitabghar.auth.permissions.issue_capability` and passed
    explicitly into the workflow engine and catalog service.
    """

    operator_id: str
    username: str
    scopes: frozenset[Scope] = field(default_factory=frozenset)

    def allows(self, scope: Scope) -> bool:
        return scope in self.scopes
