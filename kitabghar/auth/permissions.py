"""Role-based capability issuing.

Role hierarchy: admin > moderator > viewer
"""

from __future__ import annotations

from kitabghar.auth.models import Operator, OperatorCapability, Role, Scope
from kitabghar.errors import PermissionDenied

_ROLE_SCOPES: dict[Role, frozenset[Scope]] = {
    Role.admin: frozenset({Scope.moderate, Scope.manage_catalog, Scope.manage_operators}),
    Role.moderator: frozenset({Scope.moderate, Scope.manage_catalog}),
    Role.viewer: frozenset(),
}


def has_permission(operator: Operator, required_role: Role) -> bool:
    """Check if an operator's role meets or exceeds the required role level."""
    role = operator.role if isinstance(operator.role, Role) else Role(operator.role)
    return role.level >= required_role.level


def issue_capability(operator: Operator) -> OperatorCapability:
    """Return the capability an authenticated *operator* holds."""
    role = operator.role if isinstance(operator.role, Role) else Role(operator.role)
    return OperatorCapability(
        operator_id=operator.id,
        username=operator.username,
        scopes=_ROLE_SCOPES[role],
    )


def require_scope(capability: OperatorCapability | None, scope: Scope) -> OperatorCapability:
    """Raise :class:`PermissionDenied` unless *capability* carries *scope*.

    Usage in a service::

        def approve(self, capability, ...):
            require_scope(capability, Scope.moderate)
            ...
    """
    if capability is None or not capability.allows(scope):
        raise PermissionDenied(scope.value)
    return capability
