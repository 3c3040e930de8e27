"""Auth middleware -- FastAPI dependencies for the current operator.

Supports two authentication methods:
1. ``Authorization: Bearer <session_token>`` header (dashboard sessions)
2. ``X-API-Key: <raw_key>`` header (scripted access)
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from kitabghar.auth.models import Operator, OperatorCapability, Role
from kitabghar.auth.permissions import has_permission, issue_capability
from kitabghar.services import Services
from web.backend.app.dependencies import get_services


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer`` header, or ""."""
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" else ""


async def get_current_operator(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    services: Services = Depends(get_services),
) -> Operator:
    """FastAPI dependency that extracts and validates the current operator.

    Raises ``401 Unauthorized`` if no valid credentials are provided.
    """
    store = services.operators

    token = bearer_token(authorization)
    if token:
        operator = store.validate_session(token)
        if operator is not None:
            return operator

    if x_api_key:
        operator = store.validate_api_key(x_api_key)
        if operator is not None:
            return operator

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_capability(
    operator: Operator = Depends(get_current_operator),
) -> OperatorCapability:
    """The capability of the signed-in operator; services check its scopes."""
    return issue_capability(operator)


async def require_admin(operator: Operator = Depends(get_current_operator)) -> Operator:
    if not has_permission(operator, Role.admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role '{Role.admin.value}'",
        )
    return operator
