"""Auth router -- login, logout, operator management, and API key endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from kitabghar.auth.models import APIKey, Operator, Role
from kitabghar.auth.permissions import issue_capability
from kitabghar.services import Services
from web.backend.app.dependencies import get_services
from web.backend.app.middleware.auth import bearer_token, get_current_operator, require_admin
from web.backend.app.models.api import (
    APIKeyCreateRequest,
    APIKeyCreateResponse,
    APIKeyResponse,
    CreateOperatorRequest,
    LoginRequest,
    LoginResponse,
    OperatorResponse,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _operator_response(o: Operator) -> OperatorResponse:
    """Convert a domain Operator to a Pydantic OperatorResponse."""
    return OperatorResponse(
        id=o.id,
        username=o.username,
        display_name=o.display_name,
        email=o.email,
        role=o.role.value if isinstance(o.role, Role) else o.role,
        scopes=sorted(s.value for s in issue_capability(o).scopes),
        created_at=o.created_at,
        last_login=o.last_login,
    )


def _key_response(k: APIKey) -> APIKeyResponse:
    return APIKeyResponse(
        id=k.id,
        name=k.name,
        prefix=k.prefix,
        created_at=k.created_at,
        expires_at=k.expires_at,
        last_used=k.last_used,
    )


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse, summary="Sign in as an operator")
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    """Exchange a username and password for a session token."""
    store = services.operators
    operator = store.authenticate(body.username, body.password)
    if operator is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    session = store.create_session(operator.id)
    return LoginResponse(
        token=session.token,
        expires_at=session.expires_at,
        operator=_operator_response(operator),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
async def logout(
    authorization: Optional[str] = Header(None),
    operator: Operator = Depends(get_current_operator),
    services: Services = Depends(get_services),
):
    """Revoke the bearer token used for this request."""
    token = bearer_token(authorization)
    if token:
        services.operators.delete_session(token)


@router.get("/me", response_model=OperatorResponse, summary="Current operator")
async def me(operator: Operator = Depends(get_current_operator)):
    return _operator_response(operator)


# ---------------------------------------------------------------------------
# Operator management (admin only)
# ---------------------------------------------------------------------------


@router.get("/operators", response_model=list[OperatorResponse], summary="List operators")
async def list_operators(
    admin: Operator = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return [_operator_response(o) for o in services.operators.list_operators()]


@router.post(
    "/operators",
    response_model=OperatorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an operator",
)
async def create_operator(
    body: CreateOperatorRequest,
    admin: Operator = Depends(require_admin),
    services: Services = Depends(get_services),
):
    try:
        role = Role(body.role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown role '{body.role}'",
        ) from None
    try:
        operator = services.operators.create_operator(
            username=body.username,
            password=body.password,
            role=role,
            display_name=body.display_name,
            email=body.email,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    services.audit.record(
        operator=admin.username,
        action="create",
        table="operators",
        record_id=operator.id,
        details={"username": operator.username, "role": role.value},
    )
    return _operator_response(operator)


# ---------------------------------------------------------------------------
# API keys
# ---------------------------------------------------------------------------


@router.get("/api-keys", response_model=list[APIKeyResponse], summary="List your API keys")
async def list_api_keys(
    operator: Operator = Depends(get_current_operator),
    services: Services = Depends(get_services),
):
    return [_key_response(k) for k in services.operators.list_api_keys(operator.id)]


@router.post(
    "/api-keys",
    response_model=APIKeyCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an API key",
)
async def create_api_key(
    body: APIKeyCreateRequest,
    operator: Operator = Depends(get_current_operator),
    services: Services = Depends(get_services),
):
    key, raw_key = services.operators.create_api_key(
        operator.id, body.name, expires_in_days=body.expires_in_days
    )
    return APIKeyCreateResponse(key=_key_response(key), raw_key=raw_key)


@router.delete(
    "/api-keys/{key_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke an API key",
)
async def delete_api_key(
    key_id: str,
    operator: Operator = Depends(get_current_operator),
    services: Services = Depends(get_services),
):
    if not services.operators.delete_api_key(key_id, operator_id=operator.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"API key '{key_id}' not found",
        )
