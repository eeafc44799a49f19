"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
stored on app.state; providers only hand them out.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from errors import AuthenticationError, AuthorizationError
from schemas.models.user import Principal, Role
from services.auth_service import INVALID_TOKEN, AuthContext, AuthService

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Authenticate the bearer token on the request; 401 when absent or invalid."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(INVALID_TOKEN)
    context = await auth.authenticate(credentials.credentials)
    structlog.contextvars.bind_contextvars(user_id=context.principal.id)
    return context


async def get_current_principal(
    context: AuthContext = Depends(get_auth_context),
) -> Principal:
    return context.principal


def require_roles(*roles: Role) -> Callable:
    """Dependency factory: 403 unless the authenticated principal holds one of *roles*."""

    async def dependency(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if not principal.has_role(*roles):
            raise AuthorizationError("forbidden")
        return principal

    return dependency
