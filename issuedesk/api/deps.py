"""
FastAPI dependencies — stores, token verification and role guards.

Everything is resolved from ``app.state``, which ``create_app`` fills
from its ``Settings``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from issuedesk.core.policy import Action, Actor, authorize
from issuedesk.core.security import TokenService
from issuedesk.stores.base import IssueStore, StoreBackend, UserStore

# auto_error=False so a missing header reaches the guard and gets our 401 body
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="Bearer <token>",
)


def get_backend(request: Request) -> StoreBackend:
    return request.app.state.backend


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def enforce_login_limit(request: Request) -> None:
    request.app.state.login_limiter.check(request)


# ── Stores ──────────────────────────────────────────────────────────
async def get_user_store(
    backend: StoreBackend = Depends(get_backend),
) -> AsyncGenerator[UserStore, None]:
    async with backend.user_store() as store:
        yield store


async def get_issue_store(
    backend: StoreBackend = Depends(get_backend),
) -> AsyncGenerator[IssueStore, None]:
    async with backend.issue_store() as store:
        yield store


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_actor(
    authorization: Optional[str] = Depends(authorization_header),
    tokens: TokenService = Depends(get_token_service),
) -> Actor:
    """Verify the bearer token and return the actor it names."""
    return tokens.verify(authorization)


async def require_admin(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """Only allow the admin role to proceed."""
    authorize(actor, Action.EXPORT)
    return actor
