"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from jobdock.errors.exceptions import AuthenticationError, AuthorizationError
from jobdock.logging_config import bind_request_context
from jobdock.models.actor import Actor
from jobdock.models.enums import DenyReason, UserRole
from jobdock.repositories.tenant_repo import TenantRepository
from jobdock.repositories.user_repo import UserRepository
from jobdock.services.scheduling.lifecycle import JobLifecycleManager


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(request: Request) -> dict:
    """Return the authenticated token claims or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


async def get_actor(
    request: Request,
    user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the token subject into an Actor from the user and tenant rows.

    Role, capabilities and subscription tier always come from the database,
    so a stale token cannot widen access.
    """
    row = await UserRepository(db).get(user["sub"])
    if row is None or not row.is_active:
        raise AuthenticationError("Unknown or inactive user")
    if row.tenant_id != user.get("tenant_id"):
        raise AuthenticationError("Token tenant does not match user")
    tenant = await TenantRepository(db).get(row.tenant_id)
    if tenant is None:
        raise AuthenticationError("Unknown account")

    actor = Actor.from_rows(row, tenant)
    bind_request_context(get_trace_id(request), tenant_id=actor.tenant_id, user_id=actor.user_id)
    return actor


def get_blob_store(request: Request):
    return getattr(request.app.state, "blob_store", None)


def get_notifier(request: Request):
    return getattr(request.app.state, "notifier", None)


async def get_lifecycle_manager(
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier),
    blob_store=Depends(get_blob_store),
) -> JobLifecycleManager:
    return JobLifecycleManager(db, notifier=notifier, blob_store=blob_store)


async def require_owner(actor: Actor = Depends(get_actor)) -> Actor:
    """Only account owners may run maintenance operations."""
    if actor.role != UserRole.OWNER:
        raise AuthorizationError("Requires the account owner", reason=DenyReason.INSUFFICIENT_ROLE.value)
    return actor


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
TraceId = Annotated[str, Depends(get_trace_id)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
Lifecycle = Annotated[JobLifecycleManager, Depends(get_lifecycle_manager)]
OwnerActor = Annotated[Actor, Depends(require_owner)]
