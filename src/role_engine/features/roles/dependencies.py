"""Per-request factories for the roles router."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from role_engine.common.middleware import ACTOR_HEADER
from role_engine.core.catalog import PermissionCatalog
from role_engine.db import get_db_session
from role_engine.settings import Settings

from .audit import SqlAuditTrail
from .service import RoleRegistry
from .sql_store import SqlRoleStore
from .usage import UsageResolver

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> PermissionCatalog:
    return request.app.state.catalog


def get_usage_resolver(request: Request) -> UsageResolver:
    return request.app.state.usage_resolver


def get_actor(request: Request) -> str | None:
    """Caller identity for the audit trail, taken from ``X-Actor`` when present."""

    actor = (request.headers.get(ACTOR_HEADER) or "").strip()
    return actor or None


def get_role_registry(
    session: SessionDep,
    settings: Annotated[Settings, Depends(get_app_settings)],
    catalog: Annotated[PermissionCatalog, Depends(get_catalog)],
    usage_resolver: Annotated[UsageResolver, Depends(get_usage_resolver)],
) -> RoleRegistry:
    return RoleRegistry(
        SqlRoleStore(session),
        catalog,
        usage_resolver=usage_resolver,
        audit=SqlAuditTrail(session),
        usage_timeout=settings.usage_resolver_timeout_seconds,
        system_role_permissions_editable=settings.system_role_permissions_editable,
    )


RegistryDep = Annotated[RoleRegistry, Depends(get_role_registry)]
CatalogDep = Annotated[PermissionCatalog, Depends(get_catalog)]
ActorDep = Annotated[str | None, Depends(get_actor)]

__all__ = [
    "ActorDep",
    "CatalogDep",
    "RegistryDep",
    "get_actor",
    "get_catalog",
    "get_role_registry",
    "get_usage_resolver",
]
