"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.routing import Lifespan

from .common.exceptions import register_exception_handlers
from .common.logging import log_context, setup_logging
from .common.middleware import register_middleware
from .core.catalog import load_catalog
from .db import DatabaseConfig, db, session_scope
from .features.roles.audit import InMemoryAuditTrail
from .features.roles.router import router as roles_router
from .features.roles.service import RoleRegistry
from .features.roles.sql_store import SqlRoleStore
from .features.roles.usage import build_usage_resolver
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)
API_PREFIX = "/api/v1"

health_router = APIRouter(tags=["health"])


@health_router.get("/health", summary="Liveness probe")
async def health(request: Request) -> dict[str, object]:
    settings: Settings = request.app.state.settings
    return {
        "status": "ok",
        "version": settings.app_version,
        "permissions": len(request.app.state.catalog),
        "database": "ok" if await db.ping() else "unavailable",
    }


async def _seed_system_roles(app: FastAPI) -> None:
    async with session_scope() as session:
        registry = RoleRegistry(
            SqlRoleStore(session),
            app.state.catalog,
            audit=InMemoryAuditTrail(),
        )
        await registry.seed_system_roles()


def create_application_lifespan(*, settings: Settings) -> Lifespan[FastAPI]:
    """Return the lifespan handler: catalog, database, seed data, usage resolver."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.catalog = load_catalog(settings.permission_catalog_source)

        db.init(DatabaseConfig.from_settings(settings))
        await db.create_all()
        if settings.seed_system_roles:
            await _seed_system_roles(app)

        resolver = build_usage_resolver(settings)
        app.state.usage_resolver = resolver
        logger.info(
            "app.startup.complete",
            extra=log_context(app_name=settings.app_name, version=settings.app_version),
        )
        try:
            yield
        finally:
            aclose = getattr(resolver, "aclose", None)
            if aclose is not None:
                await aclose()
            await db.dispose()
            logger.info("app.shutdown.complete")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Return a configured FastAPI application."""

    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.api_docs_enabled else None,
        redoc_url="/redoc" if settings.api_docs_enabled else None,
        openapi_url="/openapi.json" if settings.api_docs_enabled else None,
        lifespan=create_application_lifespan(settings=settings),
    )
    app.state.settings = settings

    register_middleware(app)
    register_exception_handlers(app)
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(roles_router, prefix=API_PREFIX)
    return app


__all__ = [
    "API_PREFIX",
    "create_app",
    "create_application_lifespan",
]
