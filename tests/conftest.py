"""Shared pytest fixtures for role engine tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from role_engine.core.catalog import PermissionCatalog, default_catalog, load_catalog
from role_engine.db import Database, DatabaseConfig, session_scope
from role_engine.features.roles.audit import InMemoryAuditTrail
from role_engine.features.roles.service import RoleRegistry
from role_engine.features.roles.store import InMemoryRoleStore
from role_engine.features.roles.usage import StaticUsageResolver
from role_engine.main import create_app
from role_engine.settings import Settings

SCENARIO_CATALOG = {
    "permissions": [
        "billing:view",
        "billing:create",
        "reports:view",
        {"key": "settings:edit", "scope": "org", "description": "Edit settings."},
    ],
    "groups": [
        {"name": "Billing", "permissions": ["billing:view", "billing:create"]},
        {"name": "Reports", "permissions": ["reports:view"]},
    ],
    "system_roles": [
        {"name": "Owner", "permissions": ["billing:view", "billing:create", "reports:view"]},
        {"name": "Member", "permissions": ["reports:view"], "is_default": True},
    ],
}


def pytest_collection_modifyitems(config, items) -> None:
    for item in items:
        path_str = str(Path(str(item.fspath)))
        if "/tests/integration/" in path_str:
            item.add_marker(pytest.mark.integration)
        elif "/tests/unit/" in path_str:
            item.add_marker(pytest.mark.unit)


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests that touch the database or HTTP stack")


# ---------------------------------------------------------------------------
# Catalog and registry
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog() -> PermissionCatalog:
    return default_catalog()


@pytest.fixture()
def scenario_catalog() -> PermissionCatalog:
    return load_catalog(SCENARIO_CATALOG)


@pytest.fixture()
def usage() -> StaticUsageResolver:
    return StaticUsageResolver()


@pytest.fixture()
def audit() -> InMemoryAuditTrail:
    return InMemoryAuditTrail()


@pytest.fixture()
def store() -> InMemoryRoleStore:
    return InMemoryRoleStore()


@pytest_asyncio.fixture()
async def registry(
    store: InMemoryRoleStore,
    catalog: PermissionCatalog,
    usage: StaticUsageResolver,
    audit: InMemoryAuditTrail,
) -> RoleRegistry:
    """Registry over the built-in catalog with system roles already seeded."""

    registry = RoleRegistry(store, catalog, usage_resolver=usage, audit=audit)
    await registry.seed_system_roles()
    return registry


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{(tmp_path / 'roles.sqlite').as_posix()}"


@pytest_asyncio.fixture()
async def database(database_url: str) -> AsyncIterator[Database]:
    database = Database()
    database.init(DatabaseConfig(url=database_url))
    await database.create_all()
    try:
        yield database
    finally:
        await database.dispose()


@pytest_asyncio.fixture()
async def session(database: Database) -> AsyncIterator[AsyncSession]:
    async with session_scope(database) as session:
        yield session


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        database_dsn=database_url,
        usage_resolver_endpoint=None,
        permission_catalog_source=None,
        logging_level="WARNING",
    )


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an HTTPX async client bound to the running application."""

    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest.fixture()
def app_usage(app: FastAPI, async_client: AsyncClient) -> StaticUsageResolver:
    """Swap the application's usage resolver for a controllable static one."""

    resolver = StaticUsageResolver()
    app.state.usage_resolver = resolver
    return resolver
