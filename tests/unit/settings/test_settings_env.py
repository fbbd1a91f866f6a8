from __future__ import annotations

from collections.abc import Iterator
from datetime import timedelta

import pytest
from pydantic import ValidationError

from role_engine.settings import Settings, get_settings, reload_settings

_ENV_VARS = (
    "ROLE_ENGINE_APP_NAME",
    "ROLE_ENGINE_LOGGING_LEVEL",
    "ROLE_ENGINE_DATABASE_DSN",
    "ROLE_ENGINE_PERMISSION_CATALOG_SOURCE",
    "ROLE_ENGINE_USAGE_RESOLVER_ENDPOINT",
    "ROLE_ENGINE_USAGE_RESOLVER_TIMEOUT",
    "ROLE_ENGINE_SYSTEM_ROLE_PERMISSIONS_EDITABLE",
    "ROLE_ENGINE_SEED_SYSTEM_ROLES",
)


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure settings cache and env overrides are cleared between tests."""

    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reload_settings()
    yield
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reload_settings()


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.logging_level == "INFO"
    assert settings.usage_resolver_timeout == timedelta(seconds=5)
    assert settings.usage_resolver_timeout_seconds == 5.0
    assert settings.system_role_permissions_editable is True
    assert settings.seed_system_roles is True
    assert settings.permission_catalog_source is None
    assert settings.usage_resolver_endpoint is None
    assert settings.database_dsn.startswith("sqlite+aiosqlite:///")
    assert settings.database_dsn.endswith("/data/db/roles.sqlite")


def test_env_prefix_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROLE_ENGINE_APP_NAME", "Firm Roles")
    monkeypatch.setenv("ROLE_ENGINE_LOGGING_LEVEL", "debug")
    monkeypatch.setenv("ROLE_ENGINE_SYSTEM_ROLE_PERMISSIONS_EDITABLE", "false")
    monkeypatch.setenv("ROLE_ENGINE_USAGE_RESOLVER_TIMEOUT", "2m")

    settings = reload_settings()

    assert settings.app_name == "Firm Roles"
    assert settings.logging_level == "DEBUG"
    assert settings.system_role_permissions_editable is False
    assert settings.usage_resolver_timeout_seconds == 120.0
    assert get_settings() is settings


@pytest.mark.parametrize(
    ("raw", "seconds"),
    [("3", 3.0), ("1.5", 1.5), ("10s", 10.0), ("1h", 3600.0), (4, 4.0)],
)
def test_timeout_parsing(raw: object, seconds: float) -> None:
    settings = Settings(_env_file=None, usage_resolver_timeout=raw)

    assert settings.usage_resolver_timeout_seconds == seconds


@pytest.mark.parametrize("raw", ["0", "-1", "fast", "5w", ""])
def test_timeout_rejects_invalid_values(raw: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, usage_resolver_timeout=raw)


@pytest.mark.parametrize(
    "endpoint",
    [
        "https://directory.internal/usage",
        "http://localhost:8080/roles/{role_id}/count",
        "firm_directory.usage:count_assignments",
    ],
)
def test_usage_endpoint_accepts_urls_and_references(endpoint: str) -> None:
    settings = Settings(_env_file=None, usage_resolver_endpoint=endpoint)

    assert settings.usage_resolver_endpoint == endpoint


@pytest.mark.parametrize("endpoint", ["https://", "not a reference", "module:", ":callable"])
def test_usage_endpoint_rejects_garbage(endpoint: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, usage_resolver_endpoint=endpoint)


def test_blank_optional_values_become_none() -> None:
    settings = Settings(
        _env_file=None,
        usage_resolver_endpoint="  ",
        permission_catalog_source="   ",
    )

    assert settings.usage_resolver_endpoint is None
    assert settings.permission_catalog_source is None


def test_plain_sqlite_dsn_is_upgraded_to_async_driver(tmp_path) -> None:
    dsn = f"sqlite:///{(tmp_path / 'roles.sqlite').as_posix()}"

    settings = Settings(_env_file=None, database_dsn=dsn)

    assert settings.database_dsn == dsn.replace("sqlite://", "sqlite+aiosqlite://", 1)
