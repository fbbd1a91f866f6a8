"""Runtime configuration read from ``ROLE_ENGINE_*`` environment variables."""

from __future__ import annotations

import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

DEFAULT_DB_FILENAME = "roles.sqlite"
DEFAULT_SQLITE_PATH = Path("./data") / "db" / DEFAULT_DB_FILENAME
DEFAULT_USAGE_RESOLVER_TIMEOUT = timedelta(seconds=5)

_DURATION = re.compile(r"^(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>[smhd]?)$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def _to_timedelta(value: Any, *, name: str) -> timedelta:
    """Parse seconds or a ``5s``/``1m``/``1h``/``1d`` string into a positive timedelta."""

    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        match = _DURATION.match(str(value or "").strip())
        if match is None:
            raise ValueError(f"{name} must be seconds or a duration such as '30s', '2m' or '1h'")
        seconds = float(match["amount"]) * _UNIT_SECONDS[match["unit"].lower()]
    if seconds <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return timedelta(seconds=seconds)


def _blank_to_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Settings(BaseSettings):
    """Engine settings; ``.env`` in the working directory is honoured."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ROLE_ENGINE_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    app_name: str = "Role Administration Engine"
    app_version: str = "0.1.0"
    api_docs_enabled: bool = False
    logging_level: str = "INFO"

    database_dsn: str | None = None
    database_echo: bool = False

    # JSON file path or inline JSON document; unset means the built-in catalog.
    permission_catalog_source: str | None = None

    # http(s) URL or "package.module:callable"; unset means zero assignments everywhere.
    usage_resolver_endpoint: str | None = None
    usage_resolver_timeout: timedelta = Field(default=DEFAULT_USAGE_RESOLVER_TIMEOUT)

    system_role_permissions_editable: bool = True
    seed_system_roles: bool = True

    @field_validator("logging_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        return (_blank_to_none(value) or "INFO").upper()

    @field_validator("usage_resolver_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> timedelta:
        return _to_timedelta(value, name="ROLE_ENGINE_USAGE_RESOLVER_TIMEOUT")

    @field_validator("permission_catalog_source", mode="before")
    @classmethod
    def _normalize_catalog_source(cls, value: Any) -> str | None:
        return _blank_to_none(value)

    @field_validator("usage_resolver_endpoint", mode="before")
    @classmethod
    def _check_usage_endpoint(cls, value: Any) -> str | None:
        endpoint = _blank_to_none(value)
        if endpoint is None:
            return None
        parsed = urlparse(endpoint)
        if parsed.scheme in {"http", "https"}:
            if not parsed.netloc:
                raise ValueError("ROLE_ENGINE_USAGE_RESOLVER_ENDPOINT must be a full http(s) URL")
            return endpoint
        module, sep, attr = endpoint.partition(":")
        if not sep or not module.strip() or not attr.strip() or " " in endpoint:
            raise ValueError(
                "ROLE_ENGINE_USAGE_RESOLVER_ENDPOINT must be an http(s) URL "
                "or a 'package.module:callable' reference"
            )
        return endpoint

    @model_validator(mode="after")
    def _default_database(self) -> Settings:
        if not self.database_dsn:
            path = DEFAULT_SQLITE_PATH.expanduser().resolve()
            self.database_dsn = f"sqlite+aiosqlite:///{path.as_posix()}"

        url = make_url(self.database_dsn)
        if url.drivername == "sqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        self.database_dsn = url.render_as_string(hide_password=False)
        return self

    @property
    def usage_resolver_timeout_seconds(self) -> float:
        return self.usage_resolver_timeout.total_seconds()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "DEFAULT_DB_FILENAME",
    "DEFAULT_USAGE_RESOLVER_TIMEOUT",
    "Settings",
    "get_settings",
    "reload_settings",
]
