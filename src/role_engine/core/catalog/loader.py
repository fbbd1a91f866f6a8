"""Permission catalog loading and validation.

The catalog is loaded once at startup. Any structural problem is a fatal
configuration error: :class:`CatalogConfigurationError` is raised and the
process is expected to stop rather than serve with a partial catalog.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from role_engine.common.logging import log_context
from role_engine.core.catalog import registry
from role_engine.core.catalog.types import (
    DEFAULT_PERMISSION_SCOPE,
    CatalogConfigurationError,
    Permission,
    PermissionGroup,
    SystemRoleDefinition,
)

logger = logging.getLogger(__name__)


class PermissionCatalog:
    """Immutable universe of valid permissions, their groups, and system role seeds."""

    def __init__(
        self,
        permissions: Iterable[Permission],
        groups: Iterable[PermissionGroup] = (),
        system_roles: Iterable[SystemRoleDefinition] = (),
    ) -> None:
        ordered = tuple(permissions)
        if not ordered:
            raise CatalogConfigurationError("Permission catalog is empty")

        by_key: dict[str, Permission] = {}
        for permission in ordered:
            if permission.key in by_key:
                raise CatalogConfigurationError(
                    f"Permission '{permission.key}' is defined more than once"
                )
            by_key[permission.key] = permission

        self._permissions = ordered
        self._by_key: Mapping[str, Permission] = by_key
        self._groups = self._validate_groups(tuple(groups))
        self._system_roles = self._validate_system_roles(tuple(system_roles))

    # ------------- validation --------------------

    def _validate_groups(self, groups: tuple[PermissionGroup, ...]) -> tuple[PermissionGroup, ...]:
        seen: set[str] = set()
        for group in groups:
            name_key = group.name.strip().casefold()
            if not name_key:
                raise CatalogConfigurationError("Permission group names cannot be blank")
            if name_key in seen:
                raise CatalogConfigurationError(
                    f"Permission group '{group.name}' is defined more than once"
                )
            seen.add(name_key)
            if not group.permissions:
                raise CatalogConfigurationError(f"Permission group '{group.name}' is empty")
            for key in group.permissions:
                if key not in self._by_key:
                    raise CatalogConfigurationError(
                        f"Permission group '{group.name}' references unknown permission '{key}'"
                    )
        return groups

    def _validate_system_roles(
        self, roles: tuple[SystemRoleDefinition, ...]
    ) -> tuple[SystemRoleDefinition, ...]:
        seen: set[str] = set()
        for role in roles:
            name_key = role.name.strip().casefold()
            if not name_key:
                raise CatalogConfigurationError("System role names cannot be blank")
            if name_key in seen:
                raise CatalogConfigurationError(
                    f"System role '{role.name}' is defined more than once"
                )
            seen.add(name_key)
            for key in role.permissions:
                if key not in self._by_key:
                    raise CatalogConfigurationError(
                        f"System role '{role.name}' references unknown permission '{key}'"
                    )
        return roles

    # ------------- queries -----------------------

    def all_permissions(self) -> frozenset[Permission]:
        return frozenset(self._permissions)

    def permissions(self) -> tuple[Permission, ...]:
        """Return permissions in catalog order."""
        return self._permissions

    @property
    def keys(self) -> frozenset[str]:
        return frozenset(self._by_key)

    def groups(self) -> tuple[PermissionGroup, ...]:
        return self._groups

    def group(self, name: str) -> PermissionGroup | None:
        wanted = name.strip().casefold()
        for group in self._groups:
            if group.name.casefold() == wanted:
                return group
        return None

    def system_roles(self) -> tuple[SystemRoleDefinition, ...]:
        return self._system_roles

    def is_valid(self, key: str) -> bool:
        return key in self._by_key

    def get(self, key: str) -> Permission | None:
        return self._by_key.get(key)

    def __len__(self) -> int:
        return len(self._permissions)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key


# ---------------------------------------------------------------------------
# Catalog documents (JSON)
# ---------------------------------------------------------------------------


class _PermissionDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str
    scope: str = DEFAULT_PERMISSION_SCOPE
    label: str | None = None
    description: str = ""


class _GroupDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    permissions: list[str]


class _SystemRoleDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    permissions: list[str] = Field(default_factory=list)
    is_default: bool = False


class CatalogDocument(BaseModel):
    """JSON shape accepted by :func:`load_catalog`."""

    model_config = ConfigDict(extra="forbid")

    permissions: list[_PermissionDocument | str]
    groups: list[_GroupDocument] = Field(default_factory=list)
    system_roles: list[_SystemRoleDocument] = Field(default_factory=list)


def catalog_from_document(document: CatalogDocument) -> PermissionCatalog:
    permissions: list[Permission] = []
    for entry in document.permissions:
        if isinstance(entry, str):
            permissions.append(Permission.from_key(entry))
        else:
            permissions.append(
                Permission.from_key(
                    entry.key,
                    scope=entry.scope,
                    label=entry.label,
                    description=entry.description,
                )
            )
    groups = [
        PermissionGroup(
            name=group.name,
            description=group.description,
            permissions=tuple(group.permissions),
        )
        for group in document.groups
    ]
    system_roles = [
        SystemRoleDefinition(
            name=role.name,
            description=role.description,
            permissions=tuple(role.permissions),
            is_default=role.is_default,
        )
        for role in document.system_roles
    ]
    return PermissionCatalog(permissions, groups, system_roles)


def default_catalog() -> PermissionCatalog:
    """Return the built-in catalog."""
    return PermissionCatalog(
        registry.PERMISSIONS,
        registry.PERMISSION_GROUPS,
        registry.SYSTEM_ROLES,
    )


def _read_source(source: str | Path) -> Any:
    if isinstance(source, str) and source.lstrip().startswith("{"):
        origin = "inline"
        raw = source
    else:
        path = Path(source).expanduser()
        origin = str(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CatalogConfigurationError(
                f"Permission catalog '{origin}' could not be read: {exc}"
            ) from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CatalogConfigurationError(
            f"Permission catalog '{origin}' is not valid JSON: {exc}"
        ) from exc


def load_catalog(source: str | Path | Mapping[str, Any] | None = None) -> PermissionCatalog:
    """Load and validate a permission catalog.

    ``None`` selects the built-in catalog, a mapping is treated as an already
    parsed document, a string starting with ``{`` is inline JSON, and anything
    else is a path to a JSON file.
    """

    if source is None:
        catalog = default_catalog()
        origin = "builtin"
    else:
        payload = source if isinstance(source, Mapping) else _read_source(source)
        origin = "inline" if not isinstance(source, (str, Path)) else str(source)[:80]
        try:
            document = CatalogDocument.model_validate(payload)
        except ValidationError as exc:
            raise CatalogConfigurationError(f"Permission catalog is malformed: {exc}") from exc
        catalog = catalog_from_document(document)

    logger.info(
        "catalog.load.success",
        extra=log_context(
            source=origin,
            permissions=len(catalog),
            groups=len(catalog.groups()),
            system_roles=len(catalog.system_roles()),
        ),
    )
    return catalog


__all__ = [
    "CatalogDocument",
    "PermissionCatalog",
    "catalog_from_document",
    "default_catalog",
    "load_catalog",
]
