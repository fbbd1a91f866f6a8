"""Permission catalog type definitions."""

from __future__ import annotations

from dataclasses import dataclass, field

PERMISSION_SEPARATOR = ":"
DEFAULT_PERMISSION_SCOPE = "team"


class CatalogConfigurationError(ValueError):
    """Raised when the permission catalog is empty or malformed."""


def split_permission_key(key: str) -> tuple[str, str]:
    """Return ``(resource, action)`` for a ``resource:action`` key."""

    resource, sep, action = key.partition(PERMISSION_SEPARATOR)
    if (
        not sep
        or not resource.strip()
        or not action.strip()
        or PERMISSION_SEPARATOR in action
        or key != key.strip()
    ):
        raise CatalogConfigurationError(
            f"Permission '{key}' must use the 'resource:action' form"
        )
    return resource, action


def _humanize(token: str) -> str:
    text = token.replace("_", " ")
    return text[:1].upper() + text[1:]


@dataclass(frozen=True)
class Permission:
    """Static permission definition."""

    key: str
    resource: str
    action: str
    scope: str = DEFAULT_PERMISSION_SCOPE
    label: str = ""
    description: str = ""

    @classmethod
    def from_key(
        cls,
        key: str,
        *,
        scope: str = DEFAULT_PERMISSION_SCOPE,
        label: str | None = None,
        description: str = "",
    ) -> Permission:
        resource, action = split_permission_key(key)
        return cls(
            key=key,
            resource=resource,
            action=action,
            scope=scope,
            label=label or f"{_humanize(resource)} - {_humanize(action)}",
            description=description,
        )

    @property
    def display_name(self) -> str:
        """Human readable ``Resource - Action`` text, e.g. ``Team - Manage members``."""
        return f"{_humanize(self.resource)} - {_humanize(self.action)}"


@dataclass(frozen=True)
class PermissionGroup:
    """Named, ordered bundle of permission keys used for bulk selection."""

    name: str
    description: str
    permissions: tuple[str, ...]


@dataclass(frozen=True)
class SystemRoleDefinition:
    """Seed data for system roles."""

    name: str
    description: str
    permissions: tuple[str, ...] = field(default_factory=tuple)
    is_default: bool = False


__all__ = [
    "CatalogConfigurationError",
    "DEFAULT_PERMISSION_SCOPE",
    "PERMISSION_SEPARATOR",
    "Permission",
    "PermissionGroup",
    "SystemRoleDefinition",
    "split_permission_key",
]
