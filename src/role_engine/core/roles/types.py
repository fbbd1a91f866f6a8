"""Role value objects."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from role_engine.common.time import utc_now


class RoleType(str, Enum):
    """Origin of a role."""

    SYSTEM = "system"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Role:
    """Named set of permission keys.

    Instances are immutable; every write produces a new value with a bumped
    ``version``.
    """

    id: UUID
    name: str
    description: str
    type: RoleType
    permissions: frozenset[str]
    is_default: bool = False
    version: int = 1
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_system(self) -> bool:
        return self.type is RoleType.SYSTEM

    @property
    def name_key(self) -> str:
        """Case-insensitive uniqueness key."""
        return normalize_role_name(self.name)

    def with_changes(
        self,
        *,
        name: str | None = None,
        description: str | None = None,
        permissions: Iterable[str] | None = None,
    ) -> Role:
        return replace(
            self,
            name=self.name if name is None else name,
            description=self.description if description is None else description,
            permissions=self.permissions if permissions is None else frozenset(permissions),
        )

    def sorted_permissions(self) -> list[str]:
        return sorted(self.permissions)


@dataclass(frozen=True)
class RolePatch:
    """Partial update; ``None`` leaves a field unchanged. ``permissions`` replaces the set."""

    name: str | None = None
    description: str | None = None
    permissions: frozenset[str] | None = None

    def __post_init__(self) -> None:
        if self.permissions is not None and not isinstance(self.permissions, frozenset):
            object.__setattr__(self, "permissions", frozenset(self.permissions))

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.description is None and self.permissions is None


def normalize_role_name(name: str) -> str:
    return name.strip().casefold()


__all__ = ["Role", "RolePatch", "RoleType", "normalize_role_name"]
