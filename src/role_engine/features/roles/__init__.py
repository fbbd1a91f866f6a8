"""Role administration: registry, stores, usage resolvers and HTTP API."""

from .exceptions import (
    DefaultRoleProtectedError,
    InvalidRoleNameError,
    RoleError,
    RoleInUseError,
    RoleNameConflictError,
    RoleNotFoundError,
    RoleVersionConflictError,
    SystemRoleImmutableError,
    SystemRoleProtectedError,
    UnknownPermissionError,
    UsageResolverUnavailableError,
)
from .service import GroupToggleResult, RoleRegistry, RoleUsage
from .store import InMemoryRoleStore, RoleStore

__all__ = [
    "DefaultRoleProtectedError",
    "GroupToggleResult",
    "InMemoryRoleStore",
    "InvalidRoleNameError",
    "RoleError",
    "RoleInUseError",
    "RoleNameConflictError",
    "RoleNotFoundError",
    "RoleRegistry",
    "RoleStore",
    "RoleUsage",
    "RoleVersionConflictError",
    "SystemRoleImmutableError",
    "SystemRoleProtectedError",
    "UnknownPermissionError",
    "UsageResolverUnavailableError",
]
