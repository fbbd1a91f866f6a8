"""Domain-specific exceptions for role administration."""

from __future__ import annotations

from uuid import UUID


class RoleError(ValueError):
    """Base class for role management errors."""

    code: str = "role_error"
    retryable: bool = False


class RoleNotFoundError(RoleError):
    """Raised when a role cannot be located."""

    code = "role_not_found"

    def __init__(self, role_id: UUID | str) -> None:
        super().__init__(f"Role '{role_id}' not found")
        self.role_id = role_id


class InvalidRoleNameError(RoleError):
    """Raised when a role name is blank or otherwise unusable."""

    code = "invalid_role_name"


class RoleNameConflictError(InvalidRoleNameError):
    """Raised when a role name collides with an existing role (case-insensitive)."""

    code = "role_name_conflict"

    def __init__(self, name: str) -> None:
        super().__init__(f"A role named '{name}' already exists")
        self.name = name


class UnknownPermissionError(RoleError):
    """Raised when a permission key is not part of the catalog."""

    code = "unknown_permission"

    def __init__(self, key: str) -> None:
        super().__init__(f"Permission '{key}' is not registered")
        self.key = key


class SystemRoleImmutableError(RoleError):
    """Raised when a system role's name or description would change."""

    code = "system_role_immutable"


class SystemRoleProtectedError(RoleError):
    """Raised when deleting a system role."""

    code = "system_role_protected"


class DefaultRoleProtectedError(RoleError):
    """Raised when deleting the default role."""

    code = "default_role_protected"


class RoleInUseError(RoleError):
    """Raised when a role still has active assignments."""

    code = "role_in_use"

    def __init__(self, role_id: UUID | str, count: int) -> None:
        noun = "user" if count == 1 else "users"
        super().__init__(f"Role is assigned to {count} {noun} and cannot be deleted")
        self.role_id = role_id
        self.count = count


class RoleVersionConflictError(RoleError):
    """Raised when the caller's expected version is stale."""

    code = "version_conflict"
    retryable = True

    def __init__(
        self,
        role_id: UUID | str,
        *,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        super().__init__("Role was modified by another request; reload and retry")
        self.role_id = role_id
        self.expected = expected
        self.actual = actual


class UsageResolverUnavailableError(RoleError):
    """Raised when role usage cannot be determined (timeout or upstream failure)."""

    code = "upstream_unavailable"
    retryable = True


__all__ = [
    "DefaultRoleProtectedError",
    "InvalidRoleNameError",
    "RoleError",
    "RoleInUseError",
    "RoleNameConflictError",
    "RoleNotFoundError",
    "RoleVersionConflictError",
    "SystemRoleImmutableError",
    "SystemRoleProtectedError",
    "UnknownPermissionError",
    "UsageResolverUnavailableError",
]
