"""Role registry: the single write path for role definitions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from role_engine.common.ids import generate_uuid7
from role_engine.common.logging import log_context
from role_engine.core.catalog import PermissionCatalog, PermissionGroup
from role_engine.core.roles.selection import (
    GroupSelection,
    GroupState,
    summarize_groups,
)
from role_engine.core.roles.selection import toggle_group as apply_group_toggle
from role_engine.core.roles.types import Role, RolePatch, RoleType

from .audit import AuditTrail, InMemoryAuditTrail, RoleAuditAction, RoleAuditEvent
from .exceptions import (
    DefaultRoleProtectedError,
    InvalidRoleNameError,
    RoleInUseError,
    RoleNameConflictError,
    RoleVersionConflictError,
    SystemRoleImmutableError,
    SystemRoleProtectedError,
    UnknownPermissionError,
    UsageResolverUnavailableError,
)
from .store import RoleStore
from .usage import StaticUsageResolver, UsageResolver

logger = logging.getLogger(__name__)

MAX_ROLE_NAME_LENGTH = 150
CLONE_SUFFIX = "Copy"
DEFAULT_USAGE_TIMEOUT_SECONDS = 5.0


# ---------------------------------------------------------------------------
# DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupToggleResult:
    """Role after a group toggle plus the group's resulting state."""

    role: Role
    state: GroupState


@dataclass(frozen=True)
class RoleUsage:
    role: Role
    assignments: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalize_name(value: str) -> str:
    candidate = (value or "").strip()
    if not candidate:
        raise InvalidRoleNameError("Role name is required")
    if len(candidate) > MAX_ROLE_NAME_LENGTH:
        raise InvalidRoleNameError(
            f"Role name must be at most {MAX_ROLE_NAME_LENGTH} characters"
        )
    return candidate


def _normalize_description(value: str | None) -> str:
    return (value or "").strip()


def _clone_name(source: str, attempt: int) -> str:
    """Return the clone name for ``attempt``, trimming ``source`` to stay within the name limit."""

    suffix = f" ({CLONE_SUFFIX})" if attempt == 1 else f" ({CLONE_SUFFIX} {attempt})"
    base = source[: MAX_ROLE_NAME_LENGTH - len(suffix)].rstrip()
    return f"{base}{suffix}"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class RoleRegistry:
    """Validates and applies role changes against a catalog and a store.

    Every mutation checks catalog membership, name uniqueness and the
    protected-role rules before touching the store. Deletion additionally
    consults the usage resolver immediately before the write and fails closed
    when the count cannot be determined.
    """

    def __init__(
        self,
        store: RoleStore,
        catalog: PermissionCatalog,
        *,
        usage_resolver: UsageResolver | None = None,
        audit: AuditTrail | None = None,
        usage_timeout: float = DEFAULT_USAGE_TIMEOUT_SECONDS,
        system_role_permissions_editable: bool = True,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._usage = usage_resolver or StaticUsageResolver()
        self._audit = audit or InMemoryAuditTrail()
        self._usage_timeout = usage_timeout
        self._system_role_permissions_editable = system_role_permissions_editable

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    # ------------- validation --------------------

    def validate_permissions(self, keys: Iterable[str]) -> frozenset[str]:
        """Return the de-duplicated keys or raise for the first unknown one."""

        normalized: list[str] = []
        for key in keys:
            candidate = str(key).strip()
            if not self._catalog.is_valid(candidate):
                raise UnknownPermissionError(candidate)
            normalized.append(candidate)
        return frozenset(normalized)

    async def _ensure_name_available(self, name: str, *, exclude: UUID | None = None) -> None:
        existing = await self._store.find_by_name(name)
        if existing is not None and existing.id != exclude:
            raise RoleNameConflictError(name)

    @staticmethod
    def _check_version(role: Role, expected_version: int | None) -> None:
        if expected_version is not None and role.version != expected_version:
            raise RoleVersionConflictError(
                role.id, expected=expected_version, actual=role.version
            )

    def _ensure_permissions_editable(self, role: Role) -> None:
        if role.is_system and not self._system_role_permissions_editable:
            raise SystemRoleImmutableError(
                f"Permissions of system role '{role.name}' cannot be changed"
            )

    async def _record(
        self,
        action: RoleAuditAction,
        role: Role,
        *,
        actor: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        await self._audit.record(
            RoleAuditEvent(
                role_id=role.id,
                role_name=role.name,
                action=action,
                actor=actor,
                details=details or {},
            )
        )

    # ------------- queries -----------------------

    async def list_roles(self) -> list[Role]:
        return await self._store.list()

    async def get_role(self, role_id: UUID) -> Role:
        return await self._store.get(role_id)

    def group_summary(
        self,
        role: Role,
        groups: Sequence[PermissionGroup] | None = None,
    ) -> list[GroupSelection]:
        return summarize_groups(
            role.permissions,
            self._catalog.groups() if groups is None else groups,
        )

    async def audit_events(self, role_id: UUID) -> list[RoleAuditEvent]:
        return await self._audit.list_for_role(role_id)

    async def _count_usage(self, role: Role) -> int:
        try:
            count = await asyncio.wait_for(
                self._usage.count_assignments(role),
                timeout=self._usage_timeout,
            )
        except UsageResolverUnavailableError:
            logger.warning("usage.resolve.unavailable", extra=log_context(role_id=role.id))
            raise
        except TimeoutError as exc:
            logger.warning(
                "usage.resolve.timeout",
                extra=log_context(role_id=role.id, timeout_seconds=self._usage_timeout),
            )
            raise UsageResolverUnavailableError(
                "Usage lookup timed out; role assignments could not be verified"
            ) from exc
        except Exception as exc:
            logger.exception("usage.resolve.failed", extra=log_context(role_id=role.id))
            raise UsageResolverUnavailableError(
                "Usage lookup failed; role assignments could not be verified"
            ) from exc

        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise UsageResolverUnavailableError("Usage lookup returned an invalid count")
        return count

    async def role_usage(self, role_id: UUID) -> int:
        role = await self._store.get(role_id)
        return await self._count_usage(role)

    async def list_roles_with_usage(self) -> list[RoleUsage]:
        roles = await self._store.list()
        return [RoleUsage(role=role, assignments=await self._count_usage(role)) for role in roles]

    # ------------- mutations ---------------------

    async def create_role(
        self,
        name: str,
        description: str | None = "",
        permissions: Iterable[str] = (),
        *,
        actor: str | None = None,
    ) -> Role:
        normalized_name = _normalize_name(name)
        keys = self.validate_permissions(permissions)
        await self._ensure_name_available(normalized_name)

        role = await self._store.insert(
            Role(
                id=generate_uuid7(),
                name=normalized_name,
                description=_normalize_description(description),
                type=RoleType.CUSTOM,
                permissions=keys,
            )
        )
        await self._record(
            RoleAuditAction.CREATE,
            role,
            actor=actor,
            details={"permissions": role.sorted_permissions()},
        )
        logger.info(
            "roles.create.success",
            extra=log_context(
                role_id=role.id,
                role_name=role.name,
                actor=actor,
                permission_count=len(role.permissions),
            ),
        )
        return role

    async def update_role(
        self,
        role_id: UUID,
        patch: RolePatch,
        *,
        expected_version: int | None = None,
        actor: str | None = None,
    ) -> Role:
        current = await self._store.get(role_id)
        self._check_version(current, expected_version)
        if patch.is_empty:
            return current

        name = current.name if patch.name is None else _normalize_name(patch.name)
        description = (
            current.description
            if patch.description is None
            else _normalize_description(patch.description)
        )
        permissions = (
            current.permissions
            if patch.permissions is None
            else self.validate_permissions(patch.permissions)
        )

        if current.is_system:
            if name != current.name or description != current.description:
                raise SystemRoleImmutableError(
                    f"Name and description of system role '{current.name}' cannot be changed"
                )
            if permissions != current.permissions:
                self._ensure_permissions_editable(current)

        if name.casefold() != current.name.casefold():
            await self._ensure_name_available(name, exclude=current.id)

        candidate = current.with_changes(
            name=name,
            description=description,
            permissions=permissions,
        )
        if candidate == current:
            return current

        updated = await self._store.update(candidate, expected_version=current.version)
        details: dict[str, Any] = {}
        if updated.name != current.name:
            details["name"] = {"from": current.name, "to": updated.name}
        if updated.description != current.description:
            details["description"] = True
        if updated.permissions != current.permissions:
            details["added"] = sorted(updated.permissions - current.permissions)
            details["removed"] = sorted(current.permissions - updated.permissions)
        await self._record(RoleAuditAction.EDIT, updated, actor=actor, details=details)
        logger.info(
            "roles.update.success",
            extra=log_context(
                role_id=updated.id,
                role_name=updated.name,
                actor=actor,
                version=updated.version,
            ),
        )
        return updated

    async def delete_role(
        self,
        role_id: UUID,
        *,
        expected_version: int | None = None,
        actor: str | None = None,
    ) -> None:
        role = await self._store.get(role_id)
        self._check_version(role, expected_version)

        if role.is_system:
            raise SystemRoleProtectedError(f"System role '{role.name}' cannot be deleted")
        if role.is_default:
            raise DefaultRoleProtectedError(f"Default role '{role.name}' cannot be deleted")

        count = await self._count_usage(role)
        if count > 0:
            logger.info(
                "roles.delete.blocked",
                extra=log_context(role_id=role.id, role_name=role.name, actor=actor, count=count),
            )
            raise RoleInUseError(role.id, count)

        await self._store.delete(role.id, expected_version=role.version)
        await self._record(RoleAuditAction.DELETE, role, actor=actor)
        logger.info(
            "roles.delete.success",
            extra=log_context(role_id=role.id, role_name=role.name, actor=actor),
        )

    async def clone_role(self, role_id: UUID, *, actor: str | None = None) -> Role:
        source = await self._store.get(role_id)

        attempt = 1
        name = _clone_name(source.name, attempt)
        while await self._store.find_by_name(name) is not None:
            attempt += 1
            name = _clone_name(source.name, attempt)

        clone = await self._store.insert(
            Role(
                id=generate_uuid7(),
                name=name,
                description=source.description,
                type=RoleType.CUSTOM,
                permissions=frozenset(source.permissions),
                is_default=False,
            )
        )
        await self._record(
            RoleAuditAction.CLONE,
            clone,
            actor=actor,
            details={"source_role_id": str(source.id), "source_role_name": source.name},
        )
        logger.info(
            "roles.clone.success",
            extra=log_context(
                role_id=clone.id,
                role_name=clone.name,
                actor=actor,
                source_role_id=str(source.id),
            ),
        )
        return clone

    async def toggle_group(
        self,
        role_id: UUID,
        group_permissions: Iterable[str],
        *,
        expected_version: int | None = None,
        actor: str | None = None,
    ) -> GroupToggleResult:
        ordered = list(dict.fromkeys(str(key).strip() for key in group_permissions))
        group = self.validate_permissions(ordered)

        current = await self._store.get(role_id)
        self._check_version(current, expected_version)

        outcome = apply_group_toggle(current.permissions, group)
        if outcome.permissions == current.permissions:
            return GroupToggleResult(role=current, state=outcome.state)

        self._ensure_permissions_editable(current)
        updated = await self._store.update(
            current.with_changes(permissions=outcome.permissions),
            expected_version=current.version,
        )
        await self._record(
            RoleAuditAction.TOGGLE_GROUP,
            updated,
            actor=actor,
            details={
                "group": ordered,
                "state": outcome.state.value,
                "added": sorted(updated.permissions - current.permissions),
                "removed": sorted(current.permissions - updated.permissions),
            },
        )
        logger.info(
            "roles.toggle_group.success",
            extra=log_context(
                role_id=updated.id,
                role_name=updated.name,
                actor=actor,
                state=outcome.state.value,
                version=updated.version,
            ),
        )
        return GroupToggleResult(role=updated, state=outcome.state)

    async def seed_system_roles(self) -> list[Role]:
        """Insert catalog system roles missing from the store; existing roles are left alone."""

        created: list[Role] = []
        for definition in self._catalog.system_roles():
            existing = await self._store.find_by_name(definition.name)
            if existing is not None:
                if existing.type is not RoleType.SYSTEM:
                    logger.warning(
                        "roles.seed.skipped",
                        extra=log_context(
                            role_id=existing.id,
                            role_name=existing.name,
                            system_role=definition.name,
                            existing_type=existing.type.value,
                        ),
                    )
                continue
            role = await self._store.insert(
                Role(
                    id=generate_uuid7(),
                    name=definition.name,
                    description=definition.description,
                    type=RoleType.SYSTEM,
                    permissions=frozenset(definition.permissions),
                    is_default=definition.is_default,
                )
            )
            created.append(role)

        logger.info(
            "roles.seed.complete",
            extra=log_context(
                created=len(created),
                total=len(self._catalog.system_roles()),
            ),
        )
        return created


__all__ = [
    "CLONE_SUFFIX",
    "GroupToggleResult",
    "MAX_ROLE_NAME_LENGTH",
    "RoleRegistry",
    "RoleUsage",
]
