"""Role persistence interface and the in-memory reference store."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Protocol, runtime_checkable
from uuid import UUID

from role_engine.common.time import utc_now
from role_engine.core.roles.types import Role, normalize_role_name

from .exceptions import RoleNameConflictError, RoleNotFoundError, RoleVersionConflictError


@runtime_checkable
class RoleStore(Protocol):
    """Async persistence for role records.

    ``update`` and ``delete`` compare ``expected_version`` against the stored
    record atomically; a mismatch raises :class:`RoleVersionConflictError`.
    """

    async def list(self) -> list[Role]: ...

    async def get(self, role_id: UUID) -> Role: ...

    async def find_by_name(self, name: str) -> Role | None: ...

    async def insert(self, role: Role) -> Role: ...

    async def update(self, role: Role, *, expected_version: int) -> Role: ...

    async def delete(self, role_id: UUID, *, expected_version: int | None = None) -> None: ...


class InMemoryRoleStore:
    """Dictionary-backed store guarded by a single asyncio lock."""

    def __init__(self, roles: list[Role] | None = None) -> None:
        self._roles: dict[UUID, Role] = {}
        self._lock = asyncio.Lock()
        for role in roles or ():
            self._check_name_available(role.name, exclude=None)
            self._roles[role.id] = role

    def _check_name_available(self, name: str, *, exclude: UUID | None) -> None:
        key = normalize_role_name(name)
        for existing in self._roles.values():
            if existing.id != exclude and existing.name_key == key:
                raise RoleNameConflictError(name)

    async def list(self) -> list[Role]:
        async with self._lock:
            return list(self._roles.values())

    async def get(self, role_id: UUID) -> Role:
        async with self._lock:
            role = self._roles.get(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    async def find_by_name(self, name: str) -> Role | None:
        key = normalize_role_name(name)
        async with self._lock:
            for role in self._roles.values():
                if role.name_key == key:
                    return role
        return None

    async def insert(self, role: Role) -> Role:
        async with self._lock:
            self._check_name_available(role.name, exclude=None)
            if role.id in self._roles:
                raise RoleNameConflictError(role.name)
            self._roles[role.id] = role
            return role

    async def update(self, role: Role, *, expected_version: int) -> Role:
        async with self._lock:
            current = self._roles.get(role.id)
            if current is None:
                raise RoleNotFoundError(role.id)
            if current.version != expected_version:
                raise RoleVersionConflictError(
                    role.id, expected=expected_version, actual=current.version
                )
            self._check_name_available(role.name, exclude=role.id)
            stored = replace(
                role,
                version=current.version + 1,
                created_at=current.created_at,
                updated_at=utc_now(),
            )
            self._roles[role.id] = stored
            return stored

    async def delete(self, role_id: UUID, *, expected_version: int | None = None) -> None:
        async with self._lock:
            current = self._roles.get(role_id)
            if current is None:
                raise RoleNotFoundError(role_id)
            if expected_version is not None and current.version != expected_version:
                raise RoleVersionConflictError(
                    role_id, expected=expected_version, actual=current.version
                )
            del self._roles[role_id]


__all__ = ["InMemoryRoleStore", "RoleStore"]
