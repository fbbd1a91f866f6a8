"""SQLAlchemy-backed role store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from role_engine.common.logging import log_context
from role_engine.common.time import utc_now
from role_engine.core.roles.types import Role, normalize_role_name
from role_engine.models import RolePermissionRecord, RoleRecord

from .exceptions import RoleNameConflictError, RoleNotFoundError, RoleVersionConflictError

logger = logging.getLogger(__name__)


def _to_domain(record: RoleRecord) -> Role:
    return Role(
        id=record.id,
        name=record.name,
        description=record.description or "",
        type=record.type,
        permissions=frozenset(item.permission_key for item in record.permissions),
        is_default=record.is_default,
        version=record.version,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SqlRoleStore:
    """Role store bound to a single ``AsyncSession``.

    Writes are flushed immediately so uniqueness and version checks surface
    inside the call; committing is left to the session owner.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _load(self, role_id: UUID) -> RoleRecord:
        record = await self._session.get(RoleRecord, role_id, populate_existing=True)
        if record is None:
            raise RoleNotFoundError(role_id)
        return record

    async def _name_taken(self, name: str, *, exclude: UUID | None) -> bool:
        stmt = select(RoleRecord.id).where(RoleRecord.name_key == normalize_role_name(name))
        if exclude is not None:
            stmt = stmt.where(RoleRecord.id != exclude)
        result = await self._session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    @staticmethod
    def _sync_permissions(record: RoleRecord, keys: Iterable[str]) -> None:
        desired = set(keys)
        existing = {item.permission_key: item for item in record.permissions}
        for key, item in existing.items():
            if key not in desired:
                record.permissions.remove(item)
        for key in sorted(desired - existing.keys()):
            record.permissions.append(RolePermissionRecord(permission_key=key))

    async def list(self) -> list[Role]:
        stmt = select(RoleRecord).order_by(RoleRecord.created_at.asc(), RoleRecord.id.asc())
        result = await self._session.execute(stmt)
        return [_to_domain(record) for record in result.scalars().all()]

    async def get(self, role_id: UUID) -> Role:
        return _to_domain(await self._load(role_id))

    async def find_by_name(self, name: str) -> Role | None:
        stmt = select(RoleRecord).where(RoleRecord.name_key == normalize_role_name(name))
        result = await self._session.execute(stmt.limit(1))
        record = result.scalar_one_or_none()
        return _to_domain(record) if record is not None else None

    async def insert(self, role: Role) -> Role:
        if await self._name_taken(role.name, exclude=None):
            raise RoleNameConflictError(role.name)

        record = RoleRecord(
            id=role.id,
            name=role.name,
            name_key=role.name_key,
            description=role.description,
            type=role.type,
            is_default=role.is_default,
            version=role.version,
            created_at=role.created_at,
            updated_at=role.updated_at,
            permissions=[
                RolePermissionRecord(permission_key=key) for key in sorted(role.permissions)
            ],
        )
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            logger.warning(
                "roles.store.insert.conflict",
                extra=log_context(role_id=role.id, role_name=role.name),
            )
            raise RoleNameConflictError(role.name) from exc
        return _to_domain(record)

    async def update(self, role: Role, *, expected_version: int) -> Role:
        record = await self._load(role.id)
        if record.version != expected_version:
            raise RoleVersionConflictError(
                role.id, expected=expected_version, actual=record.version
            )
        if await self._name_taken(role.name, exclude=role.id):
            raise RoleNameConflictError(role.name)

        record.name = role.name
        record.name_key = role.name_key
        record.description = role.description
        record.type = role.type
        record.is_default = role.is_default
        self._sync_permissions(record, role.permissions)
        # Always dirty the parent row so the version counter advances.
        record.updated_at = utc_now()

        try:
            await self._session.flush()
        except StaleDataError as exc:
            raise RoleVersionConflictError(role.id, expected=expected_version) from exc
        except IntegrityError as exc:
            raise RoleNameConflictError(role.name) from exc
        return _to_domain(record)

    async def delete(self, role_id: UUID, *, expected_version: int | None = None) -> None:
        record = await self._load(role_id)
        if expected_version is not None and record.version != expected_version:
            raise RoleVersionConflictError(
                role_id, expected=expected_version, actual=record.version
            )
        await self._session.delete(record)
        try:
            await self._session.flush()
        except StaleDataError as exc:
            raise RoleVersionConflictError(role_id, expected=expected_version) from exc


__all__ = ["SqlRoleStore"]
