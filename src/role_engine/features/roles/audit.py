"""Audit trail for role changes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from role_engine.common.ids import generate_uuid7
from role_engine.common.time import utc_now
from role_engine.models import RoleAuditRecord


class RoleAuditAction(str, Enum):
    CREATE = "role:create"
    EDIT = "role:edit"
    DELETE = "role:delete"
    CLONE = "role:clone"
    TOGGLE_GROUP = "role:toggle_group"


@dataclass(frozen=True)
class RoleAuditEvent:
    role_id: UUID
    role_name: str
    action: RoleAuditAction
    actor: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utc_now)
    id: UUID = field(default_factory=generate_uuid7)


class AuditTrail(Protocol):
    async def record(self, event: RoleAuditEvent) -> None: ...

    async def list_for_role(self, role_id: UUID) -> list[RoleAuditEvent]: ...


class InMemoryAuditTrail:
    """Process-local trail, mostly for tests and embedding."""

    def __init__(self) -> None:
        self._events: list[RoleAuditEvent] = []
        self._lock = asyncio.Lock()

    async def record(self, event: RoleAuditEvent) -> None:
        async with self._lock:
            self._events.append(event)

    async def list_for_role(self, role_id: UUID) -> list[RoleAuditEvent]:
        async with self._lock:
            return [event for event in self._events if event.role_id == role_id]

    @property
    def events(self) -> tuple[RoleAuditEvent, ...]:
        return tuple(self._events)


class SqlAuditTrail:
    """Trail persisted to ``role_audit_events`` in the caller's session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, event: RoleAuditEvent) -> None:
        self._session.add(
            RoleAuditRecord(
                id=event.id,
                role_id=event.role_id,
                role_name=event.role_name,
                action=event.action.value,
                actor=event.actor,
                details=dict(event.details),
                occurred_at=event.occurred_at,
            )
        )
        await self._session.flush()

    async def list_for_role(self, role_id: UUID) -> list[RoleAuditEvent]:
        stmt = (
            select(RoleAuditRecord)
            .where(RoleAuditRecord.role_id == role_id)
            .order_by(RoleAuditRecord.occurred_at.asc(), RoleAuditRecord.id.asc())
        )
        result = await self._session.execute(stmt)
        return [
            RoleAuditEvent(
                id=record.id,
                role_id=record.role_id,
                role_name=record.role_name,
                action=RoleAuditAction(record.action),
                actor=record.actor,
                details=dict(record.details or {}),
                occurred_at=record.occurred_at,
            )
            for record in result.scalars().all()
        ]


__all__ = [
    "AuditTrail",
    "InMemoryAuditTrail",
    "RoleAuditAction",
    "RoleAuditEvent",
    "SqlAuditTrail",
]
