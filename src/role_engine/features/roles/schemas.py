"""Pydantic schemas for role administration."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, model_validator

from role_engine.common.ids import RecordId
from role_engine.common.schema import BaseSchema
from role_engine.core.catalog import Permission, PermissionGroup
from role_engine.core.roles.selection import GroupSelection
from role_engine.core.roles.types import Role

from .audit import RoleAuditEvent


class PermissionOut(BaseSchema):
    """Serialized permission catalog entry."""

    key: str
    resource: str
    action: str
    scope: str
    label: str
    description: str
    display_name: str

    @classmethod
    def from_permission(cls, permission: Permission) -> PermissionOut:
        return cls(
            key=permission.key,
            resource=permission.resource,
            action=permission.action,
            scope=permission.scope,
            label=permission.label,
            description=permission.description,
            display_name=permission.display_name,
        )


class PermissionGroupOut(BaseSchema):
    name: str
    description: str
    permissions: list[str]

    @classmethod
    def from_group(cls, group: PermissionGroup) -> PermissionGroupOut:
        return cls(
            name=group.name,
            description=group.description,
            permissions=list(group.permissions),
        )


class RoleCreate(BaseSchema):
    """Payload for creating a custom role."""

    name: str = Field(min_length=1, max_length=150)
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)


class RoleUpdate(BaseSchema):
    """Partial update; omitted fields are left unchanged and ``permissions`` replaces the set."""

    name: str | None = Field(default=None, min_length=1, max_length=150)
    description: str | None = None
    permissions: list[str] | None = None


class RoleOut(BaseSchema):
    """Serialized role definition."""

    id: RecordId
    name: str
    description: str
    type: Literal["system", "custom"]
    permissions: list[str]
    is_default: bool
    version: int
    created_at: datetime
    updated_at: datetime
    assignments: int | None = None

    @classmethod
    def from_role(cls, role: Role, *, assignments: int | None = None) -> RoleOut:
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            type=role.type.value,
            permissions=role.sorted_permissions(),
            is_default=role.is_default,
            version=role.version,
            created_at=role.created_at,
            updated_at=role.updated_at,
            assignments=assignments,
        )


class RoleListResponse(BaseSchema):
    items: list[RoleOut]


class GroupSelectionOut(BaseSchema):
    """Tri-state relationship between a role and one permission group."""

    name: str
    description: str
    state: Literal["all", "some", "none"]
    granted: list[str]
    granted_count: int
    total: int

    @classmethod
    def from_selection(cls, selection: GroupSelection) -> GroupSelectionOut:
        return cls(
            name=selection.group.name,
            description=selection.group.description,
            state=selection.state.value,
            granted=list(selection.granted),
            granted_count=selection.granted_count,
            total=selection.total,
        )


class RoleGroupsResponse(BaseSchema):
    role_id: RecordId
    version: int
    groups: list[GroupSelectionOut]


class GroupToggleRequest(BaseSchema):
    """Toggle either an explicit list of keys or a catalog group by name."""

    permissions: list[str] | None = None
    group: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _exactly_one(self) -> GroupToggleRequest:
        if (self.permissions is None) == (self.group is None):
            raise ValueError("Provide exactly one of 'permissions' or 'group'")
        return self


class GroupToggleResponse(BaseSchema):
    role: RoleOut
    state: Literal["all", "some", "none"]
    groups: list[GroupSelectionOut]


class AuditEventOut(BaseSchema):
    id: RecordId
    role_id: RecordId
    role_name: str
    action: str
    actor: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: RoleAuditEvent) -> AuditEventOut:
        return cls(
            id=event.id,
            role_id=event.role_id,
            role_name=event.role_name,
            action=event.action.value,
            actor=event.actor,
            details=event.details,
            occurred_at=event.occurred_at,
        )


class AuditEventListResponse(BaseSchema):
    items: list[AuditEventOut]


__all__ = [
    "AuditEventListResponse",
    "AuditEventOut",
    "GroupSelectionOut",
    "GroupToggleRequest",
    "GroupToggleResponse",
    "PermissionGroupOut",
    "PermissionOut",
    "RoleCreate",
    "RoleGroupsResponse",
    "RoleListResponse",
    "RoleOut",
    "RoleUpdate",
]
