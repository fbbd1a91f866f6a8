"""Role persistence models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, false
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from role_engine.common.time import utc_now
from role_engine.core.roles.types import RoleType
from role_engine.db import Base, TimestampMixin, UUIDPrimaryKeyMixin


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


role_type_enum = SAEnum(
    RoleType,
    name="role_type",
    native_enum=False,
    length=20,
    values_callable=_enum_values,
)


class RoleRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Stored role definition; ``version`` is the optimistic concurrency token."""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    name_key: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[RoleType] = mapped_column(role_type_enum, nullable=False)
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    permissions: Mapped[list[RolePermissionRecord]] = relationship(
        "RolePermissionRecord",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}


class RolePermissionRecord(Base):
    """Permission key granted to a role."""

    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    permission_key: Mapped[str] = mapped_column(String(120), primary_key=True)

    role: Mapped[RoleRecord] = relationship("RoleRecord", back_populates="permissions")


class RoleAuditRecord(UUIDPrimaryKeyMixin, Base):
    """Append-only trail of role changes.

    ``role_id`` is not a foreign key so entries outlive deleted roles.
    """

    __tablename__ = "role_audit_events"

    role_id: Mapped[UUID] = mapped_column(nullable=False)
    role_name: Mapped[str] = mapped_column(String(150), nullable=False)
    action: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)

    __table_args__ = (Index("ix_role_audit_role_occurred", "role_id", "occurred_at"),)


__all__ = ["RoleAuditRecord", "RolePermissionRecord", "RoleRecord", "role_type_enum"]
