"""ORM models registered on the shared metadata."""

from .role import RoleAuditRecord, RolePermissionRecord, RoleRecord

__all__ = ["RoleAuditRecord", "RolePermissionRecord", "RoleRecord"]
