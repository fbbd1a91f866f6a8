"""Built-in permission catalog and system role seed data.

Deployments can replace this catalog through ``ROLE_ENGINE_PERMISSION_CATALOG_SOURCE``;
keep the structure stable so the loader and the default catalog stay in sync.
"""

from __future__ import annotations

from role_engine.core.catalog.types import Permission, PermissionGroup, SystemRoleDefinition


def _permission(key: str, description: str, *, scope: str = "team") -> Permission:
    return Permission.from_key(key, scope=scope, description=description)


PERMISSIONS: tuple[Permission, ...] = (
    # User management ----------------------------------------------------
    _permission("user:view", "View user profiles and status."),
    _permission("user:create", "Create user accounts."),
    _permission("user:edit", "Edit user profiles."),
    _permission("user:delete", "Delete user accounts."),
    _permission("user:invite", "Invite new users to the firm."),
    _permission("user:suspend", "Suspend or reactivate user accounts."),
    # Team management ----------------------------------------------------
    _permission("team:view", "View teams and their members."),
    _permission("team:create", "Create teams."),
    _permission("team:edit", "Edit team settings."),
    _permission("team:delete", "Delete teams."),
    _permission("team:manage_members", "Add or remove team members."),
    # Role management ----------------------------------------------------
    _permission("role:view", "View role definitions."),
    _permission("role:create", "Create custom roles."),
    _permission("role:edit", "Edit role definitions."),
    _permission("role:delete", "Delete custom roles."),
    _permission("role:assign", "Assign roles to users."),
    # Client management --------------------------------------------------
    _permission("client:view", "View client records."),
    _permission("client:create", "Create client records."),
    _permission("client:edit", "Edit client records."),
    _permission("client:delete", "Delete client records."),
    # Matter management --------------------------------------------------
    _permission("matter:view", "View legal matters."),
    _permission("matter:create", "Open new matters."),
    _permission("matter:edit", "Edit matter details."),
    _permission("matter:delete", "Delete matters."),
    _permission("matter:assign", "Assign matters to team members."),
    # Document management ------------------------------------------------
    _permission("document:view", "View documents."),
    _permission("document:create", "Upload or draft documents."),
    _permission("document:edit", "Edit documents."),
    _permission("document:delete", "Delete documents."),
    _permission("document:share", "Share documents outside the team."),
    # Billing ------------------------------------------------------------
    _permission("billing:view", "View time entries and invoices."),
    _permission("billing:create", "Record time and draft invoices."),
    _permission("billing:edit", "Edit billing records."),
    _permission("billing:approve", "Approve invoices for release."),
    # Reports ------------------------------------------------------------
    _permission("reports:view", "View reports and analytics.", scope="org"),
    _permission("reports:create", "Build custom reports.", scope="org"),
    _permission("reports:export", "Export report data.", scope="org"),
    # Settings -----------------------------------------------------------
    _permission("settings:view", "View firm settings.", scope="org"),
    _permission("settings:edit", "Edit firm settings.", scope="org"),
    _permission("settings:billing", "Manage subscription and billing settings.", scope="org"),
    _permission("settings:security", "Manage security settings.", scope="org"),
)

ALL_PERMISSION_KEYS: tuple[str, ...] = tuple(permission.key for permission in PERMISSIONS)


def _keys_for(*resources: str) -> tuple[str, ...]:
    return tuple(
        permission.key for permission in PERMISSIONS if permission.resource in resources
    )


PERMISSION_GROUPS: tuple[PermissionGroup, ...] = (
    PermissionGroup(
        name="User Management",
        description="Manage users, invitations, and profiles",
        permissions=_keys_for("user"),
    ),
    PermissionGroup(
        name="Team Management",
        description="Create and manage teams",
        permissions=_keys_for("team"),
    ),
    PermissionGroup(
        name="Role Management",
        description="Manage roles and permissions",
        permissions=_keys_for("role"),
    ),
    PermissionGroup(
        name="Client Management",
        description="Manage client relationships",
        permissions=_keys_for("client"),
    ),
    PermissionGroup(
        name="Matter Management",
        description="Handle legal matters and cases",
        permissions=_keys_for("matter"),
    ),
    PermissionGroup(
        name="Document Management",
        description="Access and manage documents",
        permissions=_keys_for("document"),
    ),
    PermissionGroup(
        name="Billing & Finance",
        description="Manage billing and financial records",
        permissions=_keys_for("billing"),
    ),
    PermissionGroup(
        name="Reports & Analytics",
        description="Access reports and analytics",
        permissions=_keys_for("reports"),
    ),
    PermissionGroup(
        name="System Settings",
        description="Configure system settings",
        permissions=_keys_for("settings"),
    ),
)


SYSTEM_ROLES: tuple[SystemRoleDefinition, ...] = (
    SystemRoleDefinition(
        name="Owner",
        description="Full access to all features and settings",
        permissions=ALL_PERMISSION_KEYS,
    ),
    SystemRoleDefinition(
        name="Admin",
        description="Administrative access with user and team management",
        permissions=tuple(
            key
            for key in ALL_PERMISSION_KEYS
            if "billing" not in key and key != "settings:security"
        ),
    ),
    SystemRoleDefinition(
        name="Attorney",
        description="Access to clients, matters, documents, and billing",
        permissions=(
            "client:view",
            "client:create",
            "client:edit",
            "matter:view",
            "matter:create",
            "matter:edit",
            "document:view",
            "document:create",
            "document:edit",
            "document:share",
            "billing:view",
            "billing:create",
            "reports:view",
            "team:view",
        ),
        is_default=True,
    ),
    SystemRoleDefinition(
        name="Paralegal",
        description="Support role with document and matter access",
        permissions=(
            "client:view",
            "matter:view",
            "matter:edit",
            "document:view",
            "document:create",
            "document:edit",
            "team:view",
        ),
    ),
    SystemRoleDefinition(
        name="Support Staff",
        description="Basic access for administrative support",
        permissions=(
            "client:view",
            "matter:view",
            "document:view",
            "team:view",
        ),
    ),
)


__all__ = [
    "ALL_PERMISSION_KEYS",
    "PERMISSIONS",
    "PERMISSION_GROUPS",
    "SYSTEM_ROLES",
]
