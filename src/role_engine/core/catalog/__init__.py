"""Permission catalog: definitions, built-in data, and loading."""

from .loader import PermissionCatalog, default_catalog, load_catalog
from .types import (
    CatalogConfigurationError,
    Permission,
    PermissionGroup,
    SystemRoleDefinition,
)

__all__ = [
    "CatalogConfigurationError",
    "Permission",
    "PermissionCatalog",
    "PermissionGroup",
    "SystemRoleDefinition",
    "default_catalog",
    "load_catalog",
]
