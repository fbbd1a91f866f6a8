"""Role value objects and the group selection algorithm."""

from .selection import GroupSelection, GroupState, GroupToggle, group_state, summarize_groups, toggle_group
from .types import Role, RolePatch, RoleType

__all__ = [
    "GroupSelection",
    "GroupState",
    "GroupToggle",
    "Role",
    "RolePatch",
    "RoleType",
    "group_state",
    "summarize_groups",
    "toggle_group",
]
