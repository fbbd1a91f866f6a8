"""Group selection: tri-state indicators and bulk toggling.

Everything here is pure set arithmetic over permission keys. Group states are
derived on demand and never stored on a role.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from role_engine.core.catalog.types import PermissionGroup


class GroupState(str, Enum):
    """Relationship between a role's permissions and a group."""

    ALL = "all"
    SOME = "some"
    NONE = "none"


@dataclass(frozen=True)
class GroupToggle:
    """Outcome of toggling a group against a permission set."""

    permissions: frozenset[str]
    state: GroupState


@dataclass(frozen=True)
class GroupSelection:
    """Tri-state summary of one group for a role."""

    group: PermissionGroup
    state: GroupState
    granted: tuple[str, ...]

    @property
    def granted_count(self) -> int:
        return len(self.granted)

    @property
    def total(self) -> int:
        return len(self.group.permissions)


def group_state(permissions: Iterable[str], group: Iterable[str]) -> GroupState:
    """Return ``ALL``, ``SOME`` or ``NONE`` for ``group`` within ``permissions``.

    An empty group is always ``NONE``.
    """

    members = frozenset(group)
    if not members:
        return GroupState.NONE
    held = members & frozenset(permissions)
    if held == members:
        return GroupState.ALL
    if held:
        return GroupState.SOME
    return GroupState.NONE


def toggle_group(permissions: Iterable[str], group: Iterable[str]) -> GroupToggle:
    """Grant every key in ``group``, or revoke them all when already fully held.

    A partially held group is completed, never cleared. Toggling twice from
    ``ALL`` or ``NONE`` returns the original set.
    """

    current = frozenset(permissions)
    members = frozenset(group)
    if not members:
        return GroupToggle(permissions=current, state=GroupState.NONE)

    if members <= current:
        result = current - members
    else:
        result = current | members
    return GroupToggle(permissions=result, state=group_state(result, members))


def summarize_groups(
    permissions: Iterable[str],
    groups: Iterable[PermissionGroup],
) -> list[GroupSelection]:
    """Return the tri-state selection for each group, preserving group order."""

    current = frozenset(permissions)
    summary: list[GroupSelection] = []
    for group in groups:
        granted = tuple(key for key in group.permissions if key in current)
        summary.append(
            GroupSelection(
                group=group,
                state=group_state(current, group.permissions),
                granted=granted,
            )
        )
    return summary


__all__ = [
    "GroupSelection",
    "GroupState",
    "GroupToggle",
    "group_state",
    "summarize_groups",
    "toggle_group",
]
