"""Per-workspace membership roles and the workspace-admin predicates.

A member's workspace role is independent of their global role, with one
override: the global owner is treated as an admin of every workspace.
"""

from __future__ import annotations

from enum import StrEnum

from crewspace.auth.roles import GlobalRole
from crewspace.errors import InvalidInput


class MembershipRole(StrEnum):
    DEVELOPER = "developer"
    HEAD_DEVELOPER = "head-developer"
    ADMIN = "admin"


VALID_MEMBERSHIP_ROLES = frozenset(r.value for r in MembershipRole)

_ADMIN_MEMBERSHIPS = {MembershipRole.ADMIN, MembershipRole.HEAD_DEVELOPER}


def parse_membership_role(value: str | None) -> MembershipRole:
    """Validate a membership role coming from a caller."""
    if value is None or value not in VALID_MEMBERSHIP_ROLES:
        raise InvalidInput(
            f"Invalid membership role: {value}. "
            f"Must be one of {sorted(VALID_MEMBERSHIP_ROLES)}"
        )
    return MembershipRole(value)


def is_global_owner(global_role: str | None) -> bool:
    return global_role == GlobalRole.OWNER


def is_workspace_admin(membership_role: str | None, global_role: str | None) -> bool:
    """True for admin and head-developer members, and always for the global owner."""
    if is_global_owner(global_role):
        return True
    return membership_role in _ADMIN_MEMBERSHIPS


def can_manage_members(membership_role: str | None, global_role: str | None) -> bool:
    return is_workspace_admin(membership_role, global_role)


def can_assign_tasks(membership_role: str | None, global_role: str | None) -> bool:
    return is_workspace_admin(membership_role, global_role)


def can_customize_workspace(membership_role: str | None, global_role: str | None) -> bool:
    return is_workspace_admin(membership_role, global_role)


def can_rename_workspace(membership_role: str | None) -> bool:
    """Renaming and describing need a strict ``admin`` membership."""
    return membership_role == MembershipRole.ADMIN


def can_delete_workspace(membership_role: str | None, global_role: str | None) -> bool:
    """Head-developers administer a workspace but cannot delete it."""
    return membership_role == MembershipRole.ADMIN or is_global_owner(global_role)


def can_post_workspace_announcement(global_role: str | None) -> bool:
    return is_global_owner(global_role)
