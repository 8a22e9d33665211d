"""Authorization decisions for global role changes and workspace actions.

Every ``authorize_*`` function is pure: it takes a snapshot of the
requester's global role (and membership role where relevant) and returns a
``Decision``. Denials are values, not exceptions; the services turn them
into ``Forbidden`` errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from crewspace.auth.membership import (
    MembershipRole,
    can_assign_tasks,
    can_customize_workspace,
    can_delete_workspace,
    can_manage_members,
    can_post_workspace_announcement,
    can_rename_workspace,
    is_global_owner,
)
from crewspace.auth.roles import GlobalRole, is_admin_role, level
from crewspace.errors import Forbidden

if TYPE_CHECKING:
    from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

# Minimum global role that may reach role management and user deletion at all.
ROLE_MANAGEMENT_MIN_ROLE = GlobalRole.OWNER

# Minimum global role for the site administration surface.
ADMIN_PANEL_MIN_ROLE = GlobalRole.OWNER


class Account(Protocol):
    id: str
    role: str


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise Forbidden(self.reason)


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


class WorkspaceAction(StrEnum):
    CREATE_WORKSPACE = "create_workspace"
    VIEW_OWN_WORKSPACES = "view_own_workspaces"
    ADD_MEMBER = "add_member"
    VIEW_MEMBERS = "view_members"
    RENAME = "rename"
    CUSTOMIZE = "customize"
    DELETE_WORKSPACE = "delete_workspace"
    CREATE_TASK = "create_task"
    LIST_TASKS = "list_tasks"
    ASSIGN_TASK = "assign_task"
    POST_ANNOUNCEMENT = "post_announcement"
    VIEW_ANNOUNCEMENTS = "view_announcements"
    CREATE_REPORT = "create_report"


_OPEN_ACTIONS = {
    WorkspaceAction.CREATE_WORKSPACE,
    WorkspaceAction.VIEW_OWN_WORKSPACES,
    WorkspaceAction.CREATE_REPORT,
}

# Any existing membership is enough.
_MEMBER_ACTIONS = {
    WorkspaceAction.CREATE_TASK,
    WorkspaceAction.LIST_TASKS,
    WorkspaceAction.VIEW_ANNOUNCEMENTS,
}


# --- Global role changes ---


def can_change_role(requester_role: str, target_role: str, new_role: str) -> bool:
    """Strict level comparison applied on top of the owner-only gate.

    A requester can never touch an account at or above their own level,
    and can never grant a role at or above their own level.
    """
    requester_level = level(requester_role)
    return requester_level > level(target_role) and requester_level > level(new_role)


def authorize_global_role_change(
    requester: Account, target: Account, new_role: str
) -> Decision:
    """Decide whether ``requester`` may set ``target``'s global role."""
    if level(requester.role) < level(ROLE_MANAGEMENT_MIN_ROLE):
        return deny("insufficient permissions to manage roles")
    if can_change_role(requester.role, target.role, new_role):
        return ALLOW
    if level(requester.role) <= level(target.role):
        return deny("insufficient permissions to change this role")
    return deny("cannot grant a role at or above your own")


def authorize_toggle_admin(requester: Account, target: Account, is_admin: bool) -> Decision:
    """Legacy admin toggle, checked exactly like the role change it maps to."""
    return authorize_global_role_change(requester, target, toggle_admin_role(is_admin))


def toggle_admin_role(is_admin: bool) -> GlobalRole:
    return GlobalRole.MODERATOR if is_admin else GlobalRole.USER


def authorize_delete_user(requester: Account, target: Account) -> Decision:
    """Decide whether ``requester`` may delete ``target``'s account."""
    if level(requester.role) < level(ROLE_MANAGEMENT_MIN_ROLE):
        return deny("insufficient permissions to delete users")
    if requester.id == target.id:
        return deny("cannot delete your own account")
    if level(requester.role) <= level(target.role):
        return deny("insufficient permissions to delete this user")
    return ALLOW


def authorize_admin_panel(global_role: str | None) -> Decision:
    if level(global_role) < level(ADMIN_PANEL_MIN_ROLE):
        return deny("admin access required")
    return ALLOW


def authorize_site_announcement(global_role: str | None) -> Decision:
    if not is_admin_role(global_role):
        return deny("only admins can post site announcements")
    return ALLOW


# --- Workspace-scoped actions ---


def authorize_workspace_action(
    global_role: str | None,
    membership_role: str | None,
    action: WorkspaceAction,
) -> Decision:
    """Decide a workspace-scoped action from the two role axes.

    ``membership_role`` is ``None`` when the requester has no membership row.
    """
    is_member = membership_role is not None

    if action in _OPEN_ACTIONS:
        return ALLOW

    if action in _MEMBER_ACTIONS:
        if is_member:
            return ALLOW
        return deny("you are not a member of this workspace")

    if action == WorkspaceAction.ADD_MEMBER:
        if can_manage_members(membership_role, global_role):
            return ALLOW
        return deny("only workspace admins or the owner can add users")

    if action == WorkspaceAction.VIEW_MEMBERS:
        if is_member or is_global_owner(global_role):
            return ALLOW
        return deny("you are not a member of this workspace")

    if action == WorkspaceAction.RENAME:
        if can_rename_workspace(membership_role):
            return ALLOW
        return deny("only workspace admins can rename or describe a workspace")

    if action == WorkspaceAction.CUSTOMIZE:
        if can_customize_workspace(membership_role, global_role):
            return ALLOW
        return deny("only workspace admins can customize a workspace")

    if action == WorkspaceAction.DELETE_WORKSPACE:
        if can_delete_workspace(membership_role, global_role):
            return ALLOW
        return deny("only workspace admins can delete a workspace")

    if action == WorkspaceAction.ASSIGN_TASK:
        if can_assign_tasks(membership_role, global_role):
            return ALLOW
        return deny("only workspace admins can assign tasks")

    if action == WorkspaceAction.POST_ANNOUNCEMENT:
        if can_post_workspace_announcement(global_role):
            return ALLOW
        return deny("only the owner can post workspace announcements")

    return deny(f"unknown workspace action: {action}")


async def materialize_owner_membership(
    store: MetadataStore, workspace_id: str, owner_id: str
) -> str | None:
    """Give the global owner an ``admin`` row in a workspace if they lack one.

    Insert-or-ignore on the (workspace, user) key, so concurrent first
    visits produce a single row. Returns the owner's membership role.
    """
    inserted = await store.upsert_membership_ignore_conflict(
        workspace_id, owner_id, MembershipRole.ADMIN.value
    )
    if inserted:
        logger.info("Materialized owner membership for %s in %s", owner_id, workspace_id)
    return await store.get_membership_role(workspace_id, owner_id)
