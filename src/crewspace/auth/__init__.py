"""Crewspace authorization: role hierarchy, membership model and engine."""

from crewspace.auth.engine import (
    Decision,
    WorkspaceAction,
    authorize_delete_user,
    authorize_global_role_change,
    authorize_workspace_action,
    materialize_owner_membership,
)
from crewspace.auth.membership import MembershipRole, is_workspace_admin
from crewspace.auth.roles import GlobalRole, is_at_least, level

__all__ = [
    "Decision",
    "GlobalRole",
    "MembershipRole",
    "WorkspaceAction",
    "authorize_delete_user",
    "authorize_global_role_change",
    "authorize_workspace_action",
    "is_at_least",
    "is_workspace_admin",
    "level",
    "materialize_owner_membership",
]
