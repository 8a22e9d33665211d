"""Workspace lifecycle and membership management."""

from __future__ import annotations

import logging

from crewspace.auth.engine import WorkspaceAction, authorize_workspace_action
from crewspace.auth.membership import MembershipRole, can_manage_members, parse_membership_role
from crewspace.core.lookups import (
    load_user_by_email,
    load_workspace,
    require_text,
    require_user,
    resolve_membership,
)
from crewspace.errors import InvalidInput, NotFound
from crewspace.models.workspace import MemberRoster, Membership, Workspace
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


class WorkspaceService:
    """Create, rename, delete and staff workspaces."""

    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def role_of(self, workspace_id: str, user_id: str) -> str | None:
        """A user's membership role in a workspace, or None if not a member."""
        return await self.store.get_membership_role(workspace_id, user_id)

    async def create(
        self, user_id: str | None, *, name: str, description: str | None = None
    ) -> Workspace:
        """Create a workspace. The creator becomes its first ``admin``.

        Raises:
            InvalidInput: If the name is missing, too long or already taken
        """
        user = await require_user(self.store, user_id)
        name = _validate_name(name)
        authorize_workspace_action(
            user.role, None, WorkspaceAction.CREATE_WORKSPACE
        ).raise_for_denial()

        if await self.store.get_workspace_by_name(name):
            raise InvalidInput(f"workspace name already taken: {name}")

        workspace = Workspace(
            name=name,
            description=_clean_description(description),
            created_by=user.id,
        )
        await self.store.create_workspace(
            workspace.to_storage(), creator_role=MembershipRole.ADMIN.value
        )
        logger.info("Workspace %s (%s) created by %s", workspace.id, workspace.name, user.id)
        return workspace.model_copy(update={"member_role": MembershipRole.ADMIN.value})

    async def list_for_user(self, user_id: str | None) -> list[Workspace]:
        """Workspaces the caller belongs to, each carrying the caller's role."""
        user = await require_user(self.store, user_id)
        rows = await self.store.list_workspaces_for_user(user.id)
        return [Workspace(**row) for row in rows]

    async def add_member(
        self, requester_id: str | None, *, workspace_name: str, email: str, role: str
    ) -> Membership:
        """Add an existing account to a workspace by email.

        Raises:
            InvalidInput: If the role is not a membership role or the user is already a member
            NotFound: If the workspace or the invitee's account does not exist
            Forbidden: If the requester is not a workspace admin
        """
        requester = await require_user(self.store, requester_id)
        member_role = parse_membership_role(role)
        email = require_text(email, "email")
        workspace = await load_workspace(self.store, workspace_name)

        requester_role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, requester_role, WorkspaceAction.ADD_MEMBER
        ).raise_for_denial()

        invitee = await load_user_by_email(self.store, email)
        if await self.store.get_membership_role(workspace.id, invitee.id) is not None:
            raise InvalidInput(f"{invitee.email} is already a member of {workspace.name}")

        data = await self.store.insert_membership(workspace.id, invitee.id, member_role.value)
        logger.info(
            "Added %s to %s as %s (by %s)", invitee.id, workspace.id, member_role, requester.id
        )
        return Membership(**data, username=invitee.username, email=invitee.email)

    async def list_members(self, requester_id: str | None, *, workspace_name: str) -> MemberRoster:
        """List a workspace's members along with what the requester may do."""
        requester = await require_user(self.store, requester_id)
        workspace = await load_workspace(self.store, workspace_name)

        requester_role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, requester_role, WorkspaceAction.VIEW_MEMBERS
        ).raise_for_denial()

        rows = await self.store.get_members(workspace.id)
        return MemberRoster(
            workspace=workspace,
            members=[Membership(**row) for row in rows],
            requester_role=requester_role,
            requester_global_role=requester.role,
            can_manage=can_manage_members(requester_role, requester.role),
        )

    async def update(
        self,
        requester_id: str | None,
        *,
        workspace_name: str,
        new_name: str | None = None,
        description: str | None = None,
    ) -> Workspace:
        """Rename a workspace and/or replace its description."""
        requester = await require_user(self.store, requester_id)
        updates: dict[str, str | None] = {}
        if new_name is not None:
            updates["name"] = _validate_name(new_name)
        if description is not None:
            updates["description"] = _clean_description(description)
        if not updates:
            raise InvalidInput("nothing to update: provide new_name or description")

        workspace = await load_workspace(self.store, workspace_name)
        requester_role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, requester_role, WorkspaceAction.RENAME
        ).raise_for_denial()

        if "name" in updates:
            clash = await self.store.get_workspace_by_name(updates["name"])
            if clash and clash["id"] != workspace.id:
                raise InvalidInput(f"workspace name already taken: {updates['name']}")

        data = await self.store.update_workspace(workspace.id, updates)
        if data is None:
            raise NotFound(f"workspace not found: {workspace_name}")
        logger.info("Workspace %s updated by %s: %s", workspace.id, requester.id, sorted(updates))
        return Workspace(**data)

    async def delete(self, requester_id: str | None, *, workspace_name: str) -> None:
        """Delete a workspace and everything inside it."""
        requester = await require_user(self.store, requester_id)
        workspace = await load_workspace(self.store, workspace_name)

        requester_role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, requester_role, WorkspaceAction.DELETE_WORKSPACE
        ).raise_for_denial()

        if not await self.store.delete_workspace(workspace.id):
            raise NotFound(f"workspace not found: {workspace.name}")
        logger.info("Workspace %s (%s) deleted by %s", workspace.id, workspace.name, requester.id)


def _validate_name(name: str | None) -> str:
    name = require_text(name, "workspace name")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInput(f"workspace name must be at most {MAX_NAME_LENGTH} characters")
    return name


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None
