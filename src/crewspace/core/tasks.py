"""Workspace tasks and their single-assignee assignment."""

from __future__ import annotations

import logging

from crewspace.auth.engine import WorkspaceAction, authorize_workspace_action
from crewspace.core.lookups import (
    load_user_by_email,
    load_workspace,
    require_text,
    require_user,
    resolve_membership,
)
from crewspace.errors import InvalidInput, NotFound
from crewspace.models.task import Task
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class TaskService:
    """Create, list and assign tasks inside a workspace."""

    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def create(
        self,
        requester_id: str | None,
        *,
        workspace_name: str,
        title: str,
        description: str | None = None,
    ) -> Task:
        """Create a task. Any member may do this."""
        requester = await require_user(self.store, requester_id)
        title = require_text(title, "title")
        workspace = await load_workspace(self.store, workspace_name)

        role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, role, WorkspaceAction.CREATE_TASK
        ).raise_for_denial()

        task = Task(
            workspace_id=workspace.id,
            title=title,
            description=(description or "").strip() or None,
            created_by=requester.id,
        )
        await self.store.create_task(task.to_storage())
        logger.info("Task %s created in %s by %s", task.id, workspace.id, requester.id)
        return task

    async def list_tasks(self, requester_id: str | None, *, workspace_name: str) -> list[Task]:
        requester = await require_user(self.store, requester_id)
        workspace = await load_workspace(self.store, workspace_name)

        role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, role, WorkspaceAction.LIST_TASKS
        ).raise_for_denial()

        return [Task(**row) for row in await self.store.list_tasks(workspace.id)]

    async def assign(
        self,
        requester_id: str | None,
        *,
        workspace_name: str,
        task_id: str,
        assignee_email: str,
    ) -> Task:
        """Assign a task, replacing any previous assignee.

        Raises:
            NotFound: If the workspace, the task (within that workspace) or the
                assignee's account does not exist
            Forbidden: If the requester is not a workspace admin
            InvalidInput: If the assignee is not a member of the workspace
        """
        requester = await require_user(self.store, requester_id)
        assignee_email = require_text(assignee_email, "assignee email")
        workspace = await load_workspace(self.store, workspace_name)

        data = await self.store.get_task(task_id)
        if data is None or data["workspace_id"] != workspace.id:
            raise NotFound(f"task not found: {task_id}")

        role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, role, WorkspaceAction.ASSIGN_TASK
        ).raise_for_denial()

        assignee = await load_user_by_email(self.store, assignee_email)
        if await self.store.get_membership_role(workspace.id, assignee.id) is None:
            raise InvalidInput(f"{assignee.email} is not a member of {workspace.name}")

        await self.store.assign_task(task_id, assignee.id)
        logger.info("Task %s assigned to %s by %s", task_id, assignee.id, requester.id)
        return Task(**{**data, "assignee_id": assignee.id})
