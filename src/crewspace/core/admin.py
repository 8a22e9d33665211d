"""Site administration surface: users, workspaces and reports across tenants."""

from __future__ import annotations

import logging

from crewspace.auth.engine import authorize_admin_panel
from crewspace.core.lookups import load_user, load_workspace_by_id, require_user
from crewspace.errors import InvalidInput, NotFound
from crewspace.models.report import VALID_REPORT_STATUSES, Report
from crewspace.models.user import VALID_SUBSCRIPTIONS, User
from crewspace.models.workspace import Workspace
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class AdminService:
    """Operations behind the admin panel. Every call is gated on the requester's role.

    Role changes and user deletion live on ``AccountService`` because they
    carry their own per-target rules on top of this gate.
    """

    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def _require_admin(self, requester_id: str | None) -> User:
        requester = await require_user(self.store, requester_id)
        decision = authorize_admin_panel(requester.role)
        if not decision:
            logger.warning("Admin surface denied to %s (role=%s)", requester.id, requester.role)
        decision.raise_for_denial()
        return requester

    async def list_users(self, requester_id: str | None) -> list[User]:
        await self._require_admin(requester_id)
        return [User(**row) for row in await self.store.list_users()]

    async def list_workspaces(self, requester_id: str | None) -> list[dict]:
        """All workspaces with member counts."""
        await self._require_admin(requester_id)
        rows = await self.store.list_workspaces()
        return [
            {**Workspace(**row).to_response(detail="full"), "member_count": row["member_count"]}
            for row in rows
        ]

    async def list_reports(self, requester_id: str | None, *, status: str | None = None) -> list[Report]:
        await self._require_admin(requester_id)
        if status is not None and status not in VALID_REPORT_STATUSES:
            raise InvalidInput(
                f"Invalid report status: {status}. Must be one of {sorted(VALID_REPORT_STATUSES)}"
            )
        return [Report(**row) for row in await self.store.list_reports(status=status)]

    async def set_subscription(self, requester_id: str | None, target_id: str, status: str) -> User:
        """Grant or revoke the Lite tier by hand."""
        requester = await self._require_admin(requester_id)
        if status not in VALID_SUBSCRIPTIONS:
            raise InvalidInput(
                f"Invalid subscription: {status}. Must be one of {sorted(VALID_SUBSCRIPTIONS)}"
            )
        target = await load_user(self.store, target_id)

        data = await self.store.update_user(target.id, {"subscription_status": status})
        if data is None:
            raise NotFound(f"user not found: {target_id}")
        logger.info("Subscription of %s set to %s by %s", target.id, status, requester.id)
        return User(**data)

    async def delete_workspace(self, requester_id: str | None, workspace_id: str) -> None:
        requester = await self._require_admin(requester_id)
        workspace = await load_workspace_by_id(self.store, workspace_id)

        if not await self.store.delete_workspace(workspace.id):
            raise NotFound(f"workspace not found: {workspace_id}")
        logger.info("Workspace %s (%s) deleted from admin panel by %s",
                    workspace.id, workspace.name, requester.id)

    async def update_report_status(
        self, requester_id: str | None, report_id: str, status: str
    ) -> Report:
        """Set a report's status. Any status may follow any other."""
        requester = await self._require_admin(requester_id)
        if status not in VALID_REPORT_STATUSES:
            raise InvalidInput(
                f"Invalid report status: {status}. Must be one of {sorted(VALID_REPORT_STATUSES)}"
            )
        if await self.store.get_report(report_id) is None:
            raise NotFound(f"report not found: {report_id}")

        data = await self.store.update_report_status(report_id, status)
        logger.info("Report %s marked %s by %s", report_id, status, requester.id)
        return Report(**data)
