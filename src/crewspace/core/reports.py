"""User reports against workspaces."""

from __future__ import annotations

import logging

from crewspace.auth.engine import WorkspaceAction, authorize_workspace_action
from crewspace.core.lookups import load_workspace, require_text, require_user
from crewspace.models.report import Report
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def create(
        self, requester_id: str | None, *, workspace_name: str, reason: str
    ) -> Report:
        """File a report. Membership is not required; the workspace must exist."""
        requester = await require_user(self.store, requester_id)
        reason = require_text(reason, "reason")
        workspace = await load_workspace(self.store, workspace_name)

        membership = await self.store.get_membership_role(workspace.id, requester.id)
        authorize_workspace_action(
            requester.role, membership, WorkspaceAction.CREATE_REPORT
        ).raise_for_denial()

        report = Report(workspace_id=workspace.id, reporter_id=requester.id, reason=reason)
        await self.store.create_report(report.to_storage())
        logger.info("Report %s filed against %s by %s", report.id, workspace.id, requester.id)
        return report
