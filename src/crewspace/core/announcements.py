"""Workspace and site-wide announcements."""

from __future__ import annotations

import logging

from crewspace.auth.engine import (
    WorkspaceAction,
    authorize_site_announcement,
    authorize_workspace_action,
)
from crewspace.core.lookups import load_workspace, require_text, require_user, resolve_membership
from crewspace.errors import InvalidInput
from crewspace.models.announcement import Announcement
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class AnnouncementService:
    """Post and read announcements."""

    def __init__(self, store: MetadataStore) -> None:
        self.store = store

    async def post_to_workspace(
        self, requester_id: str | None, *, workspace_name: str, message: str
    ) -> Announcement:
        """Only the global owner posts workspace announcements."""
        requester = await require_user(self.store, requester_id)
        message = _validate_message(message)
        workspace = await load_workspace(self.store, workspace_name)

        role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, role, WorkspaceAction.POST_ANNOUNCEMENT
        ).raise_for_denial()

        announcement = Announcement(
            workspace_id=workspace.id, author_id=requester.id, message=message
        )
        await self.store.create_announcement(announcement.to_storage())
        logger.info("Announcement %s posted to %s", announcement.id, workspace.id)
        return announcement.model_copy(update={"author": requester.username})

    async def list_for_workspace(
        self, requester_id: str | None, *, workspace_name: str
    ) -> list[Announcement]:
        requester = await require_user(self.store, requester_id)
        workspace = await load_workspace(self.store, workspace_name)

        role = await resolve_membership(self.store, requester, workspace)
        authorize_workspace_action(
            requester.role, role, WorkspaceAction.VIEW_ANNOUNCEMENTS
        ).raise_for_denial()

        rows = await self.store.list_announcements(workspace.id)
        return [Announcement(**row) for row in rows]

    async def post_site(self, requester_id: str | None, *, message: str) -> Announcement:
        """Site-wide announcements need the admin flag (moderator and above)."""
        requester = await require_user(self.store, requester_id)
        message = _validate_message(message)
        authorize_site_announcement(requester.role).raise_for_denial()

        announcement = Announcement(author_id=requester.id, message=message)
        await self.store.create_announcement(announcement.to_storage())
        logger.info("Site announcement %s posted by %s", announcement.id, requester.id)
        return announcement.model_copy(update={"author": requester.username})

    async def list_site(self, requester_id: str | None) -> list[Announcement]:
        await require_user(self.store, requester_id)
        return [Announcement(**row) for row in await self.store.list_announcements(None)]


def _validate_message(message: str | None) -> str:
    message = require_text(message, "message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidInput(f"message must be at most {MAX_MESSAGE_LENGTH} characters")
    return message
