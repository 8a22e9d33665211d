"""Tests for reports and the site administration surface."""

from __future__ import annotations

import pytest

from crewspace.core.admin import AdminService
from crewspace.core.reports import ReportService
from crewspace.core.workspaces import WorkspaceService
from crewspace.errors import Forbidden, InvalidInput, NotFound
from crewspace.storage.metadata_store import MetadataStore


@pytest.fixture
def admin(store: MetadataStore) -> AdminService:
    return AdminService(store)


@pytest.fixture
def reports(store: MetadataStore) -> ReportService:
    return ReportService(store)


@pytest.fixture
async def team(store: MetadataStore, make_user):
    owner = await make_user("owner", "owner")
    co = await make_user("co", "co-owner")
    alice = await make_user("alice")
    bob = await make_user("bob")
    ws = await WorkspaceService(store).create(alice.id, name="Alpha")
    return {"owner": owner, "co": co, "alice": alice, "bob": bob, "ws": ws}


class TestReports:
    @pytest.mark.asyncio
    async def test_non_member_reports(
        self, reports: ReportService, store: MetadataStore, team
    ) -> None:
        report = await reports.create(team["bob"].id, workspace_name="alpha", reason="spam")

        assert report.status == "pending"
        assert report.workspace_id == team["ws"].id
        # Filing a report does not join the workspace
        assert await store.get_membership_role(team["ws"].id, team["bob"].id) is None

    @pytest.mark.asyncio
    async def test_owner_report_does_not_materialize(
        self, reports: ReportService, store: MetadataStore, team
    ) -> None:
        await reports.create(team["owner"].id, workspace_name="Alpha", reason="check")
        assert await store.get_membership_role(team["ws"].id, team["owner"].id) is None

    @pytest.mark.asyncio
    async def test_reason_required(self, reports: ReportService, team) -> None:
        with pytest.raises(InvalidInput):
            await reports.create(team["bob"].id, workspace_name="Alpha", reason=" ")

    @pytest.mark.asyncio
    async def test_missing_workspace(self, reports: ReportService, team) -> None:
        with pytest.raises(NotFound):
            await reports.create(team["bob"].id, workspace_name="Nowhere", reason="spam")


class TestAdminGate:
    @pytest.mark.parametrize("name", ["co", "alice"])
    @pytest.mark.asyncio
    async def test_non_owner_denied(self, admin: AdminService, team, name: str) -> None:
        with pytest.raises(Forbidden, match="admin access required"):
            await admin.list_users(team[name].id)

    @pytest.mark.asyncio
    async def test_moderator_denied(self, admin: AdminService, make_user, team) -> None:
        mod = await make_user("mod", "moderator")
        with pytest.raises(Forbidden):
            await admin.list_workspaces(mod.id)


class TestAdminOperations:
    @pytest.mark.asyncio
    async def test_list_users(self, admin: AdminService, team) -> None:
        users = await admin.list_users(team["owner"].id)
        assert {u.email for u in users} == {
            "owner@example.com", "co@example.com", "alice@example.com", "bob@example.com"
        }

    @pytest.mark.asyncio
    async def test_list_workspaces(self, admin: AdminService, team) -> None:
        rows = await admin.list_workspaces(team["owner"].id)
        assert rows[0]["name"] == "Alpha"
        assert rows[0]["member_count"] == 1

    @pytest.mark.asyncio
    async def test_set_subscription(self, admin: AdminService, team) -> None:
        user = await admin.set_subscription(team["owner"].id, team["bob"].id, "lite")
        assert user.subscription_status == "lite"

    @pytest.mark.asyncio
    async def test_invalid_subscription(self, admin: AdminService, team) -> None:
        with pytest.raises(InvalidInput):
            await admin.set_subscription(team["owner"].id, team["bob"].id, "platinum")

    @pytest.mark.asyncio
    async def test_delete_workspace(
        self, admin: AdminService, store: MetadataStore, team
    ) -> None:
        await admin.delete_workspace(team["owner"].id, team["ws"].id)
        assert await store.get_workspace(team["ws"].id) is None

    @pytest.mark.asyncio
    async def test_delete_missing_workspace(self, admin: AdminService, team) -> None:
        with pytest.raises(NotFound):
            await admin.delete_workspace(team["owner"].id, "ghost")

    @pytest.mark.asyncio
    async def test_report_triage(
        self, admin: AdminService, reports: ReportService, team
    ) -> None:
        report = await reports.create(team["bob"].id, workspace_name="Alpha", reason="spam")

        assert [r.id for r in await admin.list_reports(team["owner"].id, status="pending")] == [
            report.id
        ]
        updated = await admin.update_report_status(team["owner"].id, report.id, "resolved")
        assert updated.status == "resolved"
        assert updated.updated_at is not None

        # Any status may follow any other
        reopened = await admin.update_report_status(team["owner"].id, report.id, "pending")
        assert reopened.status == "pending"

    @pytest.mark.asyncio
    async def test_report_status_validation(self, admin: AdminService, team) -> None:
        with pytest.raises(InvalidInput):
            await admin.list_reports(team["owner"].id, status="archived")
        with pytest.raises(NotFound):
            await admin.update_report_status(team["owner"].id, "ghost", "reviewed")
