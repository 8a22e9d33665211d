"""Tests for the workspace membership predicates."""

from __future__ import annotations

import pytest

from crewspace.auth.membership import (
    VALID_MEMBERSHIP_ROLES,
    MembershipRole,
    can_assign_tasks,
    can_customize_workspace,
    can_delete_workspace,
    can_manage_members,
    can_post_workspace_announcement,
    can_rename_workspace,
    is_workspace_admin,
    parse_membership_role,
)
from crewspace.errors import InvalidInput

NON_OWNER_ROLES = ["user", "moderator", "administrator", "co-owner"]


class TestIsWorkspaceAdmin:
    def test_examples(self) -> None:
        assert not is_workspace_admin("developer", "user")
        assert is_workspace_admin("developer", "owner")
        assert is_workspace_admin("head-developer", "user")
        assert is_workspace_admin("admin", "user")

    def test_owner_without_membership(self) -> None:
        assert is_workspace_admin(None, "owner")

    @pytest.mark.parametrize("global_role", NON_OWNER_ROLES)
    def test_high_global_roles_do_not_override(self, global_role: str) -> None:
        assert not is_workspace_admin("developer", global_role)
        assert not is_workspace_admin(None, global_role)

    @pytest.mark.parametrize("membership", [None, "developer", "head-developer", "admin"])
    @pytest.mark.parametrize("global_role", [*NON_OWNER_ROLES, "owner"])
    def test_aliases_agree(self, membership: str | None, global_role: str) -> None:
        expected = is_workspace_admin(membership, global_role)
        assert can_manage_members(membership, global_role) == expected
        assert can_assign_tasks(membership, global_role) == expected
        assert can_customize_workspace(membership, global_role) == expected


class TestDeleteAndRename:
    def test_delete_admin_vs_head_developer(self) -> None:
        assert can_delete_workspace("admin", "user")
        assert not can_delete_workspace("head-developer", "user")
        assert is_workspace_admin("head-developer", "user")

    def test_delete_developer(self) -> None:
        assert not can_delete_workspace("developer", "co-owner")

    def test_delete_owner(self) -> None:
        assert can_delete_workspace(None, "owner")
        assert can_delete_workspace("developer", "owner")

    def test_rename_strictly_admin(self) -> None:
        assert can_rename_workspace("admin")
        assert not can_rename_workspace("head-developer")
        assert not can_rename_workspace("developer")
        assert not can_rename_workspace(None)


class TestAnnouncementRule:
    def test_only_owner(self) -> None:
        assert can_post_workspace_announcement("owner")
        for role in NON_OWNER_ROLES:
            assert not can_post_workspace_announcement(role)


class TestParseMembershipRole:
    def test_valid(self) -> None:
        assert parse_membership_role("head-developer") is MembershipRole.HEAD_DEVELOPER
        assert VALID_MEMBERSHIP_ROLES == {"developer", "head-developer", "admin"}

    @pytest.mark.parametrize("value", ["owner", "Admin", "maintainer", "", None])
    def test_invalid(self, value: str | None) -> None:
        with pytest.raises(InvalidInput, match="Invalid membership role"):
            parse_membership_role(value)
