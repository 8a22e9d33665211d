"""Tests for the FastMCP server tools."""

from __future__ import annotations

import json

import pytest
from fastmcp import Client

from crewspace.config import Config
from crewspace.server import create_server


def _data(result) -> dict:
    """Extract parsed JSON from CallToolResult."""
    return json.loads(result.content[0].text)


@pytest.fixture
async def client(tmp_path, config: Config):
    server = create_server(str(tmp_path / "test.db"), config)
    async with Client(server) as c:
        yield c


async def _signup(client: Client, name: str) -> tuple[dict, str]:
    data = _data(await client.call_tool(
        "cs_account", {"action": "signup", "email": f"{name}@example.com", "username": name}
    ))
    return data["user"], data["token"]


async def test_list_tools(client: Client):
    tools = await client.list_tools()
    names = {t.name for t in tools}
    assert names == {"cs_account", "cs_workspace", "cs_task", "cs_announce", "cs_report", "cs_admin"}


async def test_tool_descriptions_short(client: Client):
    tools = await client.list_tools()
    for tool in tools:
        assert len(tool.description) <= 100, f"{tool.name} description too long"


class TestAccountTool:
    async def test_signup_bootstraps_owner(self, client: Client):
        first, _ = await _signup(client, "first")
        second, _ = await _signup(client, "second")

        assert first["role"] == "owner"
        assert first["is_admin"] is True
        assert second["role"] == "user"
        assert second["is_admin"] is False

    async def test_me_with_token(self, client: Client):
        user, token = await _signup(client, "alice")
        data = _data(await client.call_tool("cs_account", {"action": "me", "token": token}))
        assert data["user"]["id"] == user["id"]
        assert data["_v"] == "1.0"

    async def test_me_without_token(self, client: Client):
        data = _data(await client.call_tool("cs_account", {"action": "me"}))
        assert data["code"] == "unauthenticated"

    async def test_bad_token(self, client: Client):
        data = _data(await client.call_tool("cs_account", {"action": "me", "token": "garbage"}))
        assert data["code"] == "unauthenticated"

    async def test_duplicate_signup(self, client: Client):
        await _signup(client, "alice")
        data = _data(await client.call_tool(
            "cs_account", {"action": "signup", "email": "alice@example.com", "username": "x"}
        ))
        assert data["code"] == "invalid_input"
        assert data["error"] == "account already exists"

    async def test_preferences(self, client: Client):
        _, token = await _signup(client, "alice")
        data = _data(await client.call_tool(
            "cs_account",
            {"action": "preferences", "token": token, "notify_announcements": False},
        ))
        assert data["user"]["notify_announcements"] is False


class TestWorkspaceTool:
    async def test_create_add_and_list_members(self, client: Client):
        _, owner_token = await _signup(client, "owner")
        _, alice_token = await _signup(client, "alice")
        await _signup(client, "bob")

        created = _data(await client.call_tool(
            "cs_workspace", {"action": "create", "token": alice_token, "name": "Alpha"}
        ))
        assert created["role"] == "admin"

        added = _data(await client.call_tool("cs_workspace", {
            "action": "add_member", "token": alice_token, "name": "alpha",
            "email": "bob@example.com",
        }))
        assert added["role"] == "developer"

        roster = _data(await client.call_tool(
            "cs_workspace", {"action": "members", "token": owner_token, "name": "Alpha"}
        ))
        assert roster["requester_role"] == "admin"
        assert roster["can_manage"] is True
        assert len(roster["members"]) == 3

    async def test_invalid_membership_role(self, client: Client):
        _, token = await _signup(client, "alice")
        await client.call_tool("cs_workspace", {"action": "create", "token": token, "name": "A"})
        data = _data(await client.call_tool("cs_workspace", {
            "action": "add_member", "token": token, "name": "A",
            "email": "alice@example.com", "role": "superuser",
        }))
        assert data["code"] == "invalid_input"

    async def test_forbidden_and_not_found(self, client: Client):
        await _signup(client, "owner")
        _, alice_token = await _signup(client, "alice")
        _, bob_token = await _signup(client, "bob")
        await client.call_tool(
            "cs_workspace", {"action": "create", "token": alice_token, "name": "Alpha"}
        )

        denied = _data(await client.call_tool(
            "cs_workspace", {"action": "delete", "token": bob_token, "name": "Alpha"}
        ))
        assert denied["code"] == "forbidden"

        missing = _data(await client.call_tool(
            "cs_workspace", {"action": "delete", "token": bob_token, "name": "Nowhere"}
        ))
        assert missing["code"] == "not_found"

    async def test_list(self, client: Client):
        _, token = await _signup(client, "alice")
        await client.call_tool("cs_workspace", {"action": "create", "token": token, "name": "A"})
        data = _data(await client.call_tool("cs_workspace", {"action": "list", "token": token}))
        assert data["count"] == 1
        assert data["items"][0]["role"] == "admin"


class TestTaskAndAnnouncementTools:
    async def test_task_flow(self, client: Client):
        _, token = await _signup(client, "alice")
        await client.call_tool("cs_workspace", {"action": "create", "token": token, "name": "A"})

        task = _data(await client.call_tool(
            "cs_task", {"action": "create", "token": token, "workspace": "A", "title": "Ship"}
        ))
        assigned = _data(await client.call_tool("cs_task", {
            "action": "assign", "token": token, "workspace": "A", "task_id": task["id"],
            "assignee_email": "alice@example.com",
        }))
        assert assigned["assignee_id"] is not None

        listed = _data(await client.call_tool(
            "cs_task", {"action": "list", "token": token, "workspace": "A"}
        ))
        assert listed["count"] == 1

    async def test_announcements(self, client: Client):
        _, owner_token = await _signup(client, "owner")
        _, alice_token = await _signup(client, "alice")
        await client.call_tool(
            "cs_workspace", {"action": "create", "token": alice_token, "name": "A"}
        )

        denied = _data(await client.call_tool("cs_announce", {
            "action": "post", "token": alice_token, "workspace": "A", "message": "hi",
        }))
        assert denied["code"] == "forbidden"

        await client.call_tool("cs_announce", {
            "action": "post", "token": owner_token, "workspace": "A", "message": "hello",
        })
        listed = _data(await client.call_tool(
            "cs_announce", {"action": "list", "token": alice_token, "workspace": "A"}
        ))
        assert [a["message"] for a in listed["items"]] == ["hello"]


class TestAdminTool:
    async def test_owner_manages_roles(self, client: Client):
        _, owner_token = await _signup(client, "owner")
        bob, bob_token = await _signup(client, "bob")

        promoted = _data(await client.call_tool("cs_admin", {
            "action": "set_role", "token": owner_token, "user_id": bob["id"],
            "role": "administrator",
        }))
        assert promoted["user"]["role"] == "administrator"
        assert promoted["user"]["is_admin"] is True

        denied = _data(await client.call_tool("cs_admin", {"action": "users", "token": bob_token}))
        assert denied["code"] == "forbidden"

    async def test_toggle_admin(self, client: Client):
        _, owner_token = await _signup(client, "owner")
        bob, _ = await _signup(client, "bob")

        data = _data(await client.call_tool("cs_admin", {
            "action": "toggle_admin", "token": owner_token, "user_id": bob["id"],
            "is_admin": True,
        }))
        assert data["user"]["role"] == "moderator"

    async def test_report_triage(self, client: Client):
        _, owner_token = await _signup(client, "owner")
        _, alice_token = await _signup(client, "alice")
        _, bob_token = await _signup(client, "bob")
        await client.call_tool(
            "cs_workspace", {"action": "create", "token": alice_token, "name": "A"}
        )

        report = _data(await client.call_tool(
            "cs_report", {"token": bob_token, "workspace": "A", "reason": "spam"}
        ))
        assert report["status"] == "pending"

        updated = _data(await client.call_tool("cs_admin", {
            "action": "report_status", "token": owner_token, "report_id": report["id"],
            "status": "dismissed",
        }))
        assert updated["status"] == "dismissed"

    async def test_cannot_delete_self(self, client: Client):
        owner, owner_token = await _signup(client, "owner")
        data = _data(await client.call_tool("cs_admin", {
            "action": "delete_user", "token": owner_token, "user_id": owner["id"],
        }))
        assert data["code"] == "forbidden"


async def test_status_resource(client: Client):
    await _signup(client, "owner")
    result = await client.read_resource("cs://status")
    stats = json.loads(result[0].text)
    assert stats["users"] == 1
    assert stats["roles"] == {"owner": 1}
