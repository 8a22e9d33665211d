"""FastMCP server — account, workspace, task, announcement, report and admin tools."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import Field

from crewspace import __version__
from crewspace.auth.jwt import SessionIdentityProvider
from crewspace.config import Config
from crewspace.core.accounts import AccountService
from crewspace.core.admin import AdminService
from crewspace.core.announcements import AnnouncementService
from crewspace.core.reports import ReportService
from crewspace.core.tasks import TaskService
from crewspace.core.workspaces import WorkspaceService
from crewspace.errors import CrewspaceError, InvalidInput
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

Token = Annotated[str | None, Field(description="Session token from signup or `crewspace user token`")]
WorkspaceName = Annotated[str | None, Field(description="Workspace name (case-insensitive)")]


def _json(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str)


def _ok(data: dict[str, Any]) -> str:
    """Return a versioned JSON success response."""
    return _json({**data, "_v": "1.0"})


def _err(error: CrewspaceError) -> str:
    """Return a versioned JSON error response carrying the error class code."""
    return _json({"_v": "1.0", "error": error.message, "code": error.code})


def create_server(db_path: str, config: Config | None = None) -> FastMCP:
    """Create the FastMCP server over the metadata store at ``db_path``."""
    config = config or Config.load()
    mcp = FastMCP("crewspace", version=__version__)
    identity = SessionIdentityProvider(config.jwt_secret, exp_minutes=config.token_exp_minutes)

    state: dict[str, Any] = {}
    _lock = asyncio.Lock()

    async def _init() -> dict[str, Any]:
        async with _lock:
            if "init_failed" in state:
                raise RuntimeError(f"Crewspace init previously failed for {db_path}")
            if "store" not in state:
                try:
                    store = MetadataStore(Path(db_path), wal_mode=config.wal_mode)
                    await store.initialize()
                except Exception as e:
                    state["init_failed"] = True
                    logger.error("Failed to initialize database: %s", e)
                    raise RuntimeError(f"Crewspace init failed: {db_path}") from e
                state["store"] = store
                state["accounts"] = AccountService(store, config)
                state["workspaces"] = WorkspaceService(store)
                state["tasks"] = TaskService(store)
                state["announcements"] = AnnouncementService(store)
                state["reports"] = ReportService(store)
                state["admin"] = AdminService(store)
        return state

    # ── cs_account ────────────────────────────────────────────

    @mcp.tool()
    async def cs_account(
        action: Annotated[
            Literal["signup", "me", "update", "preferences"],
            Field(description="signup | me | update | preferences"),
        ],
        token: Token = None,
        email: Annotated[str | None, Field(description="Email (signup)")] = None,
        username: Annotated[str | None, Field(description="Display name (signup, update)")] = None,
        notify_announcements: Annotated[
            bool | None, Field(description="Receive announcement popups (preferences)")
        ] = None,
    ) -> str:
        """Register an account or manage your own profile. Signup returns a session token."""
        s = await _init()
        try:
            if action == "signup":
                user = await s["accounts"].signup(email=email or "", username=username or "")
                return _ok({"user": user.to_response(), "token": identity.issue(user.id)})

            user_id = identity.current_user_id(token)
            if action == "me":
                return _ok({"user": (await s["accounts"].me(user_id)).to_response()})
            if action == "update":
                user = await s["accounts"].update_username(user_id, username or "")
                return _ok({"user": user.to_response()})
            if action == "preferences":
                user = await s["accounts"].set_notification_preference(
                    user_id, notify_announcements
                )
                return _ok({"user": user.to_response()})
        except CrewspaceError as e:
            return _err(e)
        return _err(InvalidInput(f"Unknown action: {action}"))

    # ── cs_workspace ──────────────────────────────────────────

    @mcp.tool()
    async def cs_workspace(
        action: Annotated[
            Literal["create", "list", "add_member", "members", "update", "delete"],
            Field(description="create | list | add_member | members | update | delete"),
        ],
        token: Token = None,
        name: WorkspaceName = None,
        new_name: Annotated[str | None, Field(description="New workspace name (update)")] = None,
        description: Annotated[
            str | None, Field(description="Workspace description (create, update)")
        ] = None,
        email: Annotated[str | None, Field(description="Email of the user to add (add_member)")] = None,
        role: Annotated[
            str | None,
            Field(description="developer | head-developer | admin (add_member, default developer)"),
        ] = None,
    ) -> str:
        """Create workspaces, list the ones you belong to, and manage their members."""
        s = await _init()
        user_id = identity.current_user_id(token)
        workspaces: WorkspaceService = s["workspaces"]
        try:
            if action == "create":
                ws = await workspaces.create(user_id, name=name or "", description=description)
                return _ok(ws.to_response(detail="full"))
            if action == "list":
                items = await workspaces.list_for_user(user_id)
                return _ok({"items": [w.to_response() for w in items], "count": len(items)})
            if action == "add_member":
                member = await workspaces.add_member(
                    user_id, workspace_name=name or "", email=email or "", role=role or "developer"
                )
                return _ok(member.to_response())
            if action == "members":
                roster = await workspaces.list_members(user_id, workspace_name=name or "")
                return _ok(roster.to_response())
            if action == "update":
                ws = await workspaces.update(
                    user_id, workspace_name=name or "", new_name=new_name, description=description
                )
                return _ok(ws.to_response(detail="full"))
            if action == "delete":
                await workspaces.delete(user_id, workspace_name=name or "")
                return _ok({"deleted": name})
        except CrewspaceError as e:
            return _err(e)
        return _err(InvalidInput(f"Unknown action: {action}"))

    # ── cs_task ───────────────────────────────────────────────

    @mcp.tool()
    async def cs_task(
        action: Annotated[
            Literal["create", "list", "assign"],
            Field(description="create | list | assign"),
        ],
        token: Token = None,
        workspace: WorkspaceName = None,
        title: Annotated[str | None, Field(description="Task title (create)")] = None,
        description: Annotated[str | None, Field(description="Task description (create)")] = None,
        task_id: Annotated[str | None, Field(description="Task ID (assign)")] = None,
        assignee_email: Annotated[
            str | None, Field(description="Email of the member to assign (assign)")
        ] = None,
    ) -> str:
        """Create and list workspace tasks; workspace admins assign them."""
        s = await _init()
        user_id = identity.current_user_id(token)
        tasks: TaskService = s["tasks"]
        try:
            if action == "create":
                task = await tasks.create(
                    user_id, workspace_name=workspace or "", title=title or "",
                    description=description,
                )
                return _ok(task.to_response())
            if action == "list":
                items = await tasks.list_tasks(user_id, workspace_name=workspace or "")
                return _ok({"items": [t.to_response() for t in items], "count": len(items)})
            if action == "assign":
                task = await tasks.assign(
                    user_id, workspace_name=workspace or "", task_id=task_id or "",
                    assignee_email=assignee_email or "",
                )
                return _ok(task.to_response())
        except CrewspaceError as e:
            return _err(e)
        return _err(InvalidInput(f"Unknown action: {action}"))

    # ── cs_announce ───────────────────────────────────────────

    @mcp.tool()
    async def cs_announce(
        action: Annotated[
            Literal["post", "list", "post_site", "list_site"],
            Field(description="post | list (workspace) | post_site | list_site"),
        ],
        token: Token = None,
        workspace: WorkspaceName = None,
        message: Annotated[str | None, Field(description="Announcement text (post, post_site)")] = None,
    ) -> str:
        """Workspace announcements (owner posts, members read) and site-wide announcements."""
        s = await _init()
        user_id = identity.current_user_id(token)
        announcements: AnnouncementService = s["announcements"]
        try:
            if action == "post":
                item = await announcements.post_to_workspace(
                    user_id, workspace_name=workspace or "", message=message or ""
                )
                return _ok(item.to_response())
            if action == "list":
                items = await announcements.list_for_workspace(
                    user_id, workspace_name=workspace or ""
                )
                return _ok({"items": [a.to_response() for a in items], "count": len(items)})
            if action == "post_site":
                item = await announcements.post_site(user_id, message=message or "")
                return _ok(item.to_response())
            if action == "list_site":
                items = await announcements.list_site(user_id)
                return _ok({"items": [a.to_response() for a in items], "count": len(items)})
        except CrewspaceError as e:
            return _err(e)
        return _err(InvalidInput(f"Unknown action: {action}"))

    # ── cs_report ─────────────────────────────────────────────

    @mcp.tool()
    async def cs_report(
        token: Token = None,
        workspace: WorkspaceName = None,
        reason: Annotated[str | None, Field(description="Why the workspace is being reported")] = None,
    ) -> str:
        """Report a workspace to the site admins. Membership is not required."""
        s = await _init()
        user_id = identity.current_user_id(token)
        try:
            report = await s["reports"].create(
                user_id, workspace_name=workspace or "", reason=reason or ""
            )
            return _ok(report.to_response())
        except CrewspaceError as e:
            return _err(e)

    # ── cs_admin ──────────────────────────────────────────────

    @mcp.tool()
    async def cs_admin(
        action: Annotated[
            Literal[
                "users", "workspaces", "reports", "set_role", "toggle_admin",
                "delete_user", "subscription", "delete_workspace", "report_status",
            ],
            Field(description="users | workspaces | reports | set_role | toggle_admin | "
                  "delete_user | subscription | delete_workspace | report_status"),
        ],
        token: Token = None,
        user_id: Annotated[str | None, Field(description="Target user ID")] = None,
        role: Annotated[str | None, Field(description="New global role (set_role)")] = None,
        is_admin: Annotated[bool | None, Field(description="Admin flag (toggle_admin)")] = None,
        status: Annotated[
            str | None,
            Field(description="Subscription none|lite, or report status (reports, report_status)"),
        ] = None,
        workspace_id: Annotated[str | None, Field(description="Workspace ID (delete_workspace)")] = None,
        report_id: Annotated[str | None, Field(description="Report ID (report_status)")] = None,
    ) -> str:
        """Site administration: manage users, roles, workspaces and reports. Owner only."""
        s = await _init()
        requester_id = identity.current_user_id(token)
        admin: AdminService = s["admin"]
        accounts: AccountService = s["accounts"]
        try:
            if action == "users":
                items = await admin.list_users(requester_id)
                return _ok({"items": [u.to_response() for u in items], "count": len(items)})
            if action == "workspaces":
                items = await admin.list_workspaces(requester_id)
                return _ok({"items": items, "count": len(items)})
            if action == "reports":
                reports = await admin.list_reports(requester_id, status=status)
                return _ok({"items": [r.to_response() for r in reports], "count": len(reports)})
            if action == "delete_workspace":
                await admin.delete_workspace(requester_id, workspace_id or "")
                return _ok({"deleted": workspace_id})
            if action == "report_status":
                report = await admin.update_report_status(requester_id, report_id or "", status or "")
                return _ok(report.to_response())

            user_id = user_id or ""
            if action == "set_role":
                user = await accounts.set_role(requester_id, user_id, role or "")
                return _ok({"user": user.to_response()})
            if action == "toggle_admin":
                user = await accounts.toggle_admin(requester_id, user_id, is_admin)
                return _ok({"user": user.to_response()})
            if action == "delete_user":
                await accounts.delete_user(requester_id, user_id)
                return _ok({"deleted": user_id})
            if action == "subscription":
                user = await admin.set_subscription(requester_id, user_id, status or "")
                return _ok({"user": user.to_response()})
        except CrewspaceError as e:
            return _err(e)
        return _err(InvalidInput(f"Unknown action: {action}"))

    # ── Resources ─────────────────────────────────────────────

    @mcp.resource("cs://status")
    async def cs_resource_status() -> str:
        """Entity counts and the role distribution."""
        s = await _init()
        return _json(await s["store"].get_stats())

    return mcp
