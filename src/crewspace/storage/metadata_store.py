"""SQLite store for accounts, workspaces, memberships, tasks and reports."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from crewspace.errors import StorageFailure

logger = logging.getLogger(__name__)

# Column whitelists per table, guarding the dynamic SET clause in UPDATE operations
_ALLOWED_COLUMNS: dict[str, set[str]] = {
    "users": {"username", "subscription_status", "notify_announcements"},
    "workspaces": {"name", "description"},
}


def _validate_update_keys(table: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Filter update dict to only allowed column names."""
    allowed = _ALLOWED_COLUMNS.get(table, set())
    filtered = {k: v for k, v in updates.items() if k in allowed}
    rejected = set(updates.keys()) - allowed - {"id"}
    if rejected:
        logger.warning("Rejected invalid column names for %s: %s", table, rejected)
    return filtered


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Re-raise driver errors as StorageFailure."""
    try:
        yield
    except aiosqlite.Error as e:
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageFailure(f"storage failure during {operation}") from e


class MetadataStore:
    """SQLite-backed repository for every entity the authorization core reads.

    Every statement runs under one lock, and the connection is shared, so
    a multi-statement transaction is never interleaved with another
    coroutine's reads or writes. Reads see only committed rows.
    """

    def __init__(self, db_path: Path, *, wal_mode: bool = True) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create database and apply schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with _storage_errors("initialize"):
            self._db = await aiosqlite.connect(str(self.db_path))
            self._db.row_factory = aiosqlite.Row

            if self.wal_mode:
                await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA foreign_keys=ON")

            schema_sql = _load_sql("metadata.sql")
            await self._db.executescript(schema_sql)
            await self._db.commit()
        logger.info("Initialized metadata store at %s", self.db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Get database connection."""
        if self._db is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run several statements as one immediate (write-locked) transaction."""
        async with self._lock:
            await self.db.execute("BEGIN IMMEDIATE")
            try:
                yield self.db
            except BaseException:
                await self.db.rollback()
                raise
            await self.db.commit()

    async def _write(self, operation: str, sql: str, params: Any = ()) -> int:
        """Execute a single write and commit. Returns the affected row count."""
        with _storage_errors(operation):
            async with self._lock:
                try:
                    cursor = await self.db.execute(sql, params)
                    await self.db.commit()
                except aiosqlite.Error:
                    # sqlite3 opened an implicit transaction for the statement
                    await self.db.rollback()
                    raise
                return cursor.rowcount

    async def _fetchone(self, operation: str, sql: str, params: Any = ()) -> dict[str, Any] | None:
        with _storage_errors(operation):
            async with self._lock:
                cursor = await self.db.execute(sql, params)
                row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def _fetchall(self, operation: str, sql: str, params: Any = ()) -> list[dict[str, Any]]:
        with _storage_errors(operation):
            async with self._lock:
                cursor = await self.db.execute(sql, params)
                rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    # --- Users ---

    async def create_user(self, user: dict[str, Any]) -> dict[str, Any]:
        """Insert a user row exactly as given."""
        await self._write(
            "create_user",
            """INSERT INTO users (id, username, email, role, subscription_status,
               notify_announcements, created_at)
               VALUES (:id, :username, :email, :role, :subscription_status,
               :notify_announcements, :created_at)""",
            user,
        )
        return user

    async def create_user_bootstrapping(
        self, user: dict[str, Any], *, force_owner: bool = False
    ) -> dict[str, Any]:
        """Insert a user, promoting to owner if the table is empty or forced.

        The emptiness check and the insert share one transaction, so two
        concurrent first signups cannot both observe zero users.
        """
        user = dict(user)
        with _storage_errors("create_user_bootstrapping"):
            async with self.transaction() as db:
                cursor = await db.execute("SELECT COUNT(*) FROM users")
                row = await cursor.fetchone()
                if row[0] == 0 or force_owner:
                    user["role"] = "owner"
                await db.execute(
                    """INSERT INTO users (id, username, email, role, subscription_status,
                       notify_announcements, created_at)
                       VALUES (:id, :username, :email, :role, :subscription_status,
                       :notify_announcements, :created_at)""",
                    user,
                )
        return user

    async def get_user(self, user_id: str) -> dict[str, Any] | None:
        """Get a user by ID."""
        return await self._fetchone("get_user", "SELECT * FROM users WHERE id = ?", (user_id,))

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Get a user by email, ignoring case."""
        return await self._fetchone(
            "get_user_by_email", "SELECT * FROM users WHERE email = ?", (email.strip(),)
        )

    async def list_users(self) -> list[dict[str, Any]]:
        """List all users."""
        return await self._fetchall("list_users", "SELECT * FROM users ORDER BY created_at")

    async def count_users(self) -> int:
        row = await self._fetchone("count_users", "SELECT COUNT(*) AS n FROM users")
        return row["n"] if row else 0

    async def update_user(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """Update whitelisted user columns. Role changes go through update_role."""
        existing = await self.get_user(user_id)
        if not existing:
            return None

        filtered = _validate_update_keys("users", updates)
        if not filtered:
            return existing

        set_clauses = []
        values = []
        for key, value in filtered.items():
            set_clauses.append(f"{key} = ?")
            values.append(value)

        values.append(user_id)
        await self._write(
            "update_user",
            f"UPDATE users SET {', '.join(set_clauses)} WHERE id = ?",
            values,
        )
        return await self.get_user(user_id)

    async def update_role(self, user_id: str, role: str) -> bool:
        rowcount = await self._write(
            "update_role", "UPDATE users SET role = ? WHERE id = ?", (role, user_id)
        )
        return rowcount > 0

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user. Memberships and assignments cascade."""
        rowcount = await self._write("delete_user", "DELETE FROM users WHERE id = ?", (user_id,))
        return rowcount > 0

    # --- Workspaces ---

    async def create_workspace(
        self, workspace: dict[str, Any], *, creator_role: str = "admin"
    ) -> dict[str, Any]:
        """Insert a workspace and its creator's membership together."""
        with _storage_errors("create_workspace"):
            async with self.transaction() as db:
                await db.execute(
                    """INSERT INTO workspaces (id, name, description, created_by, created_at)
                       VALUES (:id, :name, :description, :created_by, :created_at)""",
                    workspace,
                )
                if workspace.get("created_by"):
                    await db.execute(
                        """INSERT INTO workspace_members (workspace_id, user_id, role, joined_at)
                           VALUES (?, ?, ?, ?)""",
                        (workspace["id"], workspace["created_by"], creator_role, _now()),
                    )
        return workspace

    async def get_workspace(self, workspace_id: str) -> dict[str, Any] | None:
        return await self._fetchone(
            "get_workspace", "SELECT * FROM workspaces WHERE id = ?", (workspace_id,)
        )

    async def get_workspace_by_name(self, name: str) -> dict[str, Any] | None:
        """Look up a workspace by name, ignoring case."""
        return await self._fetchone(
            "get_workspace_by_name", "SELECT * FROM workspaces WHERE name = ?", (name.strip(),)
        )

    async def list_workspaces(self) -> list[dict[str, Any]]:
        """List all workspaces with their member counts."""
        return await self._fetchall(
            "list_workspaces",
            """SELECT w.*, COUNT(wm.user_id) AS member_count
               FROM workspaces w
               LEFT JOIN workspace_members wm ON w.id = wm.workspace_id
               GROUP BY w.id
               ORDER BY w.created_at DESC""",
        )

    async def list_workspaces_for_user(self, user_id: str) -> list[dict[str, Any]]:
        """List all workspaces a user is a member of, with their role."""
        return await self._fetchall(
            "list_workspaces_for_user",
            """SELECT w.*, wm.role AS member_role FROM workspaces w
               JOIN workspace_members wm ON w.id = wm.workspace_id
               WHERE wm.user_id = ?
               ORDER BY w.created_at DESC""",
            (user_id,),
        )

    async def update_workspace(
        self, workspace_id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        existing = await self.get_workspace(workspace_id)
        if not existing:
            return None

        filtered = _validate_update_keys("workspaces", updates)
        if not filtered:
            return existing

        set_clauses = [f"{key} = ?" for key in filtered]
        values = [*filtered.values(), workspace_id]
        await self._write(
            "update_workspace",
            f"UPDATE workspaces SET {', '.join(set_clauses)} WHERE id = ?",
            values,
        )
        return await self.get_workspace(workspace_id)

    async def delete_workspace(self, workspace_id: str) -> bool:
        """Delete a workspace with its memberships, tasks, announcements and reports."""
        with _storage_errors("delete_workspace"):
            async with self.transaction() as db:
                await db.execute(
                    """DELETE FROM task_assignments WHERE task_id IN
                       (SELECT id FROM tasks WHERE workspace_id = ?)""",
                    (workspace_id,),
                )
                await db.execute("DELETE FROM tasks WHERE workspace_id = ?", (workspace_id,))
                await db.execute(
                    "DELETE FROM announcements WHERE workspace_id = ?", (workspace_id,)
                )
                await db.execute("DELETE FROM reports WHERE workspace_id = ?", (workspace_id,))
                await db.execute(
                    "DELETE FROM workspace_members WHERE workspace_id = ?", (workspace_id,)
                )
                cursor = await db.execute("DELETE FROM workspaces WHERE id = ?", (workspace_id,))
                deleted = cursor.rowcount > 0
        return deleted

    # --- Memberships ---

    async def insert_membership(
        self, workspace_id: str, user_id: str, role: str
    ) -> dict[str, Any]:
        """Add a member. Fails if the user is already a member."""
        now = _now()
        await self._write(
            "insert_membership",
            """INSERT INTO workspace_members (workspace_id, user_id, role, joined_at)
               VALUES (?, ?, ?, ?)""",
            (workspace_id, user_id, role, now),
        )
        return {
            "workspace_id": workspace_id,
            "user_id": user_id,
            "role": role,
            "joined_at": now,
        }

    async def upsert_membership_ignore_conflict(
        self, workspace_id: str, user_id: str, role: str
    ) -> bool:
        """Insert a membership unless one exists. Returns True if a row was added."""
        rowcount = await self._write(
            "upsert_membership_ignore_conflict",
            """INSERT INTO workspace_members (workspace_id, user_id, role, joined_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT (workspace_id, user_id) DO NOTHING""",
            (workspace_id, user_id, role, _now()),
        )
        return rowcount > 0

    async def get_membership_role(self, workspace_id: str, user_id: str) -> str | None:
        """Get a user's role in a workspace."""
        row = await self._fetchone(
            "get_membership_role",
            "SELECT role FROM workspace_members WHERE workspace_id = ? AND user_id = ?",
            (workspace_id, user_id),
        )
        return row["role"] if row else None

    async def get_members(self, workspace_id: str) -> list[dict[str, Any]]:
        """Get all members of a workspace with their account names."""
        return await self._fetchall(
            "get_members",
            """SELECT wm.*, u.username, u.email FROM workspace_members wm
               JOIN users u ON u.id = wm.user_id
               WHERE wm.workspace_id = ?
               ORDER BY wm.joined_at""",
            (workspace_id,),
        )

    async def delete_memberships_for_workspace(self, workspace_id: str) -> int:
        return await self._write(
            "delete_memberships_for_workspace",
            "DELETE FROM workspace_members WHERE workspace_id = ?",
            (workspace_id,),
        )

    # --- Tasks ---

    async def create_task(self, task: dict[str, Any]) -> dict[str, Any]:
        await self._write(
            "create_task",
            """INSERT INTO tasks (id, workspace_id, title, description, created_by, created_at)
               VALUES (:id, :workspace_id, :title, :description, :created_by, :created_at)""",
            task,
        )
        return task

    async def get_task(self, task_id: str) -> dict[str, Any] | None:
        return await self._fetchone(
            "get_task",
            """SELECT t.*, ta.user_id AS assignee_id FROM tasks t
               LEFT JOIN task_assignments ta ON ta.task_id = t.id
               WHERE t.id = ?""",
            (task_id,),
        )

    async def list_tasks(self, workspace_id: str) -> list[dict[str, Any]]:
        return await self._fetchall(
            "list_tasks",
            """SELECT t.*, ta.user_id AS assignee_id FROM tasks t
               LEFT JOIN task_assignments ta ON ta.task_id = t.id
               WHERE t.workspace_id = ?
               ORDER BY t.created_at""",
            (workspace_id,),
        )

    async def assign_task(self, task_id: str, user_id: str) -> dict[str, Any]:
        """Replace any existing assignment for the task. Last writer wins."""
        now = _now()
        with _storage_errors("assign_task"):
            async with self.transaction() as db:
                await db.execute("DELETE FROM task_assignments WHERE task_id = ?", (task_id,))
                await db.execute(
                    "INSERT INTO task_assignments (task_id, user_id, assigned_at) VALUES (?, ?, ?)",
                    (task_id, user_id, now),
                )
        return {"task_id": task_id, "user_id": user_id, "assigned_at": now}

    async def get_assignments(self, task_id: str) -> list[dict[str, Any]]:
        return await self._fetchall(
            "get_assignments",
            "SELECT * FROM task_assignments WHERE task_id = ?",
            (task_id,),
        )

    # --- Announcements ---

    async def create_announcement(self, announcement: dict[str, Any]) -> dict[str, Any]:
        await self._write(
            "create_announcement",
            """INSERT INTO announcements (id, workspace_id, author_id, message, created_at)
               VALUES (:id, :workspace_id, :author_id, :message, :created_at)""",
            announcement,
        )
        return announcement

    async def list_announcements(
        self, workspace_id: str | None = None, *, limit: int = 50
    ) -> list[dict[str, Any]]:
        """Newest first. ``workspace_id=None`` lists site-wide announcements."""
        where = "a.workspace_id IS NULL" if workspace_id is None else "a.workspace_id = ?"
        params: tuple[Any, ...] = () if workspace_id is None else (workspace_id,)
        return await self._fetchall(
            "list_announcements",
            f"""SELECT a.*, u.username AS author FROM announcements a
                LEFT JOIN users u ON u.id = a.author_id
                WHERE {where}
                ORDER BY a.created_at DESC
                LIMIT ?""",
            (*params, limit),
        )

    # --- Reports ---

    async def create_report(self, report: dict[str, Any]) -> dict[str, Any]:
        await self._write(
            "create_report",
            """INSERT INTO reports (id, workspace_id, reporter_id, reason, status,
               created_at, updated_at)
               VALUES (:id, :workspace_id, :reporter_id, :reason, :status,
               :created_at, :updated_at)""",
            report,
        )
        return report

    async def get_report(self, report_id: str) -> dict[str, Any] | None:
        return await self._fetchone(
            "get_report", "SELECT * FROM reports WHERE id = ?", (report_id,)
        )

    async def list_reports(self, *, status: str | None = None) -> list[dict[str, Any]]:
        if status:
            return await self._fetchall(
                "list_reports",
                "SELECT * FROM reports WHERE status = ? ORDER BY created_at DESC",
                (status,),
            )
        return await self._fetchall(
            "list_reports", "SELECT * FROM reports ORDER BY created_at DESC"
        )

    async def update_report_status(self, report_id: str, status: str) -> dict[str, Any] | None:
        await self._write(
            "update_report_status",
            "UPDATE reports SET status = ?, updated_at = ? WHERE id = ?",
            (status, _now(), report_id),
        )
        return await self.get_report(report_id)

    # --- Stats ---

    async def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {}
        for table in ("users", "workspaces", "workspace_members", "tasks", "reports"):
            row = await self._fetchone("get_stats", f"SELECT COUNT(*) AS n FROM {table}")
            stats[table] = row["n"] if row else 0
        rows = await self._fetchall(
            "get_stats", "SELECT role, COUNT(*) AS n FROM users GROUP BY role"
        )
        stats["roles"] = {row["role"]: row["n"] for row in rows}
        return stats


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _load_sql(filename: str) -> str:
    """Load SQL file from the schema package."""
    schema_dir = Path(__file__).parent.parent / "schema"
    return (schema_dir / filename).read_text()


def _row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert an aiosqlite Row to a dict."""
    return dict(row)
