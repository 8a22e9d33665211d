"""CLI — init, serve, status, user and workspace administration."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from crewspace.auth.jwt import SessionIdentityProvider
from crewspace.auth.roles import VALID_GLOBAL_ROLES
from crewspace.config import Config
from crewspace.core.accounts import AccountService
from crewspace.core.lookups import load_user_by_email
from crewspace.errors import CrewspaceError
from crewspace.models.user import User
from crewspace.storage.metadata_store import MetadataStore

T = TypeVar("T")


def _run(config: Config, fn: Callable[[MetadataStore], Awaitable[T]]) -> T:
    """Open the store, run ``fn`` against it, close it. Errors exit with status 1."""

    async def _main() -> T:
        store = MetadataStore(config.db_path, wal_mode=config.wal_mode)
        await store.initialize()
        try:
            return await fn(store)
        finally:
            await store.close()

    try:
        return asyncio.run(_main())
    except CrewspaceError as e:
        Console(stderr=True).print(f"[red]Error ({e.code}):[/red] {e.message}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="crewspace")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Data directory (default: $CREWSPACE_HOME or ~/.crewspace)",
)
@click.pass_context
def main(ctx: click.Context, home: Path | None) -> None:
    """Crewspace — workspaces, members and the roles that govern them."""
    config = Config.load(home.expanduser().resolve() if home else None)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


@main.command()
@click.option("--owner-email", default=None, help="Email that always signs up as owner")
@click.pass_obj
def init(config: Config, owner_email: str | None) -> None:
    """Initialize the data directory and database."""
    if owner_email:
        config.bootstrap_owner_email = owner_email

    async def _init(store: MetadataStore) -> None:
        config.save()

    _run(config, _init)
    click.echo(f"Initialized crewspace at {config.data_path}")
    click.echo(f"Database: {config.db_path}")
    if config.uses_dev_secret:
        click.echo("Warning: using the development JWT secret; set CREWSPACE_JWT_SECRET.", err=True)


@main.command()
@click.option("--transport", type=click.Choice(["stdio"]), default="stdio")
@click.pass_obj
def serve(config: Config, transport: str) -> None:
    """Start the MCP server."""
    if not config.db_path.exists():
        click.echo(f"Error: No database at {config.db_path}. Run 'crewspace init' first.", err=True)
        sys.exit(1)

    from crewspace.server import create_server

    server = create_server(str(config.db_path), config)
    server.run(transport=transport)  # type: ignore[arg-type]


@main.command()
@click.pass_obj
def status(config: Config) -> None:
    """Show entity counts and the role distribution."""
    if not config.db_path.exists():
        click.echo(f"Error: No database at {config.db_path}", err=True)
        sys.exit(1)

    stats = _run(config, lambda store: store.get_stats())
    click.echo(json.dumps(stats, indent=2))


@main.group()
def user() -> None:
    """Manage accounts."""


@user.command("signup")
@click.argument("email")
@click.option("--username", required=True, help="Display name")
@click.pass_obj
def user_signup(config: Config, email: str, username: str) -> None:
    """Register an account. The first account becomes the owner."""

    async def _signup(store: MetadataStore) -> User:
        return await AccountService(store, config).signup(email=email, username=username)

    created = _run(config, _signup)
    Console().print(
        Panel(
            f"[green]✓[/green] Account created: {created.email}\n"
            f"ID: {created.id}\n"
            f"Role: {created.role}",
            title="Signed Up",
        )
    )


@user.command("token")
@click.argument("email")
@click.pass_obj
def user_token(config: Config, email: str) -> None:
    """Issue a session token for an existing account."""

    async def _lookup(store: MetadataStore) -> User:
        return await load_user_by_email(store, email)

    account = _run(config, _lookup)
    identity = SessionIdentityProvider(config.jwt_secret, exp_minutes=config.token_exp_minutes)
    click.echo(identity.issue(account.id))


@user.command("list")
@click.pass_obj
def user_list(config: Config) -> None:
    """List all accounts."""

    async def _list(store: MetadataStore) -> list[User]:
        return [User(**row) for row in await store.list_users()]

    users = _run(config, _list)
    table = Table(title=f"Users ({len(users)})")
    table.add_column("ID", style="dim")
    table.add_column("Email")
    table.add_column("Username")
    table.add_column("Role", style="cyan")
    table.add_column("Admin")
    table.add_column("Subscription")
    for u in users:
        table.add_row(
            u.id, u.email, u.username, u.role, "yes" if u.is_admin else "no", u.subscription_status
        )
    Console().print(table)


@user.command("set-role")
@click.argument("email")
@click.argument("role", type=click.Choice(sorted(VALID_GLOBAL_ROLES)))
@click.option("--as", "requester_email", required=True, help="Email of the account making the change")
@click.pass_obj
def user_set_role(config: Config, email: str, role: str, requester_email: str) -> None:
    """Change an account's global role, checked against the requester's own role."""

    async def _set_role(store: MetadataStore) -> User:
        requester = await load_user_by_email(store, requester_email)
        target = await load_user_by_email(store, email)
        return await AccountService(store, config).set_role(requester.id, target.id, role)

    updated = _run(config, _set_role)
    click.echo(f"{updated.email} is now {updated.role} (admin: {'yes' if updated.is_admin else 'no'})")


@main.group()
def workspace() -> None:
    """Inspect workspaces."""


@workspace.command("list")
@click.pass_obj
def workspace_list(config: Config) -> None:
    """List all workspaces with their member counts."""

    async def _list(store: MetadataStore) -> list[dict]:
        return await store.list_workspaces()

    rows = _run(config, _list)
    table = Table(title=f"Workspaces ({len(rows)})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Members", justify="right")
    table.add_column("Created")
    for row in rows:
        table.add_row(row["id"], row["name"], str(row["member_count"]), row["created_at"][:10])
    Console().print(table)


if __name__ == "__main__":
    main()
