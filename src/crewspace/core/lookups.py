"""Snapshot loaders shared by the services.

Each loader resolves one entity or raises the matching error, so every
operation checks identity, then existence, then permission, in that order.
"""

from __future__ import annotations

from crewspace.auth.engine import materialize_owner_membership
from crewspace.auth.membership import is_global_owner
from crewspace.errors import InvalidInput, NotFound, Unauthenticated
from crewspace.models.user import User
from crewspace.models.workspace import Workspace
from crewspace.storage.metadata_store import MetadataStore


async def require_user(store: MetadataStore, user_id: str | None) -> User:
    """Load the requesting account. A missing or stale identity is unauthenticated."""
    if not user_id:
        raise Unauthenticated()
    data = await store.get_user(user_id)
    if data is None:
        raise Unauthenticated("session refers to an account that no longer exists")
    return User(**data)


async def load_user(store: MetadataStore, user_id: str) -> User:
    """Load a target account by id."""
    data = await store.get_user(user_id)
    if data is None:
        raise NotFound(f"user not found: {user_id}")
    return User(**data)


async def load_user_by_email(store: MetadataStore, email: str) -> User:
    data = await store.get_user_by_email(email)
    if data is None:
        raise NotFound(f"no account found for {email}")
    return User(**data)


async def load_workspace(store: MetadataStore, name: str | None) -> Workspace:
    """Load a workspace by its case-insensitive name."""
    name = require_text(name, "workspace name")
    data = await store.get_workspace_by_name(name)
    if data is None:
        raise NotFound(f"workspace not found: {name}")
    return Workspace(**data)


async def load_workspace_by_id(store: MetadataStore, workspace_id: str) -> Workspace:
    data = await store.get_workspace(workspace_id)
    if data is None:
        raise NotFound(f"workspace not found: {workspace_id}")
    return Workspace(**data)


async def resolve_membership(
    store: MetadataStore, user: User, workspace: Workspace
) -> str | None:
    """The requester's membership role, materializing it for the global owner."""
    role = await store.get_membership_role(workspace.id, user.id)
    if role is None and is_global_owner(user.role):
        role = await materialize_owner_membership(store, workspace.id, user.id)
    return role


def require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{field} is required")
    return value.strip()
