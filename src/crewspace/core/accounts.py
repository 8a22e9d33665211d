"""Account lifecycle: signup with owner bootstrap, self-service and role changes."""

from __future__ import annotations

import logging

from crewspace.auth.engine import (
    authorize_delete_user,
    authorize_global_role_change,
    authorize_toggle_admin,
    toggle_admin_role,
)
from crewspace.auth.roles import parse_global_role
from crewspace.config import Config
from crewspace.core.lookups import load_user, require_text, require_user
from crewspace.errors import InvalidInput, NotFound
from crewspace.models.user import User
from crewspace.storage.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


class AccountService:
    """Signup, profile updates and the owner-only role management operations."""

    def __init__(self, store: MetadataStore, config: Config) -> None:
        self.store = store
        self.config = config

    async def signup(self, *, email: str, username: str) -> User:
        """Register an account.

        The first account ever created, and any account using the configured
        bootstrap owner email, becomes ``owner``. Everyone else starts as
        ``user``.

        Raises:
            InvalidInput: If a field is missing or the email is already registered
        """
        email = require_text(email, "email")
        username = require_text(username, "username")
        if "@" not in email:
            raise InvalidInput(f"invalid email: {email}")

        if await self.store.get_user_by_email(email):
            raise InvalidInput("account already exists")

        user = User(username=username, email=email)
        data = await self.store.create_user_bootstrapping(
            user.to_storage(),
            force_owner=self.config.is_bootstrap_owner(email),
        )
        created = User(**data)
        logger.info("Signed up %s (role=%s)", created.id, created.role)
        return created

    async def me(self, user_id: str | None) -> User:
        return await require_user(self.store, user_id)

    async def update_username(self, user_id: str | None, username: str) -> User:
        user = await require_user(self.store, user_id)
        username = require_text(username, "username")
        data = await self.store.update_user(user.id, {"username": username})
        return User(**data)

    async def set_notification_preference(self, user_id: str | None, notify: bool | None) -> User:
        user = await require_user(self.store, user_id)
        if not isinstance(notify, bool):
            raise InvalidInput("notify_announcements must be a boolean")
        data = await self.store.update_user(user.id, {"notify_announcements": notify})
        return User(**data)

    async def set_role(self, requester_id: str | None, target_id: str, new_role: str) -> User:
        """Change a user's global role. The admin flag follows from the new role.

        Raises:
            Unauthenticated: If the requester cannot be resolved
            InvalidInput: If ``new_role`` is not a global role
            NotFound: If the target does not exist
            Forbidden: If the requester may not make this change
        """
        requester = await require_user(self.store, requester_id)
        role = parse_global_role(new_role)
        target = await load_user(self.store, target_id)

        decision = authorize_global_role_change(requester, target, role)
        if not decision:
            logger.warning(
                "Denied role change of %s to %s by %s: %s",
                target.id, role, requester.id, decision.reason,
            )
        decision.raise_for_denial()

        return await self._apply_role(requester, target, role)

    async def toggle_admin(self, requester_id: str | None, target_id: str, is_admin: bool) -> User:
        """Legacy switch: on means ``moderator``, off means ``user``."""
        requester = await require_user(self.store, requester_id)
        if not isinstance(is_admin, bool):
            raise InvalidInput("is_admin must be a boolean")
        target = await load_user(self.store, target_id)

        authorize_toggle_admin(requester, target, is_admin).raise_for_denial()
        return await self._apply_role(requester, target, toggle_admin_role(is_admin))

    async def delete_user(self, requester_id: str | None, target_id: str) -> None:
        requester = await require_user(self.store, requester_id)
        target = await load_user(self.store, target_id)

        decision = authorize_delete_user(requester, target)
        if not decision:
            logger.warning("Denied deletion of %s by %s: %s", target.id, requester.id, decision.reason)
        decision.raise_for_denial()

        if not await self.store.delete_user(target.id):
            raise NotFound(f"user not found: {target.id}")
        logger.info("User %s deleted by %s", target.id, requester.id)

    async def _apply_role(self, requester: User, target: User, role: str) -> User:
        if not await self.store.update_role(target.id, str(role)):
            raise NotFound(f"user not found: {target.id}")
        logger.info("Role of %s changed %s -> %s by %s", target.id, target.role, role, requester.id)
        return await load_user(self.store, target.id)
