"""User account model."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from crewspace.auth.roles import GlobalRole, is_admin_role

VALID_SUBSCRIPTIONS = {"none", "lite"}


class User(BaseModel):
    """A registered account. ``is_admin`` is derived from ``role``, never stored."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str
    email: str
    role: str = GlobalRole.USER.value
    subscription_status: str = "none"
    notify_announcements: bool = True
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)

    def to_storage(self) -> dict:
        return self.model_dump()

    def to_response(self) -> dict:
        return {
            "_v": "1.0",
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_admin": self.is_admin,
            "subscription_status": self.subscription_status,
            "notify_announcements": self.notify_announcements,
            "created_at": self.created_at,
        }
