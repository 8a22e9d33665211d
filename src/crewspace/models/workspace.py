"""Workspace and membership models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Workspace(BaseModel):
    """A named collaboration space. Names are unique ignoring case."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    name: str
    description: str | None = None
    created_by: str | None = None
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    # Set when listed for a particular member
    member_role: str | None = None

    def to_storage(self) -> dict:
        return self.model_dump(exclude={"member_role"})

    def to_response(self, *, detail: str = "summary") -> dict:
        data = {
            "_v": "1.0",
            "id": self.id,
            "name": self.name,
        }
        if self.member_role is not None:
            data["role"] = self.member_role
        if detail != "summary":
            data.update(
                {
                    "description": self.description,
                    "created_by": self.created_by,
                    "created_at": self.created_at,
                }
            )
        return data


class Membership(BaseModel):
    """A user's role inside one workspace."""

    workspace_id: str
    user_id: str
    role: str
    joined_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    username: str | None = None
    email: str | None = None

    def to_response(self) -> dict:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "joined_at": self.joined_at,
        }


class MemberRoster(BaseModel):
    """The members view of a workspace, as seen by one requester."""

    workspace: Workspace
    members: list[Membership]
    requester_role: str | None = None
    requester_global_role: str
    can_manage: bool = False

    def to_response(self) -> dict:
        return {
            "_v": "1.0",
            "workspace": self.workspace.name,
            "members": [m.to_response() for m in self.members],
            "requester_role": self.requester_role,
            "requester_global_role": self.requester_global_role,
            "can_manage": self.can_manage,
        }
