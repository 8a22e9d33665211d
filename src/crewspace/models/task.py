"""Task and task assignment models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Task(BaseModel):
    """A unit of work inside a workspace, with at most one assignee."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    workspace_id: str
    title: str
    description: str | None = None
    created_by: str | None = None
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    assignee_id: str | None = None

    def to_storage(self) -> dict:
        return self.model_dump(exclude={"assignee_id"})

    def to_response(self) -> dict:
        return {
            "_v": "1.0",
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "assignee_id": self.assignee_id,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }
