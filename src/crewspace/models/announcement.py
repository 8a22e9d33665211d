"""Workspace and site-wide announcement models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field


class Announcement(BaseModel):
    """An announcement. ``workspace_id`` is None for site-wide ones."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    workspace_id: str | None = None
    author_id: str | None = None
    message: str
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    author: str | None = None

    def to_storage(self) -> dict:
        return self.model_dump(exclude={"author"})

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "author": self.author,
            "created_at": self.created_at,
        }
