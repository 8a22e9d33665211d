"""Workspace report model."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

VALID_REPORT_STATUSES = {"pending", "reviewed", "dismissed", "resolved"}


class Report(BaseModel):
    """A user's report against a workspace, triaged from the admin surface."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    workspace_id: str
    reporter_id: str | None = None
    reason: str
    status: str = "pending"
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    updated_at: str | None = None

    def to_storage(self) -> dict:
        return self.model_dump()

    def to_response(self) -> dict:
        return {
            "_v": "1.0",
            "id": self.id,
            "workspace_id": self.workspace_id,
            "reporter_id": self.reporter_id,
            "reason": self.reason,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
