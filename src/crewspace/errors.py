"""Error taxonomy shared by the services and outer surfaces."""

from __future__ import annotations


class CrewspaceError(Exception):
    """Base class for all errors a caller is expected to handle."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthenticated(CrewspaceError):
    """Raised when no identity can be resolved for the request."""

    code = "unauthenticated"

    def __init__(self, message: str = "not authenticated") -> None:
        super().__init__(message)


class Forbidden(CrewspaceError):
    """Raised when the identity is known but lacks the required privilege."""

    code = "forbidden"


class NotFound(CrewspaceError):
    """Raised when a referenced user, workspace, task or report is absent."""

    code = "not_found"


class InvalidInput(CrewspaceError):
    """Raised when a role name, status or required field is invalid."""

    code = "invalid_input"


class StorageFailure(CrewspaceError):
    """Raised when the underlying store fails. Never retried."""

    code = "storage_failure"
