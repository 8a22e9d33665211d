"""Crewspace services: the operations callers invoke."""

from crewspace.core.accounts import AccountService
from crewspace.core.admin import AdminService
from crewspace.core.announcements import AnnouncementService
from crewspace.core.reports import ReportService
from crewspace.core.tasks import TaskService
from crewspace.core.workspaces import WorkspaceService

__all__ = [
    "AccountService",
    "AdminService",
    "AnnouncementService",
    "ReportService",
    "TaskService",
    "WorkspaceService",
]
