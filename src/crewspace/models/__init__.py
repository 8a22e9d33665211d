"""Crewspace data models."""

from crewspace.models.announcement import Announcement
from crewspace.models.report import Report
from crewspace.models.task import Task
from crewspace.models.user import User
from crewspace.models.workspace import MemberRoster, Membership, Workspace

__all__ = [
    "Announcement",
    "MemberRoster",
    "Membership",
    "Report",
    "Task",
    "User",
    "Workspace",
]
