"""Global role hierarchy shared by every account."""

from __future__ import annotations

from enum import StrEnum

from crewspace.errors import InvalidInput


class GlobalRole(StrEnum):
    USER = "user"
    MODERATOR = "moderator"
    ADMINISTRATOR = "administrator"
    CO_OWNER = "co-owner"
    OWNER = "owner"


_ROLE_HIERARCHY = {
    GlobalRole.OWNER: 5,
    GlobalRole.CO_OWNER: 4,
    GlobalRole.ADMINISTRATOR: 3,
    GlobalRole.MODERATOR: 2,
    GlobalRole.USER: 1,
}

VALID_GLOBAL_ROLES = frozenset(r.value for r in GlobalRole)


def level(role: str | None) -> int:
    """Return the privilege level of a role. Unknown roles rank as ``user``."""
    if role is None:
        return _ROLE_HIERARCHY[GlobalRole.USER]
    try:
        return _ROLE_HIERARCHY[GlobalRole(role)]
    except ValueError:
        return _ROLE_HIERARCHY[GlobalRole.USER]


def is_at_least(role: str | None, min_role: str) -> bool:
    """Check if a role ranks at or above ``min_role``."""
    return level(role) >= level(min_role)


def is_admin_role(role: str | None) -> bool:
    """The admin flag: moderator and everything above it."""
    return is_at_least(role, GlobalRole.MODERATOR)


def parse_global_role(value: str | None) -> GlobalRole:
    """Validate a role name coming from a caller."""
    if value is None or value not in VALID_GLOBAL_ROLES:
        raise InvalidInput(
            f"Invalid role: {value}. Must be one of {sorted(VALID_GLOBAL_ROLES)}"
        )
    return GlobalRole(value)
