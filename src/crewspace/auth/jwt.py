"""JWT session tokens and the identity provider built on them."""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"


class TokenExpiredError(Exception):
    """Raised when a session token has expired."""


class TokenInvalidError(Exception):
    """Raised when a session token is malformed or signed with another key."""


def create_token(user_id: str, secret: str, exp_minutes: int = 60 * 24) -> str:
    """Create a session token for a user. Defaults to a one-day lifetime."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + (exp_minutes * 60),
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> dict[str, Any]:
    """Verify and decode a session token."""
    try:
        return jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        logger.warning("Token expired: %s", e)
        raise TokenExpiredError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token: %s", e)
        raise TokenInvalidError("Token is invalid") from e


class SessionIdentityProvider:
    """Resolves an opaque session token to the user id it was issued for."""

    def __init__(self, secret: str, *, exp_minutes: int = 60 * 24) -> None:
        self.secret = secret
        self.exp_minutes = exp_minutes

    def issue(self, user_id: str) -> str:
        return create_token(user_id, self.secret, exp_minutes=self.exp_minutes)

    def current_user_id(self, token: str | None) -> str | None:
        """Return the token's subject, or None when there is no usable identity."""
        if not token:
            return None
        try:
            payload = verify_token(token, self.secret)
        except (TokenExpiredError, TokenInvalidError):
            return None
        subject = payload.get("sub")
        return str(subject) if subject else None
