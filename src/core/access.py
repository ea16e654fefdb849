"""
RosterPlan — Visibility rules.

Admins see and edit every resident's roster; residents only their own.
Evaluated once per request, before any store query is built.
"""

from __future__ import annotations

import logging

from src.core.errors import AuthorizationError
from src.data.models import Profile

logger = logging.getLogger(__name__)


def can_access(viewer: Profile, user_id: str) -> bool:
    return viewer.is_admin or viewer.user_id == user_id


def require_access(viewer: Profile, user_id: str) -> None:
    """Raise AuthorizationError unless `viewer` may read/write `user_id`'s entries."""
    if not can_access(viewer, user_id):
        logger.warning("Access denied: %s tried to reach %s", viewer.user_id, user_id)
        raise AuthorizationError(
            f"User {viewer.user_id} is not allowed to access {user_id}'s roster"
        )


def require_admin(viewer: Profile) -> None:
    if not viewer.is_admin:
        logger.warning("Access denied: %s is not an admin", viewer.user_id)
        raise AuthorizationError(f"User {viewer.user_id} is not an admin")


def visible_user_filter(viewer: Profile, requested: str | None = None) -> str | None:
    """Resolve which user's entries a query may return.

    Returns None for "all users", which only admins get. Residents asking for
    nothing in particular are narrowed to themselves.
    """
    if requested is None:
        return None if viewer.is_admin else viewer.user_id
    require_access(viewer, requested)
    return requested
