"""Profile directory port — read access to department members.

Core modules only read profiles; registration goes through the adapter.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import Profile


class ProfileDirectory(Protocol):
    """Abstract profile lookup used by core modules."""

    def get_profile(self, user_id: str) -> Profile | None: ...

    def list_profiles(self) -> list[Profile]: ...
