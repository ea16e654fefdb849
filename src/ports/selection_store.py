"""Selection store port — abstract interface for persisted schedule entries.

Core modules depend on this protocol, never on a specific database.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Protocol

from src.core.errors import RosterError
from src.data.models import NewScheduleEntry, ScheduleEntry

# Maps a user's persisted entries to (entry ids to delete, entries to insert)
BatchPlan = Callable[[list[ScheduleEntry]], tuple[list[int], list[NewScheduleEntry]]]


class StoreError(RosterError):
    """Raised when a store query or commit fails. State is left unchanged."""


class SelectionStore(Protocol):
    """Queryable, atomically batch-writable collection of schedule entries."""

    def query(
        self, user_id: str | None, date_from: date, date_to: date
    ) -> list[ScheduleEntry]: ...

    def atomic_batch(
        self, deletes: list[int], inserts: list[NewScheduleEntry]
    ) -> None: ...

    def locked_batch(
        self, user_id: str, date_from: date, date_to: date, plan: BatchPlan
    ) -> tuple[list[int], list[NewScheduleEntry]]:
        """Read and write under one lock: the batch applied is the one `plan`
        computes from the entries committed at that moment."""
        ...
