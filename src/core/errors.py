"""Domain errors shared by the reconciler, aggregator and roster service."""

from __future__ import annotations


class RosterError(Exception):
    """Base class for every error raised by RosterPlan."""


class ValidationError(RosterError):
    """Caller input is malformed or falls outside the requested scope.

    Always raised before the store is touched.
    """


class AuthorizationError(RosterError):
    """The viewer is not allowed to read or write the targeted user's data."""


class ConfigError(RosterError):
    """The static activity catalog is inconsistent. Fatal at load time."""


class ConsistencyError(RosterError):
    """A persisted entry references an activity the catalog no longer knows.

    Never raised out of the aggregator: instances are collected on the
    resulting view so the entry can still be displayed.
    """

    def __init__(self, entry_id: int, activity: str, message: str = "") -> None:
        self.entry_id = entry_id
        self.activity = activity
        super().__init__(
            message or f"Entry #{entry_id} references unknown activity {activity!r}"
        )
