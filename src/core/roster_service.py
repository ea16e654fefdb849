"""
RosterPlan — UI-Agnostic Roster Service.

Stateless facade the presentation layer calls: checks who may see or edit
what, then delegates to the reconciler and the aggregator. Any UI (web page,
CLI, bot) authenticates the caller, hands in their Profile, and renders the
returned objects its own way.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import pydantic
from pydantic import BaseModel

from src.core import aggregator, reconciler
from src.core.access import require_access, require_admin, visible_user_filter
from src.core.errors import ValidationError
from src.data.models import (
    DateRange,
    Period,
    Profile,
    ReconcileResult,
    Role,
    Scope,
    Selection,
)

if TYPE_CHECKING:
    from src.core.aggregator import GroupedView, ViewMode
    from src.core.catalog import Catalog, CategoryInfo
    from src.data.db import ProfileDB
    from src.ports.selection_store import SelectionStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Intent payload: JSON contract for the ticked activities
# ---------------------------------------------------------------------------


class SelectionPayload(BaseModel):
    """One ticked activity.

    JSON example:
    {"date": "2025-12-01", "period": "Morning", "activity": "Équipe visite"}
    """
    date: datetime.date
    period: Period
    activity: str


class IntentPayload(BaseModel):
    """All ticked activities for one scope."""
    selections: list[SelectionPayload] = []


def parse_intent(payload: dict | str) -> set[Selection]:
    """Validate a client payload into selections. Raises ValidationError."""
    try:
        if isinstance(payload, str):
            intent = IntentPayload.model_validate_json(payload)
        else:
            intent = IntentPayload.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed selection payload: {exc}") from exc
    return {Selection(s.date, s.period, s.activity) for s in intent.selections}


# ---------------------------------------------------------------------------
# RosterService
# ---------------------------------------------------------------------------


class RosterService:
    """Entry point for reconciling and viewing rosters."""

    def __init__(self, store: SelectionStore, profiles: ProfileDB, catalog: Catalog) -> None:
        self._store = store
        self._profiles = profiles
        self._catalog = catalog

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def reconcile(
        self, viewer: Profile, scope: Scope, intent: Iterable[Selection],
    ) -> ReconcileResult:
        """Make `intent` the complete set of `scope.user_id`'s selections in scope.

        Admins may edit anyone's roster; residents only their own.
        """
        require_access(viewer, scope.user_id)
        return reconciler.reconcile(self._store, self._catalog, scope, intent)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def aggregate(
        self,
        viewer: Profile,
        date_range: DateRange,
        mode: ViewMode | str,
        user_id: str | None = None,
    ) -> GroupedView:
        """Roster view. Residents only ever see their own entries."""
        user_filter = visible_user_filter(viewer, user_id)
        return aggregator.aggregate(
            self._store, self._profiles, self._catalog, date_range, mode, user_filter,
        )

    def entries_for(
        self, viewer: Profile, user_id: str, date_range: DateRange,
    ) -> list[Selection]:
        """Current selections of a user, to pre-fill an edit form."""
        require_access(viewer, user_id)
        entries = self._store.query(user_id, date_range.start, date_range.end)

        def order(s: Selection) -> tuple:
            rank = self._catalog.activity_rank(s.date, s.period, s.activity)
            return (s.date, s.period.rank, rank is None, rank or 0, s.activity)

        return sorted({e.selection for e in entries}, key=order)

    def categories_for(self, day: datetime.date) -> list[CategoryInfo]:
        """Categories with at least one activity on `day`, for the day page."""
        labels = {info.key: info for info in self._catalog.categories}
        return [labels[key] for key in self._catalog.categories_for_date(day)]

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def register_profile(
        self, user_id: str, full_name: str, email: str = "", phone: str = "",
    ) -> Profile:
        """Sign-up: new profiles are always residents."""
        if not user_id.strip():
            raise ValidationError("user_id must not be empty")
        return self._profiles.add_profile(
            user_id.strip(), full_name, role=Role.RESIDENT, email=email, phone=phone,
        )

    def get_profile(self, viewer: Profile, user_id: str) -> Profile | None:
        require_access(viewer, user_id)
        return self._profiles.get_profile(user_id)

    def list_residents(self, viewer: Profile) -> list[Profile]:
        """Every profile, sorted by name. Admin only."""
        require_admin(viewer)
        return sorted(
            self._profiles.list_profiles(),
            key=lambda p: (p.display_name.casefold(), p.user_id),
        )
