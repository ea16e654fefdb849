"""
RosterPlan — Roster Aggregator.

Groups persisted schedule entries into a display-ready roster:

    date → period → activity → [display names]

Dates are chronological, periods follow the canonical Morning / Afternoon /
Morning&Afternoon order and activities follow the template listing for that
weekday. Entries whose activity has since left the template are still shown
(after the listed ones) and reported as ConsistencyError on the view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from src.core.errors import ConsistencyError, ValidationError
from src.data.models import DateRange, Period, ScheduleEntry

if TYPE_CHECKING:
    from src.core.catalog import Catalog
    from src.ports.profile_directory import ProfileDirectory
    from src.ports.selection_store import SelectionStore

logger = logging.getLogger(__name__)

Grouped = dict[date, dict[Period, dict[str, list[str]]]]


class ViewMode(Enum):
    DAY = "day"
    WEEK = "week"

    @classmethod
    def parse(cls, value: str | ViewMode) -> ViewMode:
        if isinstance(value, ViewMode):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise ValidationError(f"Unknown view mode: {value!r}") from exc


@dataclass
class GroupedView:
    """Roster for a date range. An empty view is a valid result."""

    mode: ViewMode
    date_range: DateRange
    days: Grouped = field(default_factory=dict)
    consistency_errors: list[ConsistencyError] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.days

    def names(self, day: date, period: Period, activity: str) -> list[str]:
        return list(self.days.get(day, {}).get(period, {}).get(activity, []))


@dataclass
class RosterRow:
    date: date
    period: Period
    activity: str
    names: list[str]


def check_range(date_range: DateRange, mode: ViewMode) -> None:
    if mode is ViewMode.DAY and len(date_range) != 1:
        raise ValidationError("A day view covers exactly one date")
    if mode is ViewMode.WEEK and len(date_range) > 7:
        raise ValidationError("A week view covers at most seven dates")


def resolve_names(profiles: ProfileDirectory, user_ids: set[str]) -> dict[str, str]:
    """Map user ids to display names, falling back to the id itself."""
    if len(user_ids) > 1:
        known = {p.user_id: p.display_name for p in profiles.list_profiles()}
    else:
        known = {}
        for user_id in user_ids:
            profile = profiles.get_profile(user_id)
            if profile is not None:
                known[user_id] = profile.display_name
    return {user_id: known.get(user_id, user_id) for user_id in user_ids}


def group_entries(
    entries: list[ScheduleEntry], names: dict[str, str], catalog: Catalog,
) -> tuple[Grouped, list[ConsistencyError]]:
    grouped: Grouped = {}
    problems: list[ConsistencyError] = []

    for entry in sorted(entries, key=lambda e: (e.created_at, e.id)):
        if catalog.activity_rank(entry.date, entry.period, entry.activity) is None:
            problem = ConsistencyError(entry.id, entry.activity)
            logger.warning("%s (%s %s)", problem, entry.date.isoformat(), entry.period.value)
            problems.append(problem)

        bucket = (
            grouped.setdefault(entry.date, {})
            .setdefault(entry.period, {})
            .setdefault(entry.activity, [])
        )
        name = names.get(entry.user_id, entry.user_id)
        if name not in bucket:
            bucket.append(name)

    return _ordered(grouped, catalog), problems


def _ordered(grouped: Grouped, catalog: Catalog) -> Grouped:
    def activity_key(day: date, period: Period, activity: str) -> tuple:
        rank = catalog.activity_rank(day, period, activity)
        return (rank is None, rank or 0, activity)

    return {
        day: {
            period: {
                activity: grouped[day][period][activity]
                for activity in sorted(
                    grouped[day][period], key=lambda a: activity_key(day, period, a)
                )
            }
            for period in sorted(grouped[day], key=lambda p: p.rank)
        }
        for day in sorted(grouped)
    }


def aggregate(
    store: SelectionStore,
    profiles: ProfileDirectory,
    catalog: Catalog,
    date_range: DateRange,
    mode: ViewMode | str,
    user_id: str | None = None,
) -> GroupedView:
    """Build the roster for `date_range`.

    `user_id` is the already-authorized query filter; None means every user.
    StoreError from the store propagates unchanged.
    """
    mode = ViewMode.parse(mode)
    check_range(date_range, mode)

    entries = store.query(user_id, date_range.start, date_range.end)
    names = resolve_names(profiles, {e.user_id for e in entries})
    days, problems = group_entries(entries, names, catalog)

    logger.debug(
        "Aggregated %d entries over %s..%s (%s)",
        len(entries), date_range.start.isoformat(), date_range.end.isoformat(), mode.value,
    )
    return GroupedView(mode=mode, date_range=date_range, days=days, consistency_errors=problems)


def flatten(view: GroupedView) -> list[RosterRow]:
    """Printable summary rows; activities sorted alphabetically per period."""
    rows: list[RosterRow] = []
    for day, periods in view.days.items():
        for period, activities in periods.items():
            for activity in sorted(activities, key=str.casefold):
                rows.append(RosterRow(day, period, activity, list(activities[activity])))
    return rows
