"""
RosterPlan — Data Models.

Schedule entries persist in SQLite: one row per (user, date, period, activity)
a resident declared. Selections are the same facts without the user and the
storage metadata, which is what callers send and receive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum

from src.core.errors import ValidationError

WEEKDAYS = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def parse_date(value: str | date) -> date:
    """Parse an ISO date (YYYY-MM-DD). Raises ValidationError if malformed."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"Malformed date: {value!r}") from exc


class Period(Enum):
    """Time-of-day slot. Declaration order is the display order."""

    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    FULL_DAY = "Morning&Afternoon"

    @property
    def rank(self) -> int:
        return _PERIOD_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | Period) -> Period:
        if isinstance(value, Period):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise ValidationError(f"Unknown period: {value!r}") from exc


_PERIOD_ORDER = list(Period)


class Role(Enum):
    ADMIN = "admin"
    RESIDENT = "resident"


@dataclass(frozen=True, order=True)
class DateRange:
    """Inclusive range of calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                f"Inverted date range: {self.start.isoformat()} > {self.end.isoformat()}"
            )

    @classmethod
    def single(cls, day: date) -> DateRange:
        return cls(day, day)

    @classmethod
    def week_of(cls, day: date) -> DateRange:
        """Monday to Saturday of the week containing `day`."""
        monday = day - timedelta(days=day.weekday())
        return cls(monday, monday + timedelta(days=5))

    @classmethod
    def parse(cls, start: str | date, end: str | date | None = None) -> DateRange:
        first = parse_date(start)
        return cls(first, parse_date(end) if end is not None else first)

    def dates(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range(len(self))]

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __len__(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class Selection:
    """One (date, period, activity) triple a user wants marked."""

    date: date
    period: Period
    activity: str

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.period.rank, self.activity)


@dataclass(frozen=True)
class Scope:
    """Bounds a single reconcile call: one user, a date range, maybe a category."""

    user_id: str
    date_range: DateRange
    category: str | None = None

    @classmethod
    def week(cls, user_id: str, day: date) -> Scope:
        return cls(user_id, DateRange.week_of(day))

    @classmethod
    def day_category(cls, user_id: str, day: date, category: str) -> Scope:
        return cls(user_id, DateRange.single(day), category)


@dataclass
class ScheduleEntry:
    """A persisted fact: `user_id` performs `activity` during `period` on `date`."""

    id: int
    user_id: str
    date: date
    weekday: str
    period: Period
    activity: str
    created_at: str = ""

    @property
    def selection(self) -> Selection:
        return Selection(self.date, self.period, self.activity)


@dataclass
class NewScheduleEntry:
    """Insert payload for the store. The store assigns `id`."""

    user_id: str
    date: date
    period: Period
    activity: str
    weekday: str = field(default="")

    def __post_init__(self) -> None:
        if not self.weekday:
            self.weekday = weekday_name(self.date)

    @classmethod
    def from_selection(cls, user_id: str, selection: Selection) -> NewScheduleEntry:
        return cls(
            user_id=user_id,
            date=selection.date,
            period=selection.period,
            activity=selection.activity,
        )


@dataclass
class Profile:
    """A department member. Owned by the profile directory."""

    user_id: str
    full_name: str
    role: Role = Role.RESIDENT
    email: str = ""
    phone: str = ""
    created_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name.strip() or self.user_id


@dataclass
class ReconcileResult:
    inserted: int = 0
    deleted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted)
