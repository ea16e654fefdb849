"""
RosterPlan — Activity Catalog and Scope Filter.

Wraps the static weekly template and the activity → category map, and derives
the set of selections a scope may contain. Everything here is pure: no I/O
except `load_catalog`, which reads a JSON file once at startup.

A Catalog validates itself on construction, so an activity without a category
is reported as ConfigError when the application boots, never mid-request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import pydantic
from pydantic import BaseModel

from src.core.errors import ConfigError, ValidationError
from src.data.models import WEEKDAYS, Period, Scope, Selection, weekday_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryInfo:
    key: str
    label: str
    description: str = ""


class Catalog:
    """Read-only view over the weekly template and the category map."""

    def __init__(
        self,
        template: dict[str, dict[str, list[str]]],
        category_map: dict[str, str],
        category_info: dict[str, CategoryInfo] | None = None,
    ) -> None:
        self._template = self._normalize_template(template)
        self._category_map = dict(category_map)
        self._categories = category_info or {
            key: CategoryInfo(key=key, label=key)
            for key in sorted(set(category_map.values()))
        }
        self._validate()
        self._ranks = {
            (weekday, period, activity): index
            for weekday, periods in self._template.items()
            for period, activities in periods.items()
            for index, activity in enumerate(activities)
        }

    @staticmethod
    def _normalize_template(
        template: dict[str, dict[str, list[str]]],
    ) -> dict[str, dict[Period, tuple[str, ...]]]:
        normalized: dict[str, dict[Period, tuple[str, ...]]] = {}
        for weekday, periods in template.items():
            if weekday not in WEEKDAYS:
                raise ConfigError(f"Unknown weekday in template: {weekday!r}")
            try:
                parsed = {Period.parse(p): tuple(acts) for p, acts in periods.items()}
            except ValidationError as exc:
                raise ConfigError(f"{weekday}: {exc}") from exc
            for period, activities in parsed.items():
                if len(set(activities)) != len(activities):
                    raise ConfigError(
                        f"{weekday}/{period.value}: duplicate activity in template"
                    )
            normalized[weekday] = dict(sorted(parsed.items(), key=lambda kv: kv[0].rank))
        return normalized

    def _validate(self) -> None:
        missing = sorted(
            {
                activity
                for periods in self._template.values()
                for activities in periods.values()
                for activity in activities
                if activity not in self._category_map
            }
        )
        if missing:
            raise ConfigError(
                "Activities without a category: " + ", ".join(missing)
            )
        unknown = sorted(set(self._category_map.values()) - set(self._categories))
        if unknown:
            raise ConfigError("Unknown category keys: " + ", ".join(unknown))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def categories(self) -> list[CategoryInfo]:
        return list(self._categories.values())

    @property
    def weekdays(self) -> list[str]:
        return [w for w in WEEKDAYS if w in self._template]

    def label_for(self, category: str) -> str:
        info = self._categories.get(category)
        return info.label if info else category

    def periods_for_weekday(self, weekday: str) -> dict[Period, tuple[str, ...]]:
        return dict(self._template.get(weekday, {}))

    def periods_for(self, day: date) -> dict[Period, tuple[str, ...]]:
        """Periods and their ordered activities for the weekday of `day`."""
        return self.periods_for_weekday(weekday_name(day))

    def category_of(self, activity: str) -> str:
        """Category key of an activity. Raises ConfigError if it has none."""
        try:
            return self._category_map[activity]
        except KeyError:
            raise ConfigError(f"Activity {activity!r} has no category") from None

    def find_category(self, activity: str) -> str | None:
        return self._category_map.get(activity)

    def activity_rank(self, day: date, period: Period, activity: str) -> int | None:
        """Position of `activity` in the template listing, None if not listed."""
        return self._ranks.get((weekday_name(day), period, activity))

    def categories_for_date(self, day: date) -> list[str]:
        """Category keys with at least one activity on `day`, in catalog order."""
        present = {
            self._category_map[activity]
            for activities in self.periods_for(day).values()
            for activity in activities
        }
        return [key for key in self._categories if key in present]

    # ------------------------------------------------------------------
    # Scope filter
    # ------------------------------------------------------------------

    def check_category(self, category: str | None) -> None:
        if category is not None and category not in self._categories:
            raise ValidationError(f"Unknown category: {category!r}")

    def candidate_selections(self, scope: Scope) -> set[Selection]:
        """Every (date, period, activity) the scope allows."""
        self.check_category(scope.category)
        candidates: set[Selection] = set()
        for day in scope.date_range.dates():
            for period, activities in self.periods_for(day).items():
                for activity in activities:
                    if scope.category is None or self._category_map[activity] == scope.category:
                        candidates.add(Selection(day, period, activity))
        return candidates

    def activities_in_scope(self, scope: Scope) -> set[str]:
        return {s.activity for s in self.candidate_selections(scope)}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class CategorySpec(BaseModel):
    label: str = ""
    description: str = ""
    activities: list[str]


class CatalogFile(BaseModel):
    """JSON shape accepted by load_catalog.

    {
        "template": {"Monday": {"Morning": ["Équipe visite", ...], ...}, ...},
        "categories": {"service": {"label": "Service", "activities": [...]}, ...}
    }
    """

    template: dict[str, dict[str, list[str]]]
    categories: dict[str, CategorySpec]


def build_catalog(
    template: dict[str, dict[str, list[str]]],
    categories: dict[str, CategorySpec],
) -> Catalog:
    category_map: dict[str, str] = {}
    for key, cat_spec in categories.items():
        for activity in cat_spec.activities:
            if category_map.get(activity, key) != key:
                raise ConfigError(
                    f"Activity {activity!r} listed under both "
                    f"{category_map[activity]!r} and {key!r}"
                )
            category_map[activity] = key
    info = {
        key: CategoryInfo(key=key, label=cat_spec.label or key, description=cat_spec.description)
        for key, cat_spec in categories.items()
    }
    return Catalog(template, category_map, info)


def default_catalog() -> Catalog:
    """The department's built-in template and categories."""
    from src.data.catalog import CATEGORY_ACTIVITIES, CATEGORY_META, WEEKLY_TEMPLATE

    categories = {
        key: CategorySpec(activities=activities, **CATEGORY_META.get(key, {}))
        for key, activities in CATEGORY_ACTIVITIES.items()
    }
    return build_catalog(WEEKLY_TEMPLATE, categories)


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Load a catalog from a JSON file, or the built-in one when path is empty."""
    if not path:
        return default_catalog()

    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read catalog file {path}: {exc}") from exc

    try:
        parsed = CatalogFile.model_validate_json(raw)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Malformed catalog file {path}: {exc}") from exc

    catalog = build_catalog(parsed.template, parsed.categories)
    logger.info(
        "Catalog loaded from %s: %d weekdays, %d categories",
        path, len(catalog.weekdays), len(catalog.categories),
    )
    return catalog
