"""
RosterPlan — Selection Reconciler.

Brings a user's persisted schedule entries for one scope in line with the
selections they currently want, as a single atomic batch:

    candidates = catalog.candidate_selections(scope)
    existing   = persisted entries for the user, restricted to the scope
    to_delete  = existing − intent
    to_insert  = intent − existing

Entries outside the scope (other dates, other categories) are never part of
the diff, so they cannot be touched. A second identical call finds nothing to
do and writes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from src.core.errors import ValidationError
from src.data.models import NewScheduleEntry, ReconcileResult, ScheduleEntry, Selection

if TYPE_CHECKING:
    from src.core.catalog import Catalog
    from src.data.models import Scope
    from src.ports.selection_store import SelectionStore

logger = logging.getLogger(__name__)


def diff_entries(
    existing: Iterable[ScheduleEntry], target: Iterable[Selection],
) -> tuple[list[ScheduleEntry], list[Selection]]:
    """Compute the writes that turn `existing` into exactly `target`.

    Returns (to_delete, to_insert). When several rows share a selection, the
    oldest one is kept and the rest are deleted.
    """
    wanted = set(target)
    kept: set[Selection] = set()
    to_delete: list[ScheduleEntry] = []

    for entry in sorted(existing, key=lambda e: (e.created_at, e.id)):
        selection = entry.selection
        if selection in wanted and selection not in kept:
            kept.add(selection)
        else:
            to_delete.append(entry)

    to_insert = sorted(wanted - kept, key=lambda s: s.sort_key)
    to_delete.sort(key=lambda e: e.id)
    return to_delete, to_insert


def entries_in_scope(
    entries: Iterable[ScheduleEntry], scope: Scope, catalog: Catalog,
) -> list[ScheduleEntry]:
    """Keep the persisted entries a reconcile of `scope` is allowed to touch."""
    return [
        e for e in entries
        if e.user_id == scope.user_id
        and e.date in scope.date_range
        and (scope.category is None or catalog.find_category(e.activity) == scope.category)
    ]


def validate_intent(intent: Iterable[Selection], candidates: set[Selection]) -> set[Selection]:
    """Return the intent as a set. Raises ValidationError if any selection is out of scope."""
    selections = set(intent)
    outside = sorted(selections - candidates, key=lambda s: s.sort_key)
    if outside:
        listed = ", ".join(
            f"{s.date.isoformat()}/{s.period.value}/{s.activity}" for s in outside[:5]
        )
        more = f" (+{len(outside) - 5} more)" if len(outside) > 5 else ""
        raise ValidationError(f"Selections outside scope: {listed}{more}")
    return selections


def reconcile(
    store: SelectionStore,
    catalog: Catalog,
    scope: Scope,
    intent: Iterable[Selection],
) -> ReconcileResult:
    """Persist `intent` as the complete set of selections for `scope`.

    Raises ValidationError before touching the store if the intent leaves the
    scope. The diff is computed inside the store's write lock, so when two
    sessions reconcile the same scope the later commit overwrites it fully.
    StoreError from the store propagates unchanged; the batch is atomic, so
    callers retry the whole call.
    """
    candidates = catalog.candidate_selections(scope)
    target = validate_intent(intent, candidates)

    if not candidates:
        logger.debug("Reconcile for %s: scope has no candidates, nothing to do", scope.user_id)
        return ReconcileResult()

    def plan(persisted: list[ScheduleEntry]) -> tuple[list[int], list[NewScheduleEntry]]:
        to_delete, to_insert = diff_entries(entries_in_scope(persisted, scope, catalog), target)
        return (
            [e.id for e in to_delete],
            [NewScheduleEntry.from_selection(scope.user_id, s) for s in to_insert],
        )

    deletes, inserts = store.locked_batch(
        scope.user_id, scope.date_range.start, scope.date_range.end, plan,
    )
    result = ReconcileResult(inserted=len(inserts), deleted=len(deletes))
    if not result.changed:
        logger.debug("Reconcile for %s: already up to date", scope.user_id)
        return result

    logger.info(
        "Reconciled %s %s..%s%s: +%d -%d",
        scope.user_id,
        scope.date_range.start.isoformat(),
        scope.date_range.end.isoformat(),
        f" [{scope.category}]" if scope.category else "",
        result.inserted,
        result.deleted,
    )
    return result
