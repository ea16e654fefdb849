"""Tests for src.core.reconciler — diffing and atomic reconcile."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from src.core.errors import ValidationError
from src.core.reconciler import diff_entries, entries_in_scope, reconcile
from src.data.models import (
    DateRange,
    NewScheduleEntry,
    Period,
    ScheduleEntry,
    Scope,
    Selection,
)
from src.ports.selection_store import StoreError

MONDAY = date(2025, 12, 1)
TUESDAY = date(2025, 12, 2)
SUNDAY = date(2025, 12, 7)
NEXT_MONDAY = date(2025, 12, 8)

MON_A = Selection(MONDAY, Period.MORNING, "Activity-A")
MON_B = Selection(MONDAY, Period.MORNING, "Activity-B")
MON_X = Selection(MONDAY, Period.AFTERNOON, "Activity-X")
TUE_A = Selection(TUESDAY, Period.MORNING, "Activity-A")


def _entry(entry_id, selection, user_id="u1", created_at=""):
    return ScheduleEntry(
        id=entry_id,
        user_id=user_id,
        date=selection.date,
        weekday="",
        period=selection.period,
        activity=selection.activity,
        created_at=created_at or f"2025-11-30T10:00:{entry_id:02d}",
    )


def _seed(store, user_id, *selections):
    store.atomic_batch(
        deletes=[],
        inserts=[NewScheduleEntry.from_selection(user_id, s) for s in selections],
    )


def _selections(store, user_id, start=MONDAY, end=NEXT_MONDAY):
    return {e.selection for e in store.query(user_id, start, end)}


def _fake_store(*entries):
    """MagicMock store whose locked_batch runs the plan over `entries`."""
    store = MagicMock()
    store.locked_batch.side_effect = lambda user_id, start, end, plan: plan(list(entries))
    return store


# ---------------------------------------------------------------------------
# diff_entries
# ---------------------------------------------------------------------------


class TestDiffEntries:
    def test_insert_only(self):
        to_delete, to_insert = diff_entries([], {MON_A, TUE_A})
        assert to_delete == []
        assert to_insert == [MON_A, TUE_A]

    def test_delete_only(self):
        existing = [_entry(1, MON_A), _entry(2, MON_B)]
        to_delete, to_insert = diff_entries(existing, set())
        assert [e.id for e in to_delete] == [1, 2]
        assert to_insert == []

    def test_unchanged_selection_is_not_rewritten(self):
        existing = [_entry(1, MON_A), _entry(2, MON_B)]
        to_delete, to_insert = diff_entries(existing, {MON_A, MON_X})
        assert [e.id for e in to_delete] == [2]
        assert to_insert == [MON_X]

    def test_identical_sets_produce_no_writes(self):
        existing = [_entry(1, MON_A)]
        assert diff_entries(existing, {MON_A}) == ([], [])

    def test_duplicate_rows_keep_the_oldest(self):
        existing = [_entry(5, MON_A), _entry(3, MON_A)]
        to_delete, to_insert = diff_entries(existing, {MON_A})
        assert [e.id for e in to_delete] == [5]
        assert to_insert == []


class TestEntriesInScope:
    def test_category_filter_excludes_other_categories(self, small_catalog):
        entries = [_entry(1, MON_A), _entry(2, MON_X)]
        scope = Scope.day_category("u1", MONDAY, "c1")
        assert [e.id for e in entries_in_scope(entries, scope, small_catalog)] == [1]

    def test_other_user_and_dates_excluded(self, small_catalog):
        entries = [_entry(1, MON_A, user_id="u2"), _entry(2, TUE_A)]
        scope = Scope("u1", DateRange.single(MONDAY))
        assert entries_in_scope(entries, scope, small_catalog) == []

    def test_orphan_included_only_without_category(self, small_catalog):
        orphan = _entry(1, Selection(MONDAY, Period.MORNING, "Retired"))
        week = Scope.week("u1", MONDAY)
        day_c1 = Scope.day_category("u1", MONDAY, "c1")
        assert entries_in_scope([orphan], week, small_catalog) == [orphan]
        assert entries_in_scope([orphan], day_c1, small_catalog) == []


# ---------------------------------------------------------------------------
# reconcile against SQLite
# ---------------------------------------------------------------------------


class TestReconcile:
    def test_scenario_week_single_selection(self, schedule_db, small_catalog):
        result = reconcile(schedule_db, small_catalog, Scope.week("u1", MONDAY), {MON_A})
        assert (result.inserted, result.deleted) == (1, 0)
        entries = schedule_db.query("u1", MONDAY, NEXT_MONDAY)
        assert len(entries) == 1
        assert entries[0].selection == MON_A
        assert entries[0].weekday == "Monday"

    def test_idempotent(self, schedule_db, small_catalog):
        scope = Scope.week("u1", MONDAY)
        reconcile(schedule_db, small_catalog, scope, {MON_A, MON_X})
        second = reconcile(schedule_db, small_catalog, scope, {MON_A, MON_X})
        assert (second.inserted, second.deleted) == (0, 0)
        assert second.changed is False

    def test_scenario_category_scope_leaves_other_category(self, schedule_db, small_catalog):
        _seed(schedule_db, "u1", MON_A, MON_X)
        result = reconcile(
            schedule_db, small_catalog, Scope.day_category("u1", MONDAY, "c1"), set(),
        )
        assert (result.inserted, result.deleted) == (0, 1)
        assert _selections(schedule_db, "u1") == {MON_X}

    def test_entries_outside_date_range_untouched(self, schedule_db, small_catalog):
        _seed(schedule_db, "u1", MON_A, TUE_A)
        reconcile(schedule_db, small_catalog, Scope("u1", DateRange.single(MONDAY)), set())
        assert _selections(schedule_db, "u1") == {TUE_A}

    def test_other_users_untouched(self, schedule_db, small_catalog):
        _seed(schedule_db, "u2", MON_A, MON_B)
        reconcile(schedule_db, small_catalog, Scope.week("u1", MONDAY), {MON_A})
        assert _selections(schedule_db, "u2") == {MON_A, MON_B}
        assert _selections(schedule_db, "u1") == {MON_A}

    def test_replaces_previous_week(self, schedule_db, small_catalog):
        scope = Scope.week("u1", MONDAY)
        reconcile(schedule_db, small_catalog, scope, {MON_A, MON_B})
        result = reconcile(schedule_db, small_catalog, scope, {MON_B, TUE_A})
        assert (result.inserted, result.deleted) == (1, 1)
        assert _selections(schedule_db, "u1") == {MON_B, TUE_A}

    def test_week_scope_removes_orphaned_entries(self, schedule_db, small_catalog):
        _seed(schedule_db, "u1", Selection(MONDAY, Period.MORNING, "Retired"))
        result = reconcile(schedule_db, small_catalog, Scope.week("u1", MONDAY), set())
        assert result.deleted == 1
        assert _selections(schedule_db, "u1") == set()

    def test_empty_scope_is_noop(self, small_catalog):
        store = MagicMock()
        result = reconcile(store, small_catalog, Scope("u1", DateRange.single(SUNDAY)), set())
        assert (result.inserted, result.deleted) == (0, 0)
        store.locked_batch.assert_not_called()

    def test_no_writes_when_nothing_changes(self, small_catalog):
        store = _fake_store(_entry(1, MON_A))
        result = reconcile(store, small_catalog, Scope.week("u1", MONDAY), {MON_A})
        assert result.changed is False
        store.atomic_batch.assert_not_called()

    def test_plan_diffs_entries_read_under_the_lock(self, small_catalog):
        store = _fake_store(_entry(1, MON_A), _entry(2, MON_B))
        result = reconcile(store, small_catalog, Scope.week("u1", MONDAY), {MON_B, MON_X})
        assert (result.inserted, result.deleted) == (1, 1)
        args = store.locked_batch.call_args.args
        assert args[:3] == ("u1", MONDAY, date(2025, 12, 6))

    def test_identical_entries_keep_their_rows(self, schedule_db, small_catalog):
        scope = Scope.week("u1", MONDAY)
        reconcile(schedule_db, small_catalog, scope, {MON_A, MON_X})
        before = schedule_db.query("u1", MONDAY, NEXT_MONDAY)
        reconcile(schedule_db, small_catalog, scope, {MON_A, MON_X})
        assert schedule_db.query("u1", MONDAY, NEXT_MONDAY) == before


class TestReconcileValidation:
    def test_selection_outside_category_rejected(self, small_catalog):
        store = MagicMock()
        with pytest.raises(ValidationError, match="Activity-X"):
            reconcile(store, small_catalog, Scope.day_category("u1", MONDAY, "c1"), {MON_X})
        store.locked_batch.assert_not_called()

    def test_selection_outside_dates_rejected(self, small_catalog):
        store = MagicMock()
        with pytest.raises(ValidationError):
            reconcile(store, small_catalog, Scope("u1", DateRange.single(MONDAY)), {TUE_A})
        store.locked_batch.assert_not_called()

    def test_activity_in_wrong_period_rejected(self, small_catalog):
        store = MagicMock()
        wrong = Selection(MONDAY, Period.AFTERNOON, "Activity-A")
        with pytest.raises(ValidationError):
            reconcile(store, small_catalog, Scope.week("u1", MONDAY), {wrong})

    def test_intent_on_empty_scope_rejected(self, small_catalog):
        store = MagicMock()
        sunday = Selection(SUNDAY, Period.MORNING, "Activity-A")
        with pytest.raises(ValidationError):
            reconcile(store, small_catalog, Scope("u1", DateRange.single(SUNDAY)), {sunday})

    def test_rejected_intent_writes_nothing(self, schedule_db, small_catalog):
        _seed(schedule_db, "u1", MON_A)
        with pytest.raises(ValidationError):
            reconcile(
                schedule_db, small_catalog, Scope.week("u1", MONDAY),
                {MON_B, MON_X, TUE_A, Selection(MONDAY, Period.FULL_DAY, "Activity-A")},
            )
        assert _selections(schedule_db, "u1") == {MON_A}


class TestReconcileStoreFailure:
    def test_commit_failure_propagates(self, small_catalog):
        store = MagicMock()
        store.locked_batch.side_effect = StoreError("disk I/O error")
        with pytest.raises(StoreError):
            reconcile(store, small_catalog, Scope.week("u1", MONDAY), {MON_A})

    def test_failed_batch_leaves_state_unchanged(self, schedule_db, small_catalog, tmp_db_path):
        import sqlite3

        _seed(schedule_db, "u1", MON_A, MON_B)
        # Abort any insert of Activity-X so the batch fails after its deletes
        conn = sqlite3.connect(tmp_db_path)
        conn.execute("""
            CREATE TRIGGER fail_x BEFORE INSERT ON schedule_entries
            WHEN NEW.activity = 'Activity-X'
            BEGIN SELECT RAISE(ABORT, 'simulated failure'); END
        """)
        conn.commit()
        conn.close()

        with pytest.raises(StoreError):
            reconcile(schedule_db, small_catalog, Scope.week("u1", MONDAY), {MON_X})
        assert _selections(schedule_db, "u1") == {MON_A, MON_B}


# ---------------------------------------------------------------------------
# Two sessions reconciling the same user and scope
# ---------------------------------------------------------------------------


class _HoldLock:
    """Store wrapper that runs `during` while holding the write lock."""

    def __init__(self, store, during):
        self._store = store
        self._during = during

    def locked_batch(self, user_id, date_from, date_to, plan):
        def plan_while_racing(persisted):
            self._during()
            return plan(persisted)

        return self._store.locked_batch(user_id, date_from, date_to, plan_while_racing)


class TestConcurrentSessions:
    def test_stale_view_does_not_merge_intents(self, tmp_db_path, small_catalog):
        from src.data.db import ScheduleDB

        first = ScheduleDB(db_path=tmp_db_path, timeout=5.0)
        second = ScheduleDB(db_path=tmp_db_path, timeout=5.0)
        scope = Scope.week("u1", MONDAY)

        assert _selections(first, "u1") == set()
        reconcile(second, small_catalog, scope, {MON_B})
        reconcile(first, small_catalog, scope, {MON_A})

        assert _selections(first, "u1") == {MON_A}

    def test_same_selection_from_both_sessions_does_not_collide(
        self, tmp_db_path, small_catalog,
    ):
        from src.data.db import ScheduleDB

        first = ScheduleDB(db_path=tmp_db_path, timeout=5.0)
        second = ScheduleDB(db_path=tmp_db_path, timeout=5.0)
        scope = Scope.week("u1", MONDAY)

        reconcile(second, small_catalog, scope, {MON_A, MON_X})
        result = reconcile(first, small_catalog, scope, {MON_A})

        assert (result.inserted, result.deleted) == (0, 1)
        assert _selections(first, "u1") == {MON_A}

    def test_session_waiting_on_the_lock_commits_last_and_wins(
        self, tmp_db_path, small_catalog,
    ):
        import threading
        import time

        from src.data.db import ScheduleDB

        scope = Scope.week("u1", MONDAY)
        second = ScheduleDB(db_path=tmp_db_path, timeout=5.0)
        errors = []

        def run_second():
            try:
                reconcile(second, small_catalog, scope, {MON_B, TUE_A})
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        racer = threading.Thread(target=run_second)

        def start_racer():
            racer.start()
            time.sleep(0.2)

        first = _HoldLock(ScheduleDB(db_path=tmp_db_path, timeout=5.0), start_racer)
        reconcile(first, small_catalog, scope, {MON_A, MON_X})
        racer.join(timeout=10)

        assert errors == []
        assert _selections(second, "u1") == {MON_B, TUE_A}
