"""
RosterPlan — Schedule and Profile Database.

Schedule entries persist in SQLite: one row per (user, date, period, activity).
Rows are never updated in place; the reconciler deletes and re-inserts them
through `ScheduleDB.locked_batch`, which reads the user's rows and applies the
resulting batch under one write lock, in a single transaction or not at all.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator

from src.data.models import (
    NewScheduleEntry,
    Period,
    Profile,
    Role,
    ScheduleEntry,
    weekday_name,
)
from src.ports.selection_store import BatchPlan, StoreError

logger = logging.getLogger(__name__)

_MEMORY = ":memory:"


class _SQLiteDB(ABC):
    """Connection handling shared by the SQLite-backed stores.

    A file path gets a fresh connection per call. ":memory:" gets one
    connection held for the lifetime of the instance, since every new
    in-memory connection is a separate empty database.
    """

    def __init__(self, db_path: str | None = None, timeout: float | None = None) -> None:
        if db_path is None or timeout is None:
            from src.config import settings
            db_path = db_path if db_path is not None else settings.DATABASE_PATH
            timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

        self._db_path = db_path
        self._timeout = timeout
        self._memory_conn: sqlite3.Connection | None = None
        if db_path == _MEMORY:
            self._memory_conn = self._open()
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        return self._open()

    @contextmanager
    def _session(self, action: str) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction; wrap sqlite errors as StoreError."""
        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("%s failed on %s: %s", action, self._db_path, exc)
            raise StoreError(f"{action} failed: {exc}") from exc
        finally:
            if conn is not self._memory_conn:
                conn.close()

    @abstractmethod
    def _init_db(self) -> None:
        """Create tables and migrate older schemas."""


class ScheduleDB(_SQLiteDB):
    """SQLite-backed selection store for schedule entries."""

    def _init_db(self) -> None:
        """Create the schedule_entries table if it doesn't exist, and migrate schema."""
        with self._session("init schedule_entries") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schedule_entries (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id     TEXT    NOT NULL,
                    date        TEXT    NOT NULL,
                    weekday     TEXT    NOT NULL DEFAULT '',
                    period      TEXT    NOT NULL,
                    activity    TEXT    NOT NULL,
                    created_at  TEXT    NOT NULL
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(schedule_entries)").fetchall()
            }
            if "weekday" not in existing_cols:
                conn.execute(
                    "ALTER TABLE schedule_entries ADD COLUMN weekday TEXT NOT NULL DEFAULT ''"
                )
            # Natural key: at most one row per (user, date, period, activity)
            conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS ux_schedule_natural_key
                ON schedule_entries (user_id, date, period, activity)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS ix_schedule_date
                ON schedule_entries (date, user_id)
            """)
        logger.debug("Schedule table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ScheduleEntry:
        entry_date = date.fromisoformat(row["date"])
        return ScheduleEntry(
            id=row["id"],
            user_id=row["user_id"],
            date=entry_date,
            weekday=row["weekday"] or weekday_name(entry_date),
            period=Period(row["period"]),
            activity=row["activity"],
            created_at=row["created_at"],
        )

    def _select(
        self, conn: sqlite3.Connection, user_id: str | None, date_from: date, date_to: date,
    ) -> list[ScheduleEntry]:
        query = "SELECT * FROM schedule_entries WHERE date >= ? AND date <= ?"
        params: list = [date_from.isoformat(), date_to.isoformat()]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += " ORDER BY date, created_at, id"
        return [self._row_to_entry(r) for r in conn.execute(query, params).fetchall()]

    @staticmethod
    def _write(
        conn: sqlite3.Connection, deletes: list[int], inserts: list[NewScheduleEntry],
    ) -> None:
        now = datetime.now().isoformat()
        conn.executemany(
            "DELETE FROM schedule_entries WHERE id = ?",
            [(entry_id,) for entry_id in deletes],
        )
        conn.executemany(
            """
            INSERT INTO schedule_entries
                (user_id, date, weekday, period, activity, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    e.user_id, e.date.isoformat(), e.weekday,
                    e.period.value, e.activity, now,
                )
                for e in inserts
            ],
        )

    def query(
        self, user_id: str | None, date_from: date, date_to: date,
    ) -> list[ScheduleEntry]:
        """Return entries with date_from <= date <= date_to, optionally for one user."""
        with self._session("query schedule_entries") as conn:
            return self._select(conn, user_id, date_from, date_to)

    def atomic_batch(
        self, deletes: list[int], inserts: list[NewScheduleEntry],
    ) -> None:
        """Delete and insert entries as one transaction.

        Raises StoreError (and rolls back everything) if any statement fails,
        including a natural-key collision on insert.
        """
        with self._session("commit schedule batch") as conn:
            conn.execute("BEGIN IMMEDIATE")
            self._write(conn, deletes, inserts)
        logger.debug(
            "Schedule batch committed: %d deleted, %d inserted", len(deletes), len(inserts),
        )

    def locked_batch(
        self,
        user_id: str,
        date_from: date,
        date_to: date,
        plan: BatchPlan,
    ) -> tuple[list[int], list[NewScheduleEntry]]:
        """Read a user's entries and apply the batch `plan` derives from them.

        The read, `plan` and the writes share one BEGIN IMMEDIATE transaction,
        so no other writer can commit in between. Returns what `plan` returned.
        """
        with self._session("reconcile schedule batch") as conn:
            conn.execute("BEGIN IMMEDIATE")
            deletes, inserts = plan(self._select(conn, user_id, date_from, date_to))
            if deletes or inserts:
                self._write(conn, deletes, inserts)
        logger.debug(
            "Locked batch for %s committed: %d deleted, %d inserted",
            user_id, len(deletes), len(inserts),
        )
        return deletes, inserts


class ProfileDB(_SQLiteDB):
    """SQLite-backed profile directory for department members."""

    def _init_db(self) -> None:
        with self._session("init profiles") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id     TEXT PRIMARY KEY,
                    full_name   TEXT NOT NULL DEFAULT '',
                    role        TEXT NOT NULL DEFAULT 'resident',
                    created_at  TEXT NOT NULL
                )
            """)
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(profiles)").fetchall()
            }
            if "email" not in existing_cols:
                conn.execute("ALTER TABLE profiles ADD COLUMN email TEXT NOT NULL DEFAULT ''")
            if "phone" not in existing_cols:
                conn.execute("ALTER TABLE profiles ADD COLUMN phone TEXT NOT NULL DEFAULT ''")
        logger.debug("Profiles table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        # Anything other than "admin" is treated as a resident
        role = Role.ADMIN if row["role"] == Role.ADMIN.value else Role.RESIDENT
        return Profile(
            user_id=row["user_id"],
            full_name=row["full_name"],
            role=role,
            email=row["email"],
            phone=row["phone"],
            created_at=row["created_at"],
        )

    def add_profile(
        self,
        user_id: str,
        full_name: str,
        role: Role = Role.RESIDENT,
        email: str = "",
        phone: str = "",
    ) -> Profile:
        """Register a new profile. Raises StoreError if the id already exists."""
        now = datetime.now().isoformat()
        with self._session("add profile") as conn:
            conn.execute(
                """
                INSERT INTO profiles (user_id, full_name, role, email, phone, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, full_name.strip(), role.value, email.strip(), phone.strip(), now),
            )
        profile = Profile(
            user_id=user_id,
            full_name=full_name.strip(),
            role=role,
            email=email.strip(),
            phone=phone.strip(),
            created_at=now,
        )
        logger.info("Profile registered: %s '%s' (%s)", user_id, profile.full_name, role.value)
        return profile

    def get_profile(self, user_id: str) -> Profile | None:
        """Fetch a profile by user ID."""
        with self._session("get profile") as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE user_id = ?", (user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_profile(row)

    def list_profiles(self) -> list[Profile]:
        """Return all profiles, sorted by name."""
        with self._session("list profiles") as conn:
            rows = conn.execute(
                "SELECT * FROM profiles ORDER BY full_name COLLATE NOCASE, user_id"
            ).fetchall()
        return [self._row_to_profile(r) for r in rows]

    def set_role(self, user_id: str, role: Role) -> bool:
        """Change a profile's role. Returns False if the profile doesn't exist."""
        with self._session("set role") as conn:
            cursor = conn.execute(
                "UPDATE profiles SET role = ? WHERE user_id = ?", (role.value, user_id),
            )
        updated = cursor.rowcount > 0
        if updated:
            logger.info("Profile %s role set to %s", user_id, role.value)
        return updated

    def update_contact(self, user_id: str, email: str | None = None, phone: str | None = None) -> bool:
        """Update a profile's contact details; None leaves a field unchanged."""
        assignments: list[str] = []
        params: list = []
        if email is not None:
            assignments.append("email = ?")
            params.append(email.strip())
        if phone is not None:
            assignments.append("phone = ?")
            params.append(phone.strip())
        if not assignments:
            return False
        params.append(user_id)
        with self._session("update contact") as conn:
            cursor = conn.execute(
                f"UPDATE profiles SET {', '.join(assignments)} WHERE user_id = ?", params,
            )
        return cursor.rowcount > 0

    def is_registered(self, user_id: str) -> bool:
        with self._session("check profile") as conn:
            row = conn.execute(
                "SELECT 1 FROM profiles WHERE user_id = ?", (user_id,),
            ).fetchone()
        return row is not None
