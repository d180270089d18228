"""
Pal Plant — SQLite storage.

Friends (with their contact history), meeting requests and the reminder
dedup log persist in SQLite. The engine never touches the database: callers
load records, run an engine operation and write the returned record back
with ``save_friend``, which replaces the row and its history in a single
transaction (last write wins).
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from src.core.validation import validate_friend
from src.data.models import (
    ContactChannel,
    ContactLog,
    ContactType,
    Friend,
    MeetingRequest,
    MeetingStatus,
    friend_from_dict,
    friend_to_dict,
    optional_iso,
    optional_parse_iso,
    parse_iso,
    to_iso,
)

logger = logging.getLogger(__name__)


class _SQLiteStore:
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class FriendDB(_SQLiteStore):
    """SQLite-backed storage for friends and their contact logs."""

    def _init_db(self) -> None:
        """Create the friends and contact_logs tables."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS friends (
                    id                            TEXT    PRIMARY KEY,
                    name                          TEXT    NOT NULL,
                    category                      TEXT    NOT NULL,
                    frequency_days                INTEGER NOT NULL,
                    last_contacted                TEXT    NOT NULL,
                    individual_score              INTEGER NOT NULL DEFAULT 50,
                    quick_touches_available       INTEGER NOT NULL DEFAULT 0,
                    cycles_since_last_quick_touch INTEGER NOT NULL DEFAULT 0,
                    last_deep_connection          TEXT,
                    phone                         TEXT,
                    email                         TEXT,
                    photo                         TEXT,
                    notes                         TEXT,
                    birthday                      TEXT,
                    avatar_seed                   INTEGER
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contact_logs (
                    friend_id            TEXT    NOT NULL,
                    position             INTEGER NOT NULL,
                    id                   TEXT    NOT NULL,
                    date                 TEXT    NOT NULL,
                    type                 TEXT    NOT NULL,
                    channel              TEXT,
                    days_wait_goal       INTEGER NOT NULL,
                    percentage_remaining REAL    NOT NULL,
                    score_delta          INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (friend_id, position)
                )
            """)
        logger.debug("Friends tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> ContactLog:
        return ContactLog(
            id=row["id"],
            date=parse_iso(row["date"]),
            type=ContactType(row["type"]),
            channel=ContactChannel(row["channel"]) if row["channel"] else None,
            days_wait_goal=row["days_wait_goal"],
            percentage_remaining=row["percentage_remaining"],
            score_delta=row["score_delta"],
        )

    def _row_to_friend(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Friend:
        log_rows = conn.execute(
            "SELECT * FROM contact_logs WHERE friend_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return Friend(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            frequency_days=row["frequency_days"],
            last_contacted=parse_iso(row["last_contacted"]),
            individual_score=row["individual_score"],
            quick_touches_available=row["quick_touches_available"],
            cycles_since_last_quick_touch=row["cycles_since_last_quick_touch"],
            last_deep_connection=optional_parse_iso(row["last_deep_connection"]),
            logs=tuple(self._row_to_log(r) for r in log_rows),
            phone=row["phone"],
            email=row["email"],
            photo=row["photo"],
            notes=row["notes"],
            birthday=row["birthday"],
            avatar_seed=row["avatar_seed"],
        )

    @staticmethod
    def _friend_params(friend: Friend) -> tuple:
        return (
            friend.id, friend.name, friend.category, friend.frequency_days,
            to_iso(friend.last_contacted), friend.individual_score,
            friend.quick_touches_available, friend.cycles_since_last_quick_touch,
            optional_iso(friend.last_deep_connection),
            friend.phone, friend.email, friend.photo, friend.notes,
            friend.birthday, friend.avatar_seed,
        )

    @staticmethod
    def _write_logs(conn: sqlite3.Connection, friend: Friend) -> None:
        conn.execute("DELETE FROM contact_logs WHERE friend_id = ?", (friend.id,))
        conn.executemany(
            """
            INSERT INTO contact_logs
                (friend_id, position, id, date, type, channel,
                 days_wait_goal, percentage_remaining, score_delta)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    friend.id, position, log.id, to_iso(log.date), log.type.value,
                    log.channel.value if log.channel else None,
                    log.days_wait_goal, log.percentage_remaining, log.score_delta,
                )
                for position, log in enumerate(friend.logs)
            ],
        )

    _COLUMNS = """
        (id, name, category, frequency_days, last_contacted, individual_score,
         quick_touches_available, cycles_since_last_quick_touch,
         last_deep_connection, phone, email, photo, notes, birthday, avatar_seed)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    def add_friend(self, friend: Friend) -> Friend:
        """Insert a new friend. Raises ValueError if the id is taken."""
        try:
            with self._connect() as conn:
                conn.execute("INSERT INTO friends " + self._COLUMNS, self._friend_params(friend))
                self._write_logs(conn, friend)
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Friend {friend.id} already exists") from exc
        logger.info(
            "Friend added: %s '%s' every %d days",
            friend.id, friend.name, friend.frequency_days,
        )
        return friend

    def save_friend(self, friend: Friend) -> Friend:
        """Replace a friend's row and history atomically (upsert)."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO friends " + self._COLUMNS,
                self._friend_params(friend),
            )
            self._write_logs(conn, friend)
        logger.info(
            "Friend %s saved: score %d, %d logs",
            friend.id, friend.individual_score, len(friend.logs),
        )
        return friend

    def get_friend(self, friend_id: str) -> Friend | None:
        """Fetch a single friend by ID."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM friends WHERE id = ?", (friend_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_friend(conn, row)

    def require_friend(self, friend_id: str) -> Friend:
        """Fetch a friend, raising ValueError if it does not exist."""
        friend = self.get_friend(friend_id)
        if friend is None:
            raise ValueError(f"Friend {friend_id} not found")
        return friend

    def list_all(self, category: str | None = None) -> list[Friend]:
        """List all friends, optionally filtered to one category."""
        query = "SELECT * FROM friends"
        params: list = []
        if category is not None:
            query += " WHERE category = ?"
            params.append(category)
        query += " ORDER BY name"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_friend(conn, r) for r in rows]

    def delete_friend(self, friend_id: str) -> bool:
        """Permanently delete a friend and their history."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM friends WHERE id = ?", (friend_id,))
            conn.execute("DELETE FROM contact_logs WHERE friend_id = ?", (friend_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Friend %s deleted", friend_id)
        return deleted

    def export_json(self) -> list[dict]:
        """All friends in the camelCase backup shape."""
        return [friend_to_dict(f) for f in self.list_all()]

    def import_json(self, records: list[dict]) -> int:
        """Upsert friends from backup records. Returns how many were written.

        Every record is decoded and validated before the first write, so a
        bad record (KeyError, ValueError) leaves the store untouched.
        """
        friends = [validate_friend(friend_from_dict(r)) for r in records]
        for friend in friends:
            self.save_friend(friend)
        logger.info("Imported %d friends", len(friends))
        return len(friends)


class MeetingDB(_SQLiteStore):
    """SQLite-backed storage for meeting requests."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS meetings (
                    id               TEXT PRIMARY KEY,
                    name             TEXT NOT NULL,
                    status           TEXT NOT NULL,
                    date_added       TEXT NOT NULL,
                    verified         INTEGER,
                    scheduled_date   TEXT,
                    location         TEXT,
                    organization     TEXT,
                    phone            TEXT,
                    email            TEXT,
                    photo            TEXT,
                    notes            TEXT,
                    category         TEXT,
                    linked_friend_id TEXT
                )
            """)
        logger.debug("Meetings table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_meeting(row: sqlite3.Row) -> MeetingRequest:
        verified = row["verified"]
        return MeetingRequest(
            id=row["id"],
            name=row["name"],
            status=MeetingStatus(row["status"]),
            date_added=parse_iso(row["date_added"]),
            verified=bool(verified) if verified is not None else None,
            scheduled_date=optional_parse_iso(row["scheduled_date"]),
            location=row["location"],
            organization=row["organization"],
            phone=row["phone"],
            email=row["email"],
            photo=row["photo"],
            notes=row["notes"],
            category=row["category"],
            linked_friend_id=row["linked_friend_id"],
        )

    _COLUMNS = """
        (id, name, status, date_added, verified, scheduled_date,
         location, organization, phone, email, photo, notes,
         category, linked_friend_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    @staticmethod
    def _meeting_params(meeting: MeetingRequest) -> tuple:
        return (
            meeting.id, meeting.name, meeting.status.value,
            to_iso(meeting.date_added),
            int(meeting.verified) if meeting.verified is not None else None,
            optional_iso(meeting.scheduled_date),
            meeting.location, meeting.organization, meeting.phone,
            meeting.email, meeting.photo, meeting.notes,
            meeting.category, meeting.linked_friend_id,
        )

    def add_meeting(self, meeting: MeetingRequest) -> MeetingRequest:
        """Insert a new meeting request. Raises ValueError if the id is taken."""
        try:
            with self._connect() as conn:
                conn.execute("INSERT INTO meetings " + self._COLUMNS, self._meeting_params(meeting))
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Meeting {meeting.id} already exists") from exc
        logger.info("Meeting requested: %s '%s'", meeting.id, meeting.name)
        return meeting

    def save_meeting(self, meeting: MeetingRequest) -> MeetingRequest:
        """Insert or replace a meeting request."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meetings " + self._COLUMNS,
                self._meeting_params(meeting),
            )
        logger.info("Meeting %s saved (%s)", meeting.id, meeting.status.value)
        return meeting

    def get_meeting(self, meeting_id: str) -> MeetingRequest | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_meeting(row)

    def list_all(self, status: MeetingStatus | None = None) -> list[MeetingRequest]:
        """List meeting requests, oldest first, optionally by status."""
        query = "SELECT * FROM meetings"
        params: list = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += " ORDER BY date_added"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_meeting(r) for r in rows]

    def delete_meeting(self, meeting_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM meetings WHERE id = ?", (meeting_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Meeting %s deleted", meeting_id)
        return deleted


class ReminderLogDB(_SQLiteStore):
    """Dedup log of reminders already delivered, keyed per friend per day."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sent_reminders (
                    key     TEXT PRIMARY KEY,
                    sent_at TEXT NOT NULL
                )
            """)
        logger.debug("Reminder log initialized at %s", self._db_path)

    def was_sent(self, key: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM sent_reminders WHERE key = ?", (key,),
            ).fetchone()
        return row is not None

    def mark_sent(self, key: str, sent_at: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sent_reminders (key, sent_at) VALUES (?, ?)",
                (key, to_iso(sent_at)),
            )

    def prune_before(self, cutoff: datetime) -> int:
        """Forget reminders sent before ``cutoff``. Returns rows removed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sent_reminders WHERE sent_at < ?", (to_iso(cutoff),),
            )
        if cursor.rowcount:
            logger.info("Pruned %d old reminder keys", cursor.rowcount)
        return cursor.rowcount
