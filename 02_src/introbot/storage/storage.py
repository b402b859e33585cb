"""SQLite storage implementation."""

import functools
import json
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import PersistenceError
from ..models import (
    Button,
    Contact,
    DailyMessage,
    MatchingRunResult,
    OutgoingMessage,
    ProfileStatistics,
    RequestStatus,
    RunStatus,
    SimilarityPair,
    SupportRequest,
    TraceEvent,
    UserProfile,
)


class IProfileRepository(Protocol):
    """Durable storage of completed profiles."""

    async def load_profile(self, user_id: int) -> UserProfile | None:
        """Get a profile, or None if the user has none."""
        ...

    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        ...

    async def delete_profile(self, user_id: int) -> bool:
        """Delete a profile. Returns whether one existed."""
        ...

    async def list_visible_profiles(self) -> list[UserProfile]:
        """Profiles that are visible, not banned and not bot-blocked."""
        ...

    async def set_bot_blocked(self, user_id: int, blocked: bool) -> bool:
        """Set the bot-blocked flag. Returns whether the profile exists."""
        ...


class ISupportRepository(Protocol):
    """Durable storage of support requests."""

    async def save_support_request(self, request: SupportRequest) -> int:
        """Save a request and return its id."""
        ...

    async def get_last_support_request(self, user_id: int) -> SupportRequest | None:
        """Most recent request of a user, or None."""
        ...


class IRunResultSink(Protocol):
    """Destination of matching run summaries."""

    async def save_matching_result(self, result: MatchingRunResult) -> int:
        """Save a run result and return its id."""
        ...


def _ts(moment: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO string."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _wrap_errors(method):
    """Re-raise sqlite failures as PersistenceError."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except aiosqlite.Error as e:
            raise PersistenceError(f"{method.__name__} failed: {e}") from e

    return wrapper


_PROFILE_COLUMNS = (
    "user_id, name, age, discussion_topic, fun_fact, "
    "is_visible, is_banned, is_bot_blocked"
)


def _row_to_profile(row) -> UserProfile:
    return UserProfile(
        user_id=row[0],
        name=row[1],
        age=row[2],
        discussion_topic=row[3],
        fun_fact=row[4],
        is_visible=bool(row[5]),
        is_banned=bool(row[6]),
        is_bot_blocked=bool(row[7]),
    )


def _row_to_outgoing(row) -> OutgoingMessage:
    return OutgoingMessage(
        id=row[0],
        user_id=row[1],
        kind=row[2],
        text=row[3],
        buttons=[Button(label=b["label"], callback=b["callback"]) for b in json.loads(row[4])],
        photo_ref=row[5],
        created_at=_parse_ts(row[6]),
        edited_at=_parse_ts(row[7]),
    )


def _dump_buttons(buttons: list[Button] | None) -> str:
    return json.dumps(
        [{"label": b.label, "callback": b.callback} for b in buttons or []],
        ensure_ascii=False,
    )


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def _db(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Profiles
    @_wrap_errors
    async def load_profile(self, user_id: int) -> UserProfile | None:
        """Get a profile, or None if the user has none."""
        cursor = await self._db.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM user_profiles WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return _row_to_profile(row) if row else None

    @_wrap_errors
    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        await self._db.execute(
            f"""
            INSERT OR REPLACE INTO user_profiles
            ({_PROFILE_COLUMNS}, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (
                profile.user_id,
                profile.name,
                profile.age,
                profile.discussion_topic,
                profile.fun_fact,
                int(profile.is_visible),
                int(profile.is_banned),
                int(profile.is_bot_blocked),
            ),
        )
        await self._db.commit()

    @_wrap_errors
    async def delete_profile(self, user_id: int) -> bool:
        """Delete a profile. Returns whether one existed."""
        cursor = await self._db.execute(
            "DELETE FROM user_profiles WHERE user_id = ?", (user_id,)
        )
        await self._db.commit()
        return cursor.rowcount > 0

    @_wrap_errors
    async def list_visible_profiles(self) -> list[UserProfile]:
        """Profiles that are visible, not banned and not bot-blocked."""
        cursor = await self._db.execute(
            f"""
            SELECT {_PROFILE_COLUMNS}
            FROM user_profiles
            WHERE is_visible = 1 AND is_banned = 0 AND is_bot_blocked = 0
            ORDER BY user_id ASC
            """
        )
        return [_row_to_profile(row) for row in await cursor.fetchall()]

    @_wrap_errors
    async def list_profiles(self) -> list[UserProfile]:
        """All stored profiles."""
        cursor = await self._db.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM user_profiles ORDER BY user_id ASC"
        )
        return [_row_to_profile(row) for row in await cursor.fetchall()]

    async def set_banned(self, user_id: int, banned: bool) -> bool:
        """Set the banned flag. Returns whether the profile exists."""
        return await self._set_flag(user_id, "is_banned", banned)

    async def set_bot_blocked(self, user_id: int, blocked: bool) -> bool:
        """Set the bot-blocked flag. Returns whether the profile exists."""
        return await self._set_flag(user_id, "is_bot_blocked", blocked)

    @_wrap_errors
    async def _set_flag(self, user_id: int, column: str, value: bool) -> bool:
        cursor = await self._db.execute(
            f"UPDATE user_profiles SET {column} = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE user_id = ?",
            (int(value), user_id),
        )
        await self._db.commit()
        return cursor.rowcount > 0

    @_wrap_errors
    async def count_profiles(self) -> dict[str, int]:
        """Aggregate counts used by the statistics job."""
        cursor = await self._db.execute(
            """
            SELECT
                COUNT(*),
                COALESCE(SUM(is_visible), 0),
                COALESCE(SUM(is_banned), 0),
                COALESCE(SUM(is_bot_blocked), 0),
                COALESCE(SUM(is_visible = 1 AND is_banned = 0 AND is_bot_blocked = 0), 0)
            FROM user_profiles
            """
        )
        row = await cursor.fetchone()
        return {
            "total": row[0],
            "visible": row[1],
            "banned": row[2],
            "bot_blocked": row[3],
            "eligible": row[4],
        }

    # Support requests
    @_wrap_errors
    async def save_support_request(self, request: SupportRequest) -> int:
        """Save a request and return its id."""
        cursor = await self._db.execute(
            """
            INSERT INTO support_requests (user_id, message, status, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                request.user_id,
                request.message,
                request.status.value,
                _ts(request.created_at),
            ),
        )
        await self._db.commit()
        request.id = cursor.lastrowid
        return cursor.lastrowid

    @_wrap_errors
    async def get_last_support_request(self, user_id: int) -> SupportRequest | None:
        """Most recent request of a user, or None."""
        cursor = await self._db.execute(
            """
            SELECT id, user_id, message, status, created_at
            FROM support_requests
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (user_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return SupportRequest(
            id=row[0],
            user_id=row[1],
            message=row[2],
            status=RequestStatus(row[3]),
            created_at=_parse_ts(row[4]),
        )

    # Matching results
    @_wrap_errors
    async def save_matching_result(self, result: MatchingRunResult) -> int:
        """Save a run result and return its id."""
        cursor = await self._db.execute(
            """
            INSERT INTO matching_results
            (executed_at, status, pairs, unpaired_user_ids, fallback_user_id, error)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                _ts(result.executed_at),
                result.status.value,
                json.dumps(
                    [
                        {"user_id_1": p.user_id_1, "user_id_2": p.user_id_2, "score": p.score}
                        for p in result.pairs
                    ]
                ),
                json.dumps(list(result.unpaired_user_ids)),
                result.fallback_user_id,
                result.error,
            ),
        )
        await self._db.commit()
        return cursor.lastrowid

    @_wrap_errors
    async def list_matching_results(self, limit: int = 20) -> list[MatchingRunResult]:
        """Run results, newest first."""
        cursor = await self._db.execute(
            """
            SELECT id, executed_at, status, pairs, unpaired_user_ids, fallback_user_id, error
            FROM matching_results
            ORDER BY executed_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()
        return [
            MatchingRunResult(
                id=row[0],
                executed_at=_parse_ts(row[1]),
                status=RunStatus(row[2]),
                pairs=tuple(SimilarityPair(**p) for p in json.loads(row[3])),
                unpaired_user_ids=tuple(json.loads(row[4])),
                fallback_user_id=row[5],
                error=row[6],
            )
            for row in rows
        ]

    # Contacts
    @_wrap_errors
    async def save_contact(self, contact: Contact) -> None:
        """Insert or update what the transport told us about a user."""
        await self._db.execute(
            """
            INSERT INTO contacts (user_id, alias, photo_ref) VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                alias = COALESCE(excluded.alias, contacts.alias),
                photo_ref = COALESCE(excluded.photo_ref, contacts.photo_ref)
            """,
            (contact.user_id, contact.alias, contact.photo_ref),
        )
        await self._db.commit()

    @_wrap_errors
    async def get_contact(self, user_id: int) -> Contact | None:
        """Get contact details of a user."""
        cursor = await self._db.execute(
            "SELECT user_id, alias, photo_ref FROM contacts WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return Contact(user_id=row[0], alias=row[1], photo_ref=row[2])

    # Outbox
    @_wrap_errors
    async def add_outgoing_message(
        self,
        user_id: int,
        kind: str,
        created_at: datetime,
        text: str | None = None,
        buttons: list[Button] | None = None,
        photo_ref: str | None = None,
    ) -> int:
        """Queue an outgoing message and return its id."""
        cursor = await self._db.execute(
            """
            INSERT INTO outgoing_messages (user_id, kind, text, buttons, photo_ref, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, kind, text, _dump_buttons(buttons), photo_ref, _ts(created_at)),
        )
        await self._db.commit()
        return cursor.lastrowid

    @_wrap_errors
    async def update_outgoing_message(
        self,
        message_id: int,
        text: str,
        buttons: list[Button] | None,
        edited_at: datetime,
    ) -> None:
        """Replace text and buttons of an already queued message."""
        await self._db.execute(
            """
            UPDATE outgoing_messages
            SET text = ?, buttons = ?, edited_at = ?
            WHERE id = ?
            """,
            (text, _dump_buttons(buttons), _ts(edited_at), message_id),
        )
        await self._db.commit()

    @_wrap_errors
    async def get_outgoing_message(self, message_id: int) -> OutgoingMessage | None:
        """Get a queued message by id."""
        cursor = await self._db.execute(
            """
            SELECT id, user_id, kind, text, buttons, photo_ref, created_at, edited_at
            FROM outgoing_messages
            WHERE id = ?
            """,
            (message_id,),
        )
        row = await cursor.fetchone()
        return _row_to_outgoing(row) if row else None

    @_wrap_errors
    async def get_outgoing_messages(
        self, user_id: int, after_id: int | None = None, limit: int = 100
    ) -> list[OutgoingMessage]:
        """Messages for a user in send order, optionally after a message id."""
        cursor = await self._db.execute(
            """
            SELECT id, user_id, kind, text, buttons, photo_ref, created_at, edited_at
            FROM outgoing_messages
            WHERE user_id = ? AND id > ?
            ORDER BY id ASC
            LIMIT ?
            """,
            (user_id, after_id or 0, limit),
        )
        return [_row_to_outgoing(row) for row in await cursor.fetchall()]

    @_wrap_errors
    async def get_last_outgoing_id(self) -> int:
        """Highest outgoing message id, 0 when the outbox is empty."""
        cursor = await self._db.execute("SELECT COALESCE(MAX(id), 0) FROM outgoing_messages")
        row = await cursor.fetchone()
        return row[0]

    # Daily messages
    @_wrap_errors
    async def add_daily_message(self, text: str, created_at: datetime) -> int:
        """Queue a broadcast text."""
        cursor = await self._db.execute(
            "INSERT INTO daily_messages (text, sent, created_at) VALUES (?, 0, ?)",
            (text, _ts(created_at)),
        )
        await self._db.commit()
        return cursor.lastrowid

    @_wrap_errors
    async def get_unsent_daily_message(self) -> DailyMessage | None:
        """Oldest broadcast text that has not been sent yet."""
        cursor = await self._db.execute(
            """
            SELECT id, text, sent, created_at
            FROM daily_messages
            WHERE sent = 0
            ORDER BY id ASC
            LIMIT 1
            """
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return DailyMessage(
            id=row[0], text=row[1], sent=bool(row[2]), created_at=_parse_ts(row[3])
        )

    @_wrap_errors
    async def mark_daily_message_sent(self, message_id: int) -> None:
        await self._db.execute(
            "UPDATE daily_messages SET sent = 1 WHERE id = ?", (message_id,)
        )
        await self._db.commit()

    # Statistics
    @_wrap_errors
    async def save_profile_statistics(self, stats: ProfileStatistics) -> None:
        """Save the snapshot for a day, replacing an earlier one."""
        await self._db.execute(
            """
            INSERT OR REPLACE INTO profile_statistics
            (date, total, visible, banned, bot_blocked, eligible)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                stats.date.isoformat(),
                stats.total,
                stats.visible,
                stats.banned,
                stats.bot_blocked,
                stats.eligible,
            ),
        )
        await self._db.commit()

    @_wrap_errors
    async def list_profile_statistics(self, limit: int = 30) -> list[ProfileStatistics]:
        """Snapshots, newest first."""
        cursor = await self._db.execute(
            """
            SELECT date, total, visible, banned, bot_blocked, eligible
            FROM profile_statistics
            ORDER BY date DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [
            ProfileStatistics(
                date=date.fromisoformat(row[0]),
                total=row[1],
                visible=row[2],
                banned=row[3],
                bot_blocked=row[4],
                eligible=row[5],
            )
            for row in await cursor.fetchall()
        ]

    # TraceEvents
    @_wrap_errors
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        await self._db.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, ensure_ascii=False),
                _ts(event.timestamp),
            ),
        )
        await self._db.commit()

    @_wrap_errors
    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_ts(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    @_wrap_errors
    async def clear(self) -> None:
        """Clear all data."""
        tables = [
            "user_profiles",
            "support_requests",
            "matching_results",
            "contacts",
            "outgoing_messages",
            "daily_messages",
            "profile_statistics",
            "trace_events",
        ]

        for table in tables:
            await self._db.execute(f"DELETE FROM {table}")

        await self._db.commit()
