"""Repository classes for database access.

Repositories only issue statements; committing is the job of
`Database.transaction()` so a caller can group several writes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from wppqueue.db.connection import Database
from wppqueue.domain import CollaboratorFailure, Phone, PhoneMetrics, QueueEntry

logger = logging.getLogger(__name__)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


DECODE_ERRORS = (KeyError, IndexError, TypeError, ValueError)


def _undecodable(kind: str, exc: Exception) -> CollaboratorFailure:
    logger.error(f"Undecodable {kind} record: {type(exc).__name__}: {exc}")
    return CollaboratorFailure()


class PhoneRepository:
    """Repository for Phone entities."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, phone: Phone) -> Phone:
        """Insert a new phone."""
        await self.db.execute(
            """
            INSERT INTO phones (
                id, account_id, number, name, online, deleted, created_at,
                last_online_change, last_online, last_offline
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                phone.id,
                phone.account_id,
                phone.number,
                phone.name,
                phone.online,
                phone.deleted,
                phone.created_at.isoformat(),
                _to_iso(phone.last_online_change),
                _to_iso(phone.last_online),
                _to_iso(phone.last_offline),
            ),
        )
        return phone

    async def get(self, phone_id: str) -> Phone | None:
        """Get a non-deleted phone by ID."""
        row = await self.db.fetchone(
            "SELECT * FROM phones WHERE id = ? AND deleted = 0", (phone_id,)
        )
        if not row:
            return None
        return self._row_to_phone(row)

    async def get_by_number(self, number: str) -> Phone | None:
        """Get a non-deleted phone by its WhatsApp number."""
        row = await self.db.fetchone(
            "SELECT * FROM phones WHERE number = ? AND deleted = 0", (number,)
        )
        if not row:
            return None
        return self._row_to_phone(row)

    async def list_for_account(
        self, account_id: str, online: bool | None = None
    ) -> list[Phone]:
        """List an account's phones, optionally filtered by online state."""
        conditions = ["account_id = ?", "deleted = 0"]
        params: list[Any] = [account_id]
        if online is not None:
            conditions.append("online = ?")
            params.append(online)

        rows = await self.db.fetchall(
            f"SELECT * FROM phones WHERE {' AND '.join(conditions)} ORDER BY created_at",
            tuple(params),
        )
        return [self._row_to_phone(row) for row in rows]

    async def update(self, phone: Phone) -> Phone:
        """Update an existing phone."""
        await self.db.execute(
            """
            UPDATE phones SET
                number = ?, name = ?, online = ?, deleted = ?,
                last_online_change = ?, last_online = ?, last_offline = ?
            WHERE id = ?
            """,
            (
                phone.number,
                phone.name,
                phone.online,
                phone.deleted,
                _to_iso(phone.last_online_change),
                _to_iso(phone.last_online),
                _to_iso(phone.last_offline),
                phone.id,
            ),
        )
        return phone

    def _row_to_phone(self, row: Any) -> Phone:
        """Convert a database row to a Phone."""
        try:
            return Phone(
                id=row["id"],
                account_id=row["account_id"],
                number=row["number"],
                name=row["name"] or "",
                online=bool(row["online"]),
                deleted=bool(row["deleted"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                last_online_change=_from_iso(row["last_online_change"]),
                last_online=_from_iso(row["last_online"]),
                last_offline=_from_iso(row["last_offline"]),
            )
        except DECODE_ERRORS as e:
            raise _undecodable("phone", e) from e


class QueueEntryRepository:
    """Repository for QueueEntry entities."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, entry: QueueEntry) -> QueueEntry:
        """Insert a new queue entry."""
        await self.db.execute(
            """
            INSERT INTO queue_entries (id, phone_id, account_id, position, active, created_at, wait_time)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.phone_id,
                entry.account_id,
                entry.position,
                entry.active,
                entry.created_at.isoformat(),
                entry.wait_time,
            ),
        )
        return entry

    async def get(self, entry_id: str) -> QueueEntry | None:
        """Get a queue entry by ID, active or not."""
        row = await self.db.fetchone(
            "SELECT * FROM queue_entries WHERE id = ?", (entry_id,)
        )
        if not row:
            return None
        return self._row_to_entry(row)

    async def find_active(self, phone_id: str) -> list[QueueEntry]:
        """Get the active entries of a phone, ordered by position."""
        rows = await self.db.fetchall(
            """
            SELECT * FROM queue_entries
            WHERE phone_id = ? AND active = 1
            ORDER BY position ASC, created_at ASC
            """,
            (phone_id,),
        )
        return [self._row_to_entry(row) for row in rows]

    async def update_position(self, entry_id: str, position: int) -> bool:
        """Set the position of a single entry."""
        cursor = await self.db.execute(
            "UPDATE queue_entries SET position = ? WHERE id = ?",
            (position, entry_id),
        )
        return cursor.rowcount > 0

    async def update_active(self, entry_id: str, active: bool) -> bool:
        """Set the active flag of a single entry."""
        cursor = await self.db.execute(
            "UPDATE queue_entries SET active = ? WHERE id = ?",
            (active, entry_id),
        )
        return cursor.rowcount > 0

    def _row_to_entry(self, row: Any) -> QueueEntry:
        """Convert a database row to a QueueEntry."""
        try:
            return QueueEntry(
                id=row["id"],
                phone_id=row["phone_id"],
                account_id=row["account_id"],
                position=row["position"],
                active=bool(row["active"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                wait_time=row["wait_time"],
            )
        except DECODE_ERRORS as e:
            raise _undecodable("queue entry", e) from e


class MetricsRepository:
    """Repository for per-phone attendance metrics."""

    def __init__(self, db: Database):
        self.db = db

    async def get(self, phone_id: str) -> PhoneMetrics | None:
        """Get the metrics record of a phone."""
        row = await self.db.fetchone(
            "SELECT * FROM phone_metrics WHERE phone_id = ?", (phone_id,)
        )
        if not row:
            return None
        try:
            return PhoneMetrics(
                phone_id=row["phone_id"],
                today_attendances=row["today_attendances"],
                total_attendances=row["total_attendances"],
                average_wait_time=row["average_wait_time"],
                last_attendance=_from_iso(row["last_attendance"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        except DECODE_ERRORS as e:
            raise _undecodable("metrics", e) from e

    async def upsert(self, metrics: PhoneMetrics) -> PhoneMetrics:
        """Create or replace the metrics record of a phone."""
        await self.db.execute(
            """
            INSERT INTO phone_metrics (
                phone_id, today_attendances, total_attendances, average_wait_time,
                last_attendance, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(phone_id) DO UPDATE SET
                today_attendances = excluded.today_attendances,
                total_attendances = excluded.total_attendances,
                average_wait_time = excluded.average_wait_time,
                last_attendance = excluded.last_attendance,
                updated_at = excluded.updated_at
            """,
            (
                metrics.phone_id,
                metrics.today_attendances,
                metrics.total_attendances,
                metrics.average_wait_time,
                _to_iso(metrics.last_attendance),
                metrics.updated_at.isoformat(),
            ),
        )
        return metrics
