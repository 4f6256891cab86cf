"""Core domain models for the redirect queue.

- Phone: a WhatsApp line owned by an account, online or offline
- QueueEntry: a waiting slot in a phone's ordered queue
- PhoneMetrics: attendance counters kept per phone
"""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field


def generate_phone_id() -> str:
    """Generate a phone ID (ph-xxxxxxxx)."""
    return f"ph-{uuid4().hex[:8]}"


def generate_entry_id() -> str:
    """Generate a queue entry ID (qe-xxxxxxxx)."""
    return f"qe-{uuid4().hex[:8]}"


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Phone(BaseModel):
    """A phone line that callers are redirected to."""

    id: str = Field(default_factory=generate_phone_id)
    account_id: str
    number: str
    name: str = ""
    online: bool = False
    deleted: bool = False  # Soft delete, hidden from every lookup

    created_at: datetime = Field(default_factory=utc_now)
    last_online_change: datetime | None = None
    last_online: datetime | None = None
    last_offline: datetime | None = None

    def set_online(self, online: bool, now: datetime | None = None) -> None:
        """Flip the online flag and stamp the transition times."""
        now = now or utc_now()
        self.online = online
        self.last_online_change = now
        self.last_online = now if online else None
        self.last_offline = None if online else now


class QueueEntry(BaseModel):
    """An entry in a phone's waiting queue.

    `position` is a 1-based rank that only means something while the
    entry is active; inactive entries are never re-ranked.
    """

    id: str = Field(default_factory=generate_entry_id)
    phone_id: str
    account_id: str
    position: int = Field(ge=1)
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    wait_time: float | None = None  # Minutes


class QueueItem(QueueEntry):
    """A queue entry joined with its phone's display fields."""

    number: str = ""
    name: str = ""

    @classmethod
    def from_entry(cls, entry: QueueEntry, phone: Phone) -> "QueueItem":
        return cls(**entry.model_dump(), number=phone.number, name=phone.name)


class QueueResult(BaseModel):
    """Outcome of a queue mutation.

    `changed` is False when the operation was a no-op, so callers can
    skip refreshing their view.
    """

    changed: bool
    entries: list[QueueEntry] = Field(default_factory=list)


class PhoneMetrics(BaseModel):
    """Attendance counters for a single phone."""

    phone_id: str
    today_attendances: int = 0
    total_attendances: int = 0
    average_wait_time: float = 0.0  # Minutes
    last_attendance: datetime | None = None
    updated_at: datetime = Field(default_factory=utc_now)
