"""Dashboard counters and per-phone attendance metrics."""

import logging
from datetime import datetime

from pydantic import BaseModel

from wppqueue.db import Database, MetricsRepository, PhoneRepository, QueueEntryRepository
from wppqueue.domain import PhoneMetrics, utc_now

logger = logging.getLogger(__name__)


class DashboardMetrics(BaseModel):
    """Phone counters for the dashboard header."""

    total_phones: int
    online_phones: int
    last_connection: str  # ISO timestamp, empty if no phone ever changed state


class QueueSummary(BaseModel):
    """Size and average wait of an account's live queue."""

    total_phones: int
    total_numbers: int
    average_wait_time: float  # Minutes


async def get_dashboard_metrics(db: Database, account_id: str) -> DashboardMetrics:
    """Count an account's phones and find its most recent state change."""
    phones = await PhoneRepository(db).list_for_account(account_id)
    changes = [p.last_online_change for p in phones if p.last_online_change]

    return DashboardMetrics(
        total_phones=len(phones),
        online_phones=sum(1 for p in phones if p.online),
        last_connection=max(changes).isoformat() if changes else "",
    )


async def get_queue_summary(db: Database, account_id: str) -> QueueSummary:
    """Summarise the active entries of an account's online phones."""
    phones = await PhoneRepository(db).list_for_account(account_id)
    entry_repo = QueueEntryRepository(db)

    wait_times: list[float] = []
    for phone in phones:
        if not phone.online:
            continue
        for entry in await entry_repo.find_active(phone.id):
            wait_times.append(entry.wait_time or 0.0)

    return QueueSummary(
        total_phones=len(phones),
        total_numbers=len(wait_times),
        average_wait_time=sum(wait_times) / len(wait_times) if wait_times else 0.0,
    )


def apply_attendance(
    current: PhoneMetrics | None,
    phone_id: str,
    wait_time: float,
    now: datetime,
) -> PhoneMetrics:
    """Fold one attendance into a phone's metrics.

    The daily counter restarts when the previous attendance happened
    before midnight (UTC) of `now`'s day. The average is a running mean.
    """
    if current is None:
        return PhoneMetrics(
            phone_id=phone_id,
            today_attendances=1,
            total_attendances=1,
            average_wait_time=wait_time,
            last_attendance=now,
            updated_at=now,
        )

    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    last = current.last_attendance
    today = 1 if last is None or last < start_of_day else current.today_attendances + 1

    total = current.total_attendances + 1
    average = (current.average_wait_time * current.total_attendances + wait_time) / total

    return PhoneMetrics(
        phone_id=phone_id,
        today_attendances=today,
        total_attendances=total,
        average_wait_time=average,
        last_attendance=now,
        updated_at=now,
    )


async def record_attendance(
    db: Database,
    phone_id: str,
    wait_time: float,
    now: datetime | None = None,
) -> PhoneMetrics:
    """Record that a caller on `phone_id` was attended after `wait_time` minutes."""
    repo = MetricsRepository(db)
    async with db.transaction():
        metrics = apply_attendance(await repo.get(phone_id), phone_id, wait_time, now or utc_now())
        await repo.upsert(metrics)

    logger.info(
        f"Recorded attendance on phone {phone_id}: "
        f"{metrics.today_attendances} today, avg wait {metrics.average_wait_time:.1f} min"
    )
    return metrics
