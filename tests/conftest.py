"""Pytest configuration and fixtures."""

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from wppqueue.db import Database, PhoneRepository, QueueEntryRepository
from wppqueue.domain import Phone, QueueEntry, utc_now


@pytest.fixture
async def db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = Database(Path(tmpdir) / "test.db")
        await database.connect()
        yield database
        await database.disconnect()


async def add_phone(
    db: Database,
    account_id: str = "acct-1",
    number: str = "5511999990001",
    online: bool = True,
    name: str = "Support",
) -> Phone:
    """Insert a phone directly through the repository."""
    phone = Phone(account_id=account_id, number=number, name=name)
    if online:
        phone.set_online(True)
    async with db.transaction():
        await PhoneRepository(db).create(phone)
    return phone


async def seed_entries(db: Database, phone: Phone, positions: list[int]) -> list[QueueEntry]:
    """Insert active entries with the given positions, oldest first."""
    base = utc_now()
    entries = [
        QueueEntry(
            phone_id=phone.id,
            account_id=phone.account_id,
            position=position,
            created_at=base + timedelta(seconds=i),
        )
        for i, position in enumerate(positions)
    ]
    repo = QueueEntryRepository(db)
    async with db.transaction():
        for entry in entries:
            await repo.create(entry)
    return entries


async def positions_by_id(db: Database, phone_id: str) -> dict[str, int]:
    """Map entry id to position for a phone's active entries."""
    entries = await QueueEntryRepository(db).find_active(phone_id)
    return {e.id: e.position for e in entries}


@pytest.fixture
def make_phone(db):
    """Factory for phones stored in the test database."""

    async def factory(**kwargs) -> Phone:
        return await add_phone(db, **kwargs)

    return factory


@pytest.fixture
def make_entries(db):
    """Factory for active queue entries on a phone."""

    async def factory(phone: Phone, positions: list[int]) -> list[QueueEntry]:
        return await seed_entries(db, phone, positions)

    return factory


@pytest.fixture
def read_positions(db):
    """Read back a phone's active positions keyed by entry id."""

    async def reader(phone_id: str) -> dict[str, int]:
        return await positions_by_id(db, phone_id)

    return reader
