"""Queue engine: enqueue, deactivate and reorder a phone's waiting queue."""

import logging

from wppqueue.db import Database, PhoneRepository, QueueEntryRepository
from wppqueue.domain import (
    Direction,
    NotFound,
    Phone,
    PreconditionFailed,
    QueueEntry,
    QueueItem,
    QueueResult,
    Unauthorized,
)
from wppqueue.queue.ordering import next_position, plan_move, sort_entries

logger = logging.getLogger(__name__)


class QueueEngine:
    """Maintains the ordered queue of each phone.

    Responsibilities:
    - Keep at most one active entry per phone
    - Keep active positions contiguous (1..N) per phone
    - Check ownership and online state before any write

    Each mutation runs in a single database transaction, so a failing
    multi-entry move leaves the queue as it was.
    """

    def __init__(self, db: Database):
        self.db = db
        self.phone_repo = PhoneRepository(db)
        self.entry_repo = QueueEntryRepository(db)

    async def _get_owned_phone(self, phone_id: str, account_id: str) -> Phone:
        phone = await self.phone_repo.get(phone_id)
        if not phone:
            raise NotFound("Phone not found")
        if phone.account_id != account_id:
            logger.warning(f"Account {account_id} denied access to phone {phone_id}")
            raise Unauthorized()
        return phone

    async def enqueue(self, phone_id: str, account_id: str) -> QueueResult:
        """Add a phone to its queue.

        Returns an unchanged result if the phone already has an active entry.
        """
        async with self.db.transaction():
            phone = await self._get_owned_phone(phone_id, account_id)
            if not phone.online:
                raise PreconditionFailed()
            return await self.add_entry(phone)

    async def add_entry(self, phone: Phone) -> QueueResult:
        """Insert an entry for an online phone. Caller holds the transaction."""
        active = await self.entry_repo.find_active(phone.id)
        if active:
            logger.debug(f"Phone {phone.id} already queued, skipping enqueue")
            return QueueResult(changed=False, entries=active)

        entry = QueueEntry(
            phone_id=phone.id,
            account_id=phone.account_id,
            position=next_position(active),
        )
        await self.entry_repo.create(entry)
        logger.info(f"Enqueued phone {phone.id} at position {entry.position}")
        return QueueResult(changed=True, entries=[entry])

    async def deactivate(self, phone_id: str) -> QueueResult:
        """Drop a phone's active entry from its queue.

        Ownership is checked by the caller. Other phones' queues are
        never renumbered.
        """
        async with self.db.transaction():
            return await self.drop_entries(phone_id)

    async def drop_entries(self, phone_id: str) -> QueueResult:
        """Deactivate a phone's entries. Caller holds the transaction."""
        active = await self.entry_repo.find_active(phone_id)
        if not active:
            logger.debug(f"Phone {phone_id} has no active entry, nothing to deactivate")
            return QueueResult(changed=False)

        for entry in active:
            await self.entry_repo.update_active(entry.id, False)
            entry.active = False
        logger.info(f"Deactivated {len(active)} queue entry(ies) for phone {phone_id}")
        return QueueResult(changed=True, entries=active)

    async def reorder(
        self,
        entry_id: str,
        phone_id: str,
        direction: Direction,
        account_id: str,
    ) -> QueueResult:
        """Move an entry within its phone's queue.

        All checks run before the first write. Returns the newly ordered
        active entries; `changed` is False when the entry was already at
        the boundary it was moved towards.
        """
        async with self.db.transaction():
            phone = await self._get_owned_phone(phone_id, account_id)
            if not phone.online:
                raise PreconditionFailed()

            entry = await self.entry_repo.get(entry_id)
            if not entry or entry.phone_id != phone_id or not entry.active:
                raise NotFound("Queue item not found")
            if entry.account_id != account_id:
                logger.warning(f"Account {account_id} denied access to entry {entry_id}")
                raise Unauthorized()

            active = await self.entry_repo.find_active(phone_id)
            updates = plan_move(active, entry_id, direction)
            if not updates:
                logger.debug(f"Move {direction.value} of entry {entry_id} is a no-op")
                return QueueResult(changed=False, entries=sort_entries(active))

            for moved_id, position in updates.items():
                await self.entry_repo.update_position(moved_id, position)

            logger.info(
                f"Moved entry {entry_id} {direction.value} on phone {phone_id} "
                f"({len(updates)} position(s) updated)"
            )
            return QueueResult(
                changed=True,
                entries=await self.entry_repo.find_active(phone_id),
            )

    async def list_queue(self, phone_id: str, account_id: str) -> list[QueueEntry]:
        """Get a phone's active entries ordered by position."""
        await self._get_owned_phone(phone_id, account_id)
        return sort_entries(await self.entry_repo.find_active(phone_id))

    async def list_account_queue(self, account_id: str) -> list[QueueItem]:
        """Get the queue of every online phone of an account.

        Entries carry their phone's name and number and are sorted by
        position across phones.
        """
        items: list[QueueItem] = []
        for phone in await self.phone_repo.list_for_account(account_id, online=True):
            entries = await self.entry_repo.find_active(phone.id)
            items.extend(QueueItem.from_entry(entry, phone) for entry in entries)

        items.sort(key=lambda item: (item.position, item.created_at))
        return items

    async def enrich(self, phone_id: str, entries: list[QueueEntry]) -> list[QueueItem]:
        """Attach a phone's display fields to its entries."""
        phone = await self.phone_repo.get(phone_id)
        if not phone:
            raise NotFound("Phone not found")
        return [QueueItem.from_entry(entry, phone) for entry in entries]
