"""Phone line management and online/offline transitions."""

import logging

from wppqueue.db import Database, PhoneRepository
from wppqueue.domain import Conflict, NotFound, Phone, Unauthorized
from wppqueue.queue import QueueEngine

logger = logging.getLogger(__name__)


class PhoneService:
    """CRUD for phone lines, wired to the queue engine.

    Going online enqueues the phone; going offline or being deleted
    deactivates its entry. The phone write and the queue write share a
    transaction.
    """

    def __init__(self, db: Database):
        self.db = db
        self.repo = PhoneRepository(db)
        self.engine = QueueEngine(db)

    async def create(self, account_id: str, number: str, name: str = "") -> Phone:
        """Register a new phone, offline until switched on."""
        number = number.strip()
        if not number:
            raise ValueError("Phone number is required")

        async with self.db.transaction():
            if await self.repo.get_by_number(number):
                raise Conflict("Phone number already exists")
            phone = await self.repo.create(
                Phone(account_id=account_id, number=number, name=name)
            )

        logger.info(f"Created phone {phone.id} for account {account_id}")
        return phone

    async def list_phones(self, account_id: str) -> list[Phone]:
        """List the phones of an account."""
        return await self.repo.list_for_account(account_id)

    async def get(self, phone_id: str, account_id: str) -> Phone:
        """Get a phone owned by the account."""
        phone = await self.repo.get(phone_id)
        if not phone:
            raise NotFound("Phone not found")
        if phone.account_id != account_id:
            logger.warning(f"Account {account_id} denied access to phone {phone_id}")
            raise Unauthorized()
        return phone

    async def update(
        self,
        phone_id: str,
        account_id: str,
        *,
        name: str | None = None,
        number: str | None = None,
        online: bool | None = None,
    ) -> Phone:
        """Update a phone's fields and apply any online/offline transition."""
        if number is not None:
            number = number.strip()
            if not number:
                raise ValueError("Phone number is required")

        async with self.db.transaction():
            phone = await self.get(phone_id, account_id)

            if number is not None and number != phone.number:
                existing = await self.repo.get_by_number(number)
                if existing and existing.id != phone.id:
                    raise Conflict("Phone number already exists")
                phone.number = number
            if name is not None:
                phone.name = name

            if online is not None:
                phone.set_online(online)
                if online:
                    await self.engine.add_entry(phone)
                else:
                    await self.engine.drop_entries(phone.id)

            await self.repo.update(phone)

        if online is not None:
            logger.info(f"Phone {phone_id} is now {'online' if online else 'offline'}")
        return phone

    async def delete(self, phone_id: str, account_id: str) -> None:
        """Soft-delete a phone and take it out of the queue."""
        async with self.db.transaction():
            phone = await self.get(phone_id, account_id)
            phone.deleted = True
            if phone.online:
                phone.set_online(False)
            await self.engine.drop_entries(phone.id)
            await self.repo.update(phone)

        logger.info(f"Deleted phone {phone_id}")
