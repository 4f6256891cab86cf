"""Queue API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from wppqueue.api.deps import get_account_id, get_db, to_http_exception
from wppqueue.db import Database
from wppqueue.domain import Direction, QueueEntry, QueueError, QueueItem
from wppqueue.queue import QueueEngine

logger = logging.getLogger(__name__)
router = APIRouter()


class EnqueueRequest(BaseModel):
    """Request body for enqueuing a phone."""

    phone_id: str


class EnqueueResponse(BaseModel):
    """Result of an enqueue request."""

    status: str  # "enqueued" or "unchanged"
    phone_id: str
    entries: list[QueueEntry]


class MoveRequest(BaseModel):
    """Request body for moving a queue entry."""

    id: str
    phone_id: str
    direction: Direction


@router.get("")
async def get_account_queue(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
) -> list[QueueItem]:
    """Get the queue across all of the caller's online phones."""
    items = await QueueEngine(db).list_account_queue(account_id)
    logger.info(f"Found {len(items)} queued items for account {account_id}")
    return items


@router.get("/{phone_id}")
async def get_phone_queue(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
) -> list[QueueItem]:
    """Get one phone's ordered queue."""
    engine = QueueEngine(db)
    try:
        entries = await engine.list_queue(phone_id, account_id)
        return await engine.enrich(phone_id, entries)
    except QueueError as e:
        raise to_http_exception(e) from e


@router.post("")
async def enqueue_phone(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    body: EnqueueRequest,
) -> EnqueueResponse:
    """Add an online phone to its queue."""
    logger.info(f"Enqueuing phone {body.phone_id}")
    try:
        result = await QueueEngine(db).enqueue(body.phone_id, account_id)
    except QueueError as e:
        logger.warning(f"Failed to enqueue phone {body.phone_id}: {e.message}")
        raise to_http_exception(e) from e

    return EnqueueResponse(
        status="enqueued" if result.changed else "unchanged",
        phone_id=body.phone_id,
        entries=result.entries,
    )


@router.patch("")
async def move_entry(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    body: MoveRequest,
) -> list[QueueItem]:
    """Move a queue entry and return the phone's reordered queue."""
    engine = QueueEngine(db)
    try:
        result = await engine.reorder(body.id, body.phone_id, body.direction, account_id)
        return await engine.enrich(body.phone_id, result.entries)
    except QueueError as e:
        logger.warning(f"Failed to move entry {body.id} {body.direction.value}: {e.message}")
        raise to_http_exception(e) from e
