"""Phone API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from wppqueue.api.deps import get_account_id, get_db, to_http_exception
from wppqueue.db import Database
from wppqueue.domain import Phone, QueueError
from wppqueue.phones import PhoneService

router = APIRouter()


class PhoneCreate(BaseModel):
    """Request body for registering a phone."""

    number: str = Field(min_length=1)
    name: str = ""


class PhoneUpdate(BaseModel):
    """Request body for updating a phone."""

    name: str | None = None
    number: str | None = Field(default=None, min_length=1)
    online: bool | None = None


@router.get("")
async def list_phones(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
) -> list[Phone]:
    """List the caller's phones."""
    return await PhoneService(db).list_phones(account_id)


@router.post("", status_code=201)
async def create_phone(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    body: PhoneCreate,
) -> Phone:
    """Register a new phone."""
    try:
        return await PhoneService(db).create(account_id, body.number, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except QueueError as e:
        raise to_http_exception(e) from e


@router.get("/{phone_id}")
async def get_phone(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
) -> Phone:
    """Get a phone by ID."""
    try:
        return await PhoneService(db).get(phone_id, account_id)
    except QueueError as e:
        raise to_http_exception(e) from e


@router.patch("/{phone_id}")
async def update_phone(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
    body: PhoneUpdate,
) -> Phone:
    """Update a phone. Switching it online or offline updates its queue."""
    try:
        return await PhoneService(db).update(
            phone_id,
            account_id,
            name=body.name,
            number=body.number,
            online=body.online,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except QueueError as e:
        raise to_http_exception(e) from e


@router.delete("/{phone_id}", status_code=204)
async def delete_phone(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
) -> None:
    """Delete a phone and drop it from the queue."""
    try:
        await PhoneService(db).delete(phone_id, account_id)
    except QueueError as e:
        raise to_http_exception(e) from e
