"""FastAPI dependencies."""

import logging

from fastapi import HTTPException, Request

from wppqueue.db import Database
from wppqueue.domain import (
    CollaboratorFailure,
    Conflict,
    NotFound,
    PreconditionFailed,
    QueueError,
    Unauthorized,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[QueueError], int] = {
    Unauthorized: 403,
    NotFound: 404,
    PreconditionFailed: 409,
    Conflict: 400,
    CollaboratorFailure: 500,
}


async def get_db(request: Request) -> Database:
    """Get the database instance from app state."""
    return request.app.state.db


async def header_account_resolver(request: Request) -> str | None:
    """Read the caller's account id from the configured header."""
    return request.headers.get(request.app.state.settings.account_header)


async def get_account_id(request: Request) -> str:
    """Resolve the calling account, rejecting anonymous requests."""
    account_id = await request.app.state.resolve_account(request)
    if not account_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return account_id


def to_http_exception(exc: QueueError) -> HTTPException:
    """Map a domain error onto an HTTP error with a user-safe message."""
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return HTTPException(status_code=status_code, detail=exc.message)
