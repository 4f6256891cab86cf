"""Metrics API routes for dashboard display."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from wppqueue.api.deps import get_account_id, get_db, to_http_exception
from wppqueue.db import Database, MetricsRepository
from wppqueue.domain import PhoneMetrics, QueueError
from wppqueue.metrics import (
    DashboardMetrics,
    QueueSummary,
    get_dashboard_metrics,
    get_queue_summary,
    record_attendance,
)
from wppqueue.phones import PhoneService

router = APIRouter()


class AttendanceRequest(BaseModel):
    """Request body for recording an attendance."""

    wait_time: float = Field(ge=0)  # Minutes


@router.get("/dashboard")
async def get_dashboard(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
) -> DashboardMetrics:
    """Get phone counters for the dashboard."""
    return await get_dashboard_metrics(db, account_id)


@router.get("/metrics")
async def get_metrics(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
) -> QueueSummary:
    """Get the size and average wait of the caller's queue."""
    return await get_queue_summary(db, account_id)


@router.get("/metrics/phones/{phone_id}")
async def get_phone_metrics(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
) -> PhoneMetrics:
    """Get the attendance metrics of a phone."""
    try:
        await PhoneService(db).get(phone_id, account_id)
    except QueueError as e:
        raise to_http_exception(e) from e

    metrics = await MetricsRepository(db).get(phone_id)
    return metrics or PhoneMetrics(phone_id=phone_id)


@router.post("/metrics/phones/{phone_id}/attendances")
async def add_attendance(
    db: Annotated[Database, Depends(get_db)],
    account_id: Annotated[str, Depends(get_account_id)],
    phone_id: str,
    body: AttendanceRequest,
) -> PhoneMetrics:
    """Record an attended caller on a phone."""
    try:
        await PhoneService(db).get(phone_id, account_id)
        return await record_attendance(db, phone_id, body.wait_time)
    except QueueError as e:
        raise to_http_exception(e) from e
