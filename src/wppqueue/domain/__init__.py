"""Domain models for the redirect queue."""

from wppqueue.domain.enums import Direction
from wppqueue.domain.errors import (
    CollaboratorFailure,
    Conflict,
    NotFound,
    PreconditionFailed,
    QueueError,
    Unauthorized,
)
from wppqueue.domain.models import (
    Phone,
    PhoneMetrics,
    QueueEntry,
    QueueItem,
    QueueResult,
    utc_now,
)

__all__ = [
    "Direction",
    "CollaboratorFailure",
    "Conflict",
    "NotFound",
    "PreconditionFailed",
    "QueueError",
    "Unauthorized",
    "Phone",
    "PhoneMetrics",
    "QueueEntry",
    "QueueItem",
    "QueueResult",
    "utc_now",
]
