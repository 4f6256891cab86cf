"""Database module for the redirect queue."""

from wppqueue.db.connection import Database, close_database, get_database
from wppqueue.db.repositories import (
    MetricsRepository,
    PhoneRepository,
    QueueEntryRepository,
)

__all__ = [
    "Database",
    "close_database",
    "get_database",
    "MetricsRepository",
    "PhoneRepository",
    "QueueEntryRepository",
]
