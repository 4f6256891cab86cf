"""Phone line management."""

from wppqueue.phones.service import PhoneService

__all__ = ["PhoneService"]
