"""Errors raised by queue and phone operations.

Every message is safe to show to an end user: none of them embed
internal identifiers.
"""


class QueueError(Exception):
    """Base class for all domain errors."""

    default_message = "Queue operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(QueueError):
    """Caller does not own the phone or entry."""

    default_message = "You do not have permission to access this resource"


class NotFound(QueueError):
    """Referenced phone or entry does not exist."""

    default_message = "Resource not found"


class PreconditionFailed(QueueError):
    """Operation requires the phone to be online."""

    default_message = "Phone is not online"


class Conflict(QueueError):
    """Operation would violate a uniqueness rule."""

    default_message = "Resource already exists"


class CollaboratorFailure(QueueError):
    """Storage layer returned an error or an undecodable record."""

    default_message = "Storage operation failed"
