from typing import Optional


class LifecycleError(Exception):
    """Base class for every failure a lifecycle command can surface to its caller."""

    def __init__(self, message: str, appointment_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.appointment_id = appointment_id


class RecordNotFound(LifecycleError):
    """The command targets a record that does not exist. Not retried."""


class InvalidTransition(LifecycleError):
    """A status guard was violated, e.g. starting an appointment twice."""


class NotAuthorized(LifecycleError):
    """The actor is not allowed to issue this command on this record."""


class StoreConflict(LifecycleError):
    """Another write landed between our read and our write.

    The caller should re-read the record and may retry once with the fresh state.
    """


class BookingRejected(LifecycleError):
    """A booking request failed validation (slot taken, time in the past, wrong roles)."""
