"""
Domain-specific exception hierarchy for the scheduling engine.

Every error maps to one rejected request; none of them is fatal to the process.
"""


class SlotbookerError(Exception):
    """Base class for all application-level errors."""

    retryable = False


class ConfigurationError(SlotbookerError, ValueError):
    """Raised when configuration cannot be turned into a usable policy."""


class InvalidZoneError(ConfigurationError):
    """Raised when a time zone name is not a known IANA zone."""

    def __init__(self, zone_name: str):
        super().__init__(f"Unknown time zone: '{zone_name}'")
        self.zone_name = zone_name


class InvalidPolicyError(ConfigurationError):
    """Raised when a working-hours policy is malformed."""


class PolicyViolationError(SlotbookerError):
    """Raised when a booking request breaks a link's booking rules."""


class DurationMismatchError(PolicyViolationError):
    """Raised when the chosen window length differs from the meeting duration."""


class LeadTimeViolationError(PolicyViolationError):
    """Raised when a window starts too soon after the request."""


class DailyCapReachedError(PolicyViolationError):
    """Raised when the host already has the maximum bookings on that day."""


class LinkInactiveError(PolicyViolationError):
    """Raised when a booking link has been switched off."""


class InvalidBookingStateError(PolicyViolationError):
    """Raised when a booking cannot make the requested status transition."""


class ConflictRejectedError(SlotbookerError):
    """Raised when a window stopped being free between resolution and commit."""


class AssignmentError(SlotbookerError):
    """Base class for host assignment failures."""


class NoActorAvailableError(AssignmentError):
    """Raised when no host in the pool is free for the window."""


class ActorUnavailableError(AssignmentError):
    """Raised when the designated host is not free for the window."""


class PersistenceFailureError(SlotbookerError):
    """Raised when the booking could not be stored. Safe to retry."""

    retryable = True


class StorageError(SlotbookerError):
    """Raised by storage collaborators when a read or write fails."""


class StorageConflictError(StorageError):
    """Raised by storage when an insert would overlap a confirmed booking."""


class NotFoundError(StorageError):
    """Raised when a requested record does not exist."""
