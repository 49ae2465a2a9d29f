"""
Domain-specific exception hierarchy for the table booking application.
"""


class TableBookerError(Exception):
    """Base class for all application-level errors."""


class BackendAPIError(TableBookerError):
    """Raised when the reservation backend cannot be reached or answers with an error."""


class ReservationConflict(BackendAPIError):
    """Raised when the backend rejects a reservation because the slot is taken."""


class AuthenticationError(TableBookerError):
    """Raised when the backend refuses the access token."""


class FetchCancelled(TableBookerError):
    """Raised when an availability fetch was superseded by a newer one."""
