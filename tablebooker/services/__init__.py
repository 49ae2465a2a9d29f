"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import BackendClientProtocol, BookingResult, BookingService
from .cancellation import CancellationToken
from .table_listing import TableListing

__all__ = [
    "BackendClientProtocol",
    "BookingResult",
    "BookingService",
    "CancellationToken",
    "TableListing",
]
