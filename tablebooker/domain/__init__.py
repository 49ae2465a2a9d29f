"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    ErrorKind,
    OperatingWindow,
    ReservationRequest,
    Restaurant,
    SlotOptions,
    Table,
    TableFilter,
    ValidationError,
)
from .slot_calculator import (
    SlotCalculator,
    check_slot_options,
    compute_slot_options,
    validate_reservation,
)

__all__ = [
    "ErrorKind",
    "OperatingWindow",
    "ReservationRequest",
    "Restaurant",
    "SlotOptions",
    "Table",
    "TableFilter",
    "ValidationError",
    "SlotCalculator",
    "check_slot_options",
    "compute_slot_options",
    "validate_reservation",
]
