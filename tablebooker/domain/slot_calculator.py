"""
Core business logic for bookable reservation hours.

Pure domain logic without any external dependencies (no API calls, no I/O,
no wall-clock access).
"""

from typing import AbstractSet, Iterable, List

from .models import (
    ErrorKind,
    OperatingWindow,
    ReservationRequest,
    SlotOptions,
    ValidationError,
    normalize_hours,
)

INVALID_ORDER_MESSAGES = {
    "startAt": "Reservation start at value must be lower than end at value",
    "endAt": "Reservation end at must be greater than start at value",
}

CONFLICT_MESSAGE = "Table is already reserved at {hour}, please select other time slot"

UNAVAILABLE_START_MESSAGE = "Reservation cannot start at {hour}, please select one of the available start hours"
UNAVAILABLE_END_MESSAGE = "Reservation cannot end at {hour}, please select one of the available end hours"


def compute_slot_options(window: OperatingWindow, reserved: AbstractSet[int]) -> SlotOptions:
    """
    Derive the start and end hours a user may pick for a table.

    Algorithm:
    1. Walk every hour from opening to closing, both included
    2. Drop hours that are already reserved
    3. Every other hour except the opening one can end a reservation
    4. Every other hour except the closing one can start a reservation

    Example:
    Window: 9 - 11, reserved: {10}
    Result: start [9], end [11]
    """
    start_hours: List[int] = []
    end_hours: List[int] = []

    for hour in window.hours():
        if hour in reserved:
            continue

        if hour != window.open_at:
            end_hours.append(hour)

        if hour != window.close_at:
            start_hours.append(hour)

    return SlotOptions(start_hours=tuple(start_hours), end_hours=tuple(end_hours))


def validate_reservation(
    request: ReservationRequest,
    reserved: AbstractSet[int],
) -> ValidationError | None:
    """
    Pre-check a reservation against ordering and already reserved hours.

    Only the first failing check is reported. The backend re-validates
    authoritatively, so passing here does not guarantee the booking.

    Returns:
        None if the request is acceptable, otherwise a ValidationError
    """
    if request.start_at >= request.end_at:
        return ValidationError(
            kind=ErrorKind.INVALID_ORDER,
            messages=dict(INVALID_ORDER_MESSAGES),
        )

    if reserved:
        # end_at itself is a boundary, not an occupied hour
        for hour in range(request.start_at, request.end_at):
            if hour in reserved:
                message = CONFLICT_MESSAGE.format(hour=hour)
                return ValidationError(
                    kind=ErrorKind.SLOT_CONFLICT,
                    messages={"startAt": message, "endAt": message},
                    hour=hour,
                )

    return None


def check_slot_options(request: ReservationRequest, options: SlotOptions) -> ValidationError | None:
    """
    Reject hours that are not among the selectable start/end options.

    Only the offending field gets a message; the start hour is checked first.
    """
    if request.start_at not in options.start_hours:
        return ValidationError(
            kind=ErrorKind.UNAVAILABLE_HOUR,
            messages={"startAt": UNAVAILABLE_START_MESSAGE.format(hour=request.start_at)},
            hour=request.start_at,
        )

    if request.end_at not in options.end_hours:
        return ValidationError(
            kind=ErrorKind.UNAVAILABLE_HOUR,
            messages={"endAt": UNAVAILABLE_END_MESSAGE.format(hour=request.end_at)},
            hour=request.end_at,
        )

    return None


class SlotCalculator:
    """
    Slot computation and validation bound to one restaurant's operating window.
    """

    def __init__(self, window: OperatingWindow):
        self.window = window

    def options(self, reserved: Iterable[int] = ()) -> SlotOptions:
        return compute_slot_options(self.window, normalize_hours(reserved))

    def validate(
        self,
        request: ReservationRequest,
        reserved: Iterable[int] = (),
    ) -> ValidationError | None:
        """
        Ordering and conflict checks first, then the hours must be among the
        options offered for this window.
        """
        reserved = normalize_hours(reserved)
        error = validate_reservation(request, reserved)
        if error is not None:
            return error
        return check_slot_options(request, compute_slot_options(self.window, reserved))
