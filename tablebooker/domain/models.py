"""
Domain models for tables, operating hours and reservations.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from pendulum import Date


def normalize_hours(hours: Iterable[Any]) -> FrozenSet[int]:
    """Coerce reserved hours (often strings from query data) to a set of ints."""
    return frozenset(int(hour) for hour in hours)


@dataclass(frozen=True)
class OperatingWindow:
    """
    A restaurant's daily service hours as integer hour boundaries.

    Invariant: 0 <= open_at <= close_at <= 23.
    """
    open_at: int
    close_at: int

    def __post_init__(self):
        for value in (self.open_at, self.close_at):
            if not 0 <= value <= 23:
                raise ValueError(f"Hour must be between 0 and 23, got {value}")
        if self.open_at > self.close_at:
            raise ValueError(
                f"Opening hour {self.open_at} must not be after closing hour {self.close_at}"
            )

    def hours(self) -> range:
        """All hours of the window, both ends included."""
        return range(self.open_at, self.close_at + 1)

    def __str__(self) -> str:
        return f"{self.open_at}:00 - {self.close_at}:00"


@dataclass(frozen=True)
class SlotOptions:
    """Selectable start and end hours for one table on one date."""
    start_hours: Tuple[int, ...]
    end_hours: Tuple[int, ...]

    @property
    def default_start(self) -> Optional[int]:
        return self.start_hours[0] if self.start_hours else None

    @property
    def default_end(self) -> Optional[int]:
        return self.end_hours[0] if self.end_hours else None

    def is_empty(self) -> bool:
        return not self.start_hours or not self.end_hours


@dataclass(frozen=True)
class ReservationRequest:
    """A proposed booking of a table from start_at until end_at on a date."""
    table_id: str
    date: Date
    start_at: int
    end_at: int

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON body expected by the backend's reservation endpoint."""
        return {
            "tableId": self.table_id,
            "date": self.date.to_date_string(),
            "startAt": self.start_at,
            "endAt": self.end_at,
        }


class ErrorKind(str, Enum):
    INVALID_ORDER = "invalid_order"
    SLOT_CONFLICT = "slot_conflict"
    UNAVAILABLE_HOUR = "unavailable_hour"


@dataclass(frozen=True)
class ValidationError:
    """
    Outcome of a failed reservation pre-check.

    This is a value returned to the presentation layer, not an exception.
    Messages are keyed by form field ("startAt" / "endAt"); an unavailable
    hour only carries a message for the offending field.
    """
    kind: ErrorKind
    messages: Mapping[str, str]
    hour: Optional[int] = None

    @property
    def start_message(self) -> str:
        return self.messages.get("startAt", "")

    @property
    def end_message(self) -> str:
        return self.messages.get("endAt", "")


@dataclass(frozen=True)
class Restaurant:
    name: str
    window: OperatingWindow


@dataclass(frozen=True)
class Table:
    """
    An available table as reported by the backend for a target date.
    """
    id: str
    seats: int
    restaurant: Restaurant
    reserved_hours: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Table":
        """
        Build a Table from the backend JSON shape.

        Example:
        {
            "id": "t-1",
            "seats": 2,
            "reservedHours": [12, 13],
            "restaurant": {"name": "Luigi", "openAt": 9, "closeAt": 22}
        }

        Raises:
            KeyError, ValueError, TypeError: If the payload is malformed
        """
        restaurant = data["restaurant"]
        return cls(
            id=str(data["id"]),
            seats=int(data["seats"]),
            restaurant=Restaurant(
                name=restaurant["name"],
                window=OperatingWindow(
                    open_at=int(restaurant["openAt"]),
                    close_at=int(restaurant["closeAt"]),
                ),
            ),
            reserved_hours=normalize_hours(data.get("reservedHours") or []),
        )

    def format_reserved(self) -> str:
        """Format reserved hours for display, e.g. '12:00 - 13:00'."""
        return " - ".join(f"{hour}:00" for hour in sorted(self.reserved_hours))


@dataclass(frozen=True)
class TableFilter:
    """
    The current table search filter, owned by the presentation layer and
    re-submitted to the backend whenever it changes.
    """
    seats: int
    target_date: Date
    skip: int = 0
    take: int = 1

    def __post_init__(self):
        if self.seats <= 0:
            raise ValueError(f"Seats must be greater than zero, got {self.seats}")
        if self.skip < 0 or self.take <= 0:
            raise ValueError("skip must be >= 0 and take must be > 0")

    def query_params(self) -> Dict[str, Any]:
        return {
            "targetDate": self.target_date.to_date_string(),
            "seats": self.seats,
            "skip": self.skip,
            "take": self.take,
        }

    def next_page(self) -> "TableFilter":
        return replace(self, skip=self.skip + self.take)

    def same_partition(self, other: "TableFilter") -> bool:
        """True when both filters look at the same seats and date."""
        return self.seats == other.seats and self.target_date == other.target_date
