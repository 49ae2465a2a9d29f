"""
Application services for browsing tables and booking reservations.

The service coordinates the backend adapter (run in a worker thread, since
the HTTP client is blocking) and delegates hour computation and validation to
the domain-level ``SlotCalculator``. The backend dependency is expressed as a
protocol so tests can plug in the mock client or a stub.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pendulum import Date

from ..domain.exceptions import FetchCancelled
from ..domain.models import ReservationRequest, SlotOptions, Table, TableFilter, ValidationError
from ..domain.slot_calculator import SlotCalculator
from .cancellation import CancellationToken
from .table_listing import TableListing

logger = logging.getLogger(__name__)


class BackendClientProtocol(Protocol):
    """Protocol describing the backend behaviour needed by the service."""

    def get_available_tables(
        self,
        table_filter: TableFilter,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Table]:
        """Return one page of available tables."""

    def create_reservation(self, request: ReservationRequest) -> Dict[str, Any]:
        """Create a reservation and return the backend's record."""


@dataclass(frozen=True)
class BookingResult:
    """Either a created reservation or the local validation error that stopped it."""
    request: ReservationRequest
    reservation: Optional[Dict[str, Any]] = None
    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BookingService:
    """
    Orchestrates table searches, paging and reservation submission.

    Only the newest availability fetch may update the listing: starting a
    fetch cancels the token of the one still in flight.
    """

    def __init__(
        self,
        backend: BackendClientProtocol,
        page_size: int = 1,
        listing: Optional[TableListing] = None,
    ) -> None:
        self._backend = backend
        self._page_size = page_size
        self.listing = listing or TableListing()
        self.current_filter: Optional[TableFilter] = None
        self._inflight: Optional[CancellationToken] = None

    async def search(self, *, seats: int, target_date: Date) -> Tuple[Table, ...]:
        """Start a new search, resetting paging to the first page."""
        table_filter = TableFilter(seats=seats, target_date=target_date, skip=0, take=self._page_size)
        self.listing.reset_paging()
        return await self.fetch(table_filter)

    async def load_more(self) -> Tuple[Table, ...]:
        """Fetch the next page for the current filter unless the listing is exhausted."""
        if self.current_filter is None:
            raise RuntimeError("load_more called before search")
        if self.listing.no_more_tables:
            return self.listing.tables
        return await self.fetch(self.current_filter.next_page())

    async def fetch(self, table_filter: TableFilter) -> Tuple[Table, ...]:
        """
        Fetch one page and merge it into the listing.

        Raises:
            FetchCancelled: If a newer fetch started before this one finished
        """
        if self._inflight is not None:
            self._inflight.cancel("superseded by a newer search")

        token = CancellationToken()
        self._inflight = token
        self.current_filter = table_filter

        try:
            tables = await asyncio.to_thread(
                self._backend.get_available_tables,
                table_filter,
                token,
            )
            token.raise_if_cancelled()
        except FetchCancelled:
            logger.warning("Discarding stale table fetch for %s", table_filter.query_params())
            raise
        finally:
            if self._inflight is token:
                self._inflight = None

        self.listing.merge(table_filter, tables)
        return self.listing.tables

    async def find_table(self, *, table_id: str, seats: int, target_date: Date) -> Optional[Table]:
        """Page through the search results until the table shows up."""
        await self.search(seats=seats, target_date=target_date)

        while True:
            table = self.listing.find(table_id)
            if table is not None or self.listing.no_more_tables:
                return table
            await self.load_more()

    @staticmethod
    def slot_options(table: Table) -> SlotOptions:
        """Bookable start/end hours for a table."""
        return SlotCalculator(table.restaurant.window).options(table.reserved_hours)

    async def book(
        self,
        *,
        table: Table,
        date: Date,
        start_at: int,
        end_at: int,
    ) -> BookingResult:
        """
        Validate a reservation locally and submit it when it passes.

        Backend failures (including a conflict detected by the backend on
        newer data) propagate to the caller.
        """
        request = ReservationRequest(table_id=table.id, date=date, start_at=start_at, end_at=end_at)
        calculator = SlotCalculator(table.restaurant.window)

        error = calculator.validate(request, table.reserved_hours)
        if error is not None:
            return BookingResult(request=request, error=error)

        reservation = await asyncio.to_thread(self._backend.create_reservation, request)
        logger.info(
            "Reserved table %s on %s from %s to %s",
            table.id,
            date.to_date_string(),
            start_at,
            end_at,
        )
        return BookingResult(request=request, reservation=reservation)
