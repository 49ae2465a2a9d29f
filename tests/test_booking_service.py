"""
Tests for the BookingService orchestration layer.
"""

import asyncio
import threading
from typing import Dict, List

import pendulum
import pytest

from tablebooker.adapters.mock_backend_client import MockBackendClient
from tablebooker.domain.exceptions import FetchCancelled, ReservationConflict
from tablebooker.domain.models import ErrorKind, OperatingWindow, Restaurant, Table, TableFilter
from tablebooker.services.booking_service import BookingService
from tablebooker.services.table_listing import TableListing

TARGET_DATE = pendulum.date(2026, 10, 20)


def _table(table_id: str, seats: int = 2, reserved=()) -> Table:
    return Table(
        id=table_id,
        seats=seats,
        restaurant=Restaurant(name="Luigi", window=OperatingWindow(9, 22)),
        reserved_hours=frozenset(reserved),
    )


class StubBackend:
    """Minimal stub matching BackendClientProtocol, serving pages from a list."""

    def __init__(self, tables: List[Table]):
        self._tables = tables
        self.calls: List[Dict] = []
        self.created = []

    def get_available_tables(self, table_filter, cancel_token=None):
        self.calls.append(table_filter.query_params())
        matching = [t for t in self._tables if t.seats == table_filter.seats]
        return matching[table_filter.skip:table_filter.skip + table_filter.take]

    def create_reservation(self, request):
        self.created.append(request)
        return {"id": "r-1", **request.to_payload()}


class BlockingBackend(StubBackend):
    """Stub whose first fetch blocks until released."""

    def __init__(self, tables: List[Table]):
        super().__init__(tables)
        self.first_started = threading.Event()
        self.release = threading.Event()

    def get_available_tables(self, table_filter, cancel_token=None):
        if not self.first_started.is_set():
            self.first_started.set()
            self.release.wait(timeout=5)
        return super().get_available_tables(table_filter, cancel_token)


class TestTableListing:
    """Tests for the table accumulator."""

    def test_appends_unseen_tables_only(self):
        """Tables already present are not duplicated."""
        listing = TableListing()
        table_filter = TableFilter(seats=2, target_date=TARGET_DATE)

        listing.merge(table_filter, [_table("a")])
        new_tables = listing.merge(table_filter.next_page(), [_table("a"), _table("b"), _table("b")])

        assert [t.id for t in new_tables] == ["b"]
        assert [t.id for t in listing.tables] == ["a", "b"]
        assert not listing.no_more_tables

    def test_page_without_new_tables_exhausts_listing(self):
        """A page without unseen tables marks the end."""
        listing = TableListing()
        table_filter = TableFilter(seats=2, target_date=TARGET_DATE)

        listing.merge(table_filter, [_table("a")])
        listing.merge(table_filter.next_page(), [])

        assert listing.no_more_tables

    def test_other_seat_counts_dropped(self):
        """Changing seat count discards tables of the previous partition."""
        listing = TableListing()

        listing.merge(TableFilter(seats=2, target_date=TARGET_DATE), [_table("a")])
        listing.merge(TableFilter(seats=4, target_date=TARGET_DATE), [_table("c", seats=4)])

        assert [t.id for t in listing.tables] == ["c"]

    def test_known_tables_refreshed(self):
        """A table seen again replaces the stored copy."""
        listing = TableListing()
        table_filter = TableFilter(seats=2, target_date=TARGET_DATE)

        listing.merge(table_filter, [_table("a")])
        listing.merge(table_filter, [_table("a", reserved={12})])

        assert listing.find("a").reserved_hours == frozenset({12})
        assert listing.no_more_tables

    def test_date_change_drops_previous_tables(self):
        """Tables fetched for another date are not kept, even with the same seats."""
        listing = TableListing()
        other_date = TARGET_DATE.add(days=1)

        listing.merge(TableFilter(seats=2, target_date=TARGET_DATE), [_table("a", reserved={12})])
        listing.merge(TableFilter(seats=2, target_date=TARGET_DATE, skip=1), [_table("b", reserved={12})])
        new_tables = listing.merge(TableFilter(seats=2, target_date=other_date), [_table("a")])

        assert [t.id for t in new_tables] == ["a"]
        assert [t.id for t in listing.tables] == ["a"]
        assert listing.find("b") is None
        assert listing.find("a").reserved_hours == frozenset()
        assert not listing.no_more_tables


def test_search_and_load_more_pages_through_results():
    """Load more advances skip by the page size until no new table arrives."""
    backend = StubBackend([_table("a"), _table("b"), _table("c", seats=4)])
    service = BookingService(backend=backend, page_size=1)

    async def scenario():
        await service.search(seats=2, target_date=TARGET_DATE)
        await service.load_more()
        await service.load_more()
        return await service.load_more()

    tables = asyncio.run(scenario())

    assert [t.id for t in tables] == ["a", "b"]
    assert [call["skip"] for call in backend.calls] == [0, 1, 2]
    assert service.listing.no_more_tables


def test_new_search_resets_paging():
    """A fresh search starts from the first page again."""
    backend = StubBackend([_table("a"), _table("c", seats=4)])
    service = BookingService(backend=backend)

    async def scenario():
        await service.search(seats=2, target_date=TARGET_DATE)
        await service.load_more()
        return await service.search(seats=4, target_date=TARGET_DATE)

    tables = asyncio.run(scenario())

    assert [t.id for t in tables] == ["c"]
    assert backend.calls[-1]["skip"] == 0
    assert backend.calls[-1]["seats"] == 4


def test_load_more_before_search_raises():
    """load_more needs a current filter."""
    service = BookingService(backend=StubBackend([]))

    with pytest.raises(RuntimeError):
        asyncio.run(service.load_more())


def test_stale_fetch_is_discarded():
    """The newest search wins; the superseded result never reaches the listing."""
    backend = BlockingBackend([_table("a"), _table("c", seats=4)])
    service = BookingService(backend=backend)

    async def scenario():
        slow = asyncio.create_task(service.search(seats=2, target_date=TARGET_DATE))
        await asyncio.to_thread(backend.first_started.wait, 5)
        fresh = await service.search(seats=4, target_date=TARGET_DATE)
        backend.release.set()
        with pytest.raises(FetchCancelled):
            await slow
        return fresh

    tables = asyncio.run(scenario())

    assert [t.id for t in tables] == ["c"]
    assert [t.id for t in service.listing.tables] == ["c"]
    assert service.current_filter.seats == 4


def test_find_table_pages_until_found():
    """find_table keeps loading pages until the id shows up."""
    backend = StubBackend([_table("a"), _table("b"), _table("z")])
    service = BookingService(backend=backend)

    table = asyncio.run(service.find_table(table_id="z", seats=2, target_date=TARGET_DATE))

    assert table.id == "z"
    assert len(backend.calls) == 3


def test_find_table_missing_returns_none():
    """find_table gives up once the listing is exhausted."""
    service = BookingService(backend=StubBackend([_table("a")]))

    assert asyncio.run(service.find_table(table_id="nope", seats=2, target_date=TARGET_DATE)) is None


def test_slot_options_for_table():
    """Slot options come from the table's window and reserved hours."""
    table = Table(
        id="x",
        seats=2,
        restaurant=Restaurant(name="Luigi", window=OperatingWindow(9, 11)),
        reserved_hours=frozenset({10}),
    )

    options = BookingService.slot_options(table)

    assert options.start_hours == (9,)
    assert options.end_hours == (11,)


def test_book_invalid_request_is_not_submitted():
    """Local validation failures never reach the backend."""
    backend = StubBackend([])
    service = BookingService(backend=backend)

    result = asyncio.run(
        service.book(table=_table("a", reserved={12}), date=TARGET_DATE, start_at=10, end_at=14)
    )

    assert not result.ok
    assert result.error.kind is ErrorKind.SLOT_CONFLICT
    assert result.error.hour == 12
    assert backend.created == []


def test_book_valid_request_is_submitted():
    """A valid reservation is forwarded to the backend."""
    backend = StubBackend([])
    service = BookingService(backend=backend)

    result = asyncio.run(
        service.book(table=_table("a", reserved={15}), date=TARGET_DATE, start_at=10, end_at=14)
    )

    assert result.ok
    assert result.reservation["tableId"] == "a"
    assert backend.created[0].start_at == 10


def test_backend_conflict_propagates():
    """The backend re-validates on newer data; its conflict reaches the caller."""
    backend = MockBackendClient(
        tables=[
            {
                "id": "t-1",
                "seats": 2,
                "restaurant": {"name": "Luigi", "openAt": 9, "closeAt": 22},
                "reservations": [],
            }
        ]
    )
    service = BookingService(backend=backend)

    async def scenario():
        table = await service.find_table(table_id="t-1", seats=2, target_date=TARGET_DATE)
        await service.book(table=table, date=TARGET_DATE, start_at=12, end_at=14)
        # stale table data still thinks 13 is free
        await service.book(table=table, date=TARGET_DATE, start_at=13, end_at=15)

    with pytest.raises(ReservationConflict, match="already reserved at 13"):
        asyncio.run(scenario())


class DatedBackend(StubBackend):
    """Stub serving reserved hours per date."""

    def __init__(self, tables: List[Table], reserved_by_date: Dict):
        super().__init__(tables)
        self._reserved_by_date = reserved_by_date

    def get_available_tables(self, table_filter, cancel_token=None):
        page = super().get_available_tables(table_filter, cancel_token)
        reserved = self._reserved_by_date.get(table_filter.target_date, frozenset())
        return [
            Table(id=t.id, seats=t.seats, restaurant=t.restaurant, reserved_hours=frozenset(reserved))
            for t in page
        ]


def test_find_table_uses_reserved_hours_of_requested_date():
    """A table found for an earlier date is fetched again for the new date."""
    other_date = TARGET_DATE.add(days=1)
    backend = DatedBackend([_table("a"), _table("b")], {TARGET_DATE: {12, 13}})
    service = BookingService(backend=backend)

    async def scenario():
        await service.search(seats=2, target_date=TARGET_DATE)
        await service.load_more()
        return await service.find_table(table_id="b", seats=2, target_date=other_date)

    table = asyncio.run(scenario())

    assert table.id == "b"
    assert table.reserved_hours == frozenset()
    assert backend.calls[-1] == {"targetDate": "2026-10-21", "seats": 2, "skip": 1, "take": 1}


def test_book_hours_outside_options_are_not_submitted():
    """Hours the table does not offer are rejected before reaching the backend."""
    backend = StubBackend([])
    service = BookingService(backend=backend)
    table = Table(
        id="x",
        seats=2,
        restaurant=Restaurant(name="Luigi", window=OperatingWindow(12, 22)),
    )

    result = asyncio.run(service.book(table=table, date=TARGET_DATE, start_at=3, end_at=5))

    assert not result.ok
    assert result.error.kind is ErrorKind.UNAVAILABLE_HOUR
    assert result.error.hour == 3
    assert "cannot start at 3" in result.error.start_message
    assert result.error.end_message == ""
    assert backend.created == []
