"""
Mock reservation backend for running without a real API.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pendulum

from ..domain.exceptions import BackendAPIError, ReservationConflict
from ..domain.models import OperatingWindow, ReservationRequest, Table, TableFilter
from ..domain.slot_calculator import validate_reservation
from ..services.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class MockBackendClient:
    """
    Mock client that simulates the backend's responses.

    Tables and existing reservations are loaded from mock_tables.json
    (or passed in directly). Created reservations are kept in memory and are
    re-validated the way the real backend does, so double bookings are
    rejected with ReservationConflict.
    """

    def __init__(self, tables: Optional[List[Dict[str, Any]]] = None, data_file: Optional[Path] = None):
        """
        Initialize the mock client.

        Args:
            tables: Raw table records; when omitted they are read from data_file
            data_file: JSON file with table records, defaults to mock_tables.json
        """
        if tables is None:
            tables = self._load_tables(data_file or Path(__file__).parent / "mock_tables.json")
        self._tables = tables
        self.reservations: List[ReservationRequest] = []

    @staticmethod
    def _load_tables(data_file: Path) -> List[Dict[str, Any]]:
        if not data_file.exists():
            logger.warning("Mock data file %s not found, starting empty", data_file)
            return []
        with open(data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _reserved_hours(self, table_id: str, date: str) -> Set[int]:
        hours: Set[int] = set()
        for record in self._tables:
            if str(record["id"]) != table_id:
                continue
            for reservation in record.get("reservations", []):
                if reservation["date"] == date:
                    hours.update(range(reservation["startAt"], reservation["endAt"]))
        for request in self.reservations:
            if request.table_id == table_id and request.date.to_date_string() == date:
                hours.update(range(request.start_at, request.end_at))
        return hours

    def get_available_tables(
        self,
        table_filter: TableFilter,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Table]:
        """Return one page of tables with the requested seat count."""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        date = table_filter.target_date.to_date_string()
        matching = [record for record in self._tables if record["seats"] == table_filter.seats]
        page = matching[table_filter.skip:table_filter.skip + table_filter.take]

        return [
            Table.from_api(
                {
                    "id": record["id"],
                    "seats": record["seats"],
                    "restaurant": record["restaurant"],
                    "reservedHours": sorted(self._reserved_hours(str(record["id"]), date)),
                }
            )
            for record in page
        ]

    def create_reservation(self, request: ReservationRequest) -> Dict[str, Any]:
        """Store a reservation after re-validating it against current data."""
        record = next((r for r in self._tables if str(r["id"]) == request.table_id), None)
        if record is None:
            raise BackendAPIError(f"Unknown table: {request.table_id}")

        window = OperatingWindow(record["restaurant"]["openAt"], record["restaurant"]["closeAt"])
        if request.start_at < window.open_at or request.end_at > window.close_at:
            raise BackendAPIError(
                f"Reservation {request.start_at}-{request.end_at} is outside opening hours {window}"
            )

        reserved = self._reserved_hours(request.table_id, request.date.to_date_string())
        error = validate_reservation(request, reserved)
        if error is not None:
            raise ReservationConflict(error.start_message)

        self.reservations.append(request)
        return {
            "id": f"mock-{len(self.reservations)}",
            **request.to_payload(),
            "createdAt": pendulum.now("UTC").to_iso8601_string(),
        }

    def sign_up(self, payload: Dict[str, Any]) -> str:
        """Return a mock access token."""
        return "mock_access_token_12345"
