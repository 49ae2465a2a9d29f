"""
HTTP client for the reservation backend API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import AuthenticationError, BackendAPIError, ReservationConflict
from ..domain.models import ReservationRequest, Table, TableFilter
from ..services.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Client for the table reservation backend.

    Endpoints used:
    - GET  /table/available   tables with reserved hours for a date
    - POST /reservation       create a reservation
    - POST /auth/user/signup  register a user and obtain an access token
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the backend client.

        Args:
            base_url: Backend root URL, e.g. https://api.example.com
            access_token: Bearer token for authenticated endpoints
            timeout: Per-request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    def get_available_tables(
        self,
        table_filter: TableFilter,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Table]:
        """
        Fetch tables with the requested seats and their reserved hours for a date.

        The token is checked before the request is sent and again once the
        response arrives, so a superseded fetch never returns data.

        Raises:
            FetchCancelled: If the token was cancelled
            AuthenticationError: If the backend refuses the token
            BackendAPIError: If the request fails or the payload is not a list
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        data = self._request(
            "GET",
            "/table/available",
            params=table_filter.query_params(),
        )

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        if not isinstance(data, list):
            raise BackendAPIError(f"Unexpected table listing payload: {data!r}")

        tables: List[Table] = []
        for item in data:
            try:
                tables.append(Table.from_api(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unparsable table entry %r: %s", item, e)
        return tables

    def create_reservation(self, request: ReservationRequest) -> Dict[str, Any]:
        """
        Submit a reservation.

        Raises:
            ReservationConflict: If the backend reports the slot as taken
            AuthenticationError: If the backend refuses the token
            BackendAPIError: On any other failure
        """
        data = self._request("POST", "/reservation", json=request.to_payload())
        return data if isinstance(data, dict) else {}

    def sign_up(self, payload: Dict[str, Any]) -> str:
        """
        Register a new user and return the issued access token.
        """
        data = self._request("POST", "/auth/user/signup", json=payload, authenticated=False)
        token = data.get("accessToken") if isinstance(data, dict) else None
        if not token:
            raise BackendAPIError("Signup response did not contain an access token")
        return token

    def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> Any:
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        if not authenticated:
            headers.pop("Authorization", None)

        logger.debug("%s %s %s", method, url, kwargs.get("params") or "")

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise BackendAPIError(f"Failed to reach backend at {url}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Backend refused credentials ({response.status_code}) for {path}"
            )
        if response.status_code == 409:
            raise ReservationConflict(self._error_detail(response))

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BackendAPIError(
                f"Backend error {response.status_code} for {path}: {self._error_detail(response)}"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise BackendAPIError(f"Backend returned invalid JSON for {path}") from e

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or ""
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)
