"""
Cancellation tokens for superseding in-flight availability fetches.
"""

import threading

from ..domain.exceptions import FetchCancelled


class CancellationToken:
    """
    A one-shot flag shared between the caller that starts a fetch and the
    client performing it. Safe to cancel from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "superseded") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise FetchCancelled(f"Fetch cancelled: {self.reason}")
