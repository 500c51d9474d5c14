import threading
from typing import Optional

from sharepoint_dedup.core.errors import ScanCancelledError


class CancellationToken:
    """Cooperative cancellation signal passed explicitly to every remote call."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError()


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise ScanCancelledError if the (optional) token has been signalled."""
    if token is not None:
        token.raise_if_cancelled()
