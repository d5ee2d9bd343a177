"""
Cooperative cancellation shared by every stage of a load.
"""

from __future__ import annotations

import threading


class OperationCancelled(Exception):
    """Raised at a suspension point once the token has been cancelled."""


class CancellationToken:
    """Thread-safe flag checked by the loader and its worker tasks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()
