"""Cooperative cancellation signal shared by a run."""

from __future__ import annotations

import asyncio
import threading
from typing import Optional

from procexport.export.common.exceptions import ExportCancelledError


class CancellationToken:
    """Flag checked at suspension points and between row chunks.

    Backed by a ``threading.Event`` so writers running in worker threads can
    poll it as well as coroutines on the event loop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "Operation cancelled by user") -> None:
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelledError(self._reason or "Operation cancelled by user")

    async def wait(self, poll_interval: float = 0.1) -> None:
        """Block the calling coroutine until the token is cancelled."""
        while not self._event.is_set():
            await asyncio.sleep(poll_interval)


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise if ``token`` is set; tolerate callers that pass no token."""
    if token is not None:
        token.raise_if_cancelled()
