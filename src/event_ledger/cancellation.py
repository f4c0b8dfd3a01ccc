# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cooperative cancellation for network fetches.

A ``CancelToken`` is handed to a fetch by the consumer that needs its
result. When the consumer goes away (a report is closed, the CLI is
interrupted) it calls ``cancel()``; the fetch checks the token between
requests and stops with ``FetchCancelled`` instead of delivering a result
nobody reads.

``run_cancellable`` runs a fetch on a worker thread so that an interrupt
received by the caller can cancel the token while the fetch is still in
progress.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

POLL_INTERVAL = 0.1


class FetchCancelled(Exception):
    """Raised by a fetch whose CancelToken was cancelled."""


class CancelToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the token is cancelled or ``timeout`` elapses."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled(self.reason or "fetch cancelled")


def run_cancellable(
    fetch: Callable[[], T],
    cancel_token: CancelToken,
    poll_interval: float = POLL_INTERVAL,
) -> T:
    """
    Run ``fetch`` on a worker thread and return its result.

    The calling thread waits in short slices so that a KeyboardInterrupt is
    delivered while the fetch is running. On interrupt the token is
    cancelled, the worker is left to stop at its next check, and the
    interrupt is re-raised once the worker has finished.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-fetch") as pool:
        future = pool.submit(fetch)
        try:
            while True:
                try:
                    return future.result(timeout=poll_interval)
                except TimeoutError:
                    continue
        except KeyboardInterrupt:
            cancel_token.cancel("interrupted")
            raise
