"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/cancellation.py
Cooperative cancellation primitives.

Every long-running component polls a zero-argument ``stopped_flag`` callable
between units of work. The objects here produce such callables:

- CancellationToken: set by a caller (CLI signal handler, scan registry) to stop a scan.
- ScanDeadline: the single wall-clock deadline of one scan, optionally chained
  to a CancellationToken. Remembers why it fired.
"""

import threading
import time
from typing import Optional


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request the operation to stop at its next checkpoint."""
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()

    def __repr__(self):
        return f"<CancellationToken cancelled={self.is_cancelled()}>"


class ScanDeadline:
    """
    Combines one overall timeout with an optional external token.
    Calling the instance returns True once either has fired.
    """

    def __init__(self, timeout_seconds: float, token: Optional[CancellationToken] = None,
                 clock=time.monotonic):
        self._clock = clock
        self._started = clock()
        self._expires_at = self._started + timeout_seconds
        self._token = token
        self._lock = threading.Lock()
        self._expired = False
        self._cancelled = False

    def __call__(self) -> bool:
        with self._lock:
            if self._expired or self._cancelled:
                return True
            if self._token is not None and self._token.is_cancelled():
                self._cancelled = True
                return True
            if self._clock() >= self._expires_at:
                self._expired = True
                return True
            return False

    @property
    def expired(self) -> bool:
        """True if the timeout (not the caller) stopped the scan."""
        return self._expired

    @property
    def cancelled(self) -> bool:
        """True if the external token stopped the scan."""
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._expired or self._cancelled

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._started) * 1000)
