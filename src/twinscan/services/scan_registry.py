"""
services/scan_registry.py
Maps externally visible scan ids to cancellation tokens, so one request can
cancel a scan started by another. Belongs to the calling layer; the engine
only ever sees the token.
"""
import threading
import time
from typing import Dict, List, Tuple

from twinscan.core.cancellation import CancellationToken

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


class ScanRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._active: Dict[str, CancellationToken] = {}

    def start(self) -> Tuple[str, CancellationToken]:
        """Register a new scan and return its id and token."""
        token = CancellationToken()
        with self._lock:
            stamp = int(time.time() * 1000)
            scan_id = _base36(stamp)
            while scan_id in self._active:
                stamp += 1
                scan_id = _base36(stamp)
            self._active[scan_id] = token
        return scan_id, token

    def cancel(self, scan_id: str) -> bool:
        """Cancel an active scan. False if the id is unknown or already finished."""
        with self._lock:
            token = self._active.pop(scan_id, None)
        if token is None:
            return False
        token.cancel()
        return True

    def finish(self, scan_id: str) -> None:
        with self._lock:
            self._active.pop(scan_id, None)

    def active_ids(self) -> List[str]:
        with self._lock:
            return list(self._active)

    def __contains__(self, scan_id: str) -> bool:
        with self._lock:
            return scan_id in self._active
