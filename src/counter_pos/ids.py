from __future__ import annotations

import threading
import time
from typing import Callable


class MonotonicIdSource:
    """Clock-derived integer ids that never repeat or go backwards."""

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = self._clock()
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate

    def next_token(self, prefix: str) -> str:
        return f"{prefix}{self.next_id()}"
