from __future__ import annotations

import threading
from collections import deque
from typing import Callable


def run_inline(fn: Callable[[], object]) -> None:
    fn()


class MainQueue:
    """Hand-off queue for work that must run on the consumer thread.

    Worker threads ``post`` callables; the consumer thread calls
    ``run_pending`` from its own loop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: deque[Callable[[], object]] = deque()

    def post(self, fn: Callable[[], object]) -> None:
        with self._lock:
            self._pending.append(fn)

    __call__ = post

    def run_pending(self) -> int:
        with self._lock:
            batch = list(self._pending)
            self._pending.clear()
        for fn in batch:
            fn()
        return len(batch)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
