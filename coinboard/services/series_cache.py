from __future__ import annotations

import threading

from coinboard.schemas.series import Series


class SeriesCache:
    """Asset id -> last-day series. First non-empty write wins, no eviction."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, Series] = {}
        self.rejected_writes = 0

    def get(self, asset_id: str) -> Series | None:
        with self._lock:
            return self._rows.get(asset_id)

    def put(self, asset_id: str, series: Series) -> bool:
        if not series:
            return False
        with self._lock:
            if self._rows.get(asset_id):
                self.rejected_writes += 1
                return False
            self._rows[asset_id] = tuple(series)
            return True

    def asset_ids(self) -> list[str]:
        with self._lock:
            return list(self._rows)

    def __contains__(self, asset_id: object) -> bool:
        with self._lock:
            return asset_id in self._rows

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
