from __future__ import annotations

import threading
import time
from typing import Protocol

from coinboard.schemas.series import Series
from coinboard.schemas.slot import SlotView


class SeriesSink(Protocol):
    def show_loading(self, asset_id: str) -> None: ...

    def show_series(self, asset_id: str, series: Series) -> None: ...

    def show_empty(self, asset_id: str) -> None: ...


class RecordingSink:
    """Keeps the last rendered state of a slot as a SlotView."""

    def __init__(self, index: int) -> None:
        self.view = SlotView(index=index)

    def _update(self, asset_id: str, state: str, series: Series = ()) -> None:
        self.view = self.view.model_copy(
            update={
                "asset_id": asset_id,
                "state": state,
                "points": list(series),
                "updated_at": int(time.time()),
            }
        )

    def show_loading(self, asset_id: str) -> None:
        self._update(asset_id, "LOADING")

    def show_series(self, asset_id: str, series: Series) -> None:
        self._update(asset_id, "READY", series)

    def show_empty(self, asset_id: str) -> None:
        self._update(asset_id, "EMPTY")


class SlotController:
    """One reusable display slot.

    ``assign`` bumps the generation every time, including reassignment to the
    same asset. Deliveries are applied only while the slot still owns the asset
    and, when a generation is passed, only while that generation is current.
    """

    def __init__(self, sink: SeriesSink | None = None, *, index: int = 0) -> None:
        self.index = index
        self.sink = sink if sink is not None else RecordingSink(index)
        self._lock = threading.Lock()
        self._owned_id: str | None = None
        self._generation = 0
        self.applied = 0
        self.dropped = 0

    @property
    def owned_id(self) -> str | None:
        return self._owned_id

    @property
    def generation(self) -> int:
        return self._generation

    def ticket(self) -> tuple[str | None, int]:
        with self._lock:
            return self._owned_id, self._generation

    def assign(self, asset_id: str) -> int:
        with self._lock:
            self._owned_id = asset_id
            self._generation += 1
            self.sink.show_loading(asset_id)
            return self._generation

    def _is_current(self, asset_id: str, generation: int | None) -> bool:
        if self._owned_id != asset_id:
            return False
        return generation is None or generation == self._generation

    def deliver(self, asset_id: str, series: Series, generation: int | None = None) -> bool:
        with self._lock:
            if not self._is_current(asset_id, generation):
                self.dropped += 1
                return False
            self.sink.show_series(asset_id, series)
            self.applied += 1
            return True

    def deliver_empty(self, asset_id: str, generation: int | None = None) -> bool:
        with self._lock:
            if not self._is_current(asset_id, generation):
                self.dropped += 1
                return False
            self.sink.show_empty(asset_id)
            self.applied += 1
            return True

    def view(self) -> SlotView:
        view = getattr(self.sink, "view", None)
        if isinstance(view, SlotView):
            return view.model_copy(update={"generation": self._generation})
        return SlotView(
            index=self.index,
            asset_id=self._owned_id,
            state="UNBOUND" if self._owned_id is None else "BOUND",
            generation=self._generation,
        )
