from __future__ import annotations

import threading
import time
from functools import partial
from typing import Callable

from coinboard.schemas.series import Series, SeriesWindow
from coinboard.services.dispatch import run_inline
from coinboard.services.series_cache import SeriesCache
from coinboard.services.slot import SlotController


class FetchRequest:
    """In-flight marker for one asset id.

    status: SCHEDULED -> ISSUED -> RESOLVED | TIMED_OUT, or SCHEDULED | ISSUED -> CANCELLED.
    """

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        self.status = "SCHEDULED"
        self.attachments: list[tuple[SlotController, int]] = []
        self.created_at = time.time()
        self.timer = None
        self.watchdog = None

    def attach(self, slot: SlotController, generation: int) -> None:
        for attached, attached_gen in self.attachments:
            if attached is slot and attached_gen == generation:
                return
        self.attachments.append((slot, generation))


class FetchCoordinator:
    """Cache-first, de-duplicated, staggered series fetching for slots."""

    def __init__(
        self,
        cache: SeriesCache,
        gateway,
        *,
        stagger_sec: float = 1.0,
        fetch_timeout_sec: float = 10.0,
        timer_factory: Callable[..., object] = threading.Timer,
        dispatch: Callable[[Callable[[], object]], None] | None = None,
        window: SeriesWindow | None = None,
    ) -> None:
        self.cache = cache
        self.gateway = gateway
        self.stagger_sec = stagger_sec
        self.fetch_timeout_sec = fetch_timeout_sec
        self._timer_factory = timer_factory
        self._dispatch = dispatch if dispatch is not None else run_inline
        self.window = window if window is not None else SeriesWindow.last_day()
        self._lock = threading.Lock()
        self._inflight: dict[str, FetchRequest] = {}
        self._metrics = {
            "cache_hits": 0,
            "deduplicated": 0,
            "scheduled": 0,
            "issued": 0,
            "cancelled": 0,
            "resolved": 0,
            "empty": 0,
            "timeouts": 0,
            "late_responses": 0,
        }

    def _inc(self, key: str, value: int = 1) -> None:
        self._metrics[key] = self._metrics.get(key, 0) + value

    def _start_timer(self, delay: float, fn: Callable, request: FetchRequest):
        timer = self._timer_factory(delay, fn, args=(request,))
        timer.daemon = True
        return timer

    def ensure(self, asset_id: str, slot: SlotController) -> str:
        _, generation = slot.ticket()

        with self._lock:
            cached = self.cache.get(asset_id)
            if cached:
                self._inc("cache_hits")
                outcome = "cached"
            else:
                request = self._inflight.get(asset_id)
                if request is not None:
                    request.attach(slot, generation)
                    self._inc("deduplicated")
                    return "attached"

                request = FetchRequest(asset_id)
                request.attach(slot, generation)
                request.timer = self._start_timer(self.stagger_sec, self._issue, request)
                self._inflight[asset_id] = request
                self._inc("scheduled")
                outcome = "scheduled"

        if outcome == "cached":
            self._dispatch(partial(slot.deliver, asset_id, cached, generation))
            return outcome

        request.timer.start()
        print(
            f"[SERIES][fetch_scheduled] asset_id={asset_id} stagger_sec={self.stagger_sec}",
            flush=True,
        )
        return outcome

    def detach(self, slot: SlotController) -> int:
        """Drop attachments the slot recorded under an older generation.

        A request that was never issued and has nothing left attached is
        cancelled before it reaches the network. Returns the number of
        requests cancelled.
        """
        _, generation = slot.ticket()
        cancelled: list[FetchRequest] = []

        with self._lock:
            for asset_id, request in list(self._inflight.items()):
                if not request.attachments:
                    continue
                request.attachments = [
                    (s, g) for s, g in request.attachments if s is not slot or g == generation
                ]
                if request.status == "SCHEDULED" and not request.attachments:
                    request.status = "CANCELLED"
                    del self._inflight[asset_id]
                    cancelled.append(request)
                    self._inc("cancelled")

        for request in cancelled:
            request.timer.cancel()
            print(f"[SERIES][fetch_cancelled] asset_id={request.asset_id} reason=detached", flush=True)
        return len(cancelled)

    def cancel(self, asset_id: str) -> bool:
        """Drop a request that has not been issued yet. Issued requests run to completion."""
        with self._lock:
            request = self._inflight.get(asset_id)
            if request is None or request.status != "SCHEDULED":
                return False
            request.status = "CANCELLED"
            del self._inflight[asset_id]
            attachments = list(request.attachments)
            self._inc("cancelled")

        request.timer.cancel()
        print(f"[SERIES][fetch_cancelled] asset_id={asset_id} reason=cancel", flush=True)
        for slot, generation in attachments:
            self._dispatch(partial(slot.deliver_empty, asset_id, generation))
        return True

    def _issue(self, request: FetchRequest) -> None:
        with self._lock:
            if request.status != "SCHEDULED" or self._inflight.get(request.asset_id) is not request:
                return
            request.status = "ISSUED"
            request.watchdog = self._start_timer(self.fetch_timeout_sec, self._expire, request)
            self._inc("issued")
        request.watchdog.start()

        print(f"[SERIES][fetch_issued] asset_id={request.asset_id}", flush=True)
        try:
            series = self.gateway.fetch_series(request.asset_id, self.window)
        except Exception as exc:
            print(f"[SERIES][fetch_error] asset_id={request.asset_id} error={exc}", flush=True)
            series = None
        self._resolve(request, series)

    def _resolve(self, request: FetchRequest, series: Series | None) -> None:
        asset_id = request.asset_id
        if series:
            self.cache.put(asset_id, series)
            # another response may have won the first write
            series = self.cache.get(asset_id) or series

        with self._lock:
            if request.status != "ISSUED":
                self._inc("late_responses")
                late = True
            else:
                late = False
                request.status = "RESOLVED"
                if self._inflight.get(asset_id) is request:
                    del self._inflight[asset_id]
                attachments = list(request.attachments)
                self._inc("resolved" if series else "empty")

        if late:
            print(
                f"[SERIES][late_response] asset_id={asset_id} points={len(series or ())} delivered=0",
                flush=True,
            )
            return

        if request.watchdog is not None:
            request.watchdog.cancel()

        print(
            f"[SERIES][fetch_resolved] asset_id={asset_id} points={len(series or ())} "
            f"slots={len(attachments)}",
            flush=True,
        )
        for slot, generation in attachments:
            if series:
                self._dispatch(partial(slot.deliver, asset_id, series, generation))
            else:
                self._dispatch(partial(slot.deliver_empty, asset_id, generation))

    def _expire(self, request: FetchRequest) -> None:
        with self._lock:
            if request.status != "ISSUED":
                return
            request.status = "TIMED_OUT"
            if self._inflight.get(request.asset_id) is request:
                del self._inflight[request.asset_id]
            attachments = list(request.attachments)
            self._inc("timeouts")

        print(
            f"[SERIES][fetch_timeout] asset_id={request.asset_id} "
            f"timeout_sec={self.fetch_timeout_sec} slots={len(attachments)}",
            flush=True,
        )
        for slot, generation in attachments:
            self._dispatch(partial(slot.deliver_empty, request.asset_id, generation))

    def in_flight(self) -> list[str]:
        with self._lock:
            return list(self._inflight)

    def shutdown(self) -> None:
        """Cancel every open request. Issued requests still warm the cache but deliver nothing."""
        with self._lock:
            requests = list(self._inflight.values())
            self._inflight.clear()
            for request in requests:
                if request.status in ("SCHEDULED", "ISSUED"):
                    request.status = "CANCELLED"
                    self._inc("cancelled")

        for request in requests:
            if request.timer is not None:
                request.timer.cancel()
            if request.watchdog is not None:
                request.watchdog.cancel()

    def metrics(self) -> dict[str, int]:
        with self._lock:
            in_flight = len(self._inflight)
            merged = dict(self._metrics)
        return {
            "cached_series": len(self.cache),
            "in_flight": in_flight,
            **merged,
        }
