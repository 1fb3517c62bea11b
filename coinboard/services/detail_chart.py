from __future__ import annotations

import threading
import time
from typing import Callable

from coinboard.errors import SeriesUnavailableError
from coinboard.schemas.series import ChartSegment, DetailChart, PricePoint, Series, SeriesWindow
from coinboard.services.series_cache import SeriesCache
from coinboard.services.slot import SlotController

_HOUR_SEC = 3600


def split_by_average(series: Series) -> tuple[float, list[ChartSegment]]:
    """Split a series into runs at or above / below its average price.

    When the series crosses the average, an interpolated point on the average
    line closes the current run and opens the next one.
    """
    if not series:
        raise ValueError("series must not be empty")

    average = sum(p.price for p in series) / len(series)
    segments: list[ChartSegment] = []
    current: list[PricePoint] = []
    current_above = series[0].price >= average

    for point in series:
        above = point.price >= average
        if above != current_above:
            if current:
                last = current[-1]
                ratio = (average - last.price) / (point.price - last.price)
                crossing = PricePoint(
                    ts=int(round(last.ts + ratio * (point.ts - last.ts))),
                    price=average,
                )
                current.append(crossing)
                segments.append(ChartSegment(above_average=current_above, points=current))
                current = [crossing]
            current_above = above
        current.append(point)

    segments.append(ChartSegment(above_average=current_above, points=current))
    return average, segments


class DetailChartService:
    """Series for the detail screen.

    The 24h range shares the list cache; the 1h range is an explicit window
    that is fetched fresh every time.
    """

    def __init__(self, cache: SeriesCache, gateway, clock: Callable[[], float] = time.time) -> None:
        self.cache = cache
        self.gateway = gateway
        self.clock = clock

    def window_for(self, time_range: str) -> SeriesWindow:
        if time_range == "24h":
            return SeriesWindow.last_day()
        if time_range == "1h":
            now = int(self.clock())
            return SeriesWindow.between(now - _HOUR_SEC, now)
        raise ValueError("INVALID_RANGE")

    def load(self, asset_id: str, time_range: str) -> Series | None:
        window = self.window_for(time_range)
        if window.is_last_day:
            cached = self.cache.get(asset_id)
            if cached:
                return cached

        series = self.gateway.fetch_series(asset_id, window)
        if series and window.is_last_day:
            self.cache.put(asset_id, series)
            series = self.cache.get(asset_id) or series
        print(
            f"[DETAIL][load] asset_id={asset_id} range={time_range} points={len(series or ())}",
            flush=True,
        )
        return series

    def chart(self, asset_id: str, time_range: str) -> DetailChart:
        series = self.load(asset_id, time_range)
        if not series:
            raise SeriesUnavailableError("SERIES_UNAVAILABLE")
        average, segments = split_by_average(series)
        return DetailChart(
            asset_id=asset_id,
            time_range=time_range,
            points=list(series),
            average=average,
            segments=segments,
        )


def _run_in_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True, name="detail-fetch").start()


class DetailController:
    """Detail screen for one asset; only the latest range selection is shown."""

    def __init__(
        self,
        asset_id: str,
        service: DetailChartService,
        slot: SlotController | None = None,
        runner: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self.asset_id = asset_id
        self.service = service
        self.slot = slot if slot is not None else SlotController()
        self.runner = runner if runner is not None else _run_in_thread
        self.time_range = "24h"

    def select_range(self, time_range: str) -> int:
        self.service.window_for(time_range)
        self.time_range = time_range
        generation = self.slot.assign(self.asset_id)

        def _load() -> None:
            try:
                series = self.service.load(self.asset_id, time_range)
            except Exception as exc:
                print(f"[DETAIL][load_error] asset_id={self.asset_id} error={exc}", flush=True)
                series = None
            if series:
                self.slot.deliver(self.asset_id, series, generation)
            else:
                self.slot.deliver_empty(self.asset_id, generation)

        self.runner(_load)
        return generation
