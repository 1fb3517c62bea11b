from __future__ import annotations

import math
from typing import Any

from pydantic import ValidationError

from coinboard.schemas.asset import Asset
from coinboard.schemas.series import PricePoint, Series, SeriesWindow


def parse_prices(payload: Any) -> Series | None:
    """Turn a market_chart body into a series.

    Returns None when the body has no ``prices`` list. Entries that are not a
    numeric ``[ms, price]`` pair are skipped.
    """
    if not isinstance(payload, dict):
        return None
    prices = payload.get("prices")
    if not isinstance(prices, list):
        return None

    points: list[PricePoint] = []
    for item in prices:
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            continue
        ts_ms, price = item[0], item[1]
        if isinstance(ts_ms, bool) or isinstance(price, bool):
            continue
        if not isinstance(ts_ms, (int, float)) or not isinstance(price, (int, float)):
            continue
        if not math.isfinite(ts_ms) or not math.isfinite(price) or price < 0:
            continue
        points.append(PricePoint(ts=int(ts_ms // 1000), price=float(price)))
    return tuple(points)


class MarketDataGateway:
    """Read-only access to the market API. Failures come back as None."""

    def __init__(self, rest_client) -> None:
        self.rest_client = rest_client
        self.list_calls = 0
        self.list_failures = 0
        self.series_calls = 0
        self.series_failures = 0

    def list_assets(self) -> list[Asset] | None:
        self.list_calls += 1
        try:
            raw = self.rest_client.list_markets()
        except Exception as exc:
            self.list_failures += 1
            print(f"[LIST][list_assets_error] error={exc}", flush=True)
            return None

        if not isinstance(raw, list):
            self.list_failures += 1
            print("[LIST][list_assets_error] error=body is not a list", flush=True)
            return None

        try:
            return [Asset.model_validate(item) for item in raw]
        except ValidationError as exc:
            self.list_failures += 1
            print(f"[LIST][list_assets_error] error={exc.error_count()} invalid fields", flush=True)
            return None

    def fetch_series(self, asset_id: str, window: SeriesWindow) -> Series | None:
        self.series_calls += 1
        try:
            if window.is_last_day:
                payload = self.rest_client.get_market_chart(asset_id, days=1)
            else:
                payload = self.rest_client.get_market_chart_range(asset_id, window.start, window.end)
        except Exception as exc:
            self.series_failures += 1
            print(f"[SERIES][fetch_error] asset_id={asset_id} error={exc}", flush=True)
            return None

        try:
            series = parse_prices(payload)
        except (ValueError, OverflowError) as exc:
            self.series_failures += 1
            print(f"[SERIES][parse_error] asset_id={asset_id} error={exc}", flush=True)
            return None
        if series is None:
            self.series_failures += 1
            print(f"[SERIES][parse_error] asset_id={asset_id}", flush=True)
        return series

    def metrics(self) -> dict[str, int]:
        return {
            "list_calls": self.list_calls,
            "list_failures": self.list_failures,
            "series_calls": self.series_calls,
            "series_failures": self.series_failures,
        }
