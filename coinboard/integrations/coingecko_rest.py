from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class CoinGeckoRestClient:
    """Minimal CoinGecko REST client for market listings and price charts."""

    _DEFAULT_BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        vs_currency: str = "usd",
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        if not vs_currency:
            raise ValueError("vs_currency must not be empty")

        self.vs_currency = vs_currency
        self.base_url = (base_url or self._DEFAULT_BASE_URL).rstrip("/")
        self.session = session or requests
        self.timeout = timeout

    def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        response = self.session.get(
            f"{self.base_url}{path}",
            headers={"accept": "application/json"},
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def list_markets(self) -> List[Dict[str, Any]]:
        return self._get_json("/coins/markets", {"vs_currency": self.vs_currency})

    def get_market_chart(self, asset_id: str, days: int = 1) -> Dict[str, Any]:
        return self._get_json(
            f"/coins/{asset_id}/market_chart",
            {"vs_currency": self.vs_currency, "days": days},
        )

    def get_market_chart_range(self, asset_id: str, start: int, end: int) -> Dict[str, Any]:
        return self._get_json(
            f"/coins/{asset_id}/market_chart/range",
            {"vs_currency": self.vs_currency, "from": int(start), "to": int(end)},
        )
