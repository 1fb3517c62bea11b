from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Iterable

from coinboard.errors import AssetListUnavailableError
from coinboard.schemas.asset import Asset


class SortKey(str, Enum):
    RANK = "rank"
    MARKET_CAP = "market_cap"
    PRICE = "price"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class FilterMode(str, Enum):
    ALL = "all"
    FAVORITES = "favorites"


def _sort_value(asset: Asset, key: SortKey) -> float:
    if key is SortKey.RANK:
        return asset.market_cap_rank
    if key is SortKey.MARKET_CAP:
        # unknown cap sorts as zero: bottom of ascending, top of descending
        return asset.market_cap or 0
    return asset.current_price


def matches_search(asset: Asset, search_text: str) -> bool:
    needle = search_text.strip().lower()
    if not needle:
        return True
    return needle in asset.name.lower() or needle in asset.symbol.lower()


def project(
    assets: Iterable[Asset],
    filter_mode: FilterMode,
    search_text: str,
    sort_key: SortKey,
    sort_direction: SortDirection,
    favorite_ids: Iterable[str] = frozenset(),
) -> list[Asset]:
    """Visible rows for the given list state. Pure; ties keep input order."""
    filter_mode = FilterMode(filter_mode)
    sort_key = SortKey(sort_key)
    sort_direction = SortDirection(sort_direction)

    rows = list(assets)
    if filter_mode is FilterMode.FAVORITES:
        favorites = set(favorite_ids)
        rows = [a for a in rows if a.id in favorites]
    if search_text:
        rows = [a for a in rows if matches_search(a, search_text)]
    return sorted(
        rows,
        key=lambda a: _sort_value(a, sort_key),
        reverse=sort_direction is SortDirection.DESC,
    )


class SeriesListController:
    """Asset collection plus the sort, filter and search state of the list."""

    def __init__(self, favorites) -> None:
        self.favorites = favorites
        self._lock = threading.Lock()
        self.assets: list[Asset] = []
        self.sort_key = SortKey.RANK
        self.directions = {key: SortDirection.ASC for key in SortKey}
        self.filter_mode = FilterMode.ALL
        self.search_text = ""
        self.last_error: str | None = None
        self.refreshed_at: float | None = None

    @property
    def sort_direction(self) -> SortDirection:
        return self.directions[self.sort_key]

    def set_assets(self, assets: Iterable[Asset]) -> None:
        with self._lock:
            self.assets = list(assets)
            self.last_error = None
            self.refreshed_at = time.time()

    def refresh(self, gateway) -> list[Asset]:
        assets = gateway.list_assets()
        if assets is None:
            with self._lock:
                self.last_error = "ASSET_LIST_UNAVAILABLE"
            print(f"[LIST][refresh_failed] kept={len(self.assets)}", flush=True)
            raise AssetListUnavailableError("ASSET_LIST_UNAVAILABLE")

        self.set_assets(assets)
        print(f"[LIST][refresh] assets={len(assets)}", flush=True)
        return self.visible()

    def toggle_sort(self, key: SortKey) -> SortDirection:
        key = SortKey(key)
        with self._lock:
            if key is self.sort_key:
                self.directions[key] = self.directions[key].flipped()
            else:
                self.sort_key = key
            return self.directions[key]

    def set_filter(self, mode: FilterMode) -> None:
        mode = FilterMode(mode)
        with self._lock:
            self.filter_mode = mode

    def set_search(self, text: str | None) -> None:
        with self._lock:
            self.search_text = text or ""

    def visible(
        self,
        filter_mode: FilterMode | None = None,
        search_text: str | None = None,
    ) -> list[Asset]:
        """Current projection. Overrides apply to this call only."""
        if filter_mode is not None:
            filter_mode = FilterMode(filter_mode)
        with self._lock:
            assets = list(self.assets)
            state = (
                filter_mode if filter_mode is not None else self.filter_mode,
                search_text if search_text is not None else self.search_text,
                self.sort_key,
                self.sort_direction,
            )
        favorite_ids = self.favorites.all_favorite_ids() if self.favorites is not None else set()
        return project(assets, *state, favorite_ids=favorite_ids)

    def state(self) -> dict:
        with self._lock:
            return {
                "sort_key": self.sort_key.value,
                "sort_direction": self.sort_direction.value,
                "directions": {k.value: d.value for k, d in self.directions.items()},
                "filter": self.filter_mode.value,
                "search": self.search_text,
                "last_error": self.last_error,
                "total": len(self.assets),
                "refreshed_at": self.refreshed_at,
            }
