from __future__ import annotations

import json
import threading
from pathlib import Path


class FavoritesStore:
    """Favorite asset ids, optionally persisted to a JSON file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._lock = threading.Lock()
        self._ids: set[str] = set()
        self._path = Path(path) if path else None
        self._load()

    def _load(self) -> None:
        if not self._path or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            print(f"[FAVORITES][load_skip] path={self._path} reason=invalid json", flush=True)
            return
        if isinstance(data, list):
            self._ids = {str(item) for item in data if item}

    def _save(self) -> None:
        if not self._path:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(sorted(self._ids)), encoding="utf-8")

    def is_favorite(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._ids

    def add(self, asset_id: str) -> None:
        with self._lock:
            if asset_id in self._ids:
                return
            self._ids.add(asset_id)
            self._save()

    def remove(self, asset_id: str) -> None:
        with self._lock:
            if asset_id not in self._ids:
                return
            self._ids.discard(asset_id)
            self._save()

    def toggle(self, asset_id: str) -> bool:
        """Flip membership; returns whether the asset is a favorite afterwards."""
        with self._lock:
            if asset_id in self._ids:
                self._ids.discard(asset_id)
                favorite = False
            else:
                self._ids.add(asset_id)
                favorite = True
            self._save()
            return favorite

    def all_favorite_ids(self) -> set[str]:
        with self._lock:
            return set(self._ids)
