import json
import tempfile
import unittest
from pathlib import Path

from coinboard.services.favorites import FavoritesStore


class FavoritesStoreTest(unittest.TestCase):
    def test_add_remove_and_toggle(self):
        store = FavoritesStore()

        store.add("btc")
        store.add("btc")
        self.assertTrue(store.is_favorite("btc"))
        self.assertEqual(store.all_favorite_ids(), {"btc"})

        self.assertTrue(store.toggle("eth"))
        self.assertFalse(store.toggle("btc"))
        store.remove("missing")

        self.assertEqual(store.all_favorite_ids(), {"eth"})

    def test_returned_ids_are_a_copy(self):
        store = FavoritesStore()
        store.add("btc")

        ids = store.all_favorite_ids()
        ids.add("eth")

        self.assertFalse(store.is_favorite("eth"))

    def test_persists_to_json_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "state" / "favorites.json"
            store = FavoritesStore(path)
            store.add("sol")
            store.add("btc")

            self.assertEqual(json.loads(path.read_text(encoding="utf-8")), ["btc", "sol"])
            reloaded = FavoritesStore(path)

        self.assertEqual(reloaded.all_favorite_ids(), {"btc", "sol"})

    def test_invalid_file_starts_empty(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "favorites.json"
            path.write_text("{not json", encoding="utf-8")

            store = FavoritesStore(path)

        self.assertEqual(store.all_favorite_ids(), set())


if __name__ == "__main__":
    unittest.main()
