import tempfile
import unittest
from pathlib import Path

from aural_store.models import TopTag
from aural_store.persistence import StorePersistence
from aural_store.storage import BlobStorage
from aural_store.store import AuralStore


class TestTopTags(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = BlobStorage(Path(self._tmp.name) / "store.sqlite3")
        self.store = AuralStore(StorePersistence(self.storage, "current"), top_tags_limit=20)

    def tearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    def _add(self, track_id: str, tags: list[str]) -> None:
        self.assertTrue(
            self.store.add_track({"id": track_id, "title": track_id, "url": "data:x", "duration": 1, "tags": tags})
        )

    def test_normalization_collapses_case_and_whitespace(self) -> None:
        self._add("A", ["ASMR", "Female"])
        self._add("B", ["asmr", " Female "])
        self.assertEqual(self.store.recompute_top_tags(10), [TopTag("asmr", 2), TopTag("female", 2)])

    def test_limit_bounds_and_order(self) -> None:
        for idx in range(6):
            self._add(f"t{idx}", [f"tag{n}" for n in range(idx + 1)])
        tags = self.store.recompute_top_tags(3)
        self.assertEqual(len(tags), 3)
        self.assertEqual([tag.tag for tag in tags], ["tag0", "tag1", "tag2"])
        counts = [tag.count for tag in tags]
        self.assertEqual(counts, sorted(counts, reverse=True))
        self.assertEqual(self.store.get_top_tags(), tags)

    def test_cache_follows_add_update_and_delete(self) -> None:
        self._add("A", ["Calm"])
        self.assertEqual(self.store.get_top_tags(), [TopTag("calm", 1)])
        self.store.update_track("A", {"tags": ["Loud"]})
        self.assertEqual(self.store.get_top_tags(), [TopTag("loud", 1)])
        self.store.delete_track("A")
        self.assertEqual(self.store.get_top_tags(), [])

    def test_returned_list_is_a_copy(self) -> None:
        self._add("A", ["Calm"])
        self.store.get_top_tags().clear()
        self.assertEqual(len(self.store.get_top_tags()), 1)


if __name__ == "__main__":
    unittest.main()
