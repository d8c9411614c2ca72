import random
import tempfile
import unittest
from pathlib import Path

from aural_store.errors import StoreErrorKind
from aural_store.persistence import StorePersistence
from aural_store.storage import BlobStorage
from aural_store.store import AuralStore


class TestStoreIndexes(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = BlobStorage(Path(self._tmp.name) / "store.sqlite3")
        self.store = AuralStore(StorePersistence(self.storage, "current"))
        self.store.add_track({"id": "t1", "title": "Test", "url": "data:x", "duration": 10})

    def tearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    def test_like_and_bookmark_are_per_viewer(self) -> None:
        self.assertTrue(self.store.toggle_like("t1", "u1"))
        self.assertTrue(self.store.toggle_bookmark("t1", "u1"))

        mine = self.store.get_all_tracks("u1")[0]
        self.assertTrue(mine.is_liked)
        self.assertTrue(mine.is_bookmarked)
        self.assertEqual(mine.likes, 1)

        theirs = self.store.get_all_tracks("u2")[0]
        self.assertFalse(theirs.is_liked)
        self.assertFalse(theirs.is_bookmarked)
        self.assertEqual(theirs.likes, 1)

    def test_double_toggle_restores_state(self) -> None:
        self.store.toggle_like("t1", "u2")
        before = self.store.get_track_by_id("t1", "u1")
        self.store.toggle_like("t1", "u1")
        self.store.toggle_like("t1", "u1")
        after = self.store.get_track_by_id("t1", "u1")
        self.assertEqual(after.likes, before.likes)
        self.assertEqual(after.is_liked, before.is_liked)

    def test_counter_matches_index_after_random_toggles(self) -> None:
        self.store.add_track({"id": "t2", "title": "Other", "url": "data:y", "duration": 3})
        rng = random.Random(7)
        for _ in range(200):
            self.store.toggle_like(rng.choice(["t1", "t2"]), rng.choice(["u1", "u2", "u3", "u4"]))
            for track in self.store.state.tracks.values():
                self.assertEqual(track.likes, self.store.state.likes.count(track.id))
        self.assertEqual(self.store.check_consistency(), [])

    def test_toggles_on_unknown_targets_fail(self) -> None:
        for call in (
            lambda: self.store.toggle_like("nope", "u1"),
            lambda: self.store.toggle_bookmark("nope", "u1"),
            lambda: self.store.toggle_comment_like("nope", "u1"),
            lambda: self.store.increment_play("nope"),
        ):
            with self.assertLogs("aural_store.store", level="WARNING"):
                self.assertFalse(call())
            self.assertEqual(self.store.last_error, StoreErrorKind.NOT_FOUND)
        self.assertEqual(len(self.store.state.likes), 0)
        self.assertEqual(len(self.store.state.plays), 0)

    def test_play_counter_is_mirrored(self) -> None:
        self.store.increment_play("t1")
        self.store.increment_play("t1")
        self.assertEqual(self.store.get_play_count("t1"), 2)
        self.assertEqual(self.store.get_track_by_id("t1").plays, 2)
        self.assertEqual(self.store.get_stats()["totalPlays"], 2)

    def test_comment_likes(self) -> None:
        self.store.add_comment({"id": "c1", "trackId": "t1", "content": "hi"})
        self.store.toggle_comment_like("c1", "u1")
        self.store.toggle_comment_like("c1", "u2")
        self.assertTrue(self.store.is_comment_liked_by_user("c1", "u1"))
        self.assertEqual(self.store.get_comment_like_count("c1"), 2)
        view = self.store.get_comment_by_id("c1", "u3")
        self.assertEqual(view.likes, 2)
        self.assertFalse(view.is_liked)
        self.store.toggle_comment_like("c1", "u1")
        self.assertFalse(self.store.is_comment_liked_by_user("c1", "u1"))

    def test_liked_and_bookmarked_listings(self) -> None:
        self.store.add_track({"id": "t2", "title": "Other", "url": "data:y", "duration": 3})
        self.store.toggle_like("t2", "u1")
        self.store.toggle_bookmark("t1", "u1")
        self.assertEqual([view.id for view in self.store.get_user_liked_tracks("u1")], ["t2"])
        self.assertEqual([view.id for view in self.store.get_user_bookmarked_tracks("u1")], ["t1"])
        self.assertTrue(self.store.get_user_liked_tracks("u1")[0].is_liked)


if __name__ == "__main__":
    unittest.main()
