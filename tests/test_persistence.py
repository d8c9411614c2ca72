import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from aural_store.errors import SerializationError, StoreErrorKind
from aural_store.persistence import StorePersistence, dumps_state, encode_state
from aural_store.storage import BlobStorage
from aural_store.store import AuralStore


def _comparable(store: AuralStore) -> dict:
    payload = encode_state(store.state)
    payload.pop("timestamp")
    return payload


class TestPersistence(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = BlobStorage(Path(self._tmp.name) / "store.sqlite3")
        self.store = AuralStore(StorePersistence(self.storage, "current"))

    def tearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    def _populate(self) -> None:
        owner = {"id": "u1", "username": "one", "createdAt": "2024-01-01T00:00:00Z"}
        self.store.add_track(
            {"id": "t1", "title": "First", "url": "data:a", "duration": 10, "owner": owner, "tags": ["Calm"]}
        )
        self.store.add_track({"id": "t2", "title": "Second", "url": "data:b", "duration": 20.5})
        self.store.add_user({"id": "u2", "username": "two"})
        self.store.add_comment({"id": "c1", "trackId": "t1", "content": "nice", "author": owner})
        self.store.toggle_like("t1", "u2")
        self.store.toggle_like("t1", "u1")
        self.store.toggle_bookmark("t2", "u2")
        self.store.toggle_comment_like("c1", "u2")
        self.store.increment_play("t1")
        self.store.follow("u2", "u1")
        self.store.add_notification("u1", "NEW_FOLLOWER", {"followerId": "u2"})
        self.store.add_report({"id": "r1", "type": "track", "targetId": "t2", "reporterId": "u2"})
        self.store.add_pending_upload("needs review", temp_track_id="t2", user_id="u1")

    def test_round_trip_into_fresh_instance(self) -> None:
        self._populate()
        fresh = AuralStore(StorePersistence(self.storage, "current"))
        fresh.load()
        self.assertEqual(_comparable(fresh), _comparable(self.store))
        self.assertEqual(fresh.get_track_by_id("t1", "u2").likes, 2)
        self.assertTrue(fresh.get_track_by_id("t1", "u2").comments[0].is_liked)
        self.assertEqual(fresh.get_play_count("t1"), 1)
        self.assertTrue(fresh.is_following("u2", "u1"))

    def test_missing_blob_loads_empty(self) -> None:
        with self.assertLogs("aural_store.persistence", level="INFO") as logs:
            self.store.load()
        self.assertEqual(self.store.get_all_tracks(), [])
        self.assertIn("starting empty", "\n".join(logs.output))

    def test_corrupt_blob_resets_to_empty_and_logs(self) -> None:
        self.storage.set_blob("current", "{not json")
        with self.assertLogs("aural_store.persistence", level="ERROR"):
            self.store.load()
        self.assertEqual(self.store.get_all_tracks(), [])
        self.assertEqual(self.store.last_error, StoreErrorKind.SERIALIZATION_FAILURE)

    def test_malformed_record_resets_to_empty(self) -> None:
        self.storage.set_blob("current", '{"tracks": [{"title": "no id"}]}')
        with self.assertLogs("aural_store.persistence", level="ERROR"):
            self.store.load()
        self.assertEqual(self.store.get_stats()["totalTracks"], 0)

    def test_failed_save_keeps_previous_blob(self) -> None:
        self._populate()
        before = self.storage.get_blob("current")
        failure = sqlite3.OperationalError("disk I/O error")
        with mock.patch.object(self.storage, "set_blob", side_effect=failure):
            with self.assertLogs("aural_store.persistence", level="ERROR"):
                self.assertTrue(self.store.toggle_like("t2", "u1"))
        self.assertEqual(self.store.last_error, StoreErrorKind.SERIALIZATION_FAILURE)
        self.assertEqual(self.storage.get_blob("current"), before)

        self.assertTrue(self.store.increment_play("t2"))
        self.assertIsNone(self.store.last_error)
        fresh = AuralStore(StorePersistence(self.storage, "current"))
        fresh.load()
        self.assertEqual(fresh.get_track_by_id("t2").likes, 1)

    def test_unencodable_state_is_logged_not_raised(self) -> None:
        self._populate()
        before = self.storage.get_blob("current")
        self.store.state.tracks["t1"].created_at = "2024-01-01"
        persistence = StorePersistence(self.storage, "current")
        with self.assertLogs("aural_store.persistence", level="ERROR"):
            self.assertFalse(persistence.save(self.store.state))
        self.assertEqual(persistence.last_error, StoreErrorKind.SERIALIZATION_FAILURE)
        self.assertEqual(self.storage.get_blob("current"), before)
        with self.assertRaises(SerializationError):
            dumps_state(self.store.state)

    def test_duplicate_ids_in_blob_keep_first(self) -> None:
        self.storage.set_blob(
            "current",
            '{"tracks": ['
            '{"id": "t1", "title": "First", "url": "data:a", "duration": 1},'
            '{"id": "t1", "title": "Shadow", "url": "data:a", "duration": 1}]}',
        )
        self.store.load()
        self.assertEqual([view.track.title for view in self.store.get_all_tracks()], ["First"])


if __name__ == "__main__":
    unittest.main()
