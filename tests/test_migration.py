import json
import tempfile
import unittest
from pathlib import Path

from aural_store.migration import cleanup_legacy, is_migration_completed, migrate_from_legacy
from aural_store.models import TopTag
from aural_store.persistence import StorePersistence
from aural_store.storage import BlobStorage
from aural_store.store import AuralStore

LEGACY_KEY = "aural-central-database"
FLAG = "aural-migration-v2-completed"

LEGACY = {
    "tracks": [
        {
            "id": "a",
            "title": "One",
            "url": "data:a",
            "duration": 12,
            "user": {"id": "u9", "username": "old", "totalLikes": 50, "totalUploads": 2},
            "tags": None,
            "likes": 77,
            "createdAt": "2024-01-01T00:00:00.000Z",
            "comments": [
                {
                    "id": "c1",
                    "content": "embedded",
                    "user": {"id": "u2", "username": "fan"},
                    "trackId": "a",
                    "createdAt": "2024-01-02T00:00:00.000Z",
                }
            ],
        },
        {"id": "b", "title": "Two", "url": "data:b", "duration": 5, "userId": "u3", "tags": ["Calm"]},
        {"id": "c", "title": "Three", "url": "data:c", "duration": 7},
    ],
    "users": [{"id": "u9", "username": "old", "totalLikes": 50, "totalUploads": 2}],
    "comments": [
        {"id": "c1", "trackId": "a", "content": "flat duplicate"},
        {"id": "c2", "trackId": "b", "content": "flat"},
        {"id": "c3", "trackId": "gone", "content": "orphan"},
    ],
    "reports": [{"id": "r1", "type": "track", "targetId": "b", "reporterId": "u2"}],
    "likes": [{"trackId": "a", "userIds": ["u1", "u2"]}, {"trackId": "gone", "userIds": ["u1"]}],
    "bookmarks": [{"trackId": "b", "userIds": ["u1"]}],
}


class TestMigration(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = BlobStorage(Path(self._tmp.name) / "store.sqlite3")
        self.store = AuralStore(StorePersistence(self.storage, "current"))

    def tearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    def _migrate(self) -> bool:
        return migrate_from_legacy(self.store, self.storage, LEGACY_KEY, FLAG)

    def test_converts_legacy_blob(self) -> None:
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self.assertTrue(self._migrate())

        state = self.store.state
        self.assertEqual(list(state.tracks), ["a", "b", "c"])
        self.assertEqual(state.tracks["a"].owner_id, "u9")
        self.assertEqual(state.tracks["b"].owner_id, "u3")
        self.assertEqual(state.tracks["c"].owner_id, "unknown")
        self.assertEqual(state.tracks["a"].tags, [])
        self.assertEqual(state.tracks["a"].likes, 2)

        self.assertEqual(sorted(state.comments), ["c1", "c2"])
        self.assertEqual(state.comments["c1"].content, "embedded")
        self.assertEqual([c.id for c in self.store.get_track_comments("a")], ["c1"])

        self.assertNotIn("gone", state.likes)
        self.assertTrue(self.store.get_track_by_id("b", "u1").is_bookmarked)
        self.assertEqual(self.store.get_top_tags(), [TopTag("calm", 1)])
        self.assertIsNotNone(self.store.get_report_by_id("r1"))

        profile = self.store.get_user_by_id("u9")
        self.assertEqual(profile.total_uploads, 1)
        self.assertEqual(profile.total_likes, 2)
        self.assertEqual(self.store.check_consistency(), [])

        self.assertTrue(is_migration_completed(self.storage, FLAG))
        self.assertIsNotNone(self.storage.get_blob(LEGACY_KEY))

        reloaded = AuralStore(StorePersistence(self.storage, "current"))
        reloaded.load()
        self.assertEqual(len(reloaded.get_all_tracks()), 3)

    def test_second_run_changes_nothing(self) -> None:
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self.assertTrue(self._migrate())
        self.store.toggle_like("b", "u5")
        snapshot = self.storage.get_blob("current")
        self.assertFalse(self._migrate())
        self.assertEqual(self.storage.get_blob("current"), snapshot)
        self.assertEqual(len(self.store.get_all_tracks()), 3)

    def test_skipped_when_store_already_has_tracks(self) -> None:
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self.store.add_track({"id": "z", "title": "Current", "url": "data:z", "duration": 1})
        self.assertFalse(self._migrate())
        self.assertEqual([view.id for view in self.store.get_all_tracks()], ["z"])
        self.assertFalse(is_migration_completed(self.storage, FLAG))

    def test_marker_prevents_rerun_after_wipe(self) -> None:
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self._migrate()
        self.store.reset()
        self.assertFalse(self._migrate())
        self.assertEqual(self.store.get_all_tracks(), [])

    def test_no_legacy_blob(self) -> None:
        self.assertFalse(self._migrate())
        self.assertFalse(is_migration_completed(self.storage, FLAG))

    def test_unreadable_legacy_blob_is_logged(self) -> None:
        self.storage.set_blob(LEGACY_KEY, "[broken")
        with self.assertLogs("aural_store.migration", level="ERROR"):
            self.assertFalse(self._migrate())
        self.assertFalse(is_migration_completed(self.storage, FLAG))

    def test_existing_users_survive_migration(self) -> None:
        self.store.add_user({"id": "u9", "username": "renamed"})
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self.assertTrue(self._migrate())
        self.assertEqual(self.store.get_user_by_id("u9").username, "renamed")

    def test_cleanup_is_explicit(self) -> None:
        self.storage.set_blob(LEGACY_KEY, json.dumps(LEGACY))
        self._migrate()
        self.assertTrue(cleanup_legacy(self.storage, LEGACY_KEY))
        self.assertFalse(self.storage.has_blob(LEGACY_KEY))
        self.assertFalse(cleanup_legacy(self.storage, LEGACY_KEY))


if __name__ == "__main__":
    unittest.main()
