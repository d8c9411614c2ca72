import json
import tempfile
import unittest
from pathlib import Path

from aural_store.app import AuralApp
from aural_store.config import SeedSettings, Settings, StorageSettings, StoreSettings
from aural_store.storage import BlobStorage


class TestAppBootstrap(unittest.TestCase):
    def _settings(self, tmpdir: str, **kwargs) -> Settings:
        return Settings(storage=StorageSettings(path=Path(tmpdir) / "store.sqlite3"), **kwargs)

    def test_fresh_install_seeds_once(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = self._settings(tmpdir)
            app = AuralApp.create(settings)
            try:
                store = app.bootstrap()
                self.assertEqual(len(store.get_all_tracks()), 3)
                store.reset()
            finally:
                app.close()

            app = AuralApp.create(settings)
            try:
                store = app.bootstrap()
                self.assertEqual(store.get_all_tracks(), [])
            finally:
                app.close()

    def test_seeding_can_be_disabled(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            app = AuralApp.create(self._settings(tmpdir, seed=SeedSettings(enabled=False)))
            try:
                self.assertEqual(app.bootstrap().get_all_tracks(), [])
            finally:
                app.close()

    def test_legacy_data_is_migrated_instead_of_seeded(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = self._settings(tmpdir, store=StoreSettings(top_tags_limit=1))
            storage = BlobStorage(settings.storage.path)
            try:
                storage.set_blob(
                    settings.storage.legacy_key,
                    json.dumps(
                        {
                            "tracks": [
                                {"id": "old", "title": "Old", "url": "data:x", "duration": 4, "tags": ["A", "B"]}
                            ],
                            "likes": [{"trackId": "old", "userIds": ["u1"]}],
                        }
                    ),
                )
            finally:
                storage.close()

            app = AuralApp.create(settings)
            try:
                store = app.bootstrap()
                self.assertEqual([view.id for view in store.get_all_tracks()], ["old"])
                self.assertEqual(store.get_track_by_id("old", "u1").likes, 1)
                self.assertEqual(len(store.get_top_tags()), 1)
                self.assertTrue(app.storage.get_flag(settings.storage.seed_flag))
            finally:
                app.close()


if __name__ == "__main__":
    unittest.main()
