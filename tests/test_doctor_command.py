import json
import tempfile
import unittest
from pathlib import Path

from aural_store.app import AuralApp
from aural_store.commands.doctor import run
from aural_store.config import Settings, StorageSettings
from aural_store.storage import BlobStorage


class TestDoctorCommand(unittest.TestCase):
    def test_healthy_seeded_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = Settings(storage=StorageSettings(path=Path(tmpdir) / "store.sqlite3"))
            app = AuralApp.create(settings)
            try:
                app.bootstrap()
            finally:
                app.close()

            report = run(settings)
            self.assertTrue(report.ok)
            joined = "\n".join(report.checks)
            self.assertIn("Store blob: OK", joined)
            self.assertIn("Seed: DONE", joined)
            self.assertIn("Migration: PENDING", joined)
            self.assertIn("Consistency: OK (3 track(s), 5 comment(s), 0 like(s))", joined)

    def test_reports_unreadable_blob(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "store.sqlite3"
            storage = BlobStorage(path)
            try:
                storage.set_blob("aural-central-database-v2", "{oops")
            finally:
                storage.close()

            settings = Settings(storage=StorageSettings(path=path))
            with self.assertLogs("aural_store.persistence", level="ERROR"):
                report = run(settings)
            self.assertFalse(report.ok)
            self.assertIn("Store blob: ERROR", "\n".join(report.checks))

    def test_warns_about_leftover_legacy_blob(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "store.sqlite3"
            storage = BlobStorage(path)
            try:
                storage.set_blob("aural-central-database", json.dumps({"tracks": []}))
            finally:
                storage.close()

            report = run(Settings(storage=StorageSettings(path=path)))
            joined = "\n".join(report.checks)
            self.assertIn("Legacy blob: WARNING (present and not migrated yet)", joined)
            self.assertIn("Store blob: WARNING", joined)

    def test_reports_counter_drift(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "store.sqlite3"
            storage = BlobStorage(path)
            try:
                storage.set_blob(
                    "aural-central-database-v2",
                    json.dumps(
                        {
                            "tracks": [{"id": "t1", "title": "A", "url": "data:x", "duration": 1}],
                            "likes": [{"key": "t9", "values": ["u1"]}],
                        }
                    ),
                )
            finally:
                storage.close()

            report = run(Settings(storage=StorageSettings(path=path)))
            self.assertFalse(report.ok)
            self.assertIn("likes entry for unknown track t9", "\n".join(report.checks))


if __name__ == "__main__":
    unittest.main()
