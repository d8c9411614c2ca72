from __future__ import annotations

from ..config import Settings
from ..migration import cleanup_legacy, is_migration_completed
from ..storage import BlobStorage


def run(storage: BlobStorage, settings: Settings, *, force: bool = False) -> None:
    storage_cfg = settings.storage
    if not force and not is_migration_completed(storage, storage_cfg.migration_flag):
        if storage.has_blob(storage_cfg.legacy_key):
            raise SystemExit("Legacy data has not been migrated yet; pass --force to delete it anyway")
    if cleanup_legacy(storage, storage_cfg.legacy_key):
        print(f"Removed legacy blob {storage_cfg.legacy_key}.")
    else:
        print("No legacy blob to remove.")
