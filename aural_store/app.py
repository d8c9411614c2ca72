from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Settings
from .migration import migrate_from_legacy
from .persistence import StorePersistence
from .seed import seed_demo_data
from .storage import BlobStorage
from .store import AuralStore

logger = logging.getLogger(__name__)


@dataclass
class AuralApp:
    settings: Settings
    storage: BlobStorage
    persistence: StorePersistence
    store: AuralStore

    @classmethod
    def create(cls, settings: Settings) -> "AuralApp":
        storage = BlobStorage(settings.storage.path)
        persistence = StorePersistence(storage, settings.storage.current_key)
        store = AuralStore(persistence, top_tags_limit=settings.store.top_tags_limit)
        return cls(settings=settings, storage=storage, persistence=persistence, store=store)

    def bootstrap(self) -> AuralStore:
        """Load, migrate, then seed, in that order."""

        storage_cfg = self.settings.storage
        self.store.load()
        migrate_from_legacy(self.store, self.storage, storage_cfg.legacy_key, storage_cfg.migration_flag)
        if self.settings.seed.enabled:
            seed_demo_data(self.store, self.storage, storage_cfg.seed_flag)
        else:
            logger.debug("Demo seeding disabled")
        logger.info("Store ready at %s", storage_cfg.path)
        return self.store

    def close(self) -> None:
        self.storage.close()
