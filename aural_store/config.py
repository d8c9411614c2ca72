from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator


class StorageSettings(BaseModel):
    path: Path = Path("./data/aural.sqlite3")
    current_key: str = "aural-central-database-v2"
    legacy_key: str = "aural-central-database"
    migration_flag: str = "aural-migration-v2-completed"
    seed_flag: str = "aural-seed-completed"

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("current_key", "legacy_key", "migration_flag", "seed_flag")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("storage keys must not be empty")
        return value


class StoreSettings(BaseModel):
    top_tags_limit: int = 20

    @field_validator("top_tags_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 0:
            raise ValueError("top_tags_limit must be >= 0")
        return value


class SeedSettings(BaseModel):
    enabled: bool = True


class Settings(BaseModel):
    storage: StorageSettings = StorageSettings()
    store: StoreSettings = StoreSettings()
    seed: SeedSettings = SeedSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit_path}")
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None


def load_settings(explicit_path: Optional[Path] = None) -> Settings:
    path = find_config(explicit_path)
    if path is None:
        return Settings()
    return Settings.load(path)
