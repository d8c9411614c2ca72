from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from ..app import AuralApp
from ..config import Settings
from ..persistence import loads_state
from ..errors import SerializationError
from .output import ERROR, OK, WARNING, check, flag


@dataclass(slots=True)
class DoctorReport:
    ok: bool
    checks: list[str]


def run(settings: Settings) -> DoctorReport:
    """Inspect storage, flags and index consistency without changing anything."""

    checks: list[str] = []
    ok = True
    storage_cfg = settings.storage

    db_path = Path(storage_cfg.path)
    if db_path.exists():
        checks.append(check("Storage", OK, str(db_path)))
    else:
        checks.append(check("Storage", WARNING, f"{db_path} does not exist yet"))

    app = AuralApp.create(settings)
    try:
        try:
            text = app.storage.get_blob(storage_cfg.current_key)
        except sqlite3.Error as exc:
            text = None
            ok = False
            checks.append(check("Store blob", ERROR, str(exc)))
        else:
            if text is None:
                checks.append(check("Store blob", WARNING, f"no data under {storage_cfg.current_key}"))
            else:
                try:
                    loads_state(text)
                except SerializationError as exc:
                    ok = False
                    checks.append(check("Store blob", ERROR, str(exc)))
                else:
                    checks.append(check("Store blob", OK, f"{len(text)} bytes"))

        legacy = app.storage.get_blob(storage_cfg.legacy_key)
        if legacy is None:
            checks.append(check("Legacy blob", OK, "absent"))
        else:
            try:
                json.loads(legacy)
            except json.JSONDecodeError:
                checks.append(check("Legacy blob", WARNING, "present but not valid JSON"))
            else:
                checks.append(
                    check("Legacy blob", WARNING, "still present (run `aural-store cleanup-legacy`)")
                    if app.storage.get_flag(storage_cfg.migration_flag)
                    else check("Legacy blob", WARNING, "present and not migrated yet")
                )

        for label, key in (("Migration", storage_cfg.migration_flag), ("Seed", storage_cfg.seed_flag)):
            checks.append(flag(label, app.storage.get_flag(key)))

        app.store.load()
        problems = app.store.check_consistency()
        if problems:
            ok = False
            for problem in problems[:20]:
                checks.append(check("Consistency", ERROR, problem))
            if len(problems) > 20:
                checks.append(check("Consistency", ERROR, f"{len(problems) - 20} more problem(s)"))
        else:
            stats = app.store.get_stats()
            checks.append(
                check(
                    "Consistency",
                    OK,
                    f"{stats['totalTracks']} track(s), {stats['totalComments']} comment(s), "
                    f"{stats['totalLikes']} like(s)",
                )
            )
    finally:
        app.close()

    return DoctorReport(ok=ok, checks=checks)
