from __future__ import annotations

from ..store import AuralStore


def run(store: AuralStore, *, keep_user: str | None = None, yes: bool = False) -> None:
    if not yes:
        answer = input("This deletes stored content. Continue? [y/N] ").strip().lower()
        if answer not in {"y", "yes"}:
            print("Aborted.")
            return
    if keep_user:
        store.purge_user_content(keep_user)
        print(f"Removed everything except content owned by {keep_user}.")
    else:
        store.reset()
        print("Store reset; demo data will not be re-created.")
