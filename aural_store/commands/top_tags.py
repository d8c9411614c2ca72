from __future__ import annotations

from typing import Optional

from ..store import AuralStore


def run(store: AuralStore, *, limit: Optional[int] = None) -> None:
    if limit is None:
        tags = store.get_top_tags()
    else:
        tags = store.recompute_top_tags(limit)
    if not tags:
        print("No tags recorded.")
        return
    width = max(len(item.tag) for item in tags)
    for item in tags:
        print(f"{item.tag.ljust(width)}  {item.count}")
