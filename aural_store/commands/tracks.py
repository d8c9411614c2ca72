from __future__ import annotations

import json
from typing import Optional

from ..store import AuralStore
from .output import table


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def run(
    store: AuralStore,
    *,
    viewer_id: Optional[str] = None,
    sort_by: str = "date",
    order: str = "desc",
    query: Optional[str] = None,
    json_output: bool = False,
) -> None:
    try:
        views = store.get_tracks_sorted(sort_by, order, viewer_id=viewer_id)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if query:
        matching = {view.id for view in store.search_tracks(query, viewer_id=viewer_id)}
        views = [view for view in views if view.id in matching]
    if json_output:
        print(json.dumps([view.to_record() for view in views], indent=2, ensure_ascii=False))
        return
    if not views:
        print("No tracks found.")
        return
    rows = []
    for view in views:
        track = view.track
        owner = track.owner.username if track.owner else (track.owner_id or "-")
        flags = ("L" if view.is_liked else "") + ("B" if view.is_bookmarked else "")
        rows.append(
            (
                track.id,
                track.title,
                owner,
                _format_duration(track.duration),
                track.likes,
                track.plays,
                view.comments_count,
                track.status,
                flags or "-",
            )
        )
    for line in table(("ID", "Title", "Owner", "Length", "Likes", "Plays", "Comments", "Status", "Viewer"), rows):
        print(line)
