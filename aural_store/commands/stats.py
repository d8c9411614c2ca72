from __future__ import annotations

import json

from ..store import AuralStore

LABELS = {
    "totalUsers": "Users",
    "totalTracks": "Tracks",
    "totalComments": "Comments",
    "totalLikes": "Likes",
    "totalBookmarks": "Bookmarks",
    "totalPlays": "Plays",
    "totalNotifications": "Notifications",
    "totalPendingUploads": "Pending uploads",
    "totalFollows": "Follows",
    "totalReports": "Reports",
    "totalFileSize": "File size (bytes)",
}


def run(store: AuralStore, *, json_output: bool = False) -> None:
    stats = store.get_stats()
    if json_output:
        print(json.dumps(stats, indent=2, sort_keys=True))
        return
    width = max(len(label) for label in LABELS.values())
    for key, label in LABELS.items():
        print(f"{label.ljust(width)}  {stats.get(key, 0)}")
