from __future__ import annotations

import json

from ..store import AuralStore
from .output import table


def run(store: AuralStore, *, json_output: bool = False) -> None:
    profiles = store.get_all_users()
    if json_output:
        payload = [dict(profile.to_record(), phantom=profile.phantom) for profile in profiles]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    if not profiles:
        print("No users found.")
        return
    rows = [
        (
            profile.id,
            profile.username,
            "yes" if profile.user.verified else "no",
            profile.total_uploads,
            profile.total_likes,
            "inferred" if profile.phantom else "stored",
        )
        for profile in profiles
    ]
    for line in table(("ID", "Username", "Verified", "Uploads", "Likes", "Record"), rows):
        print(line)
