from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .indexes import CommentThreads, CounterIndex, MembershipIndex
from .models import (
    Comment,
    ContentReport,
    Follow,
    Notification,
    PendingUpload,
    TopTag,
    Track,
    User,
)


@dataclass
class StoreState:
    """Canonical collections plus the indexes derived from them."""

    tracks: Dict[str, Track] = field(default_factory=dict)
    users: Dict[str, User] = field(default_factory=dict)
    comments: Dict[str, Comment] = field(default_factory=dict)
    reports: Dict[str, ContentReport] = field(default_factory=dict)
    notifications: Dict[str, Notification] = field(default_factory=dict)
    pending_uploads: Dict[str, PendingUpload] = field(default_factory=dict)
    follows: Dict[tuple[str, str], Follow] = field(default_factory=dict)
    likes: MembershipIndex = field(default_factory=MembershipIndex)
    bookmarks: MembershipIndex = field(default_factory=MembershipIndex)
    comment_likes: MembershipIndex = field(default_factory=MembershipIndex)
    plays: CounterIndex = field(default_factory=CounterIndex)
    threads: CommentThreads = field(default_factory=CommentThreads)
    top_tags: List[TopTag] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.tracks

    def rebuild_threads(self) -> None:
        self.threads.clear()
        for comment in self.comments.values():
            self.threads.append(comment.track_id, comment.id)

    def rederive_counters(self) -> None:
        """Copy index cardinalities back onto the materialized track counters."""

        for track in self.tracks.values():
            track.likes = self.likes.count(track.id)
            track.plays = self.plays.get(track.id)
