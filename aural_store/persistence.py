from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from .errors import SerializationError, StoreErrorKind
from .indexes import CounterIndex, MembershipIndex
from .models import (
    Comment,
    ContentReport,
    Follow,
    Notification,
    PendingUpload,
    TopTag,
    Track,
    User,
    format_ts,
    utcnow,
)
from .state import StoreState
from .storage import BlobStorage

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

T = TypeVar("T")


def encode_state(state: StoreState) -> Dict[str, Any]:
    return {
        "schemaVersion": SCHEMA_VERSION,
        "tracks": [track.to_record() for track in state.tracks.values()],
        "users": [user.to_record() for user in state.users.values()],
        "comments": [comment.to_record() for comment in state.comments.values()],
        "reports": [report.to_record() for report in state.reports.values()],
        "notifications": [item.to_record() for item in state.notifications.values()],
        "pendingUploads": [item.to_record() for item in state.pending_uploads.values()],
        "follows": [follow.to_record() for follow in state.follows.values()],
        "likes": state.likes.to_pairs(),
        "bookmarks": state.bookmarks.to_pairs(),
        "commentLikes": state.comment_likes.to_pairs(),
        "plays": state.plays.to_pairs(),
        "topTags": [tag.to_record() for tag in state.top_tags],
        "timestamp": format_ts(utcnow()),
    }


def _list(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SerializationError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def _records(payload: Mapping[str, Any], key: str, factory: Callable[[Mapping[str, Any]], T]) -> List[T]:
    items: List[T] = []
    for position, raw in enumerate(_list(payload, key)):
        if not isinstance(raw, Mapping):
            raise SerializationError(f"{key}[{position}] is not an object")
        try:
            items.append(factory(raw))
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"{key}[{position}] is malformed: {exc}") from exc
    return items


def _top_tags(payload: Mapping[str, Any]) -> List[TopTag]:
    tags: List[TopTag] = []
    for raw in _list(payload, "topTags"):
        if isinstance(raw, Mapping) and isinstance(raw.get("tag"), str) and isinstance(raw.get("count"), int):
            tags.append(TopTag(tag=raw["tag"], count=raw["count"]))
    return tags


def decode_state(payload: object) -> StoreState:
    if not isinstance(payload, Mapping):
        raise SerializationError("Store blob must be a JSON object")
    state = StoreState()
    for track in _records(payload, "tracks", Track.from_record):
        state.tracks.setdefault(track.id, track)
    for user in _records(payload, "users", User.from_record):
        state.users.setdefault(user.id, user)
    for comment in _records(payload, "comments", Comment.from_record):
        state.comments.setdefault(comment.id, comment)
    for report in _records(payload, "reports", ContentReport.from_record):
        state.reports.setdefault(report.id, report)
    for notification in _records(payload, "notifications", Notification.from_record):
        state.notifications.setdefault(notification.id, notification)
    for pending in _records(payload, "pendingUploads", PendingUpload.from_record):
        state.pending_uploads.setdefault(pending.id, pending)
    for follow in _records(payload, "follows", Follow.from_record):
        state.follows.setdefault(follow.key, follow)
    state.likes = MembershipIndex.from_pairs(_list(payload, "likes"))
    state.bookmarks = MembershipIndex.from_pairs(_list(payload, "bookmarks"))
    state.comment_likes = MembershipIndex.from_pairs(_list(payload, "commentLikes"))
    state.plays = CounterIndex.from_pairs(_list(payload, "plays"))
    state.top_tags = _top_tags(payload)
    state.rebuild_threads()
    return state


def dumps_state(state: StoreState) -> str:
    try:
        return json.dumps(encode_state(state), ensure_ascii=False)
    except (AttributeError, TypeError, ValueError) as exc:
        raise SerializationError(f"Could not encode store: {exc}") from exc


def loads_state(text: str) -> StoreState:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Store blob is not valid JSON: {exc}") from exc
    return decode_state(payload)


class StorePersistence:
    """Reads and writes the whole store as one versioned blob."""

    def __init__(self, storage: BlobStorage, key: str) -> None:
        self.storage = storage
        self.key = key
        self.last_error: Optional[StoreErrorKind] = None

    def save(self, state: StoreState) -> bool:
        try:
            text = dumps_state(state)
            self.storage.set_blob(self.key, text)
        except (SerializationError, sqlite3.Error) as exc:
            # The previous blob stays in place until the next successful save.
            self.last_error = StoreErrorKind.SERIALIZATION_FAILURE
            logger.error("Failed to save store under %s: %s", self.key, exc)
            return False
        self.last_error = None
        logger.debug("Saved store under %s (%d bytes)", self.key, len(text))
        return True

    def load(self) -> StoreState:
        try:
            text = self.storage.get_blob(self.key)
        except sqlite3.Error as exc:
            self.last_error = StoreErrorKind.SERIALIZATION_FAILURE
            logger.error("Failed to read store blob %s: %s; starting empty", self.key, exc)
            return StoreState()
        if text is None:
            logger.info("No stored data under %s; starting empty", self.key)
            return StoreState()
        try:
            state = loads_state(text)
        except SerializationError as exc:
            self.last_error = StoreErrorKind.SERIALIZATION_FAILURE
            logger.error("Store blob %s is unreadable: %s; starting empty", self.key, exc)
            return StoreState()
        self.last_error = None
        logger.info(
            "Loaded %d track(s), %d user(s), %d comment(s) from %s",
            len(state.tracks),
            len(state.users),
            len(state.comments),
            self.key,
        )
        return state
