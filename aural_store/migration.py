"""One-shot upgrade of the first-generation blob into the current schema.

The legacy layout keeps comments both embedded in each track and in a flat
list, tracks carry their owner as ``user`` and likes/bookmarks are stored as
``[{trackId, userIds}]``. The legacy blob is never removed here; see
:func:`cleanup_legacy`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, TYPE_CHECKING

from .errors import SerializationError
from .indexes import MembershipIndex
from .models import Comment, ContentReport, Track, User
from .state import StoreState
from .storage import BlobStorage

if TYPE_CHECKING:
    from .store import AuralStore

logger = logging.getLogger(__name__)

UNKNOWN_OWNER = "unknown"


def _items(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise SerializationError(f"legacy '{key}' must be a list, got {type(value).__name__}")
    return value


def _owner_id(raw: Mapping[str, Any]) -> str:
    for key in ("user", "owner"):
        snapshot = raw.get(key)
        if isinstance(snapshot, Mapping) and snapshot.get("id"):
            return str(snapshot["id"])
    return str(raw.get("userId") or raw.get("ownerId") or UNKNOWN_OWNER)


def _add_comment(state: StoreState, raw: object, track_id: str | None = None) -> None:
    if not isinstance(raw, Mapping):
        return
    try:
        comment = Comment.from_record(raw, track_id=track_id)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Skipping malformed legacy comment: %s", exc)
        return
    if comment.track_id not in state.tracks:
        logger.warning("Skipping legacy comment %s on unknown track %s", comment.id, comment.track_id)
        return
    state.comments.setdefault(comment.id, comment)


def convert_legacy(payload: object) -> StoreState:
    """Build a current-schema state from a decoded legacy payload."""

    if not isinstance(payload, Mapping):
        raise SerializationError("Legacy blob must be a JSON object")
    state = StoreState()
    embedded: List[tuple[str, List[Any]]] = []
    for raw in _items(payload, "tracks"):
        if not isinstance(raw, Mapping):
            continue
        try:
            track = Track.from_record(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed legacy track: %s", exc)
            continue
        track.owner_id = _owner_id(raw)
        if track.id in state.tracks:
            continue
        state.tracks[track.id] = track
        comments = raw.get("comments")
        if isinstance(comments, list):
            embedded.append((track.id, comments))

    for raw in _items(payload, "users"):
        if not isinstance(raw, Mapping):
            continue
        try:
            user = User.from_record(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed legacy user: %s", exc)
            continue
        state.users.setdefault(user.id, user)

    for track_id, comments in embedded:
        for raw in comments:
            _add_comment(state, raw, track_id)
    for raw in _items(payload, "comments"):
        _add_comment(state, raw)

    for raw in _items(payload, "reports"):
        if not isinstance(raw, Mapping):
            continue
        try:
            report = ContentReport.from_record(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed legacy report: %s", exc)
            continue
        state.reports.setdefault(report.id, report)

    state.likes = MembershipIndex.from_pairs(_items(payload, "likes"), key_field="trackId", values_field="userIds")
    state.bookmarks = MembershipIndex.from_pairs(
        _items(payload, "bookmarks"), key_field="trackId", values_field="userIds"
    )
    state.likes.retain_keys(state.tracks)
    state.bookmarks.retain_keys(state.tracks)
    state.rebuild_threads()
    state.rederive_counters()
    return state


def is_migration_completed(storage: BlobStorage, flag_key: str) -> bool:
    return storage.get_flag(flag_key)


def migrate_from_legacy(store: "AuralStore", storage: BlobStorage, legacy_key: str, flag_key: str) -> bool:
    """Import the legacy blob into *store* unless that already happened.

    Returns ``True`` only when data was migrated. Collections the current
    store already holds (users, reports, notifications, pending uploads and
    follows) are kept; legacy records with the same id lose.
    """

    if is_migration_completed(storage, flag_key):
        logger.debug("Legacy migration already completed")
        return False
    if store.has_tracks():
        logger.info("Store already holds tracks; skipping legacy migration")
        return False
    text = storage.get_blob(legacy_key)
    if text is None:
        logger.info("No legacy data under %s; fresh install", legacy_key)
        return False
    try:
        state = convert_legacy(json.loads(text))
    except (json.JSONDecodeError, SerializationError) as exc:
        logger.error("Legacy blob %s is unreadable: %s; migration skipped", legacy_key, exc)
        return False

    current = store.state
    for user_id, user in current.users.items():
        state.users[user_id] = user
    state.reports.update(current.reports)
    state.notifications.update(current.notifications)
    state.pending_uploads.update(current.pending_uploads)
    state.follows.update(current.follows)

    store.install_state(state)
    storage.set_flag(flag_key)
    logger.info(
        "Migrated %d track(s), %d user(s), %d comment(s) from %s",
        len(state.tracks),
        len(state.users),
        len(state.comments),
        legacy_key,
    )
    return True


def cleanup_legacy(storage: BlobStorage, legacy_key: str) -> bool:
    removed = storage.delete_blob(legacy_key)
    if removed:
        logger.info("Removed legacy blob %s", legacy_key)
    else:
        logger.info("No legacy blob under %s", legacy_key)
    return removed
