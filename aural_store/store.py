from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

from . import enrichment
from .errors import StoreErrorKind
from .indexes import compute_top_tags
from .models import (
    REPORT_STATUSES,
    TRACK_STATUSES,
    Comment,
    CommentView,
    ContentReport,
    Follow,
    Notification,
    PendingUpload,
    TopTag,
    Track,
    TrackView,
    User,
    UserProfile,
    utcnow,
)
from .persistence import StorePersistence
from .state import StoreState

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
R = TypeVar("R", Track, User, Comment, ContentReport)

TRACK_UPDATABLE = {
    "title",
    "url",
    "duration",
    "tags",
    "status",
    "description",
    "filename",
    "file_size",
    "gender",
    "owner",
    "created_at",
}
USER_UPDATABLE = {"username", "email", "bio", "avatar", "verified"}


def generate_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _coerce(record: object, cls: Type[R]) -> Optional[R]:
    if isinstance(record, cls):
        return replace(record)
    if isinstance(record, Mapping):
        try:
            return cls.from_record(record)
        except (KeyError, TypeError, ValueError):
            return None
    return None


def _track_problem(track: Track) -> Optional[str]:
    if not isinstance(track.title, str) or not track.title.strip():
        return "title is empty"
    if not isinstance(track.url, str) or not track.url.strip():
        return "url is empty"
    if isinstance(track.duration, bool) or not isinstance(track.duration, (int, float)) or track.duration <= 0:
        return "duration must be positive"
    if track.status not in TRACK_STATUSES:
        return f"unknown status {track.status!r}"
    if not isinstance(track.tags, list) or not all(isinstance(tag, str) for tag in track.tags):
        return "tags must be a list of strings"
    if not isinstance(track.created_at, datetime):
        return "created_at must be a datetime"
    if isinstance(track.file_size, bool) or not isinstance(track.file_size, int) or track.file_size < 0:
        return "file_size must be a non-negative integer"
    for name in ("description", "filename", "gender"):
        value = getattr(track, name)
        if value is not None and not isinstance(value, str):
            return f"{name} must be text"
    return None


def _payload_problem(payload: Mapping[str, Any]) -> Optional[str]:
    try:
        json.dumps(payload)
    except (TypeError, ValueError) as exc:
        return str(exc)
    return None


class AuralStore:
    """Canonical collections, derived indexes and the operations over them.

    Mutating operations return ``True``/``False`` and never raise for domain
    failures; ``last_error`` names the reason of the most recent failure.
    Every successful mutation is saved synchronously before returning.
    """

    def __init__(self, persistence: StorePersistence, *, top_tags_limit: int = 20) -> None:
        self.persistence = persistence
        self.top_tags_limit = top_tags_limit
        self.last_error: Optional[StoreErrorKind] = None
        self._state = StoreState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> StoreState:
        return self._state

    # -- lifecycle -----------------------------------------------------------

    def load(self) -> None:
        state = self.persistence.load()
        state.rederive_counters()
        self._state = state
        self.last_error = self.persistence.last_error

    def has_tracks(self) -> bool:
        return not self._state.is_empty()

    def install_state(self, state: StoreState) -> bool:
        """Replace the whole store with *state*, re-deriving counters and caches."""

        state.rebuild_threads()
        state.rederive_counters()
        self._state = state
        self._refresh_top_tags()
        return self._commit()

    def add_listener(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Store listener %r failed", callback)

    def _fail(self, kind: StoreErrorKind, message: str, *args: object) -> bool:
        self.last_error = kind
        logger.warning(message, *args)
        return False

    def _commit(self) -> bool:
        self.last_error = None
        if not self.persistence.save(self._state):
            self.last_error = StoreErrorKind.SERIALIZATION_FAILURE
        self._notify()
        return True

    def _register_owner(self, owner: Optional[User]) -> None:
        if owner is None or owner.id in self._state.users:
            return
        logger.info("Registering owner %s (%s)", owner.id, owner.username)
        self._state.users[owner.id] = replace(owner)

    def _refresh_top_tags(self, limit: Optional[int] = None) -> List[TopTag]:
        size = self.top_tags_limit if limit is None else limit
        self._state.top_tags = compute_top_tags(
            (track.tags for track in self._state.tracks.values()), size
        )
        return list(self._state.top_tags)

    # -- tracks --------------------------------------------------------------

    def add_track(self, record: Union[Track, Mapping[str, Any]]) -> bool:
        track = _coerce(record, Track)
        if track is None:
            return self._fail(StoreErrorKind.INVALID, "Rejected track: malformed record")
        problem = _track_problem(track)
        if problem:
            return self._fail(StoreErrorKind.INVALID, "Rejected track %s: %s", track.id, problem)
        if track.id in self._state.tracks:
            return self._fail(StoreErrorKind.ALREADY_EXISTS, "Track %s already exists", track.id)
        track.tags = list(track.tags)
        if track.owner is not None:
            track.owner = replace(track.owner)
            track.owner_id = track.owner.id
        self._register_owner(track.owner)
        track.likes = self._state.likes.count(track.id)
        track.plays = self._state.plays.get(track.id)
        self._state.tracks[track.id] = track
        self._refresh_top_tags()
        logger.info("Added track %s (%s); %d total", track.id, track.title, len(self._state.tracks))
        return self._commit()

    def get_track_by_id(self, track_id: str, viewer_id: Optional[str] = None) -> Optional[TrackView]:
        track = self._state.tracks.get(track_id)
        if track is None:
            return None
        return enrichment.project_track(self._state, track, viewer_id)

    def update_track(self, track_id: str, fields: Mapping[str, Any]) -> bool:
        current = self._state.tracks.get(track_id)
        if current is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot update unknown track %s", track_id)
        unknown = set(fields) - TRACK_UPDATABLE
        if unknown:
            return self._fail(
                StoreErrorKind.INVALID,
                "Cannot update track %s fields: %s",
                track_id,
                ", ".join(sorted(unknown)),
            )
        changes = dict(fields)
        if "tags" in changes and isinstance(changes["tags"], (list, tuple)):
            changes["tags"] = list(changes["tags"])
        if changes.get("owner") is not None:
            if not isinstance(changes["owner"], User):
                return self._fail(StoreErrorKind.INVALID, "Rejected update of track %s: owner must be a User", track_id)
            changes["owner"] = replace(changes["owner"])
            changes["owner_id"] = changes["owner"].id
        candidate = replace(current, **changes)
        problem = _track_problem(candidate)
        if problem:
            return self._fail(StoreErrorKind.INVALID, "Rejected update of track %s: %s", track_id, problem)
        self._register_owner(candidate.owner)
        self._state.tracks[track_id] = candidate
        if "tags" in changes:
            self._refresh_top_tags()
        logger.info("Updated track %s (%s)", track_id, ", ".join(sorted(changes)))
        return self._commit()

    def delete_track(self, track_id: str) -> bool:
        state = self._state
        track = state.tracks.pop(track_id, None)
        if track is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot delete unknown track %s", track_id)
        state.likes.discard_key(track_id)
        state.bookmarks.discard_key(track_id)
        state.plays.discard_key(track_id)
        doomed = set(state.threads.pop_track(track_id))
        doomed.update(cid for cid, comment in state.comments.items() if comment.track_id == track_id)
        for comment_id in doomed:
            state.comments.pop(comment_id, None)
            state.comment_likes.discard_key(comment_id)
        self._refresh_top_tags()
        logger.info(
            "Deleted track %s with %d comment(s); %d remaining",
            track_id,
            len(doomed),
            len(state.tracks),
        )
        return self._commit()

    def get_all_tracks(self, viewer_id: Optional[str] = None) -> List[TrackView]:
        return enrichment.project_tracks(self._state, viewer_id)

    def get_tracks_sorted(
        self,
        sort_by: str = "date",
        order: str = "desc",
        viewer_id: Optional[str] = None,
    ) -> List[TrackView]:
        return enrichment.sort_tracks(self.get_all_tracks(viewer_id), sort_by, order)

    def search_tracks(self, query: str, viewer_id: Optional[str] = None) -> List[TrackView]:
        return [view for view in self.get_all_tracks(viewer_id) if enrichment.matches_query(view, query)]

    def get_user_liked_tracks(self, user_id: str) -> List[TrackView]:
        return enrichment.project_tracks(
            self._state, user_id, track_ids=self._state.likes.keys_for(user_id)
        )

    def get_user_bookmarked_tracks(self, user_id: str) -> List[TrackView]:
        return enrichment.project_tracks(
            self._state, user_id, track_ids=self._state.bookmarks.keys_for(user_id)
        )

    def get_following_feed(self, user_id: str) -> List[TrackView]:
        followees = {
            follow.followee_id for follow in self._state.follows.values() if follow.follower_id == user_id
        }
        return [view for view in self.get_all_tracks(user_id) if view.track.owner_id in followees]

    # -- likes, bookmarks, plays, tags --------------------------------------

    def toggle_like(self, track_id: str, viewer_id: str) -> bool:
        track = self._state.tracks.get(track_id)
        if track is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot like unknown track %s", track_id)
        if not viewer_id:
            return self._fail(StoreErrorKind.INVALID, "Cannot like track %s without a viewer", track_id)
        liked = self._state.likes.toggle(track_id, viewer_id)
        track.likes = self._state.likes.count(track_id)
        logger.info("%s %s track %s (%d likes)", viewer_id, "liked" if liked else "unliked", track_id, track.likes)
        return self._commit()

    def toggle_bookmark(self, track_id: str, viewer_id: str) -> bool:
        if track_id not in self._state.tracks:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot bookmark unknown track %s", track_id)
        if not viewer_id:
            return self._fail(StoreErrorKind.INVALID, "Cannot bookmark track %s without a viewer", track_id)
        marked = self._state.bookmarks.toggle(track_id, viewer_id)
        logger.info("%s %s track %s", viewer_id, "bookmarked" if marked else "unbookmarked", track_id)
        return self._commit()

    def toggle_comment_like(self, comment_id: str, viewer_id: str) -> bool:
        if comment_id not in self._state.comments:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot like unknown comment %s", comment_id)
        if not viewer_id:
            return self._fail(StoreErrorKind.INVALID, "Cannot like comment %s without a viewer", comment_id)
        liked = self._state.comment_likes.toggle(comment_id, viewer_id)
        logger.info("%s %s comment %s", viewer_id, "liked" if liked else "unliked", comment_id)
        return self._commit()

    def is_comment_liked_by_user(self, comment_id: str, user_id: str) -> bool:
        return self._state.comment_likes.contains(comment_id, user_id)

    def get_comment_like_count(self, comment_id: str) -> int:
        return self._state.comment_likes.count(comment_id)

    def increment_play(self, track_id: str) -> bool:
        track = self._state.tracks.get(track_id)
        if track is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot count play of unknown track %s", track_id)
        track.plays = self._state.plays.increment(track_id)
        logger.debug("Play count of %s is now %d", track_id, track.plays)
        return self._commit()

    def get_play_count(self, track_id: str) -> int:
        return self._state.plays.get(track_id)

    def recompute_top_tags(self, limit: Optional[int] = None) -> List[TopTag]:
        tags = self._refresh_top_tags(limit)
        logger.info("Recomputed top tags: %d entr%s", len(tags), "y" if len(tags) == 1 else "ies")
        self._commit()
        return tags

    def get_top_tags(self) -> List[TopTag]:
        return list(self._state.top_tags)

    # -- users ---------------------------------------------------------------

    def add_user(self, record: Union[User, Mapping[str, Any]]) -> bool:
        user = _coerce(record, User)
        if user is None:
            return self._fail(StoreErrorKind.INVALID, "Rejected user: malformed record")
        if not isinstance(user.username, str) or not user.username.strip():
            return self._fail(StoreErrorKind.INVALID, "Rejected user %s: username is empty", user.id)
        if user.id in self._state.users:
            return self._fail(StoreErrorKind.ALREADY_EXISTS, "User %s already exists", user.id)
        self._state.users[user.id] = user
        logger.info("Added user %s (%s)", user.id, user.username)
        return self._commit()

    def get_user_by_id(self, user_id: str) -> Optional[UserProfile]:
        return enrichment.project_user(self._state, user_id)

    def get_all_users(self) -> List[UserProfile]:
        return enrichment.project_users(self._state)

    def update_user(self, user_id: str, fields: Mapping[str, Any]) -> bool:
        current = self._state.users.get(user_id)
        if current is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot update unknown user %s", user_id)
        unknown = set(fields) - USER_UPDATABLE
        if unknown:
            return self._fail(
                StoreErrorKind.INVALID,
                "Cannot update user %s fields: %s",
                user_id,
                ", ".join(sorted(unknown)),
            )
        candidate = replace(current, **dict(fields))
        if not isinstance(candidate.username, str) or not candidate.username.strip():
            return self._fail(StoreErrorKind.INVALID, "Rejected update of user %s: username is empty", user_id)
        self._state.users[user_id] = candidate
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(fields)))
        return self._commit()

    def delete_user(self, user_id: str) -> bool:
        state = self._state
        if state.users.pop(user_id, None) is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot delete unknown user %s", user_id)
        for key in [key for key in state.follows if user_id in key]:
            del state.follows[key]
        for track_id in state.likes.discard_member(user_id):
            track = state.tracks.get(track_id)
            if track is not None:
                track.likes = state.likes.count(track_id)
        state.bookmarks.discard_member(user_id)
        state.comment_likes.discard_member(user_id)
        logger.info("Deleted user %s", user_id)
        return self._commit()

    # -- comments ------------------------------------------------------------

    def add_comment(self, record: Union[Comment, Mapping[str, Any]]) -> bool:
        comment = _coerce(record, Comment)
        if comment is None:
            return self._fail(StoreErrorKind.INVALID, "Rejected comment: malformed record")
        if comment.id in self._state.comments:
            return self._fail(StoreErrorKind.ALREADY_EXISTS, "Comment %s already exists", comment.id)
        if comment.track_id not in self._state.tracks:
            return self._fail(
                StoreErrorKind.NOT_FOUND,
                "Cannot comment on unknown track %s",
                comment.track_id or "<missing>",
            )
        if not comment.content.strip():
            return self._fail(StoreErrorKind.INVALID, "Rejected comment %s: content is empty", comment.id)
        if comment.author is not None:
            comment.author = replace(comment.author)
        self._state.comments[comment.id] = comment
        self._state.threads.append(comment.track_id, comment.id)
        logger.info("Added comment %s to track %s", comment.id, comment.track_id)
        return self._commit()

    def get_comment_by_id(self, comment_id: str, viewer_id: Optional[str] = None) -> Optional[CommentView]:
        comment = self._state.comments.get(comment_id)
        if comment is None:
            return None
        return enrichment.project_comment(self._state, comment, viewer_id)

    def get_track_comments(self, track_id: str, viewer_id: Optional[str] = None) -> List[CommentView]:
        return enrichment.project_thread(self._state, track_id, viewer_id)

    def get_all_comments(self) -> List[CommentView]:
        views: List[CommentView] = []
        for comment in self._state.comments.values():
            view = enrichment.project_comment(self._state, comment)
            track = self._state.tracks.get(comment.track_id)
            view.track_title = track.title if track else None
            views.append(view)
        return sorted(views, key=lambda view: view.comment.created_at, reverse=True)

    def delete_comment(self, comment_id: str) -> bool:
        comment = self._state.comments.pop(comment_id, None)
        if comment is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot delete unknown comment %s", comment_id)
        self._state.threads.remove(comment.track_id, comment_id)
        self._state.comment_likes.discard_key(comment_id)
        logger.info("Deleted comment %s from track %s", comment_id, comment.track_id)
        return self._commit()

    # -- follows -------------------------------------------------------------

    def follow(self, follower_id: str, followee_id: str) -> bool:
        if not follower_id or not followee_id:
            return self._fail(StoreErrorKind.INVALID, "Follow needs both a follower and a followee")
        if follower_id == followee_id:
            return self._fail(StoreErrorKind.SELF_REFERENCE_REJECTED, "User %s cannot follow themselves", follower_id)
        key = (follower_id, followee_id)
        if key in self._state.follows:
            return self._fail(StoreErrorKind.ALREADY_EXISTS, "%s already follows %s", follower_id, followee_id)
        self._state.follows[key] = Follow(follower_id=follower_id, followee_id=followee_id)
        logger.info("%s now follows %s", follower_id, followee_id)
        return self._commit()

    def unfollow(self, follower_id: str, followee_id: str) -> bool:
        if self._state.follows.pop((follower_id, followee_id), None) is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "%s does not follow %s", follower_id, followee_id)
        logger.info("%s unfollowed %s", follower_id, followee_id)
        return self._commit()

    def is_following(self, follower_id: str, followee_id: str) -> bool:
        return (follower_id, followee_id) in self._state.follows

    def get_followers(self, user_id: str) -> List[UserProfile]:
        profiles = {profile.id: profile for profile in self.get_all_users()}
        return [
            profiles[follow.follower_id]
            for follow in self._state.follows.values()
            if follow.followee_id == user_id and follow.follower_id in profiles
        ]

    def get_following(self, user_id: str) -> List[UserProfile]:
        profiles = {profile.id: profile for profile in self.get_all_users()}
        return [
            profiles[follow.followee_id]
            for follow in self._state.follows.values()
            if follow.follower_id == user_id and follow.followee_id in profiles
        ]

    # -- pending uploads -----------------------------------------------------

    def add_pending_upload(
        self,
        reason: str,
        *,
        temp_track_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> PendingUpload:
        pending = PendingUpload(
            id=generate_id("pending"),
            reason=reason,
            temp_track_id=temp_track_id,
            user_id=user_id,
        )
        self._state.pending_uploads[pending.id] = pending
        logger.info("Queued pending upload %s (%s)", pending.id, reason)
        self._commit()
        return replace(pending)

    def get_pending_upload(self, pending_id: str) -> Optional[PendingUpload]:
        pending = self._state.pending_uploads.get(pending_id)
        return replace(pending) if pending else None

    def list_pending_uploads(self) -> List[PendingUpload]:
        items = [replace(pending) for pending in self._state.pending_uploads.values()]
        return sorted(items, key=lambda pending: pending.created_at, reverse=True)

    def approve_pending_upload(self, pending_id: str, admin_id: str) -> bool:
        return self._decide_pending(pending_id, admin_id, "approved")

    def reject_pending_upload(self, pending_id: str, admin_id: str, note: Optional[str] = None) -> bool:
        return self._decide_pending(pending_id, admin_id, "rejected", note=note)

    def _decide_pending(
        self,
        pending_id: str,
        admin_id: str,
        decision: str,
        *,
        note: Optional[str] = None,
    ) -> bool:
        pending = self._state.pending_uploads.get(pending_id)
        if pending is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Pending upload %s not found", pending_id)
        if pending.status != "pending":
            return self._fail(
                StoreErrorKind.INVALID,
                "Pending upload %s was already %s",
                pending_id,
                pending.status,
            )
        pending.status = decision
        pending.decided_at = utcnow()
        pending.decided_by = admin_id
        pending.note = note
        track = self._state.tracks.get(pending.temp_track_id or "")
        if track is not None:
            track.status = "active" if decision == "approved" else "rejected"
        if pending.user_id:
            payload: Dict[str, Any] = {"trackId": pending.temp_track_id}
            if note:
                payload["note"] = note
            self._append_notification(
                pending.user_id,
                "UPLOAD_APPROVED" if decision == "approved" else "UPLOAD_REJECTED",
                payload,
            )
        logger.info("Pending upload %s %s by %s", pending_id, decision, admin_id)
        return self._commit()

    # -- notifications -------------------------------------------------------

    def _append_notification(self, user_id: str, kind: str, payload: Optional[Mapping[str, Any]]) -> Notification:
        notification = Notification(
            id=generate_id("notification"),
            user_id=user_id,
            type=kind,
            payload=dict(payload or {}),
        )
        self._state.notifications[notification.id] = notification
        return notification

    def add_notification(
        self,
        user_id: str,
        kind: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Notification]:
        """Store a notification for *user_id*; ``None`` if the payload cannot be saved as JSON."""

        problem = _payload_problem(dict(payload or {}))
        if problem is not None:
            self._fail(StoreErrorKind.INVALID, "Rejected %s notification for %s: %s", kind, user_id, problem)
            return None
        notification = self._append_notification(user_id, kind, payload)
        logger.info("Notified %s (%s)", user_id, kind)
        self._commit()
        return replace(notification, payload=dict(notification.payload))

    def get_user_notifications(self, user_id: str) -> List[Notification]:
        items = [
            replace(item, payload=dict(item.payload))
            for item in self._state.notifications.values()
            if item.user_id == user_id
        ]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    def mark_notification_read(self, notification_id: str) -> bool:
        notification = self._state.notifications.get(notification_id)
        if notification is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Notification %s not found", notification_id)
        if notification.read_at is None:
            notification.read_at = utcnow()
        return self._commit()

    # -- reports -------------------------------------------------------------

    def add_report(self, record: Union[ContentReport, Mapping[str, Any]]) -> bool:
        report = _coerce(record, ContentReport)
        if report is None:
            return self._fail(StoreErrorKind.INVALID, "Rejected report: malformed record")
        if report.id in self._state.reports:
            return self._fail(StoreErrorKind.ALREADY_EXISTS, "Report %s already exists", report.id)
        if not report.type or not report.target_id:
            return self._fail(StoreErrorKind.INVALID, "Rejected report %s: type and target are required", report.id)
        if report.status not in REPORT_STATUSES:
            return self._fail(StoreErrorKind.INVALID, "Rejected report %s: unknown status %r", report.id, report.status)
        self._state.reports[report.id] = report
        logger.info("Added %s report %s on %s", report.type, report.id, report.target_id)
        return self._commit()

    def get_report_by_id(self, report_id: str) -> Optional[ContentReport]:
        report = self._state.reports.get(report_id)
        return replace(report) if report else None

    def get_all_reports(self) -> List[ContentReport]:
        items = [replace(report) for report in self._state.reports.values()]
        return sorted(items, key=lambda report: report.created_at, reverse=True)

    def update_report_status(self, report_id: str, status: str, reviewed_by: Optional[str] = None) -> bool:
        report = self._state.reports.get(report_id)
        if report is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Report %s not found", report_id)
        if status not in REPORT_STATUSES:
            return self._fail(StoreErrorKind.INVALID, "Unknown report status %r", status)
        report.status = status
        report.reviewed_at = utcnow()
        if reviewed_by:
            report.reviewed_by = reviewed_by
        logger.info("Report %s is now %s", report_id, status)
        return self._commit()

    def delete_report(self, report_id: str) -> bool:
        if self._state.reports.pop(report_id, None) is None:
            return self._fail(StoreErrorKind.NOT_FOUND, "Cannot delete unknown report %s", report_id)
        logger.info("Deleted report %s", report_id)
        return self._commit()

    # -- administration ------------------------------------------------------

    def get_stats(self) -> Dict[str, int]:
        state = self._state
        return {
            "totalUsers": len(self.get_all_users()),
            "totalTracks": len(state.tracks),
            "totalComments": len(state.comments),
            "totalLikes": state.likes.total(),
            "totalBookmarks": state.bookmarks.total(),
            "totalPlays": state.plays.total(),
            "totalNotifications": len(state.notifications),
            "totalPendingUploads": len(state.pending_uploads),
            "totalFollows": len(state.follows),
            "totalReports": len(state.reports),
            "totalFileSize": sum(track.file_size for track in state.tracks.values()),
        }

    def check_consistency(self) -> List[str]:
        """Describe every derived value that disagrees with its source."""

        state = self._state
        problems: List[str] = []
        for track in state.tracks.values():
            expected = state.likes.count(track.id)
            if track.likes != expected:
                problems.append(f"track {track.id}: likes={track.likes}, index has {expected}")
            if track.plays != state.plays.get(track.id):
                problems.append(f"track {track.id}: plays={track.plays}, index has {state.plays.get(track.id)}")
        for name, index in (("likes", state.likes), ("bookmarks", state.bookmarks)):
            for key in index:
                if key not in state.tracks:
                    problems.append(f"{name} entry for unknown track {key}")
        for key in state.comment_likes:
            if key not in state.comments:
                problems.append(f"commentLikes entry for unknown comment {key}")
        for comment in state.comments.values():
            if comment.track_id not in state.tracks:
                problems.append(f"comment {comment.id} on unknown track {comment.track_id}")
        return problems

    def purge_user_content(self, keep_user_id: str) -> bool:
        """Drop everything except *keep_user_id*'s tracks and user record."""

        state = self._state
        before = len(state.tracks)
        kept_tracks = {tid: track for tid, track in state.tracks.items() if track.owner_id == keep_user_id}
        kept_user = state.users.get(keep_user_id)
        fresh = StoreState(tracks=kept_tracks)
        if kept_user is not None:
            fresh.users[keep_user_id] = kept_user
        fresh.rederive_counters()
        self._state = fresh
        self._refresh_top_tags()
        logger.info("Purged user content: %d -> %d track(s)", before, len(kept_tracks))
        return self._commit()

    def reset(self) -> bool:
        self._state = StoreState()
        logger.info("Store reset to empty")
        return self._commit()
