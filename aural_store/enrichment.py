"""Per-viewer projections of the canonical state.

Everything returned from here is a fresh copy: callers may mutate the views
freely without touching the records held by the store.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from .models import Comment, CommentView, Track, TrackView, User, UserProfile
from .state import StoreState

SORT_KEYS: Dict[str, Callable[[TrackView], object]] = {
    "title": lambda view: view.track.title.lower(),
    "user": lambda view: (view.track.owner.username if view.track.owner else "").lower(),
    "date": lambda view: view.track.created_at,
    "likes": lambda view: view.track.likes,
    "duration": lambda view: view.track.duration,
    "file_size": lambda view: view.track.file_size,
    "plays": lambda view: view.track.plays,
}
SORT_ORDERS = ("asc", "desc")


def _copy_user(user: Optional[User]) -> Optional[User]:
    return replace(user) if user is not None else None


def project_comment(state: StoreState, comment: Comment, viewer_id: Optional[str] = None) -> CommentView:
    return CommentView(
        comment=replace(comment, author=_copy_user(comment.author)),
        likes=state.comment_likes.count(comment.id),
        is_liked=state.comment_likes.contains(comment.id, viewer_id),
    )


def project_thread(state: StoreState, track_id: str, viewer_id: Optional[str] = None) -> List[CommentView]:
    views: List[CommentView] = []
    for comment_id in state.threads.ids_for(track_id):
        comment = state.comments.get(comment_id)
        if comment is not None:
            views.append(project_comment(state, comment, viewer_id))
    return views


def project_track(state: StoreState, track: Track, viewer_id: Optional[str] = None) -> TrackView:
    copy = replace(
        track,
        owner=_copy_user(track.owner),
        tags=list(track.tags),
        likes=state.likes.count(track.id),
        plays=state.plays.get(track.id),
    )
    return TrackView(
        track=copy,
        is_liked=state.likes.contains(track.id, viewer_id),
        is_bookmarked=state.bookmarks.contains(track.id, viewer_id),
        comments=project_thread(state, track.id, viewer_id),
    )


def newest_first(views: Iterable[TrackView]) -> List[TrackView]:
    # sorted() is stable with reverse=True, so equal timestamps keep insertion order.
    return sorted(views, key=lambda view: view.track.created_at, reverse=True)


def project_tracks(
    state: StoreState,
    viewer_id: Optional[str] = None,
    *,
    track_ids: Optional[Iterable[str]] = None,
) -> List[TrackView]:
    if track_ids is None:
        tracks: Iterable[Track] = state.tracks.values()
    else:
        wanted = set(track_ids)
        tracks = [track for track in state.tracks.values() if track.id in wanted]
    return newest_first(project_track(state, track, viewer_id) for track in tracks)


def sort_tracks(views: List[TrackView], sort_by: str = "date", order: str = "desc") -> List[TrackView]:
    key = SORT_KEYS.get(sort_by)
    if key is None:
        raise ValueError(f"Unknown sort key {sort_by!r}; expected one of {', '.join(SORT_KEYS)}")
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order {order!r}; expected 'asc' or 'desc'")
    return sorted(views, key=key, reverse=(order == "desc"))


def matches_query(view: TrackView, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    track = view.track
    haystacks = [track.title, track.description or ""]
    if track.owner is not None:
        haystacks.append(track.owner.username)
    haystacks.extend(track.tags)
    return any(needle in text.lower() for text in haystacks)


def project_users(state: StoreState) -> List[UserProfile]:
    """Explicit users plus owners only known from their tracks, with live totals."""

    profiles: Dict[str, UserProfile] = {}
    for user in state.users.values():
        profiles[user.id] = UserProfile(user=replace(user))
    for track in state.tracks.values():
        owner_id = track.owner_id
        if not owner_id or owner_id in profiles:
            continue
        snapshot = track.owner if track.owner is not None else User(id=owner_id, username=owner_id)
        profiles[owner_id] = UserProfile(user=replace(snapshot), phantom=True)
    for track in state.tracks.values():
        profile = profiles.get(track.owner_id or "")
        if profile is None:
            continue
        profile.total_uploads += 1
        profile.total_likes += state.likes.count(track.id)
    return list(profiles.values())


def project_user(state: StoreState, user_id: str) -> Optional[UserProfile]:
    for profile in project_users(state):
        if profile.id == user_id:
            return profile
    return None
