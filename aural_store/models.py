from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

TRACK_STATUSES = ("active", "pending", "rejected")
PENDING_STATUSES = ("pending", "approved", "rejected")
REPORT_STATUSES = ("pending", "reviewed", "resolved")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_ts(value: object, *, default: Optional[datetime] = None) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; ``Z`` suffixes written by browsers are accepted."""

    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        cleaned = value.strip()
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        parsed = datetime.fromisoformat(cleaned)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_id(data: Mapping[str, Any], key: str = "id") -> str:
    value = data[key]
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _as_int(value: object, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return default


def _as_number(value: object) -> float:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0
    return 0


def _snapshot(data: Mapping[str, Any], *keys: str) -> Optional["User"]:
    for key in keys:
        raw = data.get(key)
        if isinstance(raw, Mapping):
            return User.from_record(raw)
    return None


@dataclass(slots=True)
class User:
    id: str
    username: str
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    verified: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "bio": self.bio,
            "avatar": self.avatar,
            "verified": self.verified,
            "createdAt": format_ts(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            id=_require_id(data),
            username=str(data.get("username") or ""),
            email=_optional_str(data.get("email")),
            bio=_optional_str(data.get("bio")),
            avatar=_optional_str(data.get("avatar")),
            verified=bool(data.get("verified", data.get("isVerified", False))),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
        )


@dataclass(slots=True)
class Track:
    id: str
    title: str
    url: str
    duration: float
    owner: Optional[User] = None
    owner_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    status: str = "active"
    description: Optional[str] = None
    filename: Optional[str] = None
    file_size: int = 0
    gender: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    likes: int = 0
    plays: int = 0

    def __post_init__(self) -> None:
        if self.owner is not None and not self.owner_id:
            self.owner_id = self.owner.id

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "owner": self.owner.to_record() if self.owner else None,
            "title": self.title,
            "url": self.url,
            "duration": self.duration,
            "tags": list(self.tags),
            "status": self.status,
            "description": self.description,
            "filename": self.filename,
            "fileSize": self.file_size,
            "gender": self.gender,
            "createdAt": format_ts(self.created_at),
            "likes": self.likes,
            "plays": self.plays,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Track":
        owner = _snapshot(data, "owner", "user")
        tags = data.get("tags")
        return cls(
            id=_require_id(data),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            duration=_as_number(data.get("duration")),
            owner=owner,
            owner_id=_optional_str(data.get("ownerId") or data.get("userId")),
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
            status=str(data.get("status") or "active"),
            description=_optional_str(data.get("description")),
            filename=_optional_str(data.get("filename")),
            file_size=_as_int(data.get("fileSize")),
            gender=_optional_str(data.get("gender")),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
            likes=_as_int(data.get("likes")),
            plays=_as_int(data.get("plays")),
        )


@dataclass(slots=True)
class Comment:
    id: str
    track_id: str
    content: str
    author: Optional[User] = None
    created_at: datetime = field(default_factory=utcnow)
    parent_id: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "trackId": self.track_id,
            "content": self.content,
            "author": self.author.to_record() if self.author else None,
            "createdAt": format_ts(self.created_at),
            "parentId": self.parent_id,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any], *, track_id: Optional[str] = None) -> "Comment":
        return cls(
            id=_require_id(data),
            track_id=str(data.get("trackId") or track_id or ""),
            content=str(data.get("content") or data.get("text") or ""),
            author=_snapshot(data, "author", "user"),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
            parent_id=_optional_str(data.get("parentId")),
        )


@dataclass(slots=True)
class Follow:
    follower_id: str
    followee_id: str
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple[str, str]:
        return self.follower_id, self.followee_id

    def to_record(self) -> Dict[str, object]:
        return {
            "followerId": self.follower_id,
            "followeeId": self.followee_id,
            "createdAt": format_ts(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Follow":
        return cls(
            follower_id=_require_id(data, "followerId"),
            followee_id=_require_id(data, "followeeId"),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
        )


@dataclass(slots=True)
class PendingUpload:
    id: str
    reason: str
    status: str = "pending"
    temp_track_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    note: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "reason": self.reason,
            "status": self.status,
            "tempTrackId": self.temp_track_id,
            "userId": self.user_id,
            "createdAt": format_ts(self.created_at),
            "decidedAt": format_ts(self.decided_at),
            "decidedBy": self.decided_by,
            "note": self.note,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "PendingUpload":
        return cls(
            id=_require_id(data),
            reason=str(data.get("reason") or ""),
            status=str(data.get("status") or "pending"),
            temp_track_id=_optional_str(data.get("tempTrackId")),
            user_id=_optional_str(data.get("userId")),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
            decided_at=parse_ts(data.get("decidedAt")),
            decided_by=_optional_str(data.get("decidedBy")),
            note=_optional_str(data.get("note")),
        )


@dataclass(slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    read_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "payload": dict(self.payload),
            "createdAt": format_ts(self.created_at),
            "readAt": format_ts(self.read_at),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Notification":
        payload = data.get("payload")
        return cls(
            id=_require_id(data),
            user_id=str(data.get("userId") or ""),
            type=str(data.get("type") or ""),
            payload=dict(payload) if isinstance(payload, Mapping) else {},
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
            read_at=parse_ts(data.get("readAt")),
        )


@dataclass(slots=True)
class ContentReport:
    id: str
    type: str
    target_id: str
    reporter_id: str
    reason: Optional[str] = None
    status: str = "pending"
    created_at: datetime = field(default_factory=utcnow)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "type": self.type,
            "targetId": self.target_id,
            "reporterId": self.reporter_id,
            "reason": self.reason,
            "status": self.status,
            "createdAt": format_ts(self.created_at),
            "reviewedAt": format_ts(self.reviewed_at),
            "reviewedBy": self.reviewed_by,
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ContentReport":
        return cls(
            id=_require_id(data),
            type=str(data.get("type") or ""),
            target_id=str(data.get("targetId") or ""),
            reporter_id=str(data.get("reporterId") or ""),
            reason=_optional_str(data.get("reason")),
            status=str(data.get("status") or "pending"),
            created_at=parse_ts(data.get("createdAt"), default=utcnow()),
            reviewed_at=parse_ts(data.get("reviewedAt")),
            reviewed_by=_optional_str(data.get("reviewedBy")),
        )


@dataclass(frozen=True, slots=True)
class TopTag:
    tag: str
    count: int

    def to_record(self) -> Dict[str, object]:
        return {"tag": self.tag, "count": self.count}


# Read projections. These are built per call and never stored.


@dataclass(slots=True)
class UserProfile:
    user: User
    total_uploads: int = 0
    total_likes: int = 0
    phantom: bool = False

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def username(self) -> str:
        return self.user.username

    def to_record(self) -> Dict[str, object]:
        record = self.user.to_record()
        record["totalUploads"] = self.total_uploads
        record["totalLikes"] = self.total_likes
        return record


@dataclass(slots=True)
class CommentView:
    comment: Comment
    likes: int = 0
    is_liked: bool = False
    track_title: Optional[str] = None

    @property
    def id(self) -> str:
        return self.comment.id

    def to_record(self) -> Dict[str, object]:
        record = self.comment.to_record()
        record["likes"] = self.likes
        record["isLiked"] = self.is_liked
        if self.track_title is not None:
            record["trackTitle"] = self.track_title
        return record


@dataclass(slots=True)
class TrackView:
    track: Track
    is_liked: bool = False
    is_bookmarked: bool = False
    comments: List[CommentView] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.track.id

    @property
    def likes(self) -> int:
        return self.track.likes

    @property
    def plays(self) -> int:
        return self.track.plays

    @property
    def comments_count(self) -> int:
        return len(self.comments)

    def to_record(self) -> Dict[str, object]:
        record = self.track.to_record()
        record["isLiked"] = self.is_liked
        record["isBookmarked"] = self.is_bookmarked
        record["comments"] = [comment.to_record() for comment in self.comments]
        record["commentsCount"] = self.comments_count
        return record
