"""Derived relations kept next to the canonical collections.

``MembershipIndex`` backs likes, bookmarks and comment likes (key -> set of
viewer ids), ``CounterIndex`` backs play counts and ``CommentThreads`` keeps
the per-track comment ordering. All three are rebuilt from plain lists when a
blob is loaded; only the first two are serialized.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .models import TopTag


class MembershipIndex:
    def __init__(self) -> None:
        self._entries: Dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def toggle(self, key: str, member: str) -> bool:
        """Flip membership and return whether *member* is now present."""

        members = self._entries.setdefault(key, set())
        if member in members:
            members.discard(member)
            if not members:
                del self._entries[key]
            return False
        members.add(member)
        return True

    def contains(self, key: str, member: Optional[str]) -> bool:
        if member is None:
            return False
        return member in self._entries.get(key, ())

    def count(self, key: str) -> int:
        return len(self._entries.get(key, ()))

    def members(self, key: str) -> frozenset[str]:
        return frozenset(self._entries.get(key, ()))

    def keys_for(self, member: str) -> List[str]:
        return [key for key, members in self._entries.items() if member in members]

    def discard_key(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def discard_member(self, member: str) -> List[str]:
        touched: List[str] = []
        for key in list(self._entries):
            members = self._entries[key]
            if member in members:
                members.discard(member)
                touched.append(key)
                if not members:
                    del self._entries[key]
        return touched

    def retain_keys(self, keys: Iterable[str]) -> None:
        keep = set(keys)
        for key in list(self._entries):
            if key not in keep:
                del self._entries[key]

    def total(self) -> int:
        return sum(len(members) for members in self._entries.values())

    def to_pairs(self) -> List[Dict[str, Any]]:
        return [
            {"key": key, "values": sorted(members)}
            for key, members in self._entries.items()
            if members
        ]

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Mapping[str, Any]],
        *,
        key_field: str = "key",
        values_field: str = "values",
    ) -> "MembershipIndex":
        index = cls()
        for item in pairs:
            if not isinstance(item, Mapping):
                continue
            key = item.get(key_field)
            values = item.get(values_field)
            if not key or not isinstance(values, list):
                continue
            members = {str(value) for value in values if value}
            if members:
                index._entries.setdefault(str(key), set()).update(members)
        return index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MembershipIndex):
            return NotImplemented
        return self._entries == other._entries


class CounterIndex:
    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def increment(self, key: str, amount: int = 1) -> int:
        value = self._counts.get(key, 0) + amount
        self._counts[key] = value
        return value

    def get(self, key: str) -> int:
        return self._counts.get(key, 0)

    def discard_key(self, key: str) -> bool:
        return self._counts.pop(key, None) is not None

    def total(self) -> int:
        return sum(self._counts.values())

    def to_pairs(self) -> List[Dict[str, Any]]:
        return [{"key": key, "count": count} for key, count in self._counts.items()]

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Mapping[str, Any]],
        *,
        key_field: str = "key",
    ) -> "CounterIndex":
        index = cls()
        for item in pairs:
            if not isinstance(item, Mapping):
                continue
            key = item.get(key_field)
            count = item.get("count")
            if not key or isinstance(count, bool) or not isinstance(count, int):
                continue
            index._counts[str(key)] = count
        return index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CounterIndex):
            return NotImplemented
        return self._counts == other._counts


class CommentThreads:
    """track id -> comment ids in insertion order."""

    def __init__(self) -> None:
        self._threads: Dict[str, List[str]] = {}

    def append(self, track_id: str, comment_id: str) -> None:
        thread = self._threads.setdefault(track_id, [])
        if comment_id not in thread:
            thread.append(comment_id)

    def remove(self, track_id: str, comment_id: str) -> None:
        thread = self._threads.get(track_id)
        if not thread:
            return
        if comment_id in thread:
            thread.remove(comment_id)
        if not thread:
            del self._threads[track_id]

    def pop_track(self, track_id: str) -> List[str]:
        return self._threads.pop(track_id, [])

    def ids_for(self, track_id: str) -> List[str]:
        return list(self._threads.get(track_id, ()))

    def clear(self) -> None:
        self._threads.clear()


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def compute_top_tags(tag_lists: Iterable[Iterable[str]], limit: int) -> List[TopTag]:
    """Count normalized tags; highest count first, ties by tag name."""

    if limit <= 0:
        return []
    counts: Counter[str] = Counter()
    for tags in tag_lists:
        for tag in tags or ():
            if not isinstance(tag, str):
                continue
            normalized = normalize_tag(tag)
            if normalized:
                counts[normalized] += 1
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [TopTag(tag=tag, count=count) for tag, count in ordered[:limit]]
