"""Demo content inserted on the very first start of a fresh installation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, TYPE_CHECKING

from .models import Comment, Track, User, utcnow
from .storage import BlobStorage

if TYPE_CHECKING:
    from .store import AuralStore

logger = logging.getLogger(__name__)

DEMO_AUDIO_URL = (
    "data:audio/wav;base64,UklGRnoGAABXQVZFZm10IBAAAAABAAEAQB8AAEAfAAABAAgAZGF0YQoGAACBhYqFbF1fdJivrJBhNjVg"
    "odDbq2EcBj+a2/LDciUFLIHO8tiJNwgZaLvt559NEAxQp+PwtmMcBjiR1/LMeSwFJHfH8N2QQAoUXrTp66hVFApGn+DyvmwhBSuBzvLZ"
    "iTYIG2m98OScTgwOUarm7blmGgU7k9n1unEiBS13yO/eizEIHWq+8+OWT"
)


def demo_owner() -> User:
    return User(
        id="4",
        username="holladiewaldfee",
        email="holla@example.com",
        verified=True,
        created_at=datetime(2024, 1, 5, tzinfo=timezone.utc),
    )


def demo_listener() -> User:
    return User(
        id="user-1",
        username="yevvo",
        email="yevvo@example.com",
        created_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
    )


def demo_tracks(now: datetime) -> List[Track]:
    owner = demo_owner()
    day = timedelta(days=1)
    return [
        Track(
            id="holla-1",
            title="Intime Flüsterstimme",
            description="Eine sanfte, beruhigende Stimme für entspannte Momente",
            duration=195,
            url=DEMO_AUDIO_URL,
            owner=owner,
            tags=["Soft", "Female", "ASMR"],
            filename="intime_fluesterstimme.wav",
            file_size=2560000,
            gender="Female",
            created_at=now - day,
        ),
        Track(
            id="holla-2",
            title="ASMR Entspannung",
            description="Sanfte Geräusche und Flüstern für tiefe Entspannung",
            duration=420,
            url=DEMO_AUDIO_URL,
            owner=owner,
            tags=["ASMR", "Relaxing", "Female"],
            filename="asmr_entspannung.wav",
            file_size=5120000,
            gender="Female",
            created_at=now - 2 * day,
        ),
        Track(
            id="holla-3",
            title="Stille Momente",
            description="Eine ruhige, meditative Erfahrung",
            duration=300,
            url=DEMO_AUDIO_URL,
            owner=owner,
            tags=["Meditation", "Calm", "Female"],
            filename="stille_momente.wav",
            file_size=3840000,
            gender="Female",
            created_at=now - 3 * day,
        ),
    ]


def demo_comments(now: datetime) -> List[Comment]:
    author = demo_listener()
    hour = timedelta(hours=1)
    rows = [
        ("comment-1", "holla-1", "Wunderschöne Stimme! 😍", hour),
        ("comment-2", "holla-1", "Sehr entspannend, danke! 🙏", 2 * hour),
        ("comment-3", "holla-2", "Perfekt zum Einschlafen! 😴", 24 * hour),
        ("comment-4", "holla-3", "So beruhigend! 🧘‍♀️", 48 * hour),
        ("comment-5", "holla-3", "Hilft mir beim Meditieren", 72 * hour),
    ]
    return [
        Comment(id=cid, track_id=track_id, content=content, author=author, created_at=now - age)
        for cid, track_id, content, age in rows
    ]


def seed_demo_data(store: "AuralStore", storage: BlobStorage, flag_key: str) -> bool:
    """Insert the demo user, tracks and comments once per installation.

    The persisted flag is set on the first run whether or not anything was
    inserted, so wiping the store later does not bring the demo content back.
    """

    if storage.get_flag(flag_key):
        logger.debug("Demo data already seeded")
        return False
    if store.has_tracks():
        storage.set_flag(flag_key)
        logger.info("Store already holds tracks; demo data not needed")
        return False
    now = utcnow()
    store.add_user(demo_owner())
    for track in demo_tracks(now):
        if not store.add_track(track):
            logger.warning("Demo track %s not added (%s)", track.id, store.last_error)
    for comment in demo_comments(now):
        if not store.add_comment(comment):
            logger.warning("Demo comment %s not added (%s)", comment.id, store.last_error)
    storage.set_flag(flag_key)
    logger.info("Seeded demo data: %d track(s)", len(store.state.tracks))
    return True
