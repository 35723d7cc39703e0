# -*- coding: utf-8 -*-
"""Plain value types shared by the selection, sequencing and playback code.

None of these touch the database; the managers translate ORM rows into
them so the algorithms can be exercised without an application context.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class EventType(str, Enum):
    DAILY_GIFT = "daily_gift"
    GAME_END = "game_end"
    REFILL = "refill"

    @classmethod
    def parse(cls, value):
        """Accepts the legacy ``end_game`` spelling; returns None for anything unknown."""
        if isinstance(value, cls):
            return value
        if value == "end_game":
            return cls.GAME_END
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def videos_required(self):
        return 2 if self is EventType.REFILL else 1


class Platform(str, Enum):
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    ACTIVE_TRIAL = "active_trial"
    CANCEL_AT_PERIOD_END = "cancel_at_period_end"
    INACTIVE = "inactive"


ACTIVE_SUBSCRIPTION_STATUSES = frozenset({
    SubscriptionStatus.ACTIVE.value,
    SubscriptionStatus.TRIAL.value,
    SubscriptionStatus.ACTIVE_TRIAL.value,
    SubscriptionStatus.CANCEL_AT_PERIOD_END.value,
})


class SessionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True)
class VideoCandidate:
    """A sponsored video as the selector sees it."""

    id: str
    creator_id: str
    platform: str
    video_file_path: Optional[str]
    channel_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    creator_name: Optional[str] = None
    is_active: bool = True
    expires_at: Optional[datetime] = None
    topics: Tuple[int, ...] = ()
    countries: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlaylistVideo:
    id: str
    video_url: str
    channel_url: Optional[str]
    platform: str
    creator_name: Optional[str] = None

    def to_dict(self):
        return {
            "id": self.id,
            "videoUrl": self.video_url,
            "channelUrl": self.channel_url,
            "platform": self.platform,
        }


@dataclass
class TopicAffinity:
    top_topic_ids: Tuple[int, ...] = ()
    total_correct: int = 0


@dataclass
class SelectionResult:
    pool: list = field(default_factory=list)
    is_relevant: bool = False
    is_global_fallback: bool = False

    @property
    def available(self):
        return len(self.pool) > 0
