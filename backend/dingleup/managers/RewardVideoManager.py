# -*- coding: utf-8 -*-
"""Reward Video Manager / 奖励视频下发

Wires the database lookups (candidates, subscriptions, topic affinity,
country targeting) into the selector, the platform mixer and the session
tracker. Every failure below the request boundary is turned into a
structured "unavailable" result; nothing is raised to the route.
"""
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from dingleup.managers.Config import Config
from dingleup.managers.PlatformMixer import PlatformMixer
from dingleup.managers.RewardSessionManager import RewardSessionManager
from dingleup.managers.VideoSelectionManager import VideoSelectionManager
from dingleup.models.CreatorSubscription import CreatorSubscription
from dingleup.models.CreatorVideo import CreatorVideo, CreatorVideoCountry
from dingleup.models.database import db, utc_now
from dingleup.models.RewardTypes import (
    ACTIVE_SUBSCRIPTION_STATUSES,
    EventType,
    PlaylistVideo,
    TopicAffinity,
)
from dingleup.models.UserProfile import UserProfile
from dingleup.models.UserTopicStat import UserTopicStat

logger = logging.getLogger(__name__)

STORAGE_OBJECT_PATH = "/storage/v1/object/public/creator-videos/"


def resolve_video_url(storage_base_url, video_file_path):
    """存储路径拼接为可播放地址，已是完整URL的直接返回"""
    if video_file_path.startswith(("http://", "https://")):
        return video_file_path
    return f"{(storage_base_url or '').rstrip('/')}{STORAGE_OBJECT_PATH}{video_file_path.lstrip('/')}"


class RewardVideoManager:
    _instance = None
    TOPIC_STATS_LIMIT = 10
    PRELOAD_DEFAULT_COUNT = 10
    PRELOAD_MAX_COUNT = 20

    def __init__(self, selector=None, mixer=None, session_manager=None):
        self.selector = selector or VideoSelectionManager.instance()
        self.mixer = mixer or PlatformMixer.instance()
        self.session_manager = session_manager or RewardSessionManager.instance()

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ---- inbound lookups ------------------------------------------------

    def fetch_candidates(self, now=None):
        """在投且未过期、有视频文件的候选视频"""
        now = now or utc_now()
        videos = CreatorVideo.query.filter(
            CreatorVideo.is_active == True,
            CreatorVideo.expires_at > now,
            CreatorVideo.video_file_path.isnot(None)
        ).all()
        return [video.to_candidate() for video in videos]

    def fetch_active_creator_ids(self, creator_ids):
        if not creator_ids:
            return set()
        rows = db.session.query(CreatorSubscription.creator_id).filter(
            CreatorSubscription.creator_id.in_(list(creator_ids)),
            CreatorSubscription.status.in_(list(ACTIVE_SUBSCRIPTION_STATUSES))
        ).all()
        return {row.creator_id for row in rows}

    def fetch_topic_affinity(self, user_id):
        """答对数最多的前10个主题 + 所有主题累计答对数"""
        rows = UserTopicStat.query.filter_by(user_id=user_id).\
            order_by(UserTopicStat.correct_count.desc()).\
            limit(self.TOPIC_STATS_LIMIT).all()
        total = db.session.query(func.sum(UserTopicStat.correct_count)).filter(
            UserTopicStat.user_id == user_id
        ).scalar()
        return TopicAffinity(
            top_topic_ids=tuple(row.topic_id for row in rows),
            total_correct=int(total or 0)
        )

    def fetch_user_country(self, user_id):
        profile = UserProfile.query.filter_by(user_id=user_id).first()
        return profile.country_code if profile and profile.country_code else None

    def fetch_country_video_ids(self, country_code):
        rows = db.session.query(CreatorVideoCountry.video_id).filter(
            CreatorVideoCountry.country_code == country_code
        ).all()
        return {row.video_id for row in rows}

    def _viewer_preferences(self, user_id, tag):
        """国家与兴趣查询失败时按无偏好处理"""
        country_code, country_video_ids, top_topic_ids = None, None, ()
        try:
            country_code = self.fetch_user_country(user_id)
            if country_code:
                country_video_ids = self.fetch_country_video_ids(country_code)
            affinity = self.fetch_topic_affinity(user_id)
            top_topic_ids = self.selector.top_topics(affinity)
            logger.info("[%s] User %s country: %s, %s correct answers, top topics: %s",
                        tag, user_id, country_code or "none", affinity.total_correct, list(top_topic_ids))
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("[%s] Viewer preference lookup failed, using no preference: %s", tag, e)
        return country_code, country_video_ids, top_topic_ids

    def _eligible_candidates(self, exclude_video_ids=(), exclude_creator_ids=()):
        now = utc_now()
        candidates = self.fetch_candidates(now)
        active_creator_ids = self.fetch_active_creator_ids({c.creator_id for c in candidates})
        return self.selector.filter_eligible(
            candidates,
            active_creator_ids,
            exclude_video_ids=exclude_video_ids,
            exclude_creator_ids=exclude_creator_ids,
            now=now
        )

    def _to_playlist(self, videos):
        base_url = Config.get_value("STORAGE_BASE_URL")
        return [
            PlaylistVideo(
                id=video.id,
                video_url=resolve_video_url(base_url, video.video_file_path),
                channel_url=video.channel_url,
                platform=video.platform,
                creator_name=video.creator_name
            )
            for video in videos
        ]

    # ---- outbound operations --------------------------------------------

    def request_reward_playlist(self, user_id, event_type, original_reward=0):
        """
        为一次奖励事件下发视频列表并创建会话
        :return: 响应字典（success=False 时带 error）
        """
        event = EventType.parse(event_type)
        if event is None:
            return {"success": False, "error": "INVALID_EVENT_TYPE", "rewardSessionId": None, "videos": []}

        videos_required = event.videos_required
        logger.info("[reward-start] User %s, event: %s, videosRequired: %s", user_id, event.value, videos_required)

        try:
            eligible = self._eligible_candidates()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("[reward-start] Error fetching videos: %s", e)
            return {"success": False, "error": "DATABASE_ERROR", "rewardSessionId": None, "videos": []}

        country_code, country_video_ids, top_topic_ids = self._viewer_preferences(user_id, "reward-start")
        selection = self.selector.rank(eligible, country_code, country_video_ids, top_topic_ids)
        logger.info("[reward-start] %s eligible videos, pool %s (relevant=%s, global_fallback=%s)",
                    len(eligible), len(selection.pool), selection.is_relevant, selection.is_global_fallback)

        if not selection.available:
            logger.info("[reward-start] No eligible videos in entire system")
            return {"success": False, "error": "NO_VIDEOS_AVAILABLE", "rewardSessionId": None, "videos": []}

        playlist = self._to_playlist(self.mixer.sequence(selection.pool, videos_required))
        session_id = self.session_manager.create_session(
            user_id, event.value, [video.id for video in playlist], original_reward
        )
        logger.info("[reward-start] Selected %s videos for session %s", len(playlist), session_id)

        return {
            "success": True,
            "rewardSessionId": session_id,
            "videos": [video.to_dict() for video in playlist],
            "videosRequired": videos_required,
            "eventType": event.value,
            "originalReward": original_reward or 0,
        }

    def get_ad_video(self, user_id, context, exclude_video_ids=(), exclude_creator_ids=()):
        """单个视频选择（排除本轮已展示的视频/创作者）"""
        logger.info("[get-ad-video] User %s, context: %s", user_id, context)
        try:
            eligible = self._eligible_candidates(exclude_video_ids, exclude_creator_ids)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("[get-ad-video] Error fetching videos: %s", e)
            return {"available": False, "video": None, "error": "DATABASE_ERROR"}

        country_code, country_video_ids, top_topic_ids = self._viewer_preferences(user_id, "get-ad-video")
        selection = self.selector.rank(eligible, country_code, country_video_ids, top_topic_ids)
        video = self.selector.pick_one(selection)
        if video is None:
            logger.info("[get-ad-video] No eligible videos")
            return {"available": False, "video": None}

        logger.info("[get-ad-video] Selected %s video %s", "relevant" if selection.is_relevant else "random", video.id)
        return {
            "available": True,
            "video": {
                "id": video.id,
                "video_url": resolve_video_url(Config.get_value("STORAGE_BASE_URL"), video.video_file_path),
                "channel_url": video.channel_url,
                "platform": video.platform,
                "duration_seconds": video.duration_seconds,
                "creator_id": video.creator_id,
                "topics": list(video.topics),
            },
            "is_relevant": selection.is_relevant,
            "is_global_fallback": selection.is_global_fallback,
        }

    def preload_reward_videos(self, user_id, count=None):
        """预加载视频列表（国家定向 + 平台混排，不足时重复）"""
        try:
            count = int(count) if count is not None else self.PRELOAD_DEFAULT_COUNT
        except (TypeError, ValueError):
            count = self.PRELOAD_DEFAULT_COUNT
        count = min(max(count, 1), self.PRELOAD_MAX_COUNT)
        logger.info("[preload-reward-videos] User %s, requesting %s videos", user_id, count)

        try:
            eligible = self._eligible_candidates()
            country_code = self.fetch_user_country(user_id)
            country_video_ids = self.fetch_country_video_ids(country_code) if country_code else None
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("[preload-reward-videos] Error fetching videos: %s", e)
            return {"videos": []}

        pool, _ = self.selector.narrow_by_country(eligible, country_code, country_video_ids)
        if not pool:
            logger.info("[preload-reward-videos] No eligible videos after filtering")
            return {"videos": []}

        playlist = self._to_playlist(self.mixer.sequence(pool, count))
        videos = []
        for video in playlist:
            item = video.to_dict()
            item["creatorName"] = video.creator_name
            videos.append(item)
        logger.info("[preload-reward-videos] Returning %s videos", len(videos))
        return {"videos": videos}
