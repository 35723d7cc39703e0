# -*- coding: utf-8 -*-
"""Video Selection Manager / 奖励视频筛选与定向管理器

Eligibility filtering, country targeting with global fallback and topic
relevance ranking. Works purely on ``VideoCandidate`` values; the database
lookups live in ``RewardVideoManager``.
"""
import logging
import random

from dingleup.models.database import utc_now
from dingleup.models.RewardTypes import SelectionResult

logger = logging.getLogger(__name__)


class VideoSelectionManager:
    _instance = None
    TOP_TOPIC_COUNT = 3        # 取答对数最多的3个主题作为兴趣
    AFFINITY_THRESHOLD = 100   # 累计答对不足100题时不做兴趣定向

    def __init__(self, rng=None):
        self.rng = rng or random.Random()

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def filter_eligible(self, candidates, active_creator_ids, exclude_video_ids=(), exclude_creator_ids=(), now=None):
        """
        过滤不可投放的视频
        :param candidates: VideoCandidate 列表
        :param active_creator_ids: 订阅有效的创作者ID集合
        :param exclude_video_ids: 本轮已展示过的视频ID
        :param exclude_creator_ids: 本轮已展示过的创作者ID
        :param now: 当前时间（UTC，naive），用于复核过期时间
        :return: 可投放的视频列表（保持原顺序）
        """
        now = now or utc_now()
        excluded_videos = set(exclude_video_ids or ())
        excluded_creators = set(exclude_creator_ids or ())

        eligible = []
        for video in candidates:
            if video.creator_id not in active_creator_ids:
                continue
            if not video.video_file_path:
                continue
            if video.id in excluded_videos or video.creator_id in excluded_creators:
                continue
            # 查询层已过滤，缓存的候选集仍需复核
            if not video.is_active or video.expires_at is None or video.expires_at <= now:
                continue
            eligible.append(video)
        return eligible

    def top_topics(self, affinity):
        """Top interest topics, or () when the viewer has answered too little to rank"""
        if affinity is None or affinity.total_correct < self.AFFINITY_THRESHOLD:
            return ()
        return tuple(affinity.top_topic_ids[:self.TOP_TOPIC_COUNT])

    def narrow_by_country(self, eligible, country_code, country_video_ids=None):
        """
        按国家定向缩小候选池，无定向视频时回退到全局池
        :return: (working_pool, is_global_fallback)
        """
        if not country_code:
            return list(eligible), False

        if country_video_ids is None:
            local = [v for v in eligible if country_code in v.countries]
        else:
            local = [v for v in eligible if v.id in country_video_ids]

        if local:
            return local, False
        logger.info("[selector] No videos targeting %s, using global fallback", country_code)
        return list(eligible), True

    def rank(self, eligible, country_code=None, country_video_ids=None, top_topic_ids=()):
        """
        国家定向 + 兴趣相关度排序，只对候选池做一次偏置，最终顺序由平台混排决定
        :return: SelectionResult
        """
        pool, is_global_fallback = self.narrow_by_country(eligible, country_code, country_video_ids)
        if not pool:
            return SelectionResult(pool=[], is_relevant=False, is_global_fallback=is_global_fallback)

        if top_topic_ids:
            wanted = set(top_topic_ids)
            relevant = [v for v in pool if wanted.intersection(v.topics)]
            if relevant:
                return SelectionResult(pool=relevant, is_relevant=True, is_global_fallback=is_global_fallback)

        return SelectionResult(pool=pool, is_relevant=False, is_global_fallback=is_global_fallback)

    def pick_one(self, selection):
        """Uniform random pick from the ranked pool"""
        if not selection.pool:
            return None
        return self.rng.choice(selection.pool)
