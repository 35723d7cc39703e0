# -*- coding: utf-8 -*-
"""Platform Mixer / 平台混排：避免同一平台连续出现3次及以上"""
import random
from collections import OrderedDict, deque


class PlatformMixer:
    _instance = None
    MAX_CONSECUTIVE = 2  # 同一平台最多连续2个

    def __init__(self, rng=None):
        self.rng = rng or random.Random()

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @staticmethod
    def _next_platform(platforms, pointer, accept):
        for offset in range(len(platforms)):
            platform = platforms[(pointer + offset) % len(platforms)]
            if accept(platform):
                return platform
        return None

    def sequence(self, pool, count):
        """
        生成长度恰好为 count 的播放列表
        按平台分组、组内打乱，轮转指针依次取视频；候选池不足时循环复用已出过的视频
        :param pool: 已排序/过滤的候选视频
        :param count: 需要的视频数量
        :return: 视频列表
        """
        if count <= 0 or not pool:
            return []

        partitions = OrderedDict()
        for video in pool:
            partitions.setdefault(video.platform or "unknown", []).append(video)
        for items in partitions.values():
            self.rng.shuffle(items)

        platforms = list(partitions)
        unused = {p: deque(items) for p, items in partitions.items()}
        emitted = {p: [] for p in platforms}

        result = []
        last_platform = None
        streak = 0
        pointer = 0

        while len(result) < count:
            if not any(unused.values()):
                # 候选池已用完，按已出顺序循环
                for p in platforms:
                    unused[p].extend(emitted[p])
                    emitted[p] = []

            blocked = last_platform if streak >= self.MAX_CONSECUTIVE and len(platforms) > 1 else None

            platform = self._next_platform(platforms, pointer, lambda p: unused[p] and p != blocked)
            if platform is not None:
                video = unused[platform].popleft()
                emitted[platform].append(video)
            else:
                # 只剩被限制的平台还有新视频：改为复用其他平台已出过的视频
                platform = self._next_platform(platforms, pointer, lambda p: p != blocked and emitted[p])
                video = emitted[platform].pop(0)
                emitted[platform].append(video)

            result.append(video)
            pointer = (platforms.index(platform) + 1) % len(platforms)
            if platform == last_platform:
                streak += 1
            else:
                last_platform = platform
                streak = 1

        return result
