# -*- coding: utf-8 -*-
"""Per-user fixed-window rate limiter owned by the Flask app, not a module global"""
import threading
import time
from collections import namedtuple

RateLimitConfig = namedtuple("RateLimitConfig", ["max_requests", "window_minutes"])

RATE_LIMITS = {
    "AUTH": RateLimitConfig(5, 15),
    "AUTH_REGISTER": RateLimitConfig(3, 60),
    "GAME": RateLimitConfig(200, 1),
    "GAME_START": RateLimitConfig(60, 1),
    "GAME_COMPLETE": RateLimitConfig(60, 1),
    "WALLET": RateLimitConfig(120, 1),
    "REWARD": RateLimitConfig(30, 1),
    "LEADERBOARD": RateLimitConfig(300, 1),
    "SOCIAL": RateLimitConfig(100, 1),
    "CREATOR": RateLimitConfig(60, 1),
    "ADMIN": RateLimitConfig(1000, 1),
}


class RateLimiter:

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self._windows = {}  # "user:rpc" -> [count, reset_at]
        self._lock = threading.Lock()

    def check(self, user_id, rpc_name, config=RATE_LIMITS["WALLET"]):
        """
        计数并判断是否放行
        :return: (allowed, remaining, retry_after_seconds)
        """
        key = f"{user_id}:{rpc_name}"
        now = self.clock()
        window_seconds = config.window_minutes * 60

        with self._lock:
            window = self._windows.get(key)
            if window is None or window[1] <= now:
                self._windows[key] = [1, now + window_seconds]
                return True, config.max_requests - 1, 0

            if window[0] >= config.max_requests:
                return False, 0, max(int(window[1] - now + 0.999), 1)

            window[0] += 1
            return True, config.max_requests - window[0], 0

    def cleanup(self):
        """清理已过期的窗口，返回清理数量"""
        now = self.clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if window[1] <= now]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._windows)
