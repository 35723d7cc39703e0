# -*- coding: utf-8 -*-
"""Client-side completion handler plugged into PlaybackGate.on_reconcile"""
import logging

from dingleup.models.RewardTypes import EventType

logger = logging.getLogger(__name__)


class RewardCompletionHandler:
    """
    Credits the reward, shows the confirmation toast and passes the watched
    ids upward, exactly once even if close fires twice in a row.

    :param credit: callable(session_id, watched_ids) doing the wallet credit
    :param notify: callable(level, message) showing a toast
    :param report_watched: callable(watched_ids) for impression analytics
    """

    def __init__(self, event_type, credit, notify=None, report_watched=None,
                 session_id=None, original_reward=0, refill_coins=500, refill_lives=5):
        self.event_type = EventType.parse(event_type)
        self.credit = credit
        self.notify = notify
        self.report_watched = report_watched
        self.session_id = session_id
        self.original_reward = original_reward or 0
        self.refill_coins = refill_coins
        self.refill_lives = refill_lives
        self._reported = False

    @property
    def reported(self):
        return self._reported

    def success_message(self):
        if self.event_type is EventType.REFILL:
            return f"Reward credited! +{self.refill_coins} coins | +{self.refill_lives} lives"
        if self.original_reward:
            return f"Doubled reward! +{self.original_reward * 2} coins"
        return "Reward credited!"

    def __call__(self, watched_video_ids):
        if self._reported:
            logger.debug("[reward-completion] Duplicate completion ignored for %s", self.session_id)
            return False
        self._reported = True

        try:
            self.credit(self.session_id, list(watched_video_ids))
        except Exception:
            # 服务端按会话幂等入账，释放锁存以便重试
            self._reported = False
            logger.exception("[reward-completion] Credit failed for session %s", self.session_id)
            if self.notify:
                self.notify("error", "Could not credit your reward, please try again")
            raise

        if self.notify:
            self.notify("success", self.success_message())
        if self.report_watched:
            self.report_watched(list(watched_video_ids))
        return True
