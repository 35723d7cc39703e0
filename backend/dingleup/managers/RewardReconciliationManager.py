# -*- coding: utf-8 -*-
"""Reward Reconciliation Manager / 奖励对账：观看完成后按会话发放奖励，每个会话只发一次"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dingleup.managers.Config import Config
from dingleup.managers.RewardSessionManager import RewardSessionManager
from dingleup.managers.WalletManager import WalletManager
from dingleup.models.database import db, utc_now
from dingleup.models.RewardTypes import EventType, SessionStatus
from dingleup.models.RewardVideoImpression import RewardVideoImpression
from dingleup.models.typings import DatabaseOperationException

logger = logging.getLogger(__name__)


class RewardReconciliationManager:
    _instance = None
    REFILL_COINS = 500   # 补给：500金币
    REFILL_LIVES = 5     # 补给：5条命

    def __init__(self, session_manager=None, wallet_manager=None):
        self.session_manager = session_manager or RewardSessionManager.instance()
        self.wallet_manager = wallet_manager or WalletManager.instance()

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @staticmethod
    def idempotency_key(session_id):
        return f"reward:{session_id}"

    def compute_grant(self, event_type, original_reward):
        """
        :return: (coins, lives)；每日礼包/结算翻倍时额外发放一份原始奖励
        """
        if EventType.parse(event_type) is EventType.REFILL:
            return self.REFILL_COINS, self.REFILL_LIVES
        return max(int(original_reward or 0), 0), 0

    def minimum_watch_seconds(self, session):
        segment = float(Config.get_value("SEGMENT_DURATION_SECONDS"))
        tolerance = float(Config.get_value("COMPLETION_TOLERANCE_SECONDS"))
        return max(session.required_ads * segment - tolerance, 0)

    @staticmethod
    def _restrict_watched(session, watched_video_ids):
        served = set(session.get_video_ids())
        watched = []
        for video_id in watched_video_ids or []:
            if video_id in served and video_id not in watched:
                watched.append(video_id)
        return watched

    def complete_reward(self, user_id, session_id, watched_video_ids, now=None):
        """
        观看完成后的对账发奖
        :return: (success, data, error_code)
        """
        session = self.session_manager.get_session(session_id, user_id=user_id)
        if not session:
            return False, {}, "SESSION_NOT_FOUND"

        if session.status == SessionStatus.COMPLETED.value:
            return True, {
                "credited": False,
                "alreadyCompleted": True,
                "coins": 0,
                "lives": 0,
                "watchedVideoIds": session.get_watched_video_ids()
            }, ""

        now = now or utc_now()
        if self.session_manager.is_expired(session, now=now):
            return False, {}, "SESSION_EXPIRED"

        elapsed = (now - session.created_at).total_seconds()
        required = self.minimum_watch_seconds(session)
        if elapsed < required:
            logger.warning("[reward-complete] Session %s completed after %.1fs, needs %.1fs",
                           session_id, elapsed, required)
            return False, {"elapsedSeconds": int(elapsed), "requiredSeconds": int(required)}, "WATCH_TIME_TOO_SHORT"

        watched = self._restrict_watched(session, watched_video_ids)
        coins, lives = self.compute_grant(session.event_type, session.original_reward)

        credited = False
        if coins or lives:
            success, credited, result = self.wallet_manager.credit(
                user_id,
                coins=coins,
                lives=lives,
                idempotency_key=self.idempotency_key(session_id),
                source=session.event_type
            )
            if not success:
                return False, {"message": result}, "WALLET_ERROR"

        try:
            self.session_manager.mark_completed(session_id, watched, commit=False)
            for video_id in watched:
                db.session.add(RewardVideoImpression(
                    session_id=session_id,
                    user_id=user_id,
                    video_id=video_id,
                    event_type=session.event_type
                ))
            db.session.commit()
        except IntegrityError:
            # 并发的另一次完成已落库
            db.session.rollback()
            return True, {
                "credited": False,
                "alreadyCompleted": True,
                "coins": 0,
                "lives": 0,
                "watchedVideoIds": watched
            }, ""
        except SQLAlchemyError as e:
            db.session.rollback()
            DatabaseOperationException(f"Failed to complete reward session {session_id}: {e}")
            return False, {}, "DATABASE_ERROR"

        logger.info("[reward-complete] Session %s completed: %s coins, %s lives, watched %s",
                    session_id, coins if credited else 0, lives if credited else 0, watched)
        return True, {
            "credited": credited,
            "alreadyCompleted": False,
            "coins": coins if credited else 0,
            "lives": lives if credited else 0,
            "watchedVideoIds": watched
        }, ""
