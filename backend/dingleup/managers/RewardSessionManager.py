# -*- coding: utf-8 -*-
"""Reward Session Manager / 奖励会话管理器"""
import json
import logging
import time
import uuid
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from dingleup.managers.Config import Config
from dingleup.models.database import db, utc_now
from dingleup.models.RewardSession import RewardSession
from dingleup.models.RewardTypes import SessionStatus
from dingleup.models.typings import DatabaseOperationException

logger = logging.getLogger(__name__)


class RewardSessionManager:
    _instance = None

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @staticmethod
    def generate_session_id(user_id, event_type):
        """用户+事件+毫秒时间戳+随机后缀"""
        return f"{user_id}-{event_type}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"

    def create_session(self, user_id, event_type, video_ids, original_reward=0):
        """
        创建待完成的奖励会话
        写库失败只记录日志，仍返回会话ID（会话只是对账辅助，真正的限制在客户端计时）
        :return: session_id
        """
        session_id = self.generate_session_id(user_id, event_type)
        try:
            session = RewardSession(
                id=session_id,
                user_id=user_id,
                event_type=event_type,
                required_ads=len(video_ids),
                original_reward=original_reward or 0,
                video_ids=json.dumps(list(video_ids)),
                status=SessionStatus.PENDING.value,
                created_at=utc_now()
            )
            db.session.add(session)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("[reward-start] Could not store session %s: %s", session_id, e)
            DatabaseOperationException(f"Failed to store reward session {session_id}: {e}")
        return session_id

    def get_session(self, session_id, user_id=None):
        query = RewardSession.query.filter_by(id=session_id)
        if user_id is not None:
            query = query.filter_by(user_id=user_id)
        return query.first()

    def mark_completed(self, session_id, watched_video_ids, commit=True):
        """
        标记会话完成（幂等：已完成的会话不再修改）
        :return: (success, changed, message)
        """
        session = RewardSession.query.filter_by(id=session_id).first()
        if not session:
            return False, False, "Reward session not found"
        if session.status == SessionStatus.COMPLETED.value:
            return True, False, "Reward session already completed"

        session.status = SessionStatus.COMPLETED.value
        session.watched_video_ids = json.dumps(list(watched_video_ids))
        session.completed_at = utc_now()
        if commit:
            db.session.commit()
        return True, True, "Reward session completed"

    def is_expired(self, session, now=None):
        max_age = timedelta(hours=float(Config.get_value("REWARD_SESSION_MAX_AGE_HOURS")))
        return (now or utc_now()) - session.created_at > max_age

    def purge_expired_sessions(self, now=None):
        """
        清理超过最大时长仍未完成的会话，已完成的会话保留作为历史记录
        :return: 删除条数
        """
        max_age = timedelta(hours=float(Config.get_value("REWARD_SESSION_MAX_AGE_HOURS")))
        cutoff = (now or utc_now()) - max_age
        try:
            deleted = RewardSession.query.filter(
                RewardSession.status == SessionStatus.PENDING.value,
                RewardSession.created_at < cutoff
            ).delete(synchronize_session=False)
            db.session.commit()
            return deleted
        except SQLAlchemyError as e:
            db.session.rollback()
            DatabaseOperationException(f"Failed to purge reward sessions: {e}")
            return 0
