# -*- coding: utf-8 -*-
"""奖励视频曝光记录（完成观看后按视频写入）"""
from dingleup.models.database import db, utc_now


class RewardVideoImpression(db.Model):
    __tablename__ = 'reward_video_impressions'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(db.String(128), nullable=False)   # 奖励会话ID
    user_id = db.Column(db.String(64), nullable=False)       # 用户ID
    video_id = db.Column(db.String(64), nullable=False)      # 视频ID
    event_type = db.Column(db.String(20), nullable=False)    # 触发事件
    created_at = db.Column(db.DateTime, default=utc_now)

    # 联合唯一索引（避免重复记录）
    __table_args__ = (
        db.UniqueConstraint('session_id', 'video_id', name='_session_video_uc'),
    )
