# -*- coding: utf-8 -*-
"""奖励视频会话：触发事件与本次下发视频列表的绑定"""
import json

from dingleup.models.database import db, utc_now


class RewardSession(db.Model):
    __tablename__ = 'reward_sessions'

    id = db.Column(db.String(128), primary_key=True, comment='会话ID（用户+事件+时间戳+随机后缀）')
    user_id = db.Column(db.String(64), nullable=False, comment='用户ID')
    event_type = db.Column(db.String(20), nullable=False, comment='daily_gift/game_end/refill')
    required_ads = db.Column(db.Integer, nullable=False, comment='需要观看的视频段数')
    original_reward = db.Column(db.Integer, default=0, nullable=False, comment='被翻倍的原始奖励')
    video_ids = db.Column(db.Text, nullable=False, comment='下发的视频ID列表（JSON）')
    watched_video_ids = db.Column(db.Text, nullable=True, comment='实际观看的视频ID列表（JSON）')
    status = db.Column(db.String(20), default='pending', nullable=False, comment='pending/completed')
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False, comment='创建时间（UTC）')
    completed_at = db.Column(db.DateTime, nullable=True, comment='完成时间（UTC）')

    # 索引
    __table_args__ = (
        db.Index('idx_user_status', 'user_id', 'status'),
        db.Index('idx_status_created', 'status', 'created_at'),  # 用于定时任务清理过期会话
    )

    def get_video_ids(self):
        return json.loads(self.video_ids) if self.video_ids else []

    def get_watched_video_ids(self):
        return json.loads(self.watched_video_ids) if self.watched_video_ids else []

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "required_ads": self.required_ads,
            "original_reward": self.original_reward,
            "video_ids": self.get_video_ids(),
            "watched_video_ids": self.get_watched_video_ids(),
            "status": self.status,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M:%S") if self.created_at else "",
            "completed_at": self.completed_at.strftime("%Y-%m-%d %H:%M:%S") if self.completed_at else "",
        }
