# -*- coding: utf-8 -*-
"""创作者推广视频模型"""
import uuid

from dingleup.models.database import db, utc_now
from dingleup.models.RewardTypes import VideoCandidate


class CreatorVideo(db.Model):
    __tablename__ = 'creator_videos'

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()), comment='视频ID（UUID）')
    creator_id = db.Column(db.String(64), nullable=False, index=True, comment='创作者用户ID')
    video_group_id = db.Column(db.String(64), nullable=True, comment='同一次提交（多平台）共享的分组ID')
    platform = db.Column(db.String(20), nullable=False, comment='tiktok/youtube/instagram/facebook')
    video_file_path = db.Column(db.String(512), nullable=True, comment='存储路径或完整URL')
    channel_url = db.Column(db.String(512), nullable=True, comment='访问创作者的跳转链接')
    duration_seconds = db.Column(db.Integer, nullable=True, comment='视频时长（秒）')
    creator_name = db.Column(db.String(255), nullable=True, comment='创作者展示名')
    status = db.Column(db.String(20), default='active', nullable=False, comment='active/inactive/expired')
    is_active = db.Column(db.Boolean, default=True, nullable=False, comment='是否启用')
    expires_at = db.Column(db.DateTime, nullable=False, comment='过期时间（UTC）')
    created_at = db.Column(db.DateTime, default=utc_now, comment='创建时间（UTC）')

    topics = db.relationship('CreatorVideoTopic', backref='video', lazy='selectin', cascade='all, delete-orphan')
    countries = db.relationship('CreatorVideoCountry', backref='video', lazy='selectin', cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('idx_active_expires', 'is_active', 'expires_at'),
    )

    def to_candidate(self):
        return VideoCandidate(
            id=self.id,
            creator_id=self.creator_id,
            platform=self.platform,
            video_file_path=self.video_file_path,
            channel_url=self.channel_url,
            duration_seconds=self.duration_seconds,
            creator_name=self.creator_name,
            is_active=bool(self.is_active),
            expires_at=self.expires_at,
            topics=tuple(t.topic_id for t in self.topics),
            countries=tuple(c.country_code for c in sorted(self.countries, key=lambda c: c.sort_order or 0)),
        )


class CreatorVideoTopic(db.Model):
    __tablename__ = 'creator_video_topics'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    video_id = db.Column(db.String(64), db.ForeignKey('creator_videos.id'), nullable=False)
    topic_id = db.Column(db.Integer, nullable=False, comment='兴趣主题ID')

    __table_args__ = (
        db.UniqueConstraint('video_id', 'topic_id', name='uk_video_topic'),
    )


class CreatorVideoCountry(db.Model):
    __tablename__ = 'creator_video_countries'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    video_id = db.Column(db.String(64), db.ForeignKey('creator_videos.id'), nullable=False)
    country_code = db.Column(db.String(2), nullable=False, index=True, comment='ISO国家代码')
    is_primary = db.Column(db.Boolean, default=False, comment='是否主投放国家')
    sort_order = db.Column(db.Integer, default=0, comment='排序')

    __table_args__ = (
        db.UniqueConstraint('video_id', 'country_code', name='uk_video_country'),
    )
