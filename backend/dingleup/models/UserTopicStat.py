# -*- coding: utf-8 -*-
"""用户主题答对统计（兴趣强度）"""
from dingleup.models.database import db


class UserTopicStat(db.Model):
    __tablename__ = 'user_topic_stats'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.String(64), nullable=False, comment='用户ID')
    topic_id = db.Column(db.Integer, nullable=False, comment='主题ID')
    correct_count = db.Column(db.Integer, default=0, nullable=False, comment='答对题数')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'topic_id', name='uk_user_topic'),
        db.Index('idx_user_correct', 'user_id', 'correct_count'),
    )
