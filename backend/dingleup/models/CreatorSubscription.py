# -*- coding: utf-8 -*-
"""创作者订阅状态模型"""
from dingleup.models.database import db, utc_now


class CreatorSubscription(db.Model):
    __tablename__ = 'creator_subscriptions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    creator_id = db.Column(db.String(64), unique=True, nullable=False, comment='创作者用户ID')
    status = db.Column(db.String(32), nullable=False, default='inactive',
                       comment='active/trial/active_trial/cancel_at_period_end/inactive')
    current_period_end = db.Column(db.DateTime, nullable=True, comment='当前计费周期结束时间')
    update_time = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)
