# -*- coding: utf-8 -*-
"""钱包流水：idempotency_key 唯一，重复入账只保留第一条"""
from dingleup.models.database import db, utc_now


class WalletTransaction(db.Model):
    __tablename__ = 'wallet_transactions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    idempotency_key = db.Column(db.String(160), unique=True, nullable=False, comment='幂等键')
    user_id = db.Column(db.String(64), nullable=False, comment='用户ID')
    coins = db.Column(db.Integer, default=0, nullable=False)
    lives = db.Column(db.Integer, default=0, nullable=False)
    source = db.Column(db.String(32), nullable=False, comment='入账来源（daily_gift/game_end/refill）')
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
