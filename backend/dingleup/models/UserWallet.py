from dingleup.models.database import db, utc_now


class UserWallet(db.Model):
    __tablename__ = 'user_wallets'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True, comment='主键ID')
    user_id = db.Column(db.String(64), unique=True, nullable=False, comment='用户ID')
    coins = db.Column(db.Integer, default=0, nullable=False, comment='金币')
    lives = db.Column(db.Integer, default=0, nullable=False, comment='生命')
    update_time = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, comment='更新时间')
    create_time = db.Column(db.DateTime, default=utc_now, nullable=False, comment='创建时间')

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "coins": self.coins,
            "lives": self.lives,
            "update_time": self.update_time.strftime("%Y-%m-%d %H:%M:%S") if self.update_time else "",
        }
