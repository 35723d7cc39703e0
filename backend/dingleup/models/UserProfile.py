from dingleup.models.database import db, utc_now


class UserProfile(db.Model):
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.String(64), unique=True, nullable=False, comment='用户ID')
    country_code = db.Column(db.String(2), nullable=True, comment='用户所在国家')
    create_time = db.Column(db.DateTime, default=utc_now, nullable=False)
