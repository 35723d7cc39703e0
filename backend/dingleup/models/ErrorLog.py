# -*- coding: utf-8 -*-
"""
@author yumu
@version 1.0.0
"""
from dingleup.models.database import db, utc_now


class ErrorLog(db.Model):
    """
    错误日志模型，CustomException 创建时自动写入
    """
    __tablename__ = 'error_log'
    error_log_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    error_type = db.Column(db.String(64), nullable=True, comment='异常类名')
    error_event = db.Column(db.Text, nullable=True, comment='异常信息')
    error_time = db.Column(db.DateTime, default=utc_now, comment='记录时间（UTC）')

    def to_dict(self):
        return {
            "error_log_id": self.error_log_id,
            "error_type": self.error_type,
            "error_event": self.error_event,
            "error_time": self.error_time.strftime("%Y-%m-%d %H:%M:%S") if self.error_time else "",
        }
