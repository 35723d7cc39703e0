# -*- coding: utf-8 -*-
"""
@author yumu
@version 1.0.0
"""
import logging

from dingleup.models.ErrorLog import ErrorLog
from dingleup.models.database import db

logger = logging.getLogger(__name__)


class CustomException(Exception):
    """
    自定义的异常类的基类
    """

    def __init__(self, message):
        super().__init__(message)
        self.message = message
        self.record_error()

    def record_error(self):
        """
        触发异常自动记录到数据库中
        :return:
        """
        try:
            from flask import has_app_context
            if has_app_context():
                error = ErrorLog(error_type=type(self).__name__, error_event=self.message)
                db.session.add(error)
                db.session.commit()
            else:
                # 没有应用上下文时只打印错误
                logger.error("[CustomException] %s", self.message)
        except Exception as e:
            db.session.rollback()
            logger.error("[CustomException] %s (could not record to database: %s)", self.message, e)


class ConfigOperationException(CustomException):
    """
    配置文件操作异常类
    """
    pass


class DatabaseOperationException(CustomException):
    """
    数据库操作异常类
    """
    pass


class DecoratorException(CustomException):
    """
    装饰器处理异常类
    """
    pass
