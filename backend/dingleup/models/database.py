# -*- coding: utf-8 -*-
"""
Shared Flask-SQLAlchemy handle. Models and managers import ``db`` from here;
``create_app`` in main.py binds it to the application.
所有时间字段统一存储为不带时区的UTC时间
"""
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utc_now():
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
