# -*- coding: utf-8 -*-
"""
@author yumu
@version 1.0.0
"""
import json
import os

from dingleup.models.typings import ConfigOperationException

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_FILE = os.environ.get("DINGLEUP_CONFIG", os.path.join(ROOT_DIR, "config.json"))

SCHEDULER_API_ENABLED = False
SCHEDULER_TIMEZONE = "UTC"

# 配置文件中缺省时使用的默认值
DEFAULTS = {
    "STORAGE_BASE_URL": "",
    "SEGMENT_DURATION_SECONDS": 15,
    "REWARD_SESSION_MAX_AGE_HOURS": 24,
    "COMPLETION_TOLERANCE_SECONDS": 3,
    "SCHEDULER_ENABLED": True,
    "LOG_LEVEL": "INFO",
}


class Config:
    _instance = None

    @classmethod
    def _get_instance(cls, config_file=None):
        if cls._instance is None:
            cls._instance = cls.__new__(cls)
            cls._instance.config_file = config_file or os.environ.get("DINGLEUP_CONFIG", CONFIG_FILE)
            cls._instance.config = {}
            cls._instance.config = cls._instance.load_config()
        return cls._instance

    @classmethod
    def reload(cls, config_file=None):
        """
        丢弃当前单例并从指定文件重新加载
        :param config_file: 配置文件路径，为空时使用默认路径
        :return: None
        """
        cls._instance = None
        cls._get_instance(config_file)

    @classmethod
    def load_config(cls):
        """
        加载配置文件
        :return: 配置文件，json形式
        """
        instance = cls._get_instance()
        try:
            if os.path.exists(instance.config_file):
                with open(instance.config_file, 'r', encoding='utf-8') as file:
                    return json.load(file)
            return {}
        except Exception as e:
            ConfigOperationException("Failed to read config file: " + ", ".join(str(arg) for arg in e.args))
            return {}

    @classmethod
    def get_value(cls, *args):
        """
        从配置文件中获取配置，针对多级key做了优化
        :param args: 指定的key，可以为多级
        :return: 获取到的值，单级key缺失时返回DEFAULTS中的默认值
        """
        instance = cls._get_instance()
        try:
            value = instance.config
            for key in args:
                value = value[key]
            return value
        except (KeyError, TypeError) as e:
            if len(args) == 1 and args[0] in DEFAULTS:
                return DEFAULTS[args[0]]
            ConfigOperationException("Failed to read config value: " + ", ".join(str(arg) for arg in e.args))
            return None
