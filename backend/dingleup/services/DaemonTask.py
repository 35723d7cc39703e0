import logging

from dingleup.managers.RewardSessionManager import RewardSessionManager

logger = logging.getLogger(__name__)


class DaemonTask:

    @classmethod
    def purge_orphaned_sessions(cls, app):
        with app.app_context():  # 确保在 Flask 应用上下文中操作数据库
            deleted = RewardSessionManager.instance().purge_expired_sessions()
            if deleted:
                logger.info("[daemon] Purged %s orphaned reward sessions", deleted)
            return deleted

    @classmethod
    def cleanup_rate_limits(cls, app):
        limiter = app.extensions.get("rate_limiter")
        if limiter is None:
            return 0
        removed = limiter.cleanup()
        if removed:
            logger.debug("[daemon] Dropped %s expired rate limit windows", removed)
        return removed

    @classmethod
    def start_daemon_task(cls, app):
        cls.purge_orphaned_sessions(app)
        cls.cleanup_rate_limits(app)
