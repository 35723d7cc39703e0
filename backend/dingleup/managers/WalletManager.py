import logging
import uuid

from sqlalchemy.exc import IntegrityError

from dingleup.models.database import db
from dingleup.models.UserWallet import UserWallet
from dingleup.models.WalletTransaction import WalletTransaction

logger = logging.getLogger(__name__)


class WalletManager:
    """
    金币/生命钱包管理器
    入账按 idempotency_key 去重：同一个键只入账一次，重复调用安全
    """
    _instance = None

    @classmethod
    def instance(cls):
        """单例模式"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_wallet(self, user_id):
        """获取用户钱包，不存在时创建"""
        wallet = UserWallet.query.filter_by(user_id=user_id).first()
        if not wallet:
            wallet = UserWallet(user_id=user_id, coins=0, lives=0)
            db.session.add(wallet)
            db.session.commit()
        return wallet

    def find_transaction(self, idempotency_key):
        return WalletTransaction.query.filter_by(idempotency_key=idempotency_key).first()

    def credit(self, user_id, coins=0, lives=0, idempotency_key=None, source="reward"):
        """
        入账
        :return: (success, credited, wallet or message)，重复键返回 (True, False, wallet)
        """
        if coins < 0 or lives < 0:
            return False, False, "Credit amounts cannot be negative"
        if coins == 0 and lives == 0:
            return False, False, "Credit amount must be greater than 0"

        idempotency_key = idempotency_key or f"{source}:{uuid.uuid4().hex}"
        if self.find_transaction(idempotency_key):
            logger.info("[wallet] Duplicate credit ignored: %s", idempotency_key)
            return True, False, self.get_wallet(user_id)

        wallet = self.get_wallet(user_id)
        # 在数据库内累加，避免并发入账覆盖
        UserWallet.query.filter_by(user_id=user_id).update({
            UserWallet.coins: UserWallet.coins + coins,
            UserWallet.lives: UserWallet.lives + lives
        }, synchronize_session=False)
        db.session.add(WalletTransaction(
            idempotency_key=idempotency_key,
            user_id=user_id,
            coins=coins,
            lives=lives,
            source=source
        ))
        try:
            db.session.commit()
        except IntegrityError:
            # 并发重复入账，以先提交的一方为准
            db.session.rollback()
            logger.info("[wallet] Concurrent duplicate credit ignored: %s", idempotency_key)
            return True, False, self.get_wallet(user_id)

        db.session.refresh(wallet)
        logger.info("[wallet] Credited %s coins, %s lives to %s (%s)", coins, lives, user_id, source)
        return True, True, wallet
