# -*- coding: utf-8 -*-
import logging
from functools import wraps

import jwt
from flask import Blueprint, Flask, current_app, jsonify, request
from flask_apscheduler import APScheduler
from flask_cors import cross_origin

from dingleup.managers.Config import Config
from dingleup.managers.RewardReconciliationManager import RewardReconciliationManager
from dingleup.managers.RewardVideoManager import RewardVideoManager
from dingleup.managers.WalletManager import WalletManager
from dingleup.models.database import db
from dingleup.models.CreatorSubscription import CreatorSubscription  # noqa: F401  注册表结构
from dingleup.models.CreatorVideo import CreatorVideo, CreatorVideoCountry, CreatorVideoTopic  # noqa: F401
from dingleup.models.ErrorLog import ErrorLog  # noqa: F401
from dingleup.models.RewardSession import RewardSession  # noqa: F401
from dingleup.models.RewardVideoImpression import RewardVideoImpression  # noqa: F401
from dingleup.models.UserProfile import UserProfile  # noqa: F401
from dingleup.models.UserTopicStat import UserTopicStat  # noqa: F401
from dingleup.models.UserWallet import UserWallet  # noqa: F401
from dingleup.models.WalletTransaction import WalletTransaction  # noqa: F401
from dingleup.models.typings import DecoratorException
from dingleup.services.DaemonTask import DaemonTask
from dingleup.services.RateLimiter import RATE_LIMITS, RateLimiter

logger = logging.getLogger(__name__)

scheduler = APScheduler()
reward_bp = Blueprint('reward', __name__)

COMPLETE_ERROR_STATUS = {
    "SESSION_NOT_FOUND": 404,
    "SESSION_EXPIRED": 410,
    "WATCH_TIME_TOO_SHORT": 400,
    "WALLET_ERROR": 500,
    "DATABASE_ERROR": 500,
}


# 清理超时未完成的奖励会话
@scheduler.task('interval', id='purge_orphaned_reward_sessions', hours=1)
def purge_orphaned_reward_sessions():
    DaemonTask.purge_orphaned_sessions(scheduler.app)


# 清理过期的限流窗口
@scheduler.task('interval', id='cleanup_rate_limits', minutes=1)
def cleanup_rate_limits():
    DaemonTask.cleanup_rate_limits(scheduler.app)


def build_database_uri():
    uri = Config.get_value("SQLALCHEMY_DATABASE_URI")
    if uri:
        return uri
    return "mysql+pymysql://root:" + (Config.get_value("MariaDB_password") or "") + "@" + (
        Config.get_value("MariaDB_url") or "localhost/dingleup")


def create_app(config_file=None):
    if config_file:
        Config.reload(config_file)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=Config.get_value("LOG_LEVEL")
    )

    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = build_database_uri()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = Config.get_value("JWT_SECRET_KEY")
    app.extensions['rate_limiter'] = RateLimiter()

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(reward_bp)

    if Config.get_value("SCHEDULER_ENABLED") and not scheduler.running:
        scheduler.init_app(app)
        scheduler.start()
    return app


def token_required(f):
    """
    鉴权，并从jwt的sub中获取用户ID
    :param f:
    :return: 用户ID
    """
    try:
        @wraps(f)
        def decorator(*args, **kwargs):
            token = None
            auth_header = request.headers.get('Authorization')

            if auth_header and auth_header.startswith('Bearer '):
                token = auth_header[7:]

            if not token:
                return jsonify({
                    "status": "error",
                    "data": {},
                    "message": "Token is missing!"
                }), 401

            try:
                decoded = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=["HS256"])
                user_id = decoded['sub']
            except Exception as e:
                return jsonify({
                    "status": "error",
                    "data": {},
                    "message": f"Invalid token: {str(e)}"
                }), 401

            return f(user_id, *args, **kwargs)

        return decorator
    except Exception as e:
        raise DecoratorException("token_required decorator failed: " + ", ".join(str(arg) for arg in e.args))


def rate_limited(rpc_name, limit_name="REWARD"):
    """按用户限流，需放在 token_required 之后"""
    def wrapper(f):
        @wraps(f)
        def decorator(user_id, *args, **kwargs):
            limiter = current_app.extensions['rate_limiter']
            allowed, _, retry_after = limiter.check(user_id, rpc_name, RATE_LIMITS[limit_name])
            if not allowed:
                response = jsonify({
                    "error": "Rate limit exceeded",
                    "message": "Too many requests. Please try again later.",
                    "retryAfter": retry_after
                })
                response.headers['Retry-After'] = str(retry_after)
                return response, 429
            return f(user_id, *args, **kwargs)
        return decorator
    return wrapper


@reward_bp.route('/', methods=['GET', 'POST'])
def index():
    return "ok"


@reward_bp.route('/reward-start', methods=['POST'])
@cross_origin()
@token_required
@rate_limited('reward-start')
def reward_start_api(user_id):
    """奖励视频下发：按事件类型返回1或2个视频并创建会话"""
    request_data = request.get_json(force=True, silent=True) or {}
    try:
        original_reward = int(request_data.get('originalReward') or 0)
    except (TypeError, ValueError):
        original_reward = -1
    if original_reward < 0:
        return jsonify({"success": False, "error": "INVALID_ORIGINAL_REWARD", "rewardSessionId": None, "videos": []}), 400

    result = RewardVideoManager.instance().request_reward_playlist(
        user_id, request_data.get('eventType'), original_reward
    )
    if result.get("error") == "INVALID_EVENT_TYPE":
        return jsonify(result), 400
    return jsonify(result), 200


@reward_bp.route('/reward-complete', methods=['POST'])
@cross_origin()
@token_required
@rate_limited('reward-complete')
def reward_complete_api(user_id):
    """观看完成对账：同一会话只发一次奖励"""
    request_data = request.get_json(force=True, silent=True) or {}
    session_id = request_data.get('rewardSessionId')
    watched_video_ids = request_data.get('watchedVideoIds', [])

    if not session_id or not isinstance(session_id, str):
        return jsonify({"success": False, "error": "INVALID_SESSION_ID"}), 400
    if not isinstance(watched_video_ids, list):
        return jsonify({"success": False, "error": "INVALID_WATCHED_VIDEO_IDS"}), 400

    success, data, error = RewardReconciliationManager.instance().complete_reward(
        user_id, session_id, [str(video_id) for video_id in watched_video_ids]
    )
    if not success:
        return jsonify({"success": False, "error": error, **data}), COMPLETE_ERROR_STATUS.get(error, 400)
    return jsonify({"success": True, **data}), 200


@reward_bp.route('/get-ad-video', methods=['POST'])
@cross_origin()
@token_required
@rate_limited('get-ad-video')
def get_ad_video_api(user_id):
    """单个推广视频：国家定向 + 兴趣相关度"""
    request_data = request.get_json(force=True, silent=True) or {}
    exclude_video_ids = request_data.get('exclude_video_ids') or []
    exclude_creator_ids = request_data.get('exclude_creator_ids') or []
    if not isinstance(exclude_video_ids, list) or not isinstance(exclude_creator_ids, list):
        return jsonify({"available": False, "video": None, "error": "INVALID_EXCLUDE_IDS"}), 400

    result = RewardVideoManager.instance().get_ad_video(
        user_id,
        request_data.get('context'),
        exclude_video_ids=[str(video_id) for video_id in exclude_video_ids],
        exclude_creator_ids=[str(creator_id) for creator_id in exclude_creator_ids]
    )
    if result.get("error") == "DATABASE_ERROR":
        return jsonify(result), 500
    return jsonify(result), 200


@reward_bp.route('/preload-reward-videos', methods=['GET'])
@cross_origin()
@token_required
@rate_limited('preload-reward-videos')
def preload_reward_videos_api(user_id):
    """预加载视频列表，失败时返回空列表"""
    result = RewardVideoManager.instance().preload_reward_videos(user_id, request.args.get('count'))
    return jsonify(result), 200


@reward_bp.route('/get-wallet', methods=['GET'])
@cross_origin()
@token_required
def get_wallet_api(user_id):
    """查询金币与生命"""
    wallet = WalletManager.instance().get_wallet(user_id)
    return jsonify({
        "status": "success",
        "data": wallet.to_dict(),
        "message": "Query successful"
    })


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000)
