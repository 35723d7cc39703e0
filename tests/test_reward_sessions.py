from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from dingleup.managers.RewardReconciliationManager import RewardReconciliationManager
from dingleup.managers.RewardSessionManager import RewardSessionManager
from dingleup.managers.WalletManager import WalletManager
from dingleup.models.database import db, utc_now
from dingleup.models.RewardSession import RewardSession
from dingleup.models.RewardVideoImpression import RewardVideoImpression
from dingleup.models.WalletTransaction import WalletTransaction
from dingleup.services.DaemonTask import DaemonTask


def start_session(client, headers, event_type="refill", original_reward=0):
    body = client.post("/reward-start", json={"eventType": event_type, "originalReward": original_reward},
                       headers=headers).get_json()
    return body["rewardSessionId"], [video["id"] for video in body["videos"]]


def backdate(session_id, seconds):
    session = db.session.get(RewardSession, session_id)
    session.created_at = utc_now() - timedelta(seconds=seconds)
    db.session.commit()


def complete(client, headers, session_id, watched):
    return client.post("/reward-complete", json={"rewardSessionId": session_id, "watchedVideoIds": watched},
                       headers=headers)


@pytest.fixture()
def seeded(make_video):
    make_video("v1", creator_id="c1", platform="tiktok")
    make_video("v2", creator_id="c2", platform="youtube")


def test_session_is_stored_as_pending(app, client, auth_headers, seeded):
    session_id, video_ids = start_session(client, auth_headers())
    session = RewardSessionManager.instance().get_session(session_id)
    assert session.status == "pending"
    assert session.required_ads == 2
    assert session.get_video_ids() == video_ids


def test_refill_completion_credits_once(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers)
    backdate(session_id, 40)

    first = complete(client, headers, session_id, video_ids)
    assert first.status_code == 200
    body = first.get_json()
    assert body["credited"] is True
    assert body["coins"] == 500
    assert body["lives"] == 5

    second = complete(client, headers, session_id, video_ids).get_json()
    assert second["success"] is True
    assert second["credited"] is False
    assert second["alreadyCompleted"] is True

    wallet = WalletManager.instance().get_wallet("user-1")
    assert (wallet.coins, wallet.lives) == (500, 5)
    assert WalletTransaction.query.count() == 1
    assert RewardVideoImpression.query.filter_by(session_id=session_id).count() == len(set(video_ids))


def test_daily_gift_doubling_pays_original_reward_again(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers, "daily_gift", 120)
    backdate(session_id, 20)
    body = complete(client, headers, session_id, video_ids).get_json()
    assert body["coins"] == 120
    assert body["lives"] == 0
    assert WalletManager.instance().get_wallet("user-1").coins == 120


def test_watched_ids_are_restricted_to_served_videos(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers, "game_end")
    backdate(session_id, 20)
    body = complete(client, headers, session_id, video_ids + ["forged"]).get_json()
    assert body["watchedVideoIds"] == video_ids


def test_completion_too_soon_is_rejected(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers)
    response = complete(client, headers, session_id, video_ids)
    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "WATCH_TIME_TOO_SHORT"
    assert body["requiredSeconds"] == 27
    assert WalletManager.instance().get_wallet("user-1").coins == 0


def test_unknown_or_foreign_session_is_not_found(app, client, auth_headers, seeded):
    session_id, video_ids = start_session(client, auth_headers("user-1"))
    backdate(session_id, 40)

    assert complete(client, auth_headers(), "missing", []).status_code == 404
    response = complete(client, auth_headers("user-2"), session_id, video_ids)
    assert response.status_code == 404
    assert response.get_json()["error"] == "SESSION_NOT_FOUND"


def test_expired_session_is_rejected(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers)
    backdate(session_id, 25 * 3600)
    response = complete(client, headers, session_id, video_ids)
    assert response.status_code == 410
    assert response.get_json()["error"] == "SESSION_EXPIRED"


def test_invalid_completion_payload(client, auth_headers):
    headers = auth_headers()
    assert client.post("/reward-complete", json={}, headers=headers).get_json()["error"] == "INVALID_SESSION_ID"
    response = client.post("/reward-complete", json={"rewardSessionId": "s", "watchedVideoIds": "v1"},
                           headers=headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_WATCHED_VIDEO_IDS"


def test_wallet_credit_is_idempotent_per_key(app):
    manager = WalletManager.instance()
    assert manager.credit("user-1", coins=10, idempotency_key="reward:s1")[:2] == (True, True)
    assert manager.credit("user-1", coins=10, idempotency_key="reward:s1")[:2] == (True, False)
    assert manager.get_wallet("user-1").coins == 10


def test_wallet_rejects_empty_or_negative_credit(app):
    manager = WalletManager.instance()
    assert manager.credit("user-1")[0] is False
    assert manager.credit("user-1", coins=-1)[0] is False


def test_compute_grant():
    manager = RewardReconciliationManager.instance()
    assert manager.compute_grant("refill", 999) == (500, 5)
    assert manager.compute_grant("game_end", 80) == (80, 0)
    assert manager.compute_grant("daily_gift", None) == (0, 0)


def test_game_end_without_reward_completes_without_credit(app, client, auth_headers, seeded):
    headers = auth_headers()
    session_id, video_ids = start_session(client, headers, "game_end", 0)
    backdate(session_id, 20)
    body = complete(client, headers, session_id, video_ids).get_json()
    assert body["success"] is True
    assert body["credited"] is False
    assert RewardSessionManager.instance().get_session(session_id).status == "completed"


def test_purge_removes_only_stale_pending_sessions(app, client, auth_headers, seeded):
    headers = auth_headers()
    stale_id, _ = start_session(client, headers)
    fresh_id, _ = start_session(client, headers)
    done_id, done_videos = start_session(client, headers)
    backdate(stale_id, 25 * 3600)
    backdate(done_id, 40)
    complete(client, headers, done_id, done_videos)
    backdate(done_id, 25 * 3600)

    assert DaemonTask.purge_orphaned_sessions(app) == 1
    manager = RewardSessionManager.instance()
    assert manager.get_session(stale_id) is None
    assert manager.get_session(fresh_id) is not None
    assert manager.get_session(done_id) is not None


def test_session_store_failure_still_returns_playlist(app, client, auth_headers, seeded, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr(db.session, "commit", broken_commit)
    body = client.post("/reward-start", json={"eventType": "refill"}, headers=auth_headers()).get_json()
    assert body["success"] is True
    assert body["rewardSessionId"]
    assert len(body["videos"]) == 2


def test_custom_exception_is_recorded_to_error_log(app):
    from dingleup.models.ErrorLog import ErrorLog
    from dingleup.models.typings import DatabaseOperationException

    DatabaseOperationException("Failed to store reward session s-1")
    row = ErrorLog.query.one()
    assert row.error_type == "DatabaseOperationException"
    assert row.to_dict()["error_event"] == "Failed to store reward session s-1"


def test_wallet_credit_adds_in_database_not_over_stale_balance(app):
    from sqlalchemy import text

    manager = WalletManager.instance()
    wallet = manager.get_wallet("user-1")
    assert wallet.coins == 0

    # a concurrent credit lands after this session loaded the wallet
    db.session.connection().execute(text("UPDATE user_wallets SET coins = coins + 7, lives = lives + 1 "
                                         "WHERE user_id = 'user-1'"))

    success, credited, result = manager.credit("user-1", coins=10, lives=2, idempotency_key="reward:s2")
    assert (success, credited) == (True, True)
    assert (result.coins, result.lives) == (17, 3)
    assert WalletManager.instance().get_wallet("user-1").coins == 17
