from datetime import timedelta

from conftest import STORAGE_BASE_URL


def start(client, headers, event_type="refill", original_reward=0):
    return client.post("/reward-start", json={"eventType": event_type, "originalReward": original_reward},
                       headers=headers)


def test_missing_token_is_rejected(client):
    response = client.post("/reward-start", json={"eventType": "refill"})
    assert response.status_code == 401
    assert response.get_json()["status"] == "error"


def test_invalid_token_is_rejected(client):
    response = client.post("/reward-start", json={"eventType": "refill"},
                           headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_refill_returns_two_videos_and_session(client, auth_headers, make_video):
    make_video("v1", creator_id="c1", platform="tiktok")
    make_video("v2", creator_id="c2", platform="youtube")

    response = start(client, auth_headers())
    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["videosRequired"] == 2
    assert body["eventType"] == "refill"
    assert len(body["videos"]) == 2
    assert {video["id"] for video in body["videos"]} == {"v1", "v2"}
    assert body["rewardSessionId"].startswith("user-1-refill-")


def test_single_video_is_repeated_for_refill(client, auth_headers, make_video):
    make_video("only")
    body = start(client, auth_headers()).get_json()
    assert [video["id"] for video in body["videos"]] == ["only", "only"]


def test_daily_gift_returns_one_video(client, auth_headers, make_video):
    make_video("v1")
    make_video("v2", creator_id="c2")
    body = start(client, auth_headers(), "daily_gift", 40).get_json()
    assert body["videosRequired"] == 1
    assert len(body["videos"]) == 1
    assert body["originalReward"] == 40


def test_end_game_alias_is_accepted(client, auth_headers, make_video):
    make_video("v1")
    body = start(client, auth_headers(), "end_game").get_json()
    assert body["success"] is True
    assert body["eventType"] == "game_end"


def test_playable_url_is_built_from_storage_path(client, auth_headers, make_video):
    make_video("v1", creator_id="c1", channel_url="https://tiktok.com/@c1")
    video = start(client, auth_headers(), "game_end").get_json()["videos"][0]
    assert video["videoUrl"] == f"{STORAGE_BASE_URL}/storage/v1/object/public/creator-videos/c1/v1.mp4"
    assert video["channelUrl"] == "https://tiktok.com/@c1"
    assert video["platform"] == "tiktok"


def test_ineligible_videos_are_never_served(client, auth_headers, make_video):
    make_video("good", creator_id="c1")
    make_video("expired", creator_id="c1", expires_in=timedelta(days=-1))
    make_video("paused", creator_id="c1", is_active=False)
    make_video("lapsed", creator_id="c2", subscription="canceled")
    make_video("no-sub", creator_id="c3", subscription=None)
    make_video("no-file", creator_id="c1", video_file_path=None)

    for _ in range(5):
        body = start(client, auth_headers()).get_json()
        assert [video["id"] for video in body["videos"]] == ["good", "good"]


def test_trial_subscription_counts_as_active(client, auth_headers, make_video):
    make_video("trial", creator_id="c1", subscription="trial")
    body = start(client, auth_headers(), "game_end").get_json()
    assert body["videos"][0]["id"] == "trial"


def test_no_videos_available(client, auth_headers):
    response = start(client, auth_headers())
    body = response.get_json()
    assert response.status_code == 200
    assert body == {"success": False, "error": "NO_VIDEOS_AVAILABLE", "rewardSessionId": None, "videos": []}


def test_invalid_event_type(client, auth_headers, make_video):
    make_video("v1")
    response = start(client, auth_headers(), "jackpot")
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_EVENT_TYPE"


def test_negative_original_reward_is_rejected(client, auth_headers):
    response = start(client, auth_headers(), "daily_gift", -5)
    assert response.status_code == 400
    assert response.get_json()["error"] == "INVALID_ORIGINAL_REWARD"


def test_rate_limit_returns_429(client, auth_headers):
    headers = auth_headers("busy-user")
    for _ in range(30):
        assert client.get("/preload-reward-videos", headers=headers).status_code == 200
    response = client.get("/preload-reward-videos", headers=headers)
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert client.get("/preload-reward-videos", headers=auth_headers("other-user")).status_code == 200


def test_get_ad_video_prefers_user_country(app, client, auth_headers, make_video):
    from dingleup.models.UserProfile import UserProfile
    from dingleup.models.database import db

    db.session.add(UserProfile(user_id="user-1", country_code="HU"))
    db.session.commit()
    make_video("hu-video", creator_id="c1", countries=("HU",))
    make_video("de-video", creator_id="c2", countries=("DE",))

    for _ in range(5):
        body = client.post("/get-ad-video", json={"context": "refill"}, headers=auth_headers()).get_json()
        assert body["available"] is True
        assert body["video"]["id"] == "hu-video"
        assert body["is_global_fallback"] is False


def test_get_ad_video_falls_back_to_global_pool(app, client, auth_headers, make_video):
    from dingleup.models.UserProfile import UserProfile
    from dingleup.models.database import db

    db.session.add(UserProfile(user_id="user-1", country_code="FR"))
    db.session.commit()
    make_video("de-video", countries=("DE",))

    body = client.post("/get-ad-video", json={}, headers=auth_headers()).get_json()
    assert body["video"]["id"] == "de-video"
    assert body["is_global_fallback"] is True


def test_get_ad_video_uses_topic_affinity(app, client, auth_headers, make_video):
    from dingleup.models.UserTopicStat import UserTopicStat
    from dingleup.models.database import db

    db.session.add(UserTopicStat(user_id="user-1", topic_id=7, correct_count=150))
    db.session.commit()
    make_video("history", creator_id="c1", topics=(7,))
    make_video("sports", creator_id="c2", topics=(3,))

    for _ in range(5):
        body = client.post("/get-ad-video", json={}, headers=auth_headers()).get_json()
        assert body["video"]["id"] == "history"
        assert body["is_relevant"] is True


def test_get_ad_video_honours_exclusions(client, auth_headers, make_video):
    make_video("v1", creator_id="c1")
    make_video("v2", creator_id="c2")
    body = client.post("/get-ad-video", json={"exclude_video_ids": ["v1"]}, headers=auth_headers()).get_json()
    assert body["video"]["id"] == "v2"

    body = client.post("/get-ad-video", json={"exclude_creator_ids": ["c1", "c2"]},
                       headers=auth_headers()).get_json()
    assert body == {"available": False, "video": None}


def test_preload_clamps_count_and_repeats_small_pool(client, auth_headers, make_video):
    make_video("v1", creator_id="c1", platform="tiktok")
    make_video("v2", creator_id="c2", platform="instagram")

    videos = client.get("/preload-reward-videos?count=50", headers=auth_headers()).get_json()["videos"]
    assert len(videos) == 20
    assert {video["id"] for video in videos} == {"v1", "v2"}
    assert all("creatorName" in video for video in videos)

    videos = client.get("/preload-reward-videos", headers=auth_headers()).get_json()["videos"]
    assert len(videos) == 10


def test_get_wallet_creates_empty_wallet(client, auth_headers):
    body = client.get("/get-wallet", headers=auth_headers()).get_json()
    assert body["status"] == "success"
    assert body["data"]["coins"] == 0
    assert body["data"]["lives"] == 0


def test_get_ad_video_rejects_non_list_exclusions(client, auth_headers, make_video):
    make_video("abc", creator_id="c1")
    for payload in ({"exclude_video_ids": "abc"}, {"exclude_creator_ids": "c1"}):
        response = client.post("/get-ad-video", json=payload, headers=auth_headers())
        assert response.status_code == 400
        assert response.get_json()["error"] == "INVALID_EXCLUDE_IDS"
