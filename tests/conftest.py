import json
import sys
from datetime import timedelta
from pathlib import Path

import jwt
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR / "backend"))

JWT_SECRET = "test-jwt-secret"
STORAGE_BASE_URL = "https://storage.example.com"


def make_token(user_id):
    return jwt.encode({"sub": user_id}, JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": JWT_SECRET,
        "STORAGE_BASE_URL": STORAGE_BASE_URL,
        "SCHEDULER_ENABLED": False,
        "LOG_LEVEL": "WARNING",
    }), encoding="utf-8")
    return str(path)


@pytest.fixture()
def app(config_file):
    from main import create_app
    from dingleup.models.database import db

    app = create_app(config_file)
    app.config["TESTING"] = True
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers():
    def _headers(user_id="user-1"):
        return {"Authorization": f"Bearer {make_token(user_id)}"}
    return _headers


@pytest.fixture()
def make_video(app):
    from dingleup.models.CreatorSubscription import CreatorSubscription
    from dingleup.models.CreatorVideo import CreatorVideo, CreatorVideoCountry, CreatorVideoTopic
    from dingleup.models.database import db, utc_now

    def _make_video(video_id, creator_id="creator-1", platform="tiktok", subscription="active",
                    topics=(), countries=(), is_active=True, expires_in=timedelta(days=30),
                    video_file_path="auto", channel_url="https://tiktok.com/@creator"):
        if video_file_path == "auto":
            video_file_path = f"{creator_id}/{video_id}.mp4"
        if subscription is not None and not CreatorSubscription.query.filter_by(creator_id=creator_id).first():
            db.session.add(CreatorSubscription(creator_id=creator_id, status=subscription))
        video = CreatorVideo(
            id=video_id,
            creator_id=creator_id,
            platform=platform,
            video_file_path=video_file_path,
            channel_url=channel_url,
            duration_seconds=15,
            creator_name=f"Creator {creator_id}",
            is_active=is_active,
            expires_at=utc_now() + expires_in,
        )
        video.topics = [CreatorVideoTopic(topic_id=topic_id) for topic_id in topics]
        video.countries = [
            CreatorVideoCountry(country_code=code, is_primary=index == 0, sort_order=index)
            for index, code in enumerate(countries)
        ]
        db.session.add(video)
        db.session.commit()
        return video

    return _make_video
