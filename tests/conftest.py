from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from requests.structures import CaseInsensitiveDict

from twhelix.auth import Credentials
from twhelix.client import HelixClient


class FakeClock:
    """Deterministic clock whose sleep just moves time forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)


def build_response(status_code=200, body=None, text=None, headers=None, url="https://api.twitch.tv/helix/test"):
    response = Mock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(body if body is not None else {})
    response.headers = CaseInsensitiveDict(headers or {})
    response.url = url
    return response


@pytest.fixture
def clean_env(monkeypatch):
    """Remove Twitch settings from the environment."""
    for key in ["TWITCH_CLIENT_ID", "TWITCH_CLIENT_SECRET", "TWITCH_OAUTH_TOKEN", "TWITCH_SCOPES"]:
        # set first so values written by .env loading are undone after the test
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def fake_clock():
    return FakeClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def make_client(session, fake_clock):
    def _make(credentials=None, **kwargs):
        if credentials is None:
            credentials = Credentials.from_oauth_token("cached_token")
        return HelixClient(
            "twhelix-tests",
            "test_client_id",
            credentials,
            session=session,
            clock=fake_clock,
            sleep=fake_clock.sleep,
            **kwargs,
        )

    return _make


@pytest.fixture
def token_response():
    """A successful client-credentials response."""
    return build_response(body={"access_token": "minted_token", "expires_in": 5000000, "token_type": "bearer"})


@pytest.fixture
def sample_streams_page():
    """One page of the streams endpoint."""
    return {
        "data": [
            {
                "id": "40952121085",
                "user_id": "101051819",
                "user_name": "afro",
                "game_id": "32982",
                "type": "live",
                "title": "Jacob: Digital Den Laptops & Routers | NBA 2KHit Subscribe",
                "viewer_count": 1490,
                "started_at": "2021-03-10T03:18:11Z",
                "language": "en",
                "thumbnail_url": "https://static-cdn.jtvnw.net/previews-ttv/live_user_afro-{width}x{height}.jpg",
                "tag_ids": ["6ea6bca4-4712-4ab9-a906-e3336a9d8039"],
            },
            {
                "id": "40952121086",
                "user_id": "101051820",
                "user_name": "runner",
                "game_id": "33214",
                "type": "live",
                "title": "any% practice",
                "viewer_count": 312,
                "started_at": "2021-03-10T02:00:00Z",
                "language": "de",
                "thumbnail_url": "https://static-cdn.jtvnw.net/previews-ttv/live_user_runner-{width}x{height}.jpg",
                "tag_ids": None,
            },
        ],
        "pagination": {"cursor": "eyJiIjpudWxsLCJhIjp7Ik9mZnNldCI6MjB9fQ"},
    }


@pytest.fixture
def sample_user():
    return {
        "id": "141981764",
        "login": "twitchdev",
        "display_name": "TwitchDev",
        "type": "",
        "broadcaster_type": "partner",
        "description": "Supporting third-party developers building Twitch integrations.",
        "view_count": 5980557,
        "email": "not-real@email.com",
    }
