"""
Shared test configuration and fixtures.
"""

import os
from unittest.mock import patch

import pytest

# Environment must be in place before importing the app
with patch.dict(
    os.environ,
    {
        "SESSION_SECRET_KEY": "test-secret",
        "BASE_URL": "http://testserver",
    },
):
    from twitch_auth.main import app  # noqa: F401

from twitch_auth.core.strategy import StrategyOptions
from twitch_auth.oauth.config import get_twitch_config, reset_strategy
from twitch_auth.users.repository import reset_user_repository


CALLBACK_URL = "http://testserver/auth/twitch/callback"


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset process-wide singletons after each test.

    This fixture runs automatically for every test (autouse=True).
    """
    yield
    reset_strategy()
    reset_user_repository()
    get_twitch_config.cache_clear()


@pytest.fixture
def strategy_options():
    """Strategy options with test credentials."""
    return StrategyOptions(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url=CALLBACK_URL,
    )


@pytest.fixture
def helix_user():
    """One element of a Helix /users response."""
    return {
        "id": "44322889",
        "login": "dallas",
        "display_name": "dallas",
        "type": "staff",
        "broadcaster_type": "",
        "description": "Just a gamer playing games and chatting. :)",
        "profile_image_url": "https://static-cdn.jtvnw.net/jtv_user_pictures/dallas.png",
        "offline_image_url": "https://static-cdn.jtvnw.net/jtv_user_pictures/dallas-offline.png",
        "view_count": 191836881,
        "email": "login@provider.com",
        "created_at": "2013-06-03T19:12:02.580593Z",
    }


@pytest.fixture
def token_response():
    """Twitch token endpoint response."""
    return {
        "access_token": "rfx2uswqe8l4g1mkagrvg5tv0ks3",
        "expires_in": 14124,
        "refresh_token": "5b93chm6hdve3mycz05zfzatkfdenfspp1h1ar2xxdalen01",
        "scope": ["user:read:email"],
        "token_type": "bearer",
    }
