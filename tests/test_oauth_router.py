"""
Tests for the Twitch login endpoints.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from twitch_auth.core.exceptions import InternalOAuthError, TokenError
from twitch_auth.core.strategy import StrategyOptions, TwitchStrategy
from twitch_auth.infrastructure.oauth2_engine import OAuth2Engine
from twitch_auth.main import app
from twitch_auth.oauth.config import get_twitch_config
from twitch_auth.oauth.dependencies import get_configured_strategy, get_repository
from twitch_auth.users.repository import (
    InMemoryUserRepository,
    set_user_repository,
    upsert_user_from_profile,
    upsert_user_from_profile_with_request,
)


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def repository():
    """Fresh in-memory repository shared by the verify callback and routes."""
    repo = InMemoryUserRepository()
    set_user_repository(repo)
    return repo


@pytest.fixture
def engine(helix_user):
    """Fake OAuth2 engine with a real authorization URL builder."""
    real = OAuth2Engine(
        client_id="test-client-id",
        client_secret="test-client-secret",
        authorization_url="https://id.twitch.tv/oauth2/authorize",
        token_url="https://id.twitch.tv/oauth2/token",
    )
    fake = MagicMock(spec=OAuth2Engine)
    fake.client_id = "test-client-id"
    fake.authorize_url.side_effect = real.authorize_url
    fake.exchange_code = AsyncMock(
        return_value={"access_token": "access-1", "refresh_token": "refresh-1"}
    )
    fake.get = AsyncMock(return_value=httpx.Response(200, json={"data": [helix_user]}))
    return fake


@pytest.fixture
def client(strategy_options, engine, repository):
    """Test client with the strategy wired to the fake engine."""
    strategy = TwitchStrategy(strategy_options, upsert_user_from_profile, engine=engine)
    app.dependency_overrides[get_configured_strategy] = lambda: strategy
    app.dependency_overrides[get_repository] = lambda: repository

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_configured_strategy, None)
    app.dependency_overrides.pop(get_repository, None)


def _start_login(client: TestClient, **params) -> str:
    """Run the login redirect and return the state Twitch would echo back."""
    response = client.get("/auth/twitch", params=params, follow_redirects=False)
    assert response.status_code == 302
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


# ============================================================================
# GET /auth/twitch
# ============================================================================


class TestLoginEndpoint:
    """Tests for the GET /auth/twitch endpoint."""

    def test_login_redirects_to_twitch(self, client):
        response = client.get("/auth/twitch", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "id.twitch.tv"
        assert location.path == "/oauth2/authorize"
        query = parse_qs(location.query)
        assert query["client_id"] == ["test-client-id"]
        assert query["redirect_uri"] == ["http://testserver/auth/twitch/callback"]
        assert "state" in query

    def test_login_passes_force_verify_string(self, client):
        response = client.get(
            "/auth/twitch", params={"force_verify": "true"}, follow_redirects=False
        )

        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["force_verify"] == ["true"]

    def test_login_without_force_verify(self, client):
        response = client.get("/auth/twitch", follow_redirects=False)

        query = parse_qs(urlparse(response.headers["location"]).query)
        assert "force_verify" not in query

    def test_login_unconfigured_returns_503(self, monkeypatch):
        monkeypatch.delenv("TWITCH_CLIENT_ID", raising=False)
        monkeypatch.delenv("TWITCH_CLIENT_SECRET", raising=False)
        get_twitch_config.cache_clear()

        response = TestClient(app).get("/auth/twitch", follow_redirects=False)

        assert response.status_code == 503


# ============================================================================
# GET /auth/twitch/callback
# ============================================================================


class TestCallbackEndpoint:
    """Tests for the GET /auth/twitch/callback endpoint."""

    def test_callback_logs_user_in(self, client, engine, repository):
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"
        engine.exchange_code.assert_awaited_once_with(
            "auth-code", "http://testserver/auth/twitch/callback"
        )

        dashboard = client.get("/dashboard")
        assert dashboard.status_code == 200
        data = dashboard.json()
        assert data["user"]["id"] == "44322889"
        assert data["user"]["username"] == "dallas"
        assert "access_token" not in data["user"]

    def test_callback_stores_tokens(self, client, repository):
        state = _start_login(client)

        client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )

        user = asyncio.run(repository.get_by_id("44322889"))
        assert user is not None
        assert user.access_token == "access-1"
        assert user.refresh_token == "refresh-1"

    def test_callback_state_mismatch_returns_401(self, client, engine):
        _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": "forged"},
            follow_redirects=False,
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Unable to verify authorization request state."
        engine.exchange_code.assert_not_awaited()

    def test_callback_state_is_single_use(self, client):
        state = _start_login(client)
        params = {"code": "auth-code", "state": state}

        first = client.get("/auth/twitch/callback", params=params, follow_redirects=False)
        second = client.get("/auth/twitch/callback", params=params, follow_redirects=False)

        assert first.status_code == 302
        assert second.status_code == 401

    def test_callback_access_denied_returns_401(self, client):
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={
                "error": "access_denied",
                "error_description": "The user denied you access",
                "state": state,
            },
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "The user denied you access"

    def test_callback_provider_error_returns_401(self, client):
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={"error": "server_error", "state": state},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "server_error"

    def test_callback_token_error_returns_401(self, client, engine):
        engine.exchange_code.side_effect = TokenError("Invalid authorization code")
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback", params={"code": "bad", "state": state}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid authorization code"

    def test_callback_profile_failure_returns_502(self, client, engine):
        engine.get.return_value = httpx.Response(401)
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback", params={"code": "auth-code", "state": state}
        )

        assert response.status_code == 502
        assert response.json()["status"] == "error"

    def test_callback_token_transport_failure_returns_502(self, client, engine):
        engine.exchange_code.side_effect = InternalOAuthError("Failed to obtain access token")
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback", params={"code": "auth-code", "state": state}
        )

        assert response.status_code == 502

    def test_callback_accepts_mapping_user(self, client, strategy_options, engine):
        strategy = TwitchStrategy(
            strategy_options, lambda *args: {"id": 44322889}, engine=engine
        )
        app.dependency_overrides[get_configured_strategy] = lambda: strategy
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"

    @pytest.mark.parametrize(
        "verify",
        [
            pytest.param(lambda *args: True, id="user-without-id"),
            pytest.param(lambda *args: 1 / 0, id="verify-raises"),
        ],
    )
    def test_callback_unusable_verify_returns_500(
        self, client, strategy_options, engine, verify
    ):
        strategy = TwitchStrategy(strategy_options, verify, engine=engine)
        app.dependency_overrides[get_configured_strategy] = lambda: strategy
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback", params={"code": "auth-code", "state": state}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to verify Twitch user"

    def test_callback_passes_request_to_verify(self, client, strategy_options, engine):
        options = StrategyOptions(
            client_id=strategy_options.client_id,
            client_secret=strategy_options.client_secret,
            callback_url=strategy_options.callback_url,
            pass_request_to_callback=True,
        )
        strategy = TwitchStrategy(
            options, upsert_user_from_profile_with_request, engine=engine
        )
        app.dependency_overrides[get_configured_strategy] = lambda: strategy
        state = _start_login(client)

        response = client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert client.get("/dashboard").json()["user"]["id"] == "44322889"


# ============================================================================
# Session endpoints
# ============================================================================


class TestSessionEndpoints:
    """Tests for /dashboard and /auth/logout."""

    def test_dashboard_requires_login(self, client):
        response = client.get("/dashboard")

        assert response.status_code == 401

    def test_logout_clears_session(self, client):
        state = _start_login(client)
        client.get(
            "/auth/twitch/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )
        assert client.get("/dashboard").status_code == 200

        response = client.get("/auth/logout")

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert client.get("/dashboard").status_code == 401
