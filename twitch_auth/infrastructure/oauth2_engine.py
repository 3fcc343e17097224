"""
Generic OAuth2 engine built on authlib.

Wraps authlib's AsyncOAuth2Client for the protocol mechanics (authorization
URL, state generation, code and refresh grants) and httpx for authenticated
GET requests. Provider strategies hold an instance of this class rather than
subclassing it.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError

from twitch_auth.core.exceptions import (
    ConfigurationError,
    InternalOAuthError,
    TokenError,
)


logger = logging.getLogger(__name__)


def _query_value(value: Any) -> Any:
    """Render a parameter the way a query string expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class OAuth2Engine:
    """
    OAuth2 authorization-code client.

    Holds only immutable configuration; every network call opens its own
    short-lived httpx client, so one engine can serve concurrent requests.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authorization_url: str,
        token_url: str,
    ):
        if not authorization_url:
            raise ConfigurationError("OAuth2Engine requires an authorization_url")
        if not token_url:
            raise ConfigurationError("OAuth2Engine requires a token_url")
        if not client_id:
            raise ConfigurationError("OAuth2Engine requires a client_id")
        if not client_secret:
            raise ConfigurationError("OAuth2Engine requires a client_secret")

        self.client_id = client_id
        self._client_secret = client_secret
        self.authorization_url = authorization_url
        self.token_url = token_url
        self._auth_method = "Bearer"
        self._use_header_for_get = False

    # -- settings ------------------------------------------------------------

    def set_auth_method(self, method: str) -> None:
        self._auth_method = method

    def use_authorization_header_for_get(self, flag: bool) -> None:
        self._use_header_for_get = flag

    @property
    def auth_method(self) -> str:
        return self._auth_method

    @property
    def uses_authorization_header_for_get(self) -> bool:
        return self._use_header_for_get

    def build_auth_header(self, access_token: str) -> str:
        return f"{self._auth_method} {access_token}"

    # -- protocol ------------------------------------------------------------

    def _create_client(self, redirect_uri: str | None = None, scope: str | None = None):
        return AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=self._client_secret,
            token_endpoint_auth_method="client_secret_post",
            redirect_uri=redirect_uri,
            scope=scope,
        )

    def authorize_url(
        self,
        redirect_uri: str,
        *,
        scope: Sequence[str] = (),
        state: str | None = None,
        **params: Any,
    ) -> tuple[str, str]:
        """
        Build the authorization redirect URL.

        Parameters whose value is None are left out of the URL.

        Args:
            redirect_uri: Callback URL registered with the provider
            scope: Scopes to request
            state: CSRF state; generated when None
            **params: Extra provider-specific query parameters

        Returns:
            Tuple of (url, state)
        """
        extra = {k: _query_value(v) for k, v in params.items() if v is not None}
        client = self._create_client(
            redirect_uri=redirect_uri,
            scope=" ".join(scope) if scope else None,
        )
        url, state = client.create_authorization_url(
            self.authorization_url, state=state, **extra
        )
        return url, state

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Raises:
            TokenError: If the provider rejected the code
            InternalOAuthError: On transport or response parsing failures
        """
        async with self._create_client(redirect_uri=redirect_uri) as client:
            return await self._request_token(
                client.fetch_token(
                    self.token_url,
                    grant_type="authorization_code",
                    code=code,
                ),
                context="exchange_code",
            )

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Exchange a refresh token for a new access token.

        Raises:
            TokenError: If the provider rejected the refresh token
            InternalOAuthError: On transport or response parsing failures
        """
        async with self._create_client() as client:
            return await self._request_token(
                client.refresh_token(self.token_url, refresh_token=refresh_token),
                context="refresh_token",
            )

    async def _request_token(self, pending, context: str) -> dict[str, Any]:
        try:
            token = await pending
        except OAuthError as e:
            logger.warning(
                f"Token endpoint returned OAuth error: {e.error}",
                extra={"endpoint": "token", "context": context, "provider_error": e.error},
            )
            raise TokenError(e.description or e.error or "Token request failed", e.error, e.uri) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Token endpoint returned {e.response.status_code}")
            raise InternalOAuthError("Failed to obtain access token", e.response) from e
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"Token request failed: {e}", extra={"context": context})
            raise InternalOAuthError("Failed to obtain access token") from e

        token = dict(token)
        if not token.get("access_token"):
            # Twitch reports rejected grants as {"status": 400, "message": ...}
            message = token.get("message") or "No access_token in token response"
            raise TokenError(message, token.get("error"))
        return token

    async def get(
        self,
        url: str,
        access_token: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform one GET request authenticated with the access token.

        The token goes in the Authorization header when header mode is on,
        otherwise in the `access_token` query parameter.
        """
        request_headers = dict(headers or {})
        params = None
        if self._use_header_for_get:
            request_headers["Authorization"] = self.build_auth_header(access_token)
        else:
            params = {"access_token": access_token}

        async with httpx.AsyncClient() as client:
            return await client.get(url, headers=request_headers, params=params)
