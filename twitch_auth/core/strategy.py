"""
Twitch authentication strategy.

Authenticates users by delegating to Twitch using the OAuth 2.0
authorization-code flow. The generic protocol work is done by an
OAuth2Client (see twitch_auth/core/ports.py); this module only supplies
the Twitch endpoints, the bearer header convention, the `force_verify`
authorization parameter and the Helix profile fetch.

Example:

    strategy = TwitchStrategy(
        StrategyOptions(
            client_id="123-456-789",
            client_secret="shhh-its-a-secret",
            callback_url="https://www.example.net/auth/twitch/callback",
        ),
        verify,
    )

    async def verify(access_token, refresh_token, profile):
        return await users.find_or_create(profile["id"])
"""

import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from twitch_auth.core.domain import (
    PROVIDER_NAME,
    AuthenticationResult,
    AuthorizationRequest,
    ProfileResult,
)
from twitch_auth.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    InternalOAuthError,
    MalformedProfileError,
    ProfileTransportError,
    StrategyError,
)
from twitch_auth.core.ports import OAuth2Client
from twitch_auth.infrastructure.oauth2_engine import OAuth2Engine


logger = logging.getLogger(__name__)


AUTHORIZATION_URL = "https://id.twitch.tv/oauth2/authorize"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
PROFILE_URL = "https://api.twitch.tv/helix/users"
PROFILE_ACCEPT = "application/vnd.twitchtv.v5+json"

STATE_MISMATCH_MESSAGE = "Unable to verify authorization request state."


@dataclass(frozen=True)
class StrategyOptions:
    """Construction options for TwitchStrategy."""

    client_id: str
    client_secret: str
    callback_url: str
    pass_request_to_callback: bool = False
    scope: tuple[str, ...] = ()
    skip_user_profile: bool = False


VerifyCallback = Callable[..., Any]


class TwitchStrategy:
    """
    OAuth 2.0 strategy for Twitch.

    Holds only immutable configuration, so a single instance can be shared
    by every request in the process.
    """

    name = PROVIDER_NAME

    def __init__(
        self,
        options: StrategyOptions,
        verify: VerifyCallback,
        engine: OAuth2Client | None = None,
    ):
        if not callable(verify):
            raise ConfigurationError("TwitchStrategy requires a verify callback")
        if not options.callback_url:
            raise ConfigurationError("TwitchStrategy requires a callback_url")

        if engine is None:
            engine = OAuth2Engine(
                client_id=options.client_id,
                client_secret=options.client_secret,
                authorization_url=AUTHORIZATION_URL,
                token_url=TOKEN_URL,
            )

        self._options = options
        self._verify = verify
        self._oauth2 = engine
        self._client_id = options.client_id
        self._oauth2.set_auth_method("Bearer")
        self._oauth2.use_authorization_header_for_get(True)

    @property
    def options(self) -> StrategyOptions:
        return self._options

    @property
    def client_id(self) -> str:
        return self._client_id

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def fetch_profile(self, access_token: str) -> ProfileResult:
        """
        Retrieve the user profile from Twitch.

        Issues one GET to the Helix users endpoint and returns the first
        element of its `data` array unmodified. Every failure (HTTP status,
        network, malformed body) is returned as ProfileResult.error; this
        method does not raise for them.

        Args:
            access_token: Bearer token from a completed token exchange

        Returns:
            ProfileResult with the raw Helix user or a StrategyError
        """
        headers = {
            "Client-ID": self._client_id,
            "Accept": PROFILE_ACCEPT,
        }

        try:
            response = await self._oauth2.get(PROFILE_URL, access_token, headers=headers)
        except (httpx.RequestError, UnicodeEncodeError) as e:
            # Non-ASCII tokens fail while httpx encodes the headers
            logger.warning(
                f"Network error fetching Twitch profile: {e}",
                extra={"provider": self.name, "endpoint": "users"},
            )
            return ProfileResult.failure(
                _chain(ProfileTransportError(f"failed to fetch user profile: {e}"), e)
            )

        if not response.is_success:
            logger.warning(
                "Twitch users endpoint returned non-success status",
                extra={
                    "provider": self.name,
                    "endpoint": "users",
                    "status_code": response.status_code,
                },
            )
            return ProfileResult.failure(
                InternalOAuthError("failed to fetch user profile", response)
            )

        # An empty `data` array is deliberately an error here, not a
        # successful lookup with no profile.
        try:
            body = response.json()
            profile = body["data"][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(
                f"Twitch users endpoint returned an unusable body: {e!r}",
                extra={"provider": self.name, "endpoint": "users"},
            )
            return ProfileResult.failure(
                _chain(MalformedProfileError("failed to parse user profile", response), e)
            )

        if not isinstance(profile, dict):
            return ProfileResult.failure(
                MalformedProfileError("failed to parse user profile", response)
            )

        return ProfileResult.success(profile)

    async def user_profile(
        self,
        access_token: str,
        done: Callable[[StrategyError | None, dict[str, Any] | None], Any],
    ) -> None:
        """Callback form of fetch_profile: calls done(error, profile)."""
        result = await self.fetch_profile(access_token)
        outcome = done(result.error, result.profile)
        if inspect.isawaitable(outcome):
            await outcome

    # ------------------------------------------------------------------
    # Authorization request
    # ------------------------------------------------------------------

    def authorization_params(self, options: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return extra parameters for the authorization request.

        A boolean `force_verify` is always sent as False; any other value
        (including a missing one) is passed through unchanged.
        """
        force_verify = options.get("force_verify")
        return {
            "force_verify": False if isinstance(force_verify, bool) else force_verify,
        }

    def begin(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        state: str | None = None,
        scope: Sequence[str] | None = None,
        redirect_uri: str | None = None,
    ) -> AuthorizationRequest:
        """
        Build the redirect for the first leg of the flow.

        Args:
            options: Per-request options (e.g. force_verify)
            state: CSRF state; generated by the engine when None
            scope: Scopes to request; defaults to the configured scope
            redirect_uri: Override for the configured callback URL

        Returns:
            AuthorizationRequest with the URL and the state to remember
        """
        params = self.authorization_params(options or {})
        url, state = self._oauth2.authorize_url(
            redirect_uri or self._options.callback_url,
            scope=tuple(scope) if scope is not None else self._options.scope,
            state=state,
            **params,
        )
        return AuthorizationRequest(url=url, state=state)

    # ------------------------------------------------------------------
    # Callback
    # ------------------------------------------------------------------

    async def complete(
        self,
        params: Mapping[str, Any],
        *,
        expected_state: str | None,
        request: Any = None,
        redirect_uri: str | None = None,
    ) -> AuthenticationResult:
        """
        Handle the redirect back from Twitch.

        Validates the state, exchanges the code, loads the profile and runs
        the verify callback.

        Args:
            params: Query parameters of the callback request
            expected_state: State stored when the flow began
            request: Host request, passed to verify when configured
            redirect_uri: Override for the configured callback URL

        Returns:
            AuthenticationResult (success, failure or error)
        """
        error = params.get("error")
        if error:
            description = params.get("error_description") or error
            if error == "access_denied":
                return AuthenticationResult.failed(description)
            return AuthenticationResult.errored(
                AuthorizationError(description, error, params.get("error_uri"))
            )

        code = params.get("code")
        if not code:
            return AuthenticationResult.failed("Missing authorization code")

        state = params.get("state")
        if not expected_state or state != expected_state:
            logger.warning("OAuth state mismatch", extra={"provider": self.name})
            return AuthenticationResult.failed(STATE_MISMATCH_MESSAGE)

        try:
            token = await self._oauth2.exchange_code(
                code, redirect_uri or self._options.callback_url
            )
        except StrategyError as e:
            return AuthenticationResult.errored(e)

        access_token = token["access_token"]
        refresh_token = token.get("refresh_token")

        profile: dict[str, Any] | None = None
        if not self._options.skip_user_profile:
            result = await self.fetch_profile(access_token)
            if result.error is not None:
                return AuthenticationResult.errored(result.error)
            profile = result.profile

        try:
            if self._options.pass_request_to_callback:
                user = self._verify(request, access_token, refresh_token, profile)
            else:
                user = self._verify(access_token, refresh_token, profile)
            if inspect.isawaitable(user):
                user = await user
        except Exception as e:
            logger.error(f"Verify callback raised: {e}", extra={"provider": self.name})
            return AuthenticationResult.errored(e)

        if not user:
            return AuthenticationResult.failed("Invalid credentials")
        return AuthenticationResult.succeeded(user, info={"scope": token.get("scope")})

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        """Run the refresh grant through the engine."""
        return await self._oauth2.refresh_token(refresh_token)


def _chain(error: StrategyError, cause: BaseException) -> StrategyError:
    error.__cause__ = cause
    return error
