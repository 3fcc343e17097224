"""
Port definitions (interfaces) for the strategy.

The strategy depends on these contracts, not on authlib or httpx directly.
twitch_auth/infrastructure/oauth2_engine.py implements OAuth2Client.
"""

from collections.abc import Sequence
from typing import Any, Protocol

import httpx


class OAuth2Client(Protocol):
    """
    Port (interface) for the generic OAuth2 engine.

    Owns the protocol mechanics: authorization URLs, state generation,
    code and refresh grants, and authenticated GET requests.
    """

    client_id: str

    def set_auth_method(self, method: str) -> None:
        """Set the scheme used in the Authorization header (e.g. Bearer)."""
        ...

    def use_authorization_header_for_get(self, flag: bool) -> None:
        """Send the access token in a header instead of the query string."""
        ...

    def authorize_url(
        self,
        redirect_uri: str,
        *,
        scope: Sequence[str] = (),
        state: str | None = None,
        **params: Any,
    ) -> tuple[str, str]:
        """
        Build the provider authorization URL.

        Returns:
            Tuple of (url, state); state is generated when not supplied
        """
        ...

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Exchange an authorization code for a token response."""
        ...

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """Run the refresh grant."""
        ...

    async def get(
        self,
        url: str,
        access_token: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform one authenticated GET request."""
        ...
