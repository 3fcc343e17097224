"""
Core domain models for the Twitch authentication strategy.

These models represent the outcome of each step of the authorization-code
flow and are independent of the web framework hosting the strategy.
"""

from dataclasses import dataclass, field
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field

from twitch_auth.core.exceptions import StrategyError


PROVIDER_NAME = "twitch"


@dataclass(frozen=True)
class ProfileResult:
    """
    Result of a profile fetch: either the raw profile or an error.

    Exactly one of `profile` and `error` is set.
    """

    profile: dict[str, Any] | None = None
    error: StrategyError | None = None

    def __post_init__(self):
        if (self.profile is None) == (self.error is None):
            raise ValueError("ProfileResult needs exactly one of profile or error")

    @classmethod
    def success(cls, profile: dict[str, Any]) -> "ProfileResult":
        return cls(profile=profile)

    @classmethod
    def failure(cls, error: StrategyError) -> "ProfileResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> dict[str, Any]:
        """Return the profile or raise the carried error."""
        if self.error is not None:
            raise self.error
        return cast(dict[str, Any], self.profile)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Redirect target for the first leg of the flow."""

    url: str
    state: str


@dataclass(frozen=True)
class AuthenticationResult:
    """
    Terminal outcome of the callback leg.

    Mirrors the three ways a strategy can finish: success with a user,
    fail with a message (bad credentials, user declined, bad state),
    or error with an exception (provider/transport problems).
    """

    user: Any = None
    message: str | None = None
    error: Exception | None = None
    info: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(cls, user: Any, info: dict[str, Any] | None = None) -> "AuthenticationResult":
        return cls(user=user, info=info or {})

    @classmethod
    def failed(cls, message: str) -> "AuthenticationResult":
        return cls(message=message)

    @classmethod
    def errored(cls, error: Exception) -> "AuthenticationResult":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None and self.message is None and bool(self.user)

    @property
    def is_failure(self) -> bool:
        return self.error is None and self.message is not None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class TwitchProfile(BaseModel):
    """
    Normalized view of a Helix user object.

    The strategy hands verification callbacks the raw Helix payload; this
    model is what the host builds from it when it needs common field names.
    """

    provider: str = Field(default=PROVIDER_NAME, description="Always 'twitch'")
    id: str = Field(description="Twitch user ID")
    username: str = Field(description="Login name (Helix `login`)")
    display_name: str = Field(description="Display name")
    email: str | None = Field(default=None, description="Email (requires user:read:email)")
    profile_image_url: str | None = Field(default=None, description="Avatar URL")
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_helix_user(cls, user: dict[str, Any]) -> "TwitchProfile":
        """
        Build a normalized profile from a Helix `/users` element.

        Args:
            user: One element of the Helix `data` array

        Returns:
            TwitchProfile with the raw payload attached
        """
        login = user.get("login") or ""
        return cls(
            id=str(user["id"]),
            username=login,
            display_name=user.get("display_name") or login,
            email=user.get("email"),
            profile_image_url=user.get("profile_image_url"),
            raw=dict(user),
        )
