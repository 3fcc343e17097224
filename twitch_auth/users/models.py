"""
User domain model.

A user is identified by their Twitch user ID. The model is built from the
normalized profile produced after a successful Twitch login.
"""

from datetime import datetime, UTC
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from twitch_auth.core.domain import PROVIDER_NAME, TwitchProfile


class User(BaseModel):
    """
    User domain model.

    Tokens are kept alongside the identity so the app can call Helix on the
    user's behalf later.
    """

    id: str = Field(description="Twitch user ID (primary key)")
    provider: str = Field(default=PROVIDER_NAME, description="Identity provider")
    username: str = Field(description="Twitch login name")
    display_name: str = Field(description="Twitch display name")
    email: str | None = Field(default=None, description="Email if the scope allowed it")
    profile_image_url: str | None = Field(default=None, description="Avatar URL")
    access_token: str | None = Field(default=None, description="Latest access token")
    refresh_token: str | None = Field(default=None, description="Latest refresh token")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Account creation timestamp",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Last login timestamp",
    )

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_profile(
        cls,
        profile: TwitchProfile,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> "User":
        """
        Create a User from a normalized Twitch profile.

        Args:
            profile: Normalized profile
            access_token: Access token from the login
            refresh_token: Refresh token from the login

        Returns:
            User instance
        """
        return cls(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            email=profile.email,
            profile_image_url=profile.profile_image_url,
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def apply_login(
        self,
        profile: TwitchProfile,
        access_token: str | None,
        refresh_token: str | None,
    ) -> None:
        """Refresh identity fields and tokens after a new login."""
        self.username = profile.username
        self.display_name = profile.display_name
        self.email = profile.email
        self.profile_image_url = profile.profile_image_url
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        self.updated_at = datetime.now(UTC)

    def public_view(self) -> dict[str, Any]:
        """User fields safe to return to the browser (no tokens)."""
        return self.model_dump(
            mode="json",
            exclude={"access_token", "refresh_token"},
        )
