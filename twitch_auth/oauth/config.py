"""
Twitch OAuth2 configuration and strategy singleton.

Settings are read from environment variables. The strategy is built once
per process and shared by every request.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from twitch_auth.core.exceptions import ConfigurationError
from twitch_auth.core.strategy import StrategyOptions, TwitchStrategy, VerifyCallback


logger = logging.getLogger(__name__)


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TwitchConfig:
    """
    Twitch OAuth configuration settings.

    Loaded from environment variables. Validated when the strategy is built.
    """

    base_url: str
    client_id: str | None
    client_secret: str | None
    callback_url: str | None = None
    scope: tuple[str, ...] = field(default_factory=tuple)
    pass_request_to_callback: bool = False

    @classmethod
    def from_env(cls) -> "TwitchConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.getenv("BASE_URL", ""),
            client_id=os.getenv("TWITCH_CLIENT_ID"),
            client_secret=os.getenv("TWITCH_CLIENT_SECRET"),
            callback_url=os.getenv("TWITCH_CALLBACK_URL"),
            scope=tuple(os.getenv("TWITCH_SCOPE", "").split()),
            pass_request_to_callback=_env_flag("TWITCH_PASS_REQUEST_TO_CALLBACK"),
        )

    def get_callback_url(self) -> str:
        """Callback URL, defaulting to the app's own callback route."""
        if self.callback_url:
            return self.callback_url
        return f"{self.base_url}/auth/twitch/callback"

    def is_configured(self) -> bool:
        """Check if Twitch credentials are present."""
        return bool(self.client_id and self.client_secret)

    def to_strategy_options(self) -> StrategyOptions:
        """
        Build strategy options from this configuration.

        Raises:
            ConfigurationError: If credentials are missing
        """
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET must be set"
            )
        return StrategyOptions(
            client_id=self.client_id,
            client_secret=self.client_secret,
            callback_url=self.get_callback_url(),
            pass_request_to_callback=self.pass_request_to_callback,
            scope=self.scope,
        )


@lru_cache()
def get_twitch_config() -> TwitchConfig:
    """Get Twitch configuration singleton."""
    return TwitchConfig.from_env()


def create_strategy(
    verify: VerifyCallback, config: TwitchConfig | None = None
) -> TwitchStrategy:
    """
    Create the Twitch strategy.

    Args:
        verify: Verification callback invoked after the profile is loaded
        config: Twitch configuration (uses default if not provided)

    Returns:
        Configured TwitchStrategy
    """
    if config is None:
        config = get_twitch_config()

    strategy = TwitchStrategy(config.to_strategy_options(), verify)
    logger.info(
        "Registered Twitch OAuth strategy",
        extra={"callback_url": strategy.options.callback_url},
    )
    return strategy


# Global strategy singleton
_strategy: TwitchStrategy | None = None


def get_strategy() -> TwitchStrategy:
    """
    Get the strategy singleton.

    Creates it on first access with the default verify callback matching
    the configured callback signature.
    """
    global _strategy
    if _strategy is None:
        from twitch_auth.users.repository import (
            upsert_user_from_profile,
            upsert_user_from_profile_with_request,
        )

        config = get_twitch_config()
        if config.pass_request_to_callback:
            verify = upsert_user_from_profile_with_request
        else:
            verify = upsert_user_from_profile
        _strategy = create_strategy(verify, config)
    return _strategy


def set_strategy(strategy: TwitchStrategy) -> None:
    """Set the strategy instance (tests, custom verify callbacks)."""
    global _strategy
    _strategy = strategy


def reset_strategy() -> None:
    """
    Reset the strategy singleton.

    Useful for testing with different configurations.
    """
    global _strategy
    _strategy = None
