"""
User repository interface and implementations.

Defines the port (interface) for user persistence and an in-memory
implementation. Also provides the default verify callback used by the
Twitch strategy.
"""

import logging
from typing import Any, Protocol

from twitch_auth.core.domain import TwitchProfile
from twitch_auth.users.models import User


logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """
    Protocol defining the user repository interface.

    Uses Protocol for structural subtyping, consistent with OAuth2Client
    in twitch_auth/core/ports.py.
    """

    async def get_by_id(self, user_id: str) -> User | None:
        """
        Get a user by Twitch user ID.

        Args:
            user_id: Twitch user ID

        Returns:
            User if found, None otherwise
        """
        ...

    async def create(self, user: User) -> User:
        """
        Create a new user.

        Raises:
            ValueError: If user already exists
        """
        ...

    async def upsert_from_profile(
        self,
        profile: TwitchProfile,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> User:
        """
        Create the user on first login, refresh it on later ones.

        Args:
            profile: Normalized Twitch profile
            access_token: Access token from the login
            refresh_token: Refresh token from the login

        Returns:
            Existing (updated) or newly created user
        """
        ...

    async def delete(self, user_id: str) -> bool:
        """
        Delete a user.

        Returns:
            True if deleted, False if not found
        """
        ...


class InMemoryUserRepository(UserRepository):
    """
    In-memory implementation of UserRepository.

    Data is lost when the application restarts.
    """

    def __init__(self):
        self._users: dict[str, User] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def create(self, user: User) -> User:
        if user.id in self._users:
            raise ValueError(f"User {user.id} already exists")
        self._users[user.id] = user
        logger.info(f"Created user: {user.id}")
        return user

    async def upsert_from_profile(
        self,
        profile: TwitchProfile,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ) -> User:
        existing = self._users.get(profile.id)
        if existing is not None:
            existing.apply_login(profile, access_token, refresh_token)
            logger.debug(f"Updated existing user: {profile.id}")
            return existing

        user = User.from_profile(profile, access_token, refresh_token)
        self._users[user.id] = user
        logger.info(f"Created new user: {user.id}")
        return user

    async def delete(self, user_id: str) -> bool:
        if user_id not in self._users:
            return False
        del self._users[user_id]
        logger.info(f"Deleted user: {user_id}")
        return True


# Singleton instance for dependency injection
_repository: UserRepository | None = None


def get_user_repository() -> UserRepository:
    """
    Get the user repository singleton.

    Can be overridden via set_user_repository for testing.
    """
    global _repository
    if _repository is None:
        logger.info("Using in-memory user repository")
        _repository = InMemoryUserRepository()
    return _repository


def set_user_repository(repository: UserRepository) -> None:
    """Set the user repository implementation."""
    global _repository
    _repository = repository


def reset_user_repository() -> None:
    """
    Reset the user repository singleton.

    Useful for testing to ensure clean state between tests.
    """
    global _repository
    _repository = None


async def upsert_user_from_profile(
    access_token: str,
    refresh_token: str | None,
    profile: dict[str, Any] | None,
) -> User | None:
    """
    Default verify callback for the Twitch strategy.

    Normalizes the raw Helix user and finds or creates the matching User.
    Returns None (a failed login) when no profile was loaded.
    """
    if not profile:
        return None
    normalized = TwitchProfile.from_helix_user(profile)
    return await get_user_repository().upsert_from_profile(
        normalized, access_token, refresh_token
    )


async def upsert_user_from_profile_with_request(
    request: Any,
    access_token: str,
    refresh_token: str | None,
    profile: dict[str, Any] | None,
) -> User | None:
    """Default verify callback when the strategy passes the request first."""
    return await upsert_user_from_profile(access_token, refresh_token, profile)
