"""
FastAPI dependencies for the Twitch login endpoints.

Provides dependency injection for the strategy, the user repository and
session validation.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from twitch_auth.core.exceptions import ConfigurationError
from twitch_auth.core.strategy import TwitchStrategy
from twitch_auth.oauth.config import get_strategy
from twitch_auth.users.models import User
from twitch_auth.users.repository import UserRepository, get_user_repository


logger = logging.getLogger(__name__)

STATE_SESSION_KEY = "oauth_state:twitch"
USER_SESSION_KEY = "user_id"


def get_configured_strategy() -> TwitchStrategy:
    """
    Provide the strategy singleton.

    Raises:
        HTTPException: 503 if Twitch credentials are not configured
    """
    try:
        return get_strategy()
    except ConfigurationError as e:
        logger.error(f"Twitch strategy not available: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Twitch login is not configured",
        )


def get_repository() -> UserRepository:
    """Provide UserRepository dependency."""
    return get_user_repository()


async def get_current_user(
    request: Request,
    repository: Annotated[UserRepository, Depends(get_repository)],
) -> User:
    """
    Dependency to get the logged-in user from the session.

    Raises:
        HTTPException: 401 if not authenticated
    """
    user_id = request.session.get(USER_SESSION_KEY)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await repository.get_by_id(user_id)
    if user is None:
        logger.warning(f"Session references unknown user: {user_id}")
        request.session.pop(USER_SESSION_KEY, None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


# Type aliases for cleaner dependency injection
Strategy = Annotated[TwitchStrategy, Depends(get_configured_strategy)]
Repository = Annotated[UserRepository, Depends(get_repository)]
CurrentUser = Annotated[User, Depends(get_current_user)]
