"""
Twitch login endpoints.

- GET /auth/twitch - Start the OAuth flow (redirect to Twitch)
- GET /auth/twitch/callback - Handle the redirect back, log the user in
- GET /auth/logout - Clear the session
"""

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from twitch_auth.core.exceptions import StrategyError
from twitch_auth.oauth.dependencies import (
    STATE_SESSION_KEY,
    USER_SESSION_KEY,
    Strategy,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/twitch")
async def login(
    request: Request,
    strategy: Strategy,
    force_verify: str | None = None,
):
    """
    Start the Twitch authorization flow.

    Stores the generated state in the session and redirects the user to
    Twitch's authorization page.

    Args:
        request: Starlette request (for the session)
        strategy: Twitch strategy
        force_verify: Passed through to Twitch's `force_verify` parameter

    Returns:
        Redirect to Twitch
    """
    options = {}
    if force_verify is not None:
        options["force_verify"] = force_verify

    auth_request = strategy.begin(options)
    request.session[STATE_SESSION_KEY] = auth_request.state

    logger.info("Starting Twitch OAuth flow", extra={"provider": strategy.name})

    return RedirectResponse(url=auth_request.url, status_code=status.HTTP_302_FOUND)


@router.get("/twitch/callback")
async def callback(request: Request, strategy: Strategy):
    """
    Handle the redirect back from Twitch.

    Exchanges the code, loads the profile, runs the verify callback and
    stores the user in the session.

    Raises:
        HTTPException: 401 when the login failed (declined, bad state,
            rejected by the verify callback); 500 when the verify callback
            raised or returned a user without an id
        StrategyError: Provider or transport errors, mapped to responses
            by the handlers in twitch_auth/main.py
    """
    expected_state = request.session.pop(STATE_SESSION_KEY, None)

    result = await strategy.complete(
        dict(request.query_params),
        expected_state=expected_state,
        request=request,
    )

    if result.error is not None:
        if isinstance(result.error, StrategyError):
            raise result.error
        logger.error(
            f"Twitch verify callback failed: {result.error!r}",
            extra={"provider": strategy.name},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify Twitch user",
        )

    if not result.is_success:
        logger.warning(
            f"Twitch login failed: {result.message}",
            extra={"provider": strategy.name},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.message or "Authentication failed",
        )

    user_id = _user_id(result.user)
    if user_id is None:
        logger.error(
            "Twitch verify callback returned a user without an id",
            extra={"provider": strategy.name},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify Twitch user",
        )
    request.session[USER_SESSION_KEY] = user_id

    logger.info("Twitch login succeeded", extra={"provider": strategy.name, "user_id": user_id})

    return RedirectResponse(url="/dashboard", status_code=status.HTTP_302_FOUND)


@router.get("/logout")
async def logout(request: Request):
    """Clear the session."""
    request.session.clear()
    return {"status": "success", "message": "Logged out"}


def _user_id(user: Any) -> str | None:
    """Session id of whatever the verify callback returned."""
    if isinstance(user, Mapping):
        user_id = user.get("id")
    else:
        user_id = getattr(user, "id", None)
    return str(user_id) if user_id is not None else None
