"""
Domain exceptions for the Twitch authentication strategy.

These exceptions are delivered through ProfileResult / AuthenticationResult
and are caught by centralized exception handlers in twitch_auth/main.py.
"""

from typing import Any


class StrategyError(Exception):
    """Base exception for all strategy errors."""

    pass


class ConfigurationError(StrategyError, ValueError):
    """
    Raised when the strategy or engine is constructed with missing settings.

    Surfaced immediately at startup so a misconfigured app fails fast.
    """

    pass


class AuthorizationError(StrategyError):
    """
    Raised when Twitch redirects back with an `error` parameter.

    `access_denied` is not an error (the user declined), so it is reported
    as a failed authentication instead.
    """

    def __init__(self, message: str, code: str | None = None, uri: str | None = None):
        super().__init__(message)
        self.code = code or "server_error"
        self.uri = uri


class TokenError(StrategyError):
    """Raised when the token endpoint rejects a code or refresh grant."""

    def __init__(self, message: str, code: str | None = None, uri: str | None = None):
        super().__init__(message)
        self.code = code or "invalid_request"
        self.uri = uri


class InternalOAuthError(StrategyError):
    """
    Raised for failures talking to Twitch that are not OAuth protocol errors.

    Carries the raw httpx response when one was received.
    """

    def __init__(self, message: str, response: Any = None):
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return getattr(self.response, "status_code", None)

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            return f"{message} (status {self.status_code})"
        return message


class ProfileTransportError(InternalOAuthError):
    """Network failure reaching the user-info endpoint."""

    pass


class MalformedProfileError(InternalOAuthError):
    """User-info response was not JSON or had no usable `data` element."""

    pass
