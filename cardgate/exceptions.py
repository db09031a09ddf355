"""Exceptions."""

from typing import List, Optional


class InvalidCredentials(RuntimeError):
    """Unknown handle or wrong secret. The two are never distinguished."""

    reason = 'invalid_credentials'


class SessionConflict(RuntimeError):
    """The account already holds an active session on another device."""

    reason = 'session_conflict'


class CredentialsExpired(RuntimeError):
    """The account's credentials have expired."""

    reason = 'expired'


class Unauthorized(RuntimeError):
    """No valid session is available for a protected operation."""

    def __init__(self, message: str = 'Unauthorized',
                 reason: Optional[str] = None) -> None:
        super(Unauthorized, self).__init__(message)
        self.reason = reason


class Forbidden(RuntimeError):
    """The caller has insufficient role, or lacks a required subscription."""

    def __init__(self, message: str = 'Access denied',
                 required: Optional[List[str]] = None,
                 held: Optional[List[str]] = None) -> None:
        super(Forbidden, self).__init__(message)
        self.required = required
        self.held = held


class NotFound(RuntimeError):
    """Unknown card or account."""


class ServiceUnavailable(RuntimeError):
    """The credential store or identity provider failed or timed out."""


Unavailable = ServiceUnavailable


class AuthenticationFailed(RuntimeError):
    """The identity verifier rejected the secret for a handle."""


class PasswordAuthenticationFailed(RuntimeError):
    """Password is not correct."""


class InvalidToken(RuntimeError):
    """A proof of identity is malformed, forged, or expired."""


class AccountExists(RuntimeError):
    """An account with the same username or phone number already exists."""
