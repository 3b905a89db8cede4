"""
Exception types for session authentication.

Login failures derive from AuthError so callers can catch the whole family.
Reauthentication already being in progress is not an error: it is signalled
by SessionManager.reauthenticate_and_get_headers() returning None.
"""

from typing import Optional


class LiaisonError(Exception):
    """Base exception for all liaison errors."""


class MissingCredentialsError(LiaisonError):
    """No identity/secret supplied and none found in the environment."""


class AuthError(LiaisonError):
    """Base exception for failures of the login handshake."""


class MissingCookieError(AuthError):
    """Login response did not carry a Set-Cookie header."""


class MissingSessionCookieError(MissingCookieError):
    """Cookie set does not contain the session cookie."""


class SessionExpiredError(AuthError):
    """The session cookie's expiry is in the past."""


class InvalidCredentialsError(AuthError):
    """The service rejected the identity/secret pair (HTTP 401)."""


class AuthHttpError(AuthError):
    """Login endpoint answered with an unexpected HTTP status."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"authenticate HTTP error: {status}")


class ChallengeRequiredError(AuthError):
    """
    The service accepted the request but demands an interactive challenge
    (CAPTCHA, email or 2FA verification). Resolve it out of band using
    challenge_url, then log in again.
    """

    def __init__(self, result: Optional[str], challenge_url: Optional[str] = None):
        self.result = result
        self.challenge_url = challenge_url
        super().__init__(f"authenticate challenge error: {result} {challenge_url}")
