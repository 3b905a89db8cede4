"""
Session authentication domain.

Owns credentials, the cookie jar, the derived CSRF token and the login state machine.
"""

from liaison.contexts.auth.cookies import (
    Cookie,
    CookieJar,
    encode_cookies,
    parse_cookies,
    parse_set_cookie,
    serialize_cookies,
    split_set_cookie_string,
)
from liaison.contexts.auth.credentials import Credentials
from liaison.contexts.auth.errors import (
    AuthError,
    AuthHttpError,
    ChallengeRequiredError,
    InvalidCredentialsError,
    LiaisonError,
    MissingCookieError,
    MissingCredentialsError,
    MissingSessionCookieError,
    SessionExpiredError,
)
from liaison.contexts.auth.session import (
    SESSION_COOKIE,
    SessionManager,
    SessionStatus,
)

__all__ = [
    # State machine (primary interface)
    "SessionManager",
    "SessionStatus",
    "SESSION_COOKIE",
    "Credentials",
    # Cookies
    "Cookie",
    "CookieJar",
    "encode_cookies",
    "parse_cookies",
    "parse_set_cookie",
    "serialize_cookies",
    "split_set_cookie_string",
    # Errors
    "LiaisonError",
    "MissingCredentialsError",
    "AuthError",
    "AuthHttpError",
    "ChallengeRequiredError",
    "InvalidCredentialsError",
    "MissingCookieError",
    "MissingSessionCookieError",
    "SessionExpiredError",
]
