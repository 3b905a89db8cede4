"""Cookie-session authentication and a throttled, self-recovering API request pipeline."""

from liaison.client import Client
from liaison.contexts.auth import (
    AuthError,
    AuthHttpError,
    ChallengeRequiredError,
    Credentials,
    InvalidCredentialsError,
    LiaisonError,
    MissingCookieError,
    MissingCredentialsError,
    MissingSessionCookieError,
    SessionExpiredError,
    SessionManager,
    SessionStatus,
)
from liaison.contexts.storage import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    get_credential_store,
)
from liaison.contexts.transport import RateLimiter, RequestPipeline, Throttle

__version__ = "0.1.0"

__all__ = [
    # Facade
    "Client",
    # Core
    "SessionManager",
    "SessionStatus",
    "Credentials",
    "RequestPipeline",
    "RateLimiter",
    "Throttle",
    # Storage
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "get_credential_store",
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
