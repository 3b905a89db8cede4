"""
Account credentials for the auth context.

Credentials come from constructor arguments or, failing that, from the
environment (a .env file is honoured).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from liaison.contexts.auth.errors import MissingCredentialsError

# Load environment variables from .env file
load_dotenv()

IDENTITY_ENV_VAR = "LINKEDIN_EMAIL"
SECRET_ENV_VAR = "LINKEDIN_PASSWORD"


def _get_required_env(key: str, description: str) -> str:
    """Get required environment variable or raise clear error."""
    value = os.getenv(key)
    if not value:
        raise MissingCredentialsError(
            f"Missing required {description} (defaults to environment variable '{key}'). "
            f"Pass it explicitly or ensure .env file exists and contains {key}."
        )
    return value


@dataclass(frozen=True)
class Credentials:
    """Identity/secret pair used for the login handshake."""

    identity: str
    secret: str

    def __post_init__(self):
        if not self.identity:
            raise MissingCredentialsError("Credentials missing required identity")
        if not self.secret:
            raise MissingCredentialsError("Credentials missing required secret")

    @classmethod
    def resolve(cls, identity: Optional[str] = None, secret: Optional[str] = None) -> "Credentials":
        """
        Build credentials, falling back to the environment for missing values.

        Raises:
            MissingCredentialsError: If a value is neither given nor set in the environment
        """
        return cls(
            identity=identity or _get_required_env(IDENTITY_ENV_VAR, "identity"),
            secret=secret or _get_required_env(SECRET_ENV_VAR, "secret"),
        )

    def __repr__(self) -> str:
        return f"Credentials(identity={self.identity!r}, secret='***')"
