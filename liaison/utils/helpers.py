"""
General utility functions for liaison.

Contains helper functions used across different modules.
"""

from typing import Iterable, Mapping

SENSITIVE_HEADERS = ("cookie", "set-cookie", "csrf-token", "authorization", "x-api-key")
SENSITIVE_FIELDS = ("session_password", "password", "secret")

REDACTED = "[REDACTED]"


def redact_headers(headers: Mapping[str, str], sensitive: Iterable[str] = SENSITIVE_HEADERS) -> dict:
    """
    Copy of ``headers`` that is safe to log.

    Args:
        headers: Request or response headers (any mapping)
        sensitive: Header names to redact, case-insensitive

    Returns:
        Dict with sensitive values replaced by "[REDACTED]"

    Example:
        >>> redact_headers({"Cookie": "a=1", "Accept": "text/html"})
        {'Cookie': '[REDACTED]', 'Accept': 'text/html'}
    """
    sensitive = {name.lower() for name in sensitive}
    return {key: REDACTED if key.lower() in sensitive else value for key, value in headers.items()}


def redact_fields(fields: Mapping[str, str], sensitive: Iterable[str] = SENSITIVE_FIELDS) -> dict:
    """Copy of form fields with secrets redacted."""
    return redact_headers(fields, sensitive=sensitive)
