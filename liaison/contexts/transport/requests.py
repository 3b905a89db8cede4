"""HTTP helpers shared by the request pipeline."""

from typing import Optional

import requests

AuthFailureCodeSet = (401, 403)
TransientCodeSet = (408, 425, 429, 500, 502, 503, 504)

RESPONSE_OK = "success"
RESPONSE_AUTH_FAILURE = "auth failure"
RESPONSE_TRANSIENT = "transient failure"
RESPONSE_FAILURE = "failure"


def classify_http_outcome(
    response: Optional[requests.Response] = None,
    exception: Optional[requests.RequestException] = None,
) -> str:
    """
    Classify the outcome of an API call for logging and recovery decisions.

    Args:
        response: Response received, if any
        exception: Exception raised instead of (or alongside) a response

    Returns:
        One of RESPONSE_OK, RESPONSE_AUTH_FAILURE, RESPONSE_TRANSIENT, RESPONSE_FAILURE
    """
    if response is None and exception is not None:
        response = getattr(exception, "response", None)

    if response is not None: # We received a response object.
        status = response.status_code

        if 200 <= status < 300:
            return RESPONSE_OK
        elif status in AuthFailureCodeSet:
            return RESPONSE_AUTH_FAILURE
        elif status in TransientCodeSet:
            return RESPONSE_TRANSIENT
        else:
            return RESPONSE_FAILURE

    # No response: network-level failures are worth retrying later, by the caller
    return RESPONSE_TRANSIENT


def is_auth_failure(response: Optional[requests.Response]) -> bool:
    """True for responses that mean the session is no longer accepted."""
    return response is not None and response.status_code in AuthFailureCodeSet


def join_url(base_url: str, endpoint: str) -> str:
    """Join an API base URL and an endpoint; absolute endpoints are used as is."""
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"
