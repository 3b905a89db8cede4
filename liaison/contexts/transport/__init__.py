"""
API transport domain.

Throttles outgoing API calls and recovers from authorization failures.
"""

from liaison.contexts.transport.pipeline import RequestPipeline
from liaison.contexts.transport.requests import (
    classify_http_outcome,
    is_auth_failure,
    join_url,
)
from liaison.contexts.transport.throttle import (
    RateLimiter,
    Throttle,
    random_delay,
)

__all__ = [
    "RequestPipeline",
    "RateLimiter",
    "Throttle",
    "random_delay",
    "classify_http_outcome",
    "is_auth_failure",
    "join_url",
]
