"""
Throttled API request pipeline with authorization-failure recovery.

Every call goes through the same steps:
1. throttle (random delay, then rate limit), if enabled
2. build the request with the current auth headers from the header provider
3. send it
4. on 401/403, ask for fresh auth headers once, patch the failed request
   and resend it; whatever the resend returns is final

The pipeline never changes session state itself. It only reads headers
through ``header_provider`` and asks for recovery through ``reauthenticate``.
"""

import time
from typing import Any, Callable, Dict, Optional

import requests
from loguru import logger
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

from liaison.contexts.transport.requests import (
    RESPONSE_OK,
    classify_http_outcome,
    is_auth_failure,
    join_url,
)
from liaison.contexts.transport.throttle import Throttle
from liaison.utils.config_helpers import ConfigSource, load_client_config
from liaison.utils.helpers import redact_headers

HeaderProvider = Callable[[], Dict[str, str]]
# Called with the rejected request's cookie header (None if it sent none)
Reauthenticator = Callable[[Optional[str]], Optional[Dict[str, str]]]

# Headers patched on a failed request after recovery
AUTH_HEADER_NAMES = ("csrf-token", "cookie")


class RequestPipeline:
    """
    Wrapper around a requests.Session for the authenticated API surface.

    Args:
        header_provider: Returns the current auth headers; called for every request
        reauthenticate: Called with the rejected request's cookie header; returns fresh
            auth headers, or None when recovery is not possible
        http: requests.Session used to send API requests
        config: Client config overrides (path, dict or DictConfig)
        base_url: Overrides config.base_url
        throttle: Overrides config.throttle.enabled
        api_headers: Extra headers sent with every API request
        clock: Monotonic clock used by the rate limiter
        sleep: Sleep function used by the throttle

    Example:
        >>> session = SessionManager()
        >>> pipeline = RequestPipeline.for_session(session)
        >>> session.ensure_authenticated()
        >>> pipeline.get("me").json()
    """

    def __init__(
        self,
        header_provider: Optional[HeaderProvider] = None,
        reauthenticate: Optional[Reauthenticator] = None,
        http: Optional[requests.Session] = None,
        config: Optional[ConfigSource] = None,
        base_url: Optional[str] = None,
        throttle: Optional[bool] = None,
        api_headers: Optional[Dict[str, str]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config: DictConfig = config if isinstance(config, DictConfig) else load_client_config(config)

        base_url = (base_url or self.config.base_url).rstrip("/")
        self.api_url = f"{base_url}/{self.config.api_path.strip('/')}"
        self.timeout = self.config.timeout
        self.api_headers = {
            **OmegaConf.to_container(self.config.api_headers, resolve=True),
            **(api_headers or {}),
        }

        self.header_provider = header_provider or dict
        self.reauthenticate = reauthenticate
        self.http = http or requests.Session()

        throttle_enabled = self.config.throttle.enabled if throttle is None else throttle
        self.throttle: Optional[Throttle] = (
            Throttle.from_config(self.config.throttle, clock=clock, sleep=sleep) if throttle_enabled else None
        )

    @classmethod
    def for_session(cls, session, **kwargs) -> "RequestPipeline":
        """
        Build a pipeline bound to a SessionManager.

        The session's config and base URL are used unless overridden in kwargs.
        """
        kwargs.setdefault("config", session.config)
        kwargs.setdefault("base_url", session.base_url)
        return cls(
            header_provider=session.get_auth_headers,
            reauthenticate=session.reauthenticate_and_get_headers,
            **kwargs,
        )

    def build_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.PreparedRequest:
        """Prepare a request carrying the default, current auth and extra headers."""
        merged_headers = {**self.api_headers, **self.header_provider(), **(headers or {})}
        return requests.Request(
            method.upper(),
            join_url(self.api_url, endpoint),
            headers=merged_headers,
            params=params,
            data=data,
            json=json,
        ).prepare()

    def call(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Issue one API request through the pipeline.

        Args:
            method: HTTP method
            endpoint: Path relative to the API root (e.g. "me"), or an absolute URL
            **kwargs: params, data, json, headers

        Returns:
            The final response. After a successful recovery this is the retried
            response; otherwise the original one.

        Raises:
            requests.RequestException: If the first attempt fails at transport level
        """
        if self.throttle is not None:
            self.throttle.wait()

        request = self.build_request(method, endpoint, **kwargs)
        response = self._send(request)
        return self._recover(request, response)

    def get(self, endpoint: str, **kwargs) -> requests.Response:
        return self.call("GET", endpoint, **kwargs)

    def post(self, endpoint: str, **kwargs) -> requests.Response:
        return self.call("POST", endpoint, **kwargs)

    def _send(self, request: requests.PreparedRequest) -> requests.Response:
        logger.debug(f"RequestPipeline: {request.method} {request.url} headers={redact_headers(request.headers)}")
        response = self.http.send(request, timeout=self.timeout)

        outcome = classify_http_outcome(response=response)
        if outcome != RESPONSE_OK:
            logger.debug(f"RequestPipeline: {request.method} {request.url} -> {response.status_code} ({outcome})")
        return response

    def _recover(self, request: requests.PreparedRequest, response: requests.Response) -> requests.Response:
        if not is_auth_failure(response) or self.reauthenticate is None:
            return response

        logger.warning(
            f"RequestPipeline: auth error {response.status_code} from {request.method} {request.url} "
            f"(attempting to re-authenticate)"
        )

        try:
            headers = self.reauthenticate(request.headers.get("cookie"))
            if not headers:
                logger.warning(
                    f"RequestPipeline: could not re-authenticate, returning {response.status_code} "
                    f"for {request.method} {request.url}"
                )
                return response

            # Patch the failed request in place and resubmit it exactly once
            for name in AUTH_HEADER_NAMES:
                request.headers[name] = headers[name]

            if self.throttle is not None:
                self.throttle.limiter.acquire()

            retried = self._send(request)

        except Exception as e:
            logger.warning(
                f"RequestPipeline: auth error {response.status_code} from request {request.method} {request.url}, "
                f"error re-authenticating: {type(e).__name__}: {e}"
            )
            return response

        if is_auth_failure(retried):
            logger.error(
                f"RequestPipeline: {request.method} {request.url} still returned {retried.status_code} "
                f"after re-authenticating, giving up"
            )
        return retried
