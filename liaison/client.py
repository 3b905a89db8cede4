"""
Client facade wiring one SessionManager to one RequestPipeline.

Domain request modules (profiles, companies, search, ...) build on
Client.request()/get_json(); response shaping is left to them.
"""

from typing import Any, Dict, Optional

import requests
from omegaconf.dictconfig import DictConfig

from liaison.contexts.auth import CookieJar, SessionManager
from liaison.contexts.storage import CredentialStore
from liaison.contexts.transport import RequestPipeline
from liaison.utils.config_helpers import ConfigSource, load_client_config


class Client:
    """
    Authenticated, throttled access to the remote API.

    Args:
        identity: Login identity (defaults to LINKEDIN_EMAIL)
        secret: Login password (defaults to LINKEDIN_PASSWORD)
        store: Cookie session persistence (default from CREDENTIAL_BACKEND)
        config: Client config overrides (path, dict or DictConfig)
        base_url: Overrides config.base_url
        http: requests.Session shared by login and API calls
        throttle: Overrides config.throttle.enabled
        api_headers: Extra headers for API requests
        auth_headers: Extra headers for login requests

    Example:
        >>> client = Client()
        >>> client.ensure_ready()
        >>> me = client.get_json("me")
    """

    # max seems to be 100
    MAX_UPDATE_COUNT = 100

    # max seems to be 49, and min seems to be 2
    MAX_SEARCH_COUNT = 49

    # very conservative max requests count to avoid rate-limit
    MAX_REPEATED_REQUESTS = 200

    def __init__(
        self,
        identity: Optional[str] = None,
        secret: Optional[str] = None,
        store: Optional[CredentialStore] = None,
        config: Optional[ConfigSource] = None,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        throttle: Optional[bool] = None,
        api_headers: Optional[Dict[str, str]] = None,
        auth_headers: Optional[Dict[str, str]] = None,
    ):
        self.config: DictConfig = load_client_config(config)

        self.session = SessionManager(
            identity=identity,
            secret=secret,
            store=store,
            http=http,
            config=self.config,
            base_url=base_url,
            auth_headers=auth_headers,
        )
        self.pipeline = RequestPipeline.for_session(
            self.session,
            http=http,
            throttle=throttle,
            api_headers=api_headers,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    @property
    def cookies(self) -> Optional[CookieJar]:
        return self.session.cookies

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id

    def ensure_ready(self) -> bool:
        """Restore or establish a session. See SessionManager.ensure_authenticated()."""
        return self.session.ensure_authenticated()

    def request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Ensure a session exists, then send the request through the pipeline."""
        self.ensure_ready()
        return self.pipeline.call(method, endpoint, **kwargs)

    def get(self, endpoint: str, **kwargs) -> requests.Response:
        return self.request("GET", endpoint, **kwargs)

    def post(self, endpoint: str, **kwargs) -> requests.Response:
        return self.request("POST", endpoint, **kwargs)

    def get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET an endpoint and decode its JSON body.

        Raises:
            requests.HTTPError: If the final response is not 2xx (the error carries that response)
        """
        response = self.get(endpoint, params=params)
        response.raise_for_status()
        return response.json()
