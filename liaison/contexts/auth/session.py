"""
Cookie-session authentication state machine.

SessionManager owns the credentials, the cookie jar, the CSRF token derived
from the JSESSIONID cookie and the session status:

    UNAUTHENTICATED --authenticate()--> AUTHENTICATING --ok--> AUTHENTICATED
    AUTHENTICATED --invalidate()--> UNAUTHENTICATED
    UNAUTHENTICATED --reauthenticate_and_get_headers()--> REAUTHENTICATING --ok--> AUTHENTICATED

Failed logins always land back in UNAUTHENTICATED. At most one login
(direct or recovery) runs at a time: the login lock is taken blockingly by
direct logins and non-blockingly by recovery, which gives up instead of
queueing a second handshake.
"""

import threading
from enum import Enum
from typing import Dict, Optional, Tuple

import requests
from loguru import logger
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

from liaison.contexts.auth.cookies import (
    CookieJar,
    encode_cookies,
    parse_cookies,
    serialize_cookies,
    strip_quotes,
)
from liaison.contexts.auth.credentials import Credentials
from liaison.contexts.auth.errors import (
    AuthHttpError,
    ChallengeRequiredError,
    InvalidCredentialsError,
    MissingCookieError,
    MissingSessionCookieError,
    SessionExpiredError,
)
from liaison.contexts.storage import CredentialStore, get_credential_store
from liaison.utils.config_helpers import ConfigSource, load_client_config
from liaison.utils.helpers import redact_fields, redact_headers

SESSION_COOKIE = "JSESSIONID"
LOGIN_PASSED = "PASS"


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REAUTHENTICATING = "reauthenticating"


IN_FLIGHT_STATUSES = (SessionStatus.AUTHENTICATING, SessionStatus.REAUTHENTICATING)


def get_set_cookie(response: requests.Response) -> Optional[str]:
    """
    Return the Set-Cookie header(s) of a response as one comma-joined string.

    Repeated Set-Cookie headers are read from the raw urllib3 headers when
    available; requests' merged header view is the fallback.
    """
    raw_headers = getattr(response.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        values = raw_headers.getlist("Set-Cookie")
        if values:
            return ", ".join(values)
    return response.headers.get("set-cookie")


class SessionManager:
    """
    Authenticated cookie session for one account.

    Args:
        identity: Login identity (defaults to LINKEDIN_EMAIL)
        secret: Login password (defaults to LINKEDIN_PASSWORD)
        store: Where cookie sessions are persisted (default from CREDENTIAL_BACKEND)
        http: requests.Session used for login calls
        config: Client config overrides (path, dict or DictConfig)
        base_url: Overrides config.base_url
        auth_headers: Extra headers sent with login requests

    Raises:
        MissingCredentialsError: If identity or secret cannot be resolved
    """

    def __init__(
        self,
        identity: Optional[str] = None,
        secret: Optional[str] = None,
        store: Optional[CredentialStore] = None,
        http: Optional[requests.Session] = None,
        config: Optional[ConfigSource] = None,
        base_url: Optional[str] = None,
        auth_headers: Optional[Dict[str, str]] = None,
    ):
        self.credentials = Credentials.resolve(identity, secret)
        self.config: DictConfig = config if isinstance(config, DictConfig) else load_client_config(config)

        self.base_url = (base_url or self.config.base_url).rstrip("/")
        self.login_url = f"{self.base_url}/{self.config.auth_path.strip('/')}"
        self.timeout = self.config.timeout
        self.login_headers = {
            **OmegaConf.to_container(self.config.auth_headers, resolve=True),
            **(auth_headers or {}),
        }

        self.store = store if store is not None else get_credential_store()
        self.http = http or requests.Session()

        # (cookie jar, csrf token), swapped as one reference
        self._session: Optional[Tuple[CookieJar, str]] = None
        self._status = SessionStatus.UNAUTHENTICATED
        # Serialized session the service rejected; never restored from the store again
        self._rejected_blob: Optional[str] = None
        self._state_lock = threading.Lock()
        self._login_lock = threading.Lock()

    @property
    def identity(self) -> str:
        return self.credentials.identity

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_authenticated(self) -> bool:
        return self._status is SessionStatus.AUTHENTICATED

    @property
    def login_in_progress(self) -> bool:
        return self._status in IN_FLIGHT_STATUSES

    @property
    def cookies(self) -> Optional[CookieJar]:
        session = self._session
        return dict(session[0]) if session else None

    @property
    def session_id(self) -> Optional[str]:
        """Raw JSESSIONID value, quotes included."""
        session = self._session
        return session[0][SESSION_COOKIE].value if session else None

    @property
    def csrf_token(self) -> Optional[str]:
        session = self._session
        return session[1] if session else None

    def get_auth_headers(self) -> Dict[str, str]:
        """
        Headers that authenticate an API request with the current session.

        Returns:
            {"csrf-token": ..., "cookie": ...}, or {} before the first login
        """
        session = self._session
        if session is None:
            return {}
        jar, csrf_token = session
        return {"csrf-token": csrf_token, "cookie": encode_cookies(jar)}

    def _transition(self, status: SessionStatus, only_from: Optional[Tuple[SessionStatus, ...]] = None) -> bool:
        with self._state_lock:
            if only_from is not None and self._status not in only_from:
                return False
            self._status = status
            return True

    def invalidate(self) -> None:
        """Mark the current session as no longer trusted. In-flight logins are left alone."""
        if self._transition(SessionStatus.UNAUTHENTICATED, only_from=(SessionStatus.AUTHENTICATED,)):
            session = self._session
            if session is not None:
                self._rejected_blob = serialize_cookies(session[0])
            logger.info(f"SessionManager: session for {self.identity} invalidated")

    def ensure_authenticated(self) -> bool:
        """
        Make sure there is a usable session, logging in only when needed.

        Order: in-memory session, then the stored session, then a full login.
        Concurrent callers wait for each other; the later ones find the session
        already established.

        Returns:
            True once authenticated

        Raises:
            AuthError: If a full login was needed and failed
            requests.RequestException: On transport failure during login
        """
        with self._login_lock:
            if self.is_authenticated:
                logger.debug(f"SessionManager: {self.identity} is already authenticated")
                return True

            if self._restore_session():
                return True

            return self._authenticate(SessionStatus.AUTHENTICATING)

    def authenticate(self) -> bool:
        """
        Run the full two-step login handshake.

        Returns:
            True on success

        Raises:
            MissingCookieError: No Set-Cookie on a login response
            MissingSessionCookieError: No JSESSIONID cookie
            SessionExpiredError: JSESSIONID already expired
            InvalidCredentialsError: Login answered 401
            AuthHttpError: Login answered another non-200 status
            ChallengeRequiredError: Login requires an interactive challenge
            requests.RequestException: On transport failure
        """
        with self._login_lock:
            return self._authenticate(SessionStatus.AUTHENTICATING)

    def reauthenticate_and_get_headers(self, rejected_cookie: Optional[str] = None) -> Optional[Dict[str, str]]:
        """
        Single-flight session recovery after an authorization failure.

        Args:
            rejected_cookie: Cookie header of the request that was rejected. If
                the current session no longer sends that header, it has already
                been replaced and its headers are returned without a new login.

        Returns:
            Fresh auth headers, or None if a login is already in progress or
            the login failed. None means the caller must not retry.
        """
        session = self._session
        if rejected_cookie is not None and session is not None and self.is_authenticated:
            if encode_cookies(session[0]) != rejected_cookie:
                logger.info("SessionManager: rejected request used a replaced session, reusing current one")
                return {"csrf-token": session[1], "cookie": encode_cookies(session[0])}

        self.invalidate()

        # Atomic check-and-set: never queue behind a login that is already running
        if not self._login_lock.acquire(blocking=False):
            logger.info("SessionManager: login already in progress, skipping reauthentication")
            return None

        try:
            self._authenticate(SessionStatus.REAUTHENTICATING)
        except Exception as e:
            logger.error(f"SessionManager: reauthentication of {self.identity} failed: {type(e).__name__}: {e}")
            return None
        finally:
            self._login_lock.release()

        return self.get_auth_headers()

    def forget(self) -> bool:
        """Drop the stored session and invalidate the in-memory one."""
        self.invalidate()
        return self.store.delete(self.identity)

    def _restore_session(self) -> bool:
        blob = self.store.get(self.identity)
        if not blob:
            logger.info(f"SessionManager: no stored session for {self.identity}")
            return False

        if blob == self._rejected_blob:
            logger.info(f"SessionManager: stored session for {self.identity} was rejected by the service")
            return False

        try:
            session = self._validate(parse_cookies(blob))
        except (MissingCookieError, SessionExpiredError) as e:
            logger.warning(f"SessionManager: stored session unusable, logging in again: {e}")
            return False

        self._session = session
        self._transition(SessionStatus.AUTHENTICATED)
        logger.info(f"SessionManager: restored stored session for {self.identity}")
        return True

    def _authenticate(self, in_flight: SessionStatus) -> bool:
        # Caller holds the login lock
        self._transition(in_flight)
        succeeded = False

        try:
            logger.info(f"SessionManager: logging in as {self.identity}")

            seed = self._send("GET", headers=self.login_headers)
            jar, csrf_token = self._adopt_cookies(seed)

            response = self._send(
                "POST",
                headers={
                    **self.login_headers,
                    "csrf-token": csrf_token,
                    "cookie": encode_cookies(jar),
                    "content-type": "application/x-www-form-urlencoded",
                },
                data={
                    "session_key": self.credentials.identity,
                    "session_password": self.credentials.secret,
                    "JSESSIONID": csrf_token,
                },
            )

            if response.status_code != 200:
                logger.debug(f"SessionManager: POST {self.login_url} returned {response.status_code}")

            if response.status_code == 401:
                raise InvalidCredentialsError(f"authenticate HTTP error: invalid credentials {response.status_code}")

            if response.status_code != 200:
                raise AuthHttpError(response.status_code)

            try:
                data = response.json()
            except ValueError:
                raise AuthHttpError(response.status_code, "authenticate returned a non-JSON body")

            if not isinstance(data, dict):
                data = {}
            if data.get("login_result") != LOGIN_PASSED:
                raise ChallengeRequiredError(data.get("login_result"), data.get("challenge_url"))

            jar, csrf_token = self._adopt_cookies(response, jar)
            self._persist(jar)
            self._session = (jar, csrf_token)
            succeeded = True

        finally:
            self._transition(SessionStatus.AUTHENTICATED if succeeded else SessionStatus.UNAUTHENTICATED)

        logger.success(f"SessionManager: authenticated as {self.identity}")
        return True

    def _send(self, method: str, headers: Dict[str, str], data: Optional[Dict[str, str]] = None) -> requests.Response:
        request = requests.Request(method, self.login_url, headers=headers, data=data).prepare()
        logger.debug(
            f"SessionManager: {method} {self.login_url} "
            f"headers={redact_headers(headers)} data={redact_fields(data or {})}"
        )
        return self.http.send(request, timeout=self.timeout)

    def _adopt_cookies(self, response: requests.Response, jar: Optional[CookieJar] = None) -> Tuple[CookieJar, str]:
        set_cookie = get_set_cookie(response)
        if not set_cookie:
            raise MissingCookieError("authenticate missing set-cookie header")

        # The session cookie must come from this response, never from ``jar``
        issued, csrf_token = self._validate(parse_cookies(set_cookie))
        return {**(jar or {}), **issued}, csrf_token

    def _validate(self, jar: CookieJar) -> Tuple[CookieJar, str]:
        session_cookie = jar.get(SESSION_COOKIE)

        if session_cookie is None:
            logger.error(f"SessionManager: session missing {SESSION_COOKIE} cookie (got: {', '.join(jar) or 'none'})")
            raise MissingSessionCookieError(f"session missing {SESSION_COOKIE} cookie")

        if session_cookie.is_expired():
            logger.error(f"SessionManager: {SESSION_COOKIE} cookie expired at {session_cookie.expires_at.isoformat()}")
            raise SessionExpiredError(f"{SESSION_COOKIE} cookie expired at {session_cookie.expires_at.isoformat()}")

        csrf_token = strip_quotes(session_cookie.value)
        if not csrf_token:
            raise MissingSessionCookieError(f"{SESSION_COOKIE} cookie is empty")

        return jar, csrf_token

    def _persist(self, jar: CookieJar) -> None:
        try:
            self.store.set(self.identity, serialize_cookies(jar))
        except OSError as e:
            # The session is still valid in memory; only restarts lose it
            logger.warning(f"SessionManager: could not persist session for {self.identity}: {e}")
