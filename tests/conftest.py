"""Shared fixtures: fake HTTP transport, canned responses, credentials and stores."""

import json
import threading

import pytest
import requests

from liaison.contexts.auth import SessionManager
from liaison.contexts.storage import MemoryCredentialStore

IDENTITY = "user@example.com"
SECRET = "hunter2"
LOGIN_URL = "https://www.linkedin.com/uas/authenticate"
API_URL = "https://www.linkedin.com/voyager/api"
NO_THROTTLE = {"throttle": {"enabled": False}}


def build_response(status_code=200, json_body=None, set_cookie=None, url=API_URL):
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.reason = "OK" if status_code < 400 else "Error"
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    if set_cookie is not None:
        response.headers["Set-Cookie"] = set_cookie
    return response


class FakeHttp:
    """
    Stands in for requests.Session at the send() seam.

    Replies come from ``handler(request)`` when given, otherwise from the
    ``responses`` queue. Exceptions in either are raised. Every request is
    recorded as a copy, so later in-place patching does not alter history.
    """

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.requests = []
        self._lock = threading.Lock()

    def send(self, request, **kwargs):
        with self._lock:
            self.requests.append(request.copy())
            if self.handler is None:
                reply = self.responses.pop(0)
        if self.handler is not None:
            reply = self.handler(request)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClock:
    """Clock whose sleep() advances time instead of blocking."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_http():
    return FakeHttp


@pytest.fixture
def login_responses():
    """Seed GET and successful login POST, issuing the given JSESSIONID values."""

    def _login_responses(seed='"xyz"', final='"xyz2"', extra_cookies=""):
        seed_response = build_response(
            200, set_cookie=f"JSESSIONID={seed}; Path=/; Secure, bcookie=\"v=2&abc\"; Path=/", url=LOGIN_URL
        )
        final_cookie = f"JSESSIONID={final}; Expires=Thu, 01 Jan 2099 00:00:00 GMT; Path=/"
        if extra_cookies:
            final_cookie = f"{final_cookie}, {extra_cookies}"
        post_response = build_response(200, json_body={"login_result": "PASS"}, set_cookie=final_cookie, url=LOGIN_URL)
        return [seed_response, post_response]

    return _login_responses


@pytest.fixture
def credentials_env(monkeypatch):
    monkeypatch.setenv("LINKEDIN_EMAIL", IDENTITY)
    monkeypatch.setenv("LINKEDIN_PASSWORD", SECRET)


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def make_manager(store, credentials_env):
    def _make_manager(http, **kwargs):
        kwargs.setdefault("store", store)
        return SessionManager(http=http, **kwargs)

    return _make_manager
