"""Unit tests for the API request pipeline and its 401/403 recovery."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from liaison.contexts.transport import RequestPipeline, classify_http_outcome, is_auth_failure, join_url
from liaison.contexts.transport.requests import (
    RESPONSE_AUTH_FAILURE,
    RESPONSE_FAILURE,
    RESPONSE_OK,
    RESPONSE_TRANSIENT,
)

from conftest import API_URL, NO_THROTTLE, FakeClock, build_response

OLD_HEADERS = {"csrf-token": "old", "cookie": 'JSESSIONID="old"'}
NEW_HEADERS = {"csrf-token": "new", "cookie": 'JSESSIONID="new"'}


def make_pipeline(http, header_provider=None, reauthenticate=None, **kwargs):
    kwargs.setdefault("config", NO_THROTTLE)
    return RequestPipeline(
        header_provider=header_provider or (lambda: dict(OLD_HEADERS)),
        reauthenticate=reauthenticate,
        http=http,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_url_and_headers(self, fake_http) -> None:
        pipeline = make_pipeline(fake_http(), api_headers={"x-extra": "1"})

        request = pipeline.build_request("get", "me", params={"q": "a b"}, headers={"accept": "application/json"})

        assert request.method == "GET"
        assert request.url == f"{API_URL}/me?q=a+b"
        assert request.headers["csrf-token"] == "old"
        assert request.headers["cookie"] == 'JSESSIONID="old"'
        assert request.headers["x-restli-protocol-version"] == "2.0.0"
        assert request.headers["x-extra"] == "1"
        assert request.headers["accept"] == "application/json"

    def test_absolute_url_is_kept(self, fake_http) -> None:
        pipeline = make_pipeline(fake_http())
        request = pipeline.build_request("GET", "https://example.com/other")
        assert request.url == "https://example.com/other"

    def test_no_session_headers(self, fake_http) -> None:
        pipeline = RequestPipeline(http=fake_http(), config=NO_THROTTLE)
        request = pipeline.build_request("GET", "me")
        assert "csrf-token" not in request.headers
        assert "cookie" not in request.headers

    def test_headers_read_on_every_call(self, fake_http) -> None:
        current = {"csrf-token": "a"}
        http = fake_http([build_response(200), build_response(200)])
        pipeline = make_pipeline(http, header_provider=lambda: dict(current))

        pipeline.get("one")
        current["csrf-token"] = "b"
        pipeline.get("two")

        assert [r.headers["csrf-token"] for r in http.requests] == ["a", "b"]

    def test_base_url_override(self, fake_http) -> None:
        pipeline = make_pipeline(fake_http(), base_url="https://staging.example.com/")
        assert pipeline.api_url == "https://staging.example.com/voyager/api"


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class TestRecovery:
    def test_success_passes_through(self, fake_http) -> None:
        reauthenticate = MagicMock()
        http = fake_http([build_response(200, json_body={"ok": True})])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        reauthenticate.assert_not_called()

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure_is_retried_with_fresh_headers(self, fake_http, status) -> None:
        reauthenticate = MagicMock(return_value=dict(NEW_HEADERS))
        http = fake_http([build_response(status), build_response(200, json_body={"ok": True})])
        pipeline = make_pipeline(http, reauthenticate=reauthenticate)

        response = pipeline.post("messaging/conversations", json={"body": "hello"}, params={"action": "create"})

        assert response.status_code == 200
        reauthenticate.assert_called_once_with('JSESSIONID="old"')

        first, retry = http.requests
        assert first.headers["csrf-token"] == "old"
        assert retry.headers["csrf-token"] == "new"
        assert retry.headers["cookie"] == 'JSESSIONID="new"'
        assert retry.method == first.method == "POST"
        assert retry.url == first.url
        assert json.loads(retry.body) == json.loads(first.body) == {"body": "hello"}
        assert retry.headers["x-li-lang"] == first.headers["x-li-lang"]

    def test_recovery_declined_returns_original(self, fake_http) -> None:
        reauthenticate = MagicMock(return_value=None)
        http = fake_http([build_response(401)])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response.status_code == 401
        assert len(http.requests) == 1
        reauthenticate.assert_called_once_with('JSESSIONID="old"')

    def test_retried_at_most_once(self, fake_http) -> None:
        reauthenticate = MagicMock(return_value=dict(NEW_HEADERS))
        first_failure = build_response(403)
        second_failure = build_response(403)
        http = fake_http([first_failure, second_failure])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response is second_failure
        assert len(http.requests) == 2
        reauthenticate.assert_called_once_with('JSESSIONID="old"')

    def test_recovery_error_returns_original(self, fake_http) -> None:
        reauthenticate = MagicMock(side_effect=RuntimeError("boom"))
        original = build_response(401)
        http = fake_http([original])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response is original
        assert len(http.requests) == 1

    def test_retry_transport_error_returns_original(self, fake_http) -> None:
        reauthenticate = MagicMock(return_value=dict(NEW_HEADERS))
        original = build_response(403)
        http = fake_http([original, requests.ConnectionError("connection reset")])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response is original
        assert len(http.requests) == 2

    def test_first_transport_error_propagates(self, fake_http) -> None:
        http = fake_http([requests.Timeout("timed out")])
        with pytest.raises(requests.Timeout):
            make_pipeline(http, reauthenticate=MagicMock()).get("me")

    @pytest.mark.parametrize("status", [400, 404, 429, 500])
    def test_other_failures_are_not_retried(self, fake_http, status) -> None:
        reauthenticate = MagicMock()
        http = fake_http([build_response(status)])

        response = make_pipeline(http, reauthenticate=reauthenticate).get("me")

        assert response.status_code == status
        assert len(http.requests) == 1
        reauthenticate.assert_not_called()

    def test_without_reauthenticate(self, fake_http) -> None:
        http = fake_http([build_response(401)])
        response = make_pipeline(http).get("me")
        assert response.status_code == 401
        assert len(http.requests) == 1


# ---------------------------------------------------------------------------
# Throttling
# ---------------------------------------------------------------------------


class TestThrottledPipeline:
    def test_disabled_by_override(self, fake_http) -> None:
        pipeline = RequestPipeline(http=fake_http(), throttle=False)
        assert pipeline.throttle is None

    def test_enabled_by_default(self, fake_http) -> None:
        pipeline = RequestPipeline(http=fake_http())
        assert pipeline.throttle is not None
        assert pipeline.throttle.limiter.limit == 1
        assert pipeline.throttle.limiter.interval == 1.0

    def test_requests_are_spaced(self, fake_http) -> None:
        clock = FakeClock()
        http = fake_http([build_response(200) for _ in range(3)])
        config = {"throttle": {"enabled": True, "limit": 1, "interval": 1.0, "min_delay": 0.0, "max_delay": 0.0}}
        pipeline = RequestPipeline(http=http, config=config, clock=clock, sleep=clock.sleep)

        for _ in range(3):
            pipeline.get("me")

        assert clock.sleeps == [1.0, 1.0]
        assert clock.now == 2.0

    def test_retry_passes_the_rate_limit(self, fake_http) -> None:
        clock = FakeClock()
        http = fake_http([build_response(403), build_response(200)])
        config = {"throttle": {"enabled": True, "limit": 1, "interval": 1.0, "min_delay": 0.0, "max_delay": 0.0}}
        pipeline = RequestPipeline(
            http=http,
            config=config,
            reauthenticate=lambda rejected_cookie: dict(NEW_HEADERS),
            clock=clock,
            sleep=clock.sleep,
        )

        assert pipeline.get("me").status_code == 200
        assert clock.sleeps == [1.0]

    def test_random_delay_applied(self, fake_http) -> None:
        clock = FakeClock()
        http = fake_http([build_response(200)])
        config = {"throttle": {"enabled": True, "limit": 1, "interval": 1.0, "min_delay": 1.0, "max_delay": 2.0}}
        pipeline = RequestPipeline(http=http, config=config, clock=clock, sleep=clock.sleep)

        pipeline.get("me")

        assert len(clock.sleeps) == 1
        assert 1.0 <= clock.sleeps[0] <= 2.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (200, RESPONSE_OK),
            (204, RESPONSE_OK),
            (401, RESPONSE_AUTH_FAILURE),
            (403, RESPONSE_AUTH_FAILURE),
            (429, RESPONSE_TRANSIENT),
            (503, RESPONSE_TRANSIENT),
            (404, RESPONSE_FAILURE),
        ],
    )
    def test_classify_response(self, status, expected) -> None:
        assert classify_http_outcome(response=build_response(status)) == expected

    def test_classify_exception_without_response(self) -> None:
        assert classify_http_outcome(exception=requests.ConnectionError("down")) == RESPONSE_TRANSIENT

    def test_classify_exception_with_response(self) -> None:
        error = requests.HTTPError("forbidden", response=build_response(403))
        assert classify_http_outcome(exception=error) == RESPONSE_AUTH_FAILURE

    def test_is_auth_failure(self) -> None:
        assert is_auth_failure(build_response(401))
        assert is_auth_failure(build_response(403))
        assert not is_auth_failure(build_response(500))
        assert not is_auth_failure(None)

    @pytest.mark.parametrize(
        "endpoint,expected",
        [
            ("me", f"{API_URL}/me"),
            ("/me", f"{API_URL}/me"),
            ("identity/profiles/abc", f"{API_URL}/identity/profiles/abc"),
            ("https://other.example.com/x", "https://other.example.com/x"),
        ],
    )
    def test_join_url(self, endpoint, expected) -> None:
        assert join_url(API_URL + "/", endpoint) == expected
