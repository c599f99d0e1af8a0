"""Unit tests for the GitHub REST client."""

from unittest.mock import MagicMock

import httpx
import pytest

from .client import GitHubClient
from .errors import AuthError, NetworkError, NotFoundError, RateLimitedError, ServerError, UnknownApiError
from .limiter import TokenBucket
from .models import ApiRequest


def _response(status=200, json=None, headers=None):
    if json is None:
        return httpx.Response(status, headers=headers or {})
    return httpx.Response(status, json=json, headers=headers or {})


def describe_GitHubClient():
    @pytest.fixture
    def client(clock):
        # Roomy limiter so the only sleeps recorded are retry waits
        limiter = TokenBucket(1000, 1000.0, clock=clock, sleep=clock.sleep)
        c = GitHubClient("test-token", limiter=limiter, clock=clock, sleep=clock.sleep)
        c.backoff_jitter = 0
        return c

    def _mock(client, *responses):
        client._client.request = MagicMock(side_effect=list(responses))
        return client._client.request

    def describe_init():
        def it_requires_a_token():
            with pytest.raises(AuthError, match="GITHUB_TOKEN"):
                GitHubClient(None)

        def it_masks_the_token_in_repr(client):
            text = repr(client)

            assert "test-token" not in text
            assert "****oken" in text

        def it_hides_short_tokens_entirely(clock):
            text = repr(GitHubClient("abcd", clock=clock, sleep=clock.sleep))

            assert "abcd" not in text
            assert "token='****'" in text

        def it_sends_auth_and_api_headers(client):
            headers = client._client.headers

            assert headers["authorization"] == "Bearer test-token"
            assert headers["accept"] == "application/vnd.github+json"
            assert "user-agent" in headers

        def it_can_be_used_as_a_context_manager(clock):
            with GitHubClient("t0ken", clock=clock, sleep=clock.sleep) as c:
                assert not c._client.is_closed

            assert c._client.is_closed

    def describe_execute():
        def it_returns_the_decoded_body(client):
            request = _mock(client, _response(200, {"login": "octocat"}, {"etag": '"abc"'}))

            resp = client.execute(ApiRequest("GET", "/user"))

            assert resp.status == 200
            assert resp.body == {"login": "octocat"}
            assert resp.etag == '"abc"'
            request.assert_called_once_with("GET", "https://api.github.com/user", params=None, json=None)

        def it_returns_an_empty_body_for_no_content(client):
            _mock(client, _response(204))

            resp = client.execute(ApiRequest("PUT", "/user/starred/octo/hello"))

            assert resp.status == 204
            assert resp.body == {}

        def it_classifies_a_success_body_that_is_not_json(client):
            request = _mock(client, httpx.Response(200, text="<html>oops</html>"))

            with pytest.raises(UnknownApiError) as exc_info:
                client.execute(ApiRequest("GET", "/user/starred"))

            assert exc_info.value.status == 200
            assert exc_info.value.body == "<html>oops</html>"
            assert request.call_count == 1

        def it_classifies_a_non_json_page_during_pagination(client):
            _mock(client, httpx.Response(200, text="<html>oops</html>"))

            with pytest.raises(UnknownApiError):
                list(client.starred_repos())

        def it_passes_absolute_urls_through(client):
            request = _mock(client, _response(200, []))

            client.execute(ApiRequest("GET", "https://api.github.com/user/starred?page=2"))

            assert request.call_args.args[1] == "https://api.github.com/user/starred?page=2"

        def it_raises_not_found_without_retrying(client, clock):
            request = _mock(client, _response(404, {"message": "Not Found"}))

            with pytest.raises(NotFoundError):
                client.execute(ApiRequest("GET", "/repos/octo/missing"))

            assert request.call_count == 1
            assert clock.sleeps == []

        def it_raises_auth_errors_without_retrying(client):
            request = _mock(client, _response(401, {"message": "Bad credentials"}))

            with pytest.raises(AuthError, match="Bad credentials"):
                client.execute(ApiRequest("GET", "/user"))

            assert request.call_count == 1

        def it_raises_unknown_errors_without_retrying(client):
            request = _mock(client, _response(422, {"message": "Validation Failed"}))

            with pytest.raises(UnknownApiError):
                client.execute(ApiRequest("GET", "/user"))

            assert request.call_count == 1

        def it_does_not_retry_a_permission_403(client):
            request = _mock(client, _response(403, {"message": "Forbidden"}, {"x-ratelimit-remaining": "4000"}))

            with pytest.raises(UnknownApiError):
                client.execute(ApiRequest("GET", "/user"))

            assert request.call_count == 1

        def it_feeds_error_responses_into_the_limiter(client):
            _mock(client, _response(404, {"message": "Not Found"}, {"x-ratelimit-remaining": "10", "x-ratelimit-limit": "60"}))

            with pytest.raises(NotFoundError):
                client.execute(ApiRequest("GET", "/repos/octo/missing"))

            assert client.limiter.capacity == 60
            assert client.limiter.remaining == 10

    def describe_server_errors():
        def it_retries_with_exponential_backoff(client, clock):
            request = _mock(client, _response(500), _response(502), _response(200, {"ok": True}))

            resp = client.execute(ApiRequest("GET", "/user"))

            assert resp.body == {"ok": True}
            assert request.call_count == 3
            assert clock.sleeps == [1.0, 2.0]
            assert client.retries == 2

        def it_gives_up_after_max_retries(client, clock):
            request = _mock(client, *[_response(503, "unavailable") for _ in range(4)])

            with pytest.raises(ServerError) as exc_info:
                client.execute(ApiRequest("GET", "/user"))

            assert exc_info.value.status == 503
            assert request.call_count == 4
            assert clock.sleeps == [1.0, 2.0, 4.0]

        def it_honours_a_lower_retry_count(client):
            client.max_retries = 0
            request = _mock(client, _response(500))

            with pytest.raises(ServerError):
                client.execute(ApiRequest("GET", "/user"))

            assert request.call_count == 1

        def it_adds_jitter_to_the_backoff(client, clock):
            client.backoff_jitter = 1.0
            _mock(client, _response(500), _response(200, {}))

            client.execute(ApiRequest("GET", "/user"))

            assert 1.0 <= clock.sleeps[0] <= 2.0

    def describe_network_errors():
        def it_retries_transport_failures(client):
            request = _mock(client, httpx.ConnectError("connection refused"), _response(200, {"ok": True}))

            resp = client.execute(ApiRequest("GET", "/user"))

            assert resp.body == {"ok": True}
            assert request.call_count == 2

        def it_raises_a_network_error_chained_to_the_cause(client):
            _mock(client, *[httpx.ReadTimeout("timed out") for _ in range(4)])

            with pytest.raises(NetworkError) as exc_info:
                client.execute(ApiRequest("GET", "/user"))

            assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
            assert exc_info.value.status is None

    def describe_rate_limits():
        def it_waits_for_the_reset_then_retries(client, clock):
            reset = int(clock.now) + 2
            request = _mock(
                client,
                _response(
                    403,
                    {"message": "API rate limit exceeded"},
                    {"x-ratelimit-remaining": "0", "x-ratelimit-limit": "5000", "x-ratelimit-reset": str(reset)},
                ),
                _response(
                    200,
                    [],
                    {"x-ratelimit-remaining": "4999", "x-ratelimit-limit": "5000", "x-ratelimit-reset": str(reset + 3600)},
                ),
            )

            client.execute(ApiRequest("GET", "/user/starred"))

            assert request.call_count == 2
            assert clock.sleeps == [pytest.approx(3.0)]
            assert client.rate_limit_hits == 1
            assert client.limiter.remaining == 4999

        def it_uses_retry_after_for_429(client, clock):
            _mock(client, _response(429, {"message": "slow down"}, {"retry-after": "10"}), _response(200, {}))

            client.execute(ApiRequest("GET", "/user"))

            assert clock.sleeps == [11.0]

        def it_uses_retry_after_for_secondary_limits(client, clock):
            _mock(
                client,
                _response(403, {"message": "secondary rate limit"}, {"x-ratelimit-remaining": "30", "retry-after": "60"}),
                _response(200, {}),
            )

            client.execute(ApiRequest("GET", "/user"))

            assert clock.sleeps == [61.0]

        def it_falls_back_to_a_fixed_delay(client, clock):
            _mock(client, _response(403, {"message": "rate limit"}, {"x-ratelimit-remaining": "0"}), _response(200, {}))

            client.execute(ApiRequest("GET", "/user"))

            assert clock.sleeps == [6.0]

        def it_caps_the_wait(client, clock):
            far = int(clock.now) + 100_000
            _mock(
                client,
                _response(403, {"message": "rate limit"}, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(far)}),
                _response(200, {}),
            )

            client.execute(ApiRequest("GET", "/user"))

            assert clock.sleeps[0] == client.max_rate_limit_wait

        def it_raises_once_retries_run_out(client):
            limited = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1"}
            request = _mock(client, *[_response(403, {"message": "rate limit"}, limited) for _ in range(4)])

            with pytest.raises(RateLimitedError):
                client.execute(ApiRequest("GET", "/user"))

            assert request.call_count == 4

    def describe_endpoints():
        def it_gets_the_current_user(client):
            _mock(client, _response(200, {"login": "octocat"}))

            assert client.get_current_user() == {"login": "octocat"}

        def it_returns_none_for_a_missing_repo(client):
            _mock(client, _response(404, {"message": "Not Found"}))

            assert client.get_repo("octo", "gone") is None

        def it_gets_one_page_of_stars(client):
            request = _mock(client, _response(200, [{"id": 1}]))

            assert client.get_starred_repos(page=3, per_page=10) == [{"id": 1}]
            assert request.call_args.kwargs["params"] == {"page": 3, "per_page": 10}

        def it_gets_all_stars(client):
            _mock(client, _response(200, [{"id": 1}, {"id": 2}]), _response(200, []))

            assert client.get_all_starred_repos() == [{"id": 1}, {"id": 2}]

        def it_stars_with_put(client):
            request = _mock(client, _response(204))

            client.star_repo("octo", "hello")

            request.assert_called_once_with(
                "PUT", "https://api.github.com/user/starred/octo/hello", params=None, json=None
            )

        def it_unstars_with_delete(client):
            request = _mock(client, _response(204))

            client.unstar_repo("octo", "hello")

            assert request.call_args.args == ("DELETE", "https://api.github.com/user/starred/octo/hello")

        def it_reports_starred_state(client):
            _mock(client, _response(204), _response(404, {"message": "Not Found"}))

            assert client.is_repo_starred("octo", "hello") is True
            assert client.is_repo_starred("octo", "other") is False

        def it_searches_repositories(client):
            request = _mock(client, _response(200, {"total_count": 1, "items": [{"full_name": "a/b"}]}))

            assert client.search_repositories("topic:rust") == [{"full_name": "a/b"}]
            assert request.call_args.kwargs["params"]["q"] == "topic:rust"
