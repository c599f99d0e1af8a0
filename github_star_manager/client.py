"""GitHub REST API client with rate limiting, retries and typed errors."""

import logging
import random
import time
from collections.abc import Iterator

import httpx

from .errors import AuthError, GitHubError, NotFoundError, RateLimitedError, UnknownApiError, classify
from .limiter import TokenBucket
from .models import MAX_PER_PAGE, ApiRequest, ApiResponse
from .paginator import Paginator
from .rate_limit import sync_rate_limit
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
USER_AGENT = "github-star-manager"

MAX_RETRIES = 3
# Server/network failures: BACKOFF_BASE * 2**attempt + uniform(0, BACKOFF_JITTER)
BACKOFF_BASE = 1.0
BACKOFF_JITTER = 1.0
# Rate limits: wait for the reset (or retry-after) plus a buffer
RATE_LIMIT_BUFFER = 1.0
RETRY_DELAY = 5.0
MAX_RATE_LIMIT_WAIT = 3600.0 + RATE_LIMIT_BUFFER

# Local bucket until the first response reports the real budget: 5 burst, 0.5/s
DEFAULT_CAPACITY = 5
DEFAULT_REFILL_RATE = 0.5

STARRED = ApiRequest("GET", "/user/starred")


def _decode_body(resp: httpx.Response):
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class GitHubClient:
    """Client for the GitHub REST API.

    Every call goes through `execute`: take a token from the limiter, send,
    sync the limiter with the response's rate-limit headers, and either
    return, retry, or raise a classified GitHubError.

    The httpx connection pool and the limiter belong to this instance and live
    as long as it does.
    """

    def __init__(
        self,
        token: str | None,
        base_url: str = API_BASE,
        limiter: TokenBucket | None = None,
        max_retries: int = MAX_RETRIES,
        per_page: int = MAX_PER_PAGE,
        timeout: float = 30.0,
        clock=time.time,
        sleep=time.sleep,
        transport: httpx.BaseTransport | None = None,
    ):
        if not token:
            raise AuthError("GITHUB_TOKEN is not set")
        self._token = token
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport,
        )
        self._clock = clock
        self._sleep = sleep
        self.limiter = limiter or TokenBucket(DEFAULT_CAPACITY, DEFAULT_REFILL_RATE, clock=clock, sleep=sleep)
        self.max_retries = max_retries
        self.per_page = per_page
        self.backoff_base = BACKOFF_BASE
        self.backoff_jitter = BACKOFF_JITTER
        self.rate_limit_buffer = RATE_LIMIT_BUFFER
        self.retry_delay = RETRY_DELAY
        self.max_rate_limit_wait = MAX_RATE_LIMIT_WAIT
        self.requests = 0
        self.retries = 0
        self.rate_limit_hits = 0

    def __repr__(self):
        masked = f"****{self._token[-4:]}" if len(self._token) > 8 else "****"
        return f"GitHubClient(base_url={self.base_url!r}, token={masked!r})"

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self._client.close()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path if path.startswith('/') else '/' + path}"

    def _retry_wait(self, error: GitHubError, attempt: int) -> float:
        if isinstance(error, RateLimitedError):
            self.rate_limit_hits += 1
            if error.reset_at is not None:
                wait = max(0.0, error.reset_at - self._clock())
            elif error.retry_after is not None:
                wait = error.retry_after
            else:
                wait = self.retry_delay
            return min(wait + self.rate_limit_buffer, self.max_rate_limit_wait)
        return self.backoff_base * 2**attempt + random.uniform(0, self.backoff_jitter)

    def execute(self, request: ApiRequest) -> ApiResponse:
        """Send one request, retrying transient failures.

        Rate limits, 5xx and network failures are retried up to `max_retries`
        times; anything else raises at once. When retries run out the last
        classified error is raised as is.
        """
        url = self._url(request.path)
        attempt = 0
        while True:
            self.limiter.acquire()
            self.requests += 1
            try:
                resp = self._client.request(
                    request.method, url, params=request.params or None, json=request.json
                )
            except httpx.TransportError as exc:
                error = classify(network_error=exc)
            else:
                sync_rate_limit(self.limiter, resp.headers)
                if 200 <= resp.status_code < 300:
                    body = _decode_body(resp)
                    if isinstance(body, str):
                        raise UnknownApiError(
                            f"GitHub API error: {resp.status_code} response body is not JSON",
                            status=resp.status_code,
                            body=body,
                        )
                    return ApiResponse(
                        status=resp.status_code,
                        body={} if body is None else body,
                        etag=resp.headers.get("etag"),
                        link=resp.headers.get("link"),
                        headers=dict(resp.headers),
                    )
                error = classify(resp.status_code, resp.headers, _decode_body(resp))

            if not error.retriable or attempt >= self.max_retries:
                raise error from error.cause

            wait = self._retry_wait(error, attempt)
            attempt += 1
            self.retries += 1
            logger.warning(
                "%s on %s %s, retry %d/%d in %.1fs",
                error.kind.value, request.method, request.path, attempt, self.max_retries, wait,
            )
            self._sleep(wait)

    def get(self, path: str, params: dict | None = None) -> ApiResponse:
        return self.execute(ApiRequest("GET", path, params or {}))

    def paginator(self, cancel=None) -> Paginator:
        return Paginator(self, per_page=self.per_page, cancel=cancel)

    def get_current_user(self) -> dict:
        return self.get("/user").body

    def get_repo(self, owner: str, repo: str) -> dict | None:
        """Repository details, or None if it does not exist."""
        try:
            return self.get(f"/repos/{owner}/{repo}").body
        except NotFoundError:
            return None

    def get_starred_repos(self, page: int = 1, per_page: int | None = None) -> list[dict]:
        """One page of the authenticated user's stars."""
        resp = self.execute(STARRED.with_params(page=page, per_page=per_page or self.per_page))
        return resp.body

    def starred_repos(self, cancel=None) -> Iterator[dict]:
        """Lazily enumerate every starred repository."""
        return self.paginator(cancel=cancel).all(STARRED)

    def get_all_starred_repos(self) -> list[dict]:
        return list(self.starred_repos())

    def star_repo(self, owner: str, repo: str) -> None:
        self.execute(ApiRequest("PUT", f"/user/starred/{owner}/{repo}"))

    def unstar_repo(self, owner: str, repo: str) -> None:
        self.execute(ApiRequest("DELETE", f"/user/starred/{owner}/{repo}"))

    def is_repo_starred(self, owner: str, repo: str) -> bool:
        try:
            self.get(f"/user/starred/{owner}/{repo}")
            return True
        except NotFoundError:
            return False

    def search_repositories(self, query: str, sort: str = "stars", order: str = "desc", per_page: int = 5) -> list[dict]:
        """First page of a repository search."""
        resp = self.get("/search/repositories", {"q": query, "sort": sort, "order": order, "per_page": per_page})
        return resp.body.get("items", [])


def create_client(settings: Settings | None = None, token: str | None = None) -> GitHubClient:
    """Build a client, with its own limiter, from settings."""
    settings = settings or get_settings()
    return GitHubClient(
        token or settings.github_token,
        base_url=settings.api_url,
        limiter=TokenBucket(settings.rate_limit, settings.refill_rate),
        max_retries=settings.max_retries,
        per_page=min(settings.per_page, MAX_PER_PAGE),
        timeout=settings.timeout,
    )
