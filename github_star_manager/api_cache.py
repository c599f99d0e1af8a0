"""Cached ad-hoc REST calls for the `api` subcommand, using Cachetta.

Only successful GETs are cached. Errors raised by the client propagate and
are never written, and non-GET methods always go straight to the API.
"""

import hashlib
import json
from datetime import timedelta
from pathlib import Path

from cachetta import Cachetta

from .models import ApiRequest, ApiResponse

DEFAULT_DURATION = timedelta(days=1)


def cache_key(endpoint, params=None):
    params = params or {}
    raw = f"{endpoint}|{json.dumps(params, sort_keys=True)}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


class CachedApi:
    """Wraps a GitHubClient with a file cache keyed by endpoint and params."""

    def __init__(self, client, cache_dir: Path, duration: timedelta = DEFAULT_DURATION):
        self.client = client

        def _cache_path(endpoint, params=None):
            return Path(cache_dir) / f"{cache_key(endpoint, params)}.json"

        cache = Cachetta(path=_cache_path, duration=duration)
        cache_skip_read = cache.copy(read=False)

        # Pure fetch: the client owns retries and throttling, Cachetta owns storage
        def _do_fetch(endpoint, params=None):
            resp = client.execute(ApiRequest("GET", endpoint, params or {}))
            return {
                "status": resp.status,
                "body": resp.body,
                "etag": resp.etag,
                "link": resp.link,
            }

        self._cached_fetch = cache(_do_fetch)
        self._skip_read_fetch = cache_skip_read(_do_fetch)

    def call(self, endpoint: str, params: dict | None = None, method: str = "GET", skip_cache: bool = False) -> ApiResponse:
        """Make a REST call, serving GETs from cache when possible.

        Args:
            endpoint: API path, e.g. "repos/owner/repo"
            params: Query parameters dict
            method: HTTP method (default GET)
            skip_cache: Skip reading cache for this call (still writes)
        """
        params = params or {}
        if method.upper() != "GET":
            return self.client.execute(ApiRequest(method.upper(), endpoint, params))

        fetch = self._skip_read_fetch if skip_cache else self._cached_fetch
        data = fetch(endpoint, params)
        return ApiResponse(
            status=data["status"],
            body=data["body"],
            etag=data.get("etag"),
            link=data.get("link"),
        )
