"""Manage GitHub stars: back up, restore, categorize, report on and prune them.

Everything goes through one rate-limited REST client that pages through the
star list lazily and retries transient failures.
"""

from .cli import main
from .client import GitHubClient, create_client
from .errors import ErrorKind, GitHubError
from .limiter import TokenBucket
from .models import ApiRequest, ApiResponse
from .paginator import Paginator

__all__ = [
    "main",
    "GitHubClient",
    "create_client",
    "ErrorKind",
    "GitHubError",
    "TokenBucket",
    "ApiRequest",
    "ApiResponse",
    "Paginator",
]

if __name__ == "__main__":
    main()
