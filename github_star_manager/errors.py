"""Error taxonomy for GitHub API failures.

Every failure that leaves the client is a GitHubError whose `kind` decides the
retry policy, so nothing downstream has to look at status codes or messages.
"""

import enum

import httpx

from .rate_limit import REMAINING_HEADER, parse_reset_at, parse_retry_after


class ErrorKind(str, enum.Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"

    @property
    def retriable(self) -> bool:
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR, ErrorKind.NETWORK_ERROR)


class GitHubError(Exception):
    """A classified failure from the GitHub API or the network below it."""

    kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        status: int | None = None,
        retry_after: float | None = None,
        reset_at: int | None = None,
        body=None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.retry_after = retry_after
        self.reset_at = reset_at
        self.body = body
        self.cause = cause

    @property
    def retriable(self) -> bool:
        return self.kind.retriable

    def __repr__(self):
        return f"{type(self).__name__}(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


class AuthError(GitHubError):
    kind = ErrorKind.AUTH


class NotFoundError(GitHubError):
    kind = ErrorKind.NOT_FOUND


class RateLimitedError(GitHubError):
    kind = ErrorKind.RATE_LIMITED


class ServerError(GitHubError):
    kind = ErrorKind.SERVER_ERROR


class NetworkError(GitHubError):
    kind = ErrorKind.NETWORK_ERROR


class UnknownApiError(GitHubError):
    kind = ErrorKind.UNKNOWN


def _error_message(status: int, body) -> str:
    detail = None
    if isinstance(body, dict):
        detail = body.get("message")
    elif isinstance(body, str) and body.strip():
        detail = body.strip()[:200]
    return f"GitHub API error: {status} {detail or f'HTTP error {status}'}"


def _is_rate_limited(status: int, headers: httpx.Headers) -> bool:
    if status == 429:
        return True
    if status != 403:
        return False
    if headers.get(REMAINING_HEADER, "").strip() == "0":
        return True
    # Secondary rate limits keep quota but send retry-after
    return parse_retry_after(headers) is not None


def classify(
    status: int | None = None,
    headers=None,
    body=None,
    network_error: BaseException | None = None,
) -> GitHubError:
    """Turn a failed exchange into a GitHubError.

    The order matters: a 403 is checked for an exhausted quota before it can
    fall through as an ordinary permission error, since one is retried and
    the other never is.
    """
    if network_error is not None or status is None:
        return NetworkError(f"Network error: {network_error}", cause=network_error)

    headers = httpx.Headers(headers or {})
    message = _error_message(status, body)

    if status == 401:
        return AuthError(message, status=status, body=body)
    if _is_rate_limited(status, headers):
        # The reset time only tells us when to come back if the quota is spent
        exhausted = headers.get(REMAINING_HEADER, "").strip() == "0"
        return RateLimitedError(
            message,
            status=status,
            retry_after=parse_retry_after(headers),
            reset_at=parse_reset_at(headers) if exhausted else None,
            body=body,
        )
    if status == 404:
        return NotFoundError(message, status=status, body=body)
    if status >= 500:
        return ServerError(message, status=status, body=body)
    return UnknownApiError(message, status=status, body=body)
