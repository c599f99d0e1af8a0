"""Lazy traversal of paginated GitHub collections."""

import logging
import re
from collections.abc import Iterator

from .models import MAX_PER_PAGE, ApiRequest, ApiResponse

logger = logging.getLogger(__name__)

_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="?([^";]+)"?')


def parse_link_header(link: str | None) -> dict[str, str]:
    """Map rel -> URL from an RFC 8288 Link header."""
    if not link:
        return {}
    links = {}
    for url, rels in _LINK_RE.findall(link):
        for rel in rels.split():
            links[rel] = url
    return links


def _batch(resp: ApiResponse) -> list:
    body = resp.body
    if isinstance(body, dict):
        # Search endpoints wrap their page in {"total_count": ..., "items": [...]}
        return body.get("items") or []
    return body or []


class Paginator:
    """Drives a client across successive pages of one collection.

    An empty page is the only thing that ends a traversal; the Link header
    is used to find the next page when present but is never trusted to say
    there are no more. Each page goes through the client's own retry logic,
    so a failure on page 3 leaves pages 1-2 with the caller.

    Args:
        client: Anything with `execute(ApiRequest) -> ApiResponse`.
        per_page: Page size requested on the first page.
        cancel: Optional threading.Event. Checked before each fetch and after
            each fetch returns; once set, the traversal stops without yielding
            the page in flight.
    """

    def __init__(self, client, per_page: int = MAX_PER_PAGE, cancel=None):
        self.client = client
        self.per_page = per_page
        self.cancel = cancel
        self.fetches = 0

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def pages(self, request: ApiRequest) -> Iterator[list]:
        """Yield each non-empty page in order."""
        page = 1
        current = request.with_params(page=page, per_page=self.per_page)
        while True:
            if self._cancelled():
                logger.debug("Traversal of %s cancelled before page %d", request.path, page)
                return
            resp = self.client.execute(current)
            self.fetches += 1
            if self._cancelled():
                logger.debug("Traversal of %s cancelled, dropping page %d", request.path, page)
                return

            batch = _batch(resp)
            if not batch:
                return
            yield batch

            page += 1
            next_url = parse_link_header(resp.link).get("next")
            if next_url:
                current = ApiRequest(request.method, next_url, json=request.json)
            else:
                current = request.with_params(page=page, per_page=self.per_page)

    def all(self, request: ApiRequest) -> Iterator:
        """Yield every record across all pages."""
        for batch in self.pages(request):
            yield from batch
