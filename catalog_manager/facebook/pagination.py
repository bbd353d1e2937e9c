"""
Pagination Merger

Follows Graph API "paging.next" cursors and concatenates every page's
"data" array into one list. Either the whole collection comes back or
an error is raised; a partially read collection is never returned.
"""

import logging
from typing import Any, Dict, List, Optional

from ..common.constants import DEFAULT_PAGE_SIZE
from ..models.batch import ErrorDescriptor
from .api_client import GraphAPIClient
from .errors import GraphAPIError

logger = logging.getLogger(__name__)


def next_cursor(page: Dict[str, Any]) -> Optional[str]:
    paging = page.get("paging")
    if not isinstance(paging, dict):
        return None
    return paging.get("next") or None


class Paginator:
    """
    Reads paginated Graph API edges.

    Usage:
        paginator = Paginator(api_client, page_size=100)
        products = paginator.fetch_all("1234/products", {"fields": "id,name"})
    """

    def __init__(self, api_client: GraphAPIClient, page_size: int = DEFAULT_PAGE_SIZE):
        self.api_client = api_client
        self.page_size = page_size

    def fetch_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """
        Fetch every item of a paginated edge.

        Args:
            path: Edge path relative to the API base (e.g. "<catalog>/products")
            params: Query parameters for the first page; "limit" defaults to page_size

        Raises:
            GraphAPIError: Any page failed; context names the page
        """
        query = dict(params or {})
        query.setdefault("limit", self.page_size)

        try:
            first_page = self.api_client.get(path, query)
        except GraphAPIError as e:
            e.add_context(f"while fetching page 1 of {path}")
            raise

        return self.follow(first_page, source=path)

    def follow(self, page: Any, source: str = "collection") -> List[Any]:
        """
        Collect items from an already-fetched page and every page after it.

        Used directly for edges that arrive embedded in another response
        (set members inside a set listing or a batch sub-response).
        """
        items: List[Any] = []
        page_number = 1

        while True:
            if not isinstance(page, dict):
                raise GraphAPIError(ErrorDescriptor(
                    message=f"Expected a page object, got {type(page).__name__}",
                )).add_context(f"page {page_number} of {source}")

            data = page.get("data") or []
            items.extend(data)
            logger.debug("Page %d of %s: %d items (%d total)", page_number, source, len(data), len(items))

            cursor = next_cursor(page)
            if not cursor:
                return items

            page_number += 1
            try:
                page = self.api_client.get(cursor)
            except GraphAPIError as e:
                e.add_context(f"while fetching page {page_number} of {source}")
                raise
