"""
Walk the "next" chain of a paginated Spotify endpoint.

Spotify list endpoints return a paging object whose `next` field holds the
absolute URL of the following page, or null on the last one. The fetcher
follows that chain with an injected single-page operation, so it knows nothing
about HTTP or authentication.
"""

from typing import Callable, Iterable, Protocol, TypeVar

from audiowarden.core.logger import get_logger

logger = get_logger(__name__)


class Page(Protocol):
    """Anything with the items/next shape of a Spotify paging object."""

    @property
    def items(self) -> Iterable: ...

    @property
    def next(self) -> str | None: ...


P = TypeVar("P", bound=Page)


def fetch_all_pages(initial_cursor: str, fetch_page: Callable[[str], P]) -> list[P]:
    """
    Fetch every page starting at initial_cursor.

    Args:
        initial_cursor: URL of the first page.
        fetch_page: Fetches and parses the page at the given URL.

    Returns:
        All pages in arrival order. There is no upper bound on their number.

    Raises:
        Whatever fetch_page raises. Pages fetched before the failure are
        discarded: a partial list is never returned.
    """
    pages: list[P] = []
    cursor: str | None = initial_cursor
    while cursor is not None:
        page = fetch_page(cursor)
        pages.append(page)
        cursor = page.next

    logger.debug(f"Fetched {len(pages)} page(s) starting at {initial_cursor}")
    return pages


def collect_items(pages: Iterable[Page]) -> list:
    """Concatenate the items of all pages, keeping page order."""
    return [item for page in pages for item in page.items]
