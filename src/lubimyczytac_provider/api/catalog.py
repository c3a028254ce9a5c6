"""Lubimy Czytać catalog client.

Fetches listing pages from the two search sub-indexes (books and
audiobooks) and detail pages for single entries. Every request carries
an explicit timeout; failures surface as FetchError and are never retried.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import httpx
from loguru import logger

from ..errors import FetchError
from ..models import BASE_URL, BookType

log = logger.bind(stage="catalog")

LISTING_PATHS: dict[BookType, str] = {
    BookType.BOOK: "/szukaj/ksiazki",
    BookType.AUDIOBOOK: "/szukaj/audiobooki",
}


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one request: either the page text or the failure."""

    value: str | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CatalogClient:
    """Thin httpx wrapper around the catalog's search and detail pages."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 15.0,
        user_agent: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"User-Agent": user_agent} if user_agent else {}
        self._http = httpx.Client(
            timeout=timeout,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def listing_url(self, book_type: BookType) -> str:
        return f"{self.base_url}{LISTING_PATHS[book_type]}"

    def fetch(self, url: str, params: dict[str, str] | None = None) -> str:
        """GET a page and return its body decoded as UTF-8.

        Raises FetchError on transport errors, timeouts, non-2xx status and
        malformed URLs.
        """
        try:
            resp = self._http.get(url, params=params)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        return resp.content.decode("utf-8", errors="replace")

    def fetch_listing(self, book_type: BookType, title: str, author: str = "") -> str:
        params = {"phrase": title}
        if author:
            params["author"] = author
        url = self.listing_url(book_type)
        log.info(f"{book_type} search URL: {url} params={params}")
        return self.fetch(url, params=params)

    def fetch_listings(self, title: str, author: str = "") -> dict[BookType, FetchResult]:
        """Query both sub-indexes concurrently.

        A failure on one sub-index is captured in its FetchResult and does
        not affect the other.
        """
        with ThreadPoolExecutor(max_workers=len(LISTING_PATHS)) as executor:
            futures = {
                book_type: executor.submit(self.fetch_listing, book_type, title, author)
                for book_type in LISTING_PATHS
            }
            results: dict[BookType, FetchResult] = {}
            for book_type, future in futures.items():
                try:
                    results[book_type] = FetchResult(value=future.result())
                except FetchError as e:
                    log.warning(f"{book_type} listing failed: {e}")
                    results[book_type] = FetchResult(error=e)
        return results
