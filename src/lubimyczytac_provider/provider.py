"""Search orchestration: normalize, search, rank, enrich, cache.

A cache miss runs the full pipeline:

    1. Normalize the raw query into (title, author)
    2. Fetch both listing sub-indexes concurrently
    3. Parse each listing, tagging candidates with their sub-index
    4. Merge, rank and truncate to max_matches
    5. Enrich the survivors concurrently from their detail pages
    6. Write the result through to the cache

Concurrent misses for the same key are not coalesced; each runs the
pipeline and the last one to finish owns the cache entry.
"""

from loguru import logger

from .api.catalog import CatalogClient
from .api.detail import DetailEnricher
from .api.listing import parse_listing
from .api.search import rank_candidates
from .cache import ResultCache, make_cache_key
from .config import ProviderConfig
from .models import Candidate, SearchResult
from .normalize import normalize_query

log = logger.bind(stage="provider")


class LubimyCzytacProvider:
    """Resolves noisy book/audiobook queries against Lubimy Czytać."""

    def __init__(
        self,
        config: ProviderConfig | None = None,
        client: CatalogClient | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.config = config or ProviderConfig()
        self.client = client or CatalogClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
        )
        self.cache = cache if cache is not None else ResultCache(ttl=self.config.cache_ttl)
        self.enricher = DetailEnricher(self.client, max_workers=self.config.max_workers)

    def search_books(self, query: str, author: str | None = "") -> SearchResult:
        """Return ranked, enriched matches for a query.

        Never raises: unexpected pipeline errors, or every listing failing,
        produce an empty result that is not cached.
        """
        normalized = normalize_query(query, author)
        cache_key = make_cache_key(normalized.title, normalized.author)

        cached = self.cache.get(cache_key)
        if cached is not None:
            log.info(f"Cache hit: {cache_key!r}")
            return cached

        try:
            result = self._search(normalized.title, normalized.author)
        except Exception as e:
            log.exception(f"Error searching books: {e}")
            return SearchResult()

        if result is None:
            return SearchResult()
        self.cache.set(cache_key, result)
        return result

    def _search(self, title: str, author: str) -> SearchResult | None:
        """Run the miss path. None means no sub-index could be searched."""
        listings = self.client.fetch_listings(title, author)
        if not any(fetched.ok for fetched in listings.values()):
            log.warning(f"All listings failed for {title!r}, result not cached")
            return None

        candidates: list[Candidate] = []
        for book_type, fetched in listings.items():
            if not fetched.ok:
                continue
            candidates.extend(parse_listing(fetched.value, book_type, self.client.base_url))
        log.info(f"Found {len(candidates)} candidates for {title!r}")

        ranked = rank_candidates(candidates, title, author, limit=self.config.max_matches)
        matches = self.enricher.enrich_all(ranked)
        return SearchResult(matches=tuple(matches))
