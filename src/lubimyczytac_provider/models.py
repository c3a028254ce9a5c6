"""Core enums, constants, and record types for the metadata provider.

Enums:
    BookType -- Catalog sub-index a candidate came from (book, audiobook).

Records (append-only chain, each stage builds a new instance):
    Candidate        -- Minimal catalog entry parsed from a listing page.
    RankedCandidate  -- Candidate + similarity score.
    EnrichedRecord   -- RankedCandidate + detail-page metadata.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum


class BookType(StrEnum):
    BOOK = "book"
    AUDIOBOOK = "audiobook"


# Upper bound on candidates that survive ranking (and get a detail fetch)
MAX_MATCHES = 20

CACHE_TTL_SECONDS = 600

BASE_URL = "https://lubimyczytac.pl"


@dataclass(frozen=True)
class SourceInfo:
    id: str = "lubimyczytac"
    name: str = "Lubimy Czytać"
    base_url: str = BASE_URL


SOURCE = SourceInfo()


@dataclass(frozen=True)
class Candidate:
    """A catalog entry as it appears on a listing page."""

    id: str
    title: str
    authors: tuple[str, ...]
    url: str
    type: BookType
    source: SourceInfo = SOURCE


@dataclass(frozen=True)
class RankedCandidate(Candidate):
    similarity: float = 0.0

    @classmethod
    def from_candidate(cls, candidate: Candidate, similarity: float) -> "RankedCandidate":
        return cls(
            id=candidate.id,
            title=candidate.title,
            authors=candidate.authors,
            url=candidate.url,
            type=candidate.type,
            source=candidate.source,
            similarity=similarity,
        )


@dataclass(frozen=True)
class Identifiers:
    isbn: str = ""
    catalog_id: str = ""


@dataclass(frozen=True)
class EnrichedRecord(RankedCandidate):
    """A ranked candidate with everything the detail page offered.

    Optional fields are None when the page did not carry them (or the value
    failed to parse). Sequences are empty rather than None.
    """

    cover: str = ""
    description: str = ""
    languages: tuple[str, ...] = ()
    publisher: str = ""
    published_date: date | None = None
    rating: float | None = None
    series: str | None = None
    series_index: int | None = None
    genres: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    narrator: str | None = None
    duration: int | None = None
    pages: int | None = None
    translator: str | None = None
    identifiers: Identifiers = field(default_factory=Identifiers)


@dataclass(frozen=True)
class SearchResult:
    """Ordered matches for one search request."""

    matches: tuple[RankedCandidate, ...] = ()
