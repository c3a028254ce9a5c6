"""Lubimy Czytać Provider -- resolve noisy book/audiobook names into catalog metadata.

Core modules:
    config     -- Provider configuration via pydantic-settings (.env + env vars)
                  and loguru setup.
    normalize  -- Split "Author - Title (year) [tags]" queries into title/author
                  and strip folder-name noise with an ordered regex rule table.
    provider   -- Search orchestration: normalize, search both sub-indexes,
                  rank, enrich concurrently, cache the result.
    cache      -- In-process TTL result cache keyed by the normalized request.
    server     -- Flask app exposing GET /search behind an Authorization gate.
    cli        -- Click entry point (serve, search).
    models     -- BookType enum, Candidate/RankedCandidate/EnrichedRecord records.
    errors     -- Exception hierarchy (InputError, AuthError, FetchError, ParseError).

Subpackages:
    api -- Catalog client, listing parser, fuzzy ranking, detail enrichment
"""
