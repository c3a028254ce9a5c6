"""Fuzzy scoring and ranking of catalog candidates.

Combines rapidfuzz string similarity on title and author to order the
merged book/audiobook candidates against the normalized query.
"""

from loguru import logger
from rapidfuzz import fuzz

from ..models import MAX_MATCHES, BookType, Candidate, RankedCandidate

log = logger.bind(stage="search")

TITLE_WEIGHT = 0.6
AUTHOR_WEIGHT = 0.4


def similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1] (normalized Indel distance)."""
    return fuzz.ratio(a.lower(), b.lower()) / 100.0


def score_candidate(candidate: Candidate, title: str, author: str = "") -> float:
    """Score one candidate.

    Weights: title 60%, author 40% when an author is given, otherwise
    title only. The author score is the best match over all authors.
    """
    title_score = similarity(candidate.title, title)
    if not author:
        return title_score

    author_score = max(
        (similarity(a, author) for a in candidate.authors),
        default=0.0,
    )
    return title_score * TITLE_WEIGHT + author_score * AUTHOR_WEIGHT


def rank_candidates(
    candidates: list[Candidate],
    title: str,
    author: str = "",
    limit: int = MAX_MATCHES,
) -> list[RankedCandidate]:
    """Score, sort descending and truncate to ``limit``.

    Equal scores put audiobooks before books; anything still tied keeps
    its input order.
    """
    log.debug(f"Scoring {len(candidates)} candidates against title={title!r} author={author!r}")

    ranked = [
        RankedCandidate.from_candidate(c, score_candidate(c, title, author))
        for c in candidates
    ]
    ranked = sorted(
        ranked,
        key=lambda r: (-r.similarity, r.type != BookType.AUDIOBOOK),
    )[:limit]

    if ranked:
        best = ranked[0]
        log.debug(f"Best match: {best.title!r} ({best.type}) similarity={best.similarity:.2f}")

    return ranked
