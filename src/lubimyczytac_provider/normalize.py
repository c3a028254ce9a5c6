"""Query normalization: split "Author - Title (year) [tags]" into title/author.

Audiobook folder names carry a lot of noise (years, rip tags, bitrates,
narrator credits). Cleanup is an ordered table of regex rules; each rule
runs on the output of the previous one but matches independently, so a
later rule can still hit text that sits before something an earlier rule
removed.
"""

import re
from typing import NamedTuple

from loguru import logger

log = logger.bind(stage="normalize")

AUTHOR_SEPARATOR = " - "


class CleanupRule(NamedTuple):
    name: str
    pattern: re.Pattern
    replacement: str = ""
    count: int = 0  # 0 = replace every match


CLEANUP_RULES: tuple[CleanupRule, ...] = (
    # "(2020)" release years
    CleanupRule("year", re.compile(r"\s*\(\d{4}\)")),
    # "[FLAC]", "[PL]", any bracketed rip tag
    CleanupRule("brackets", re.compile(r"\s*\[.*?\]")),
    # "128kbps"
    CleanupRule("bitrate", re.compile(r"\d+kbps", re.IGNORECASE)),
    # "VBR" and everything after it
    CleanupRule("vbr", re.compile(r"\bVBR\b.*$", re.IGNORECASE)),
    # "czyt. Jan Kowalski" narrator credit to end of string
    CleanupRule("narrator", re.compile(r"czyt\. .*", re.IGNORECASE)),
    CleanupRule("superproduction", re.compile(r"superprodukcja", re.IGNORECASE), count=1),
    CleanupRule("audiobook", re.compile(r"audiobook", re.IGNORECASE), count=1),
    # trailing "PL" language marker (a separate word, not the end of "Apple")
    CleanupRule("locale_suffix", re.compile(r"\s*\bPL$", re.IGNORECASE)),
)

_RULES_BY_NAME = {rule.name: rule for rule in CLEANUP_RULES}


class NormalizedQuery(NamedTuple):
    title: str
    author: str


def apply_rule(name: str, text: str) -> str:
    """Apply a single cleanup rule by name and trim the result."""
    rule = _RULES_BY_NAME[name]
    return rule.pattern.sub(rule.replacement, text, count=rule.count).strip()


def clean_title(title: str) -> str:
    """Run every cleanup rule in order.

    Never returns an empty string for a title that had a non-blank token:
    if the rules strip everything, the trimmed input is returned instead.
    """
    cleaned = title
    for rule in CLEANUP_RULES:
        cleaned = apply_rule(rule.name, cleaned)

    if not cleaned and title.strip():
        log.debug(f"Cleanup emptied title {title!r}, keeping original")
        return title.strip()
    return cleaned


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and text.startswith('"') and text.endswith('"')


def normalize_query(query: str, author: str | None = "") -> NormalizedQuery:
    """Split a raw query into (title, author) and clean the title.

    A fully quoted query or title is taken verbatim (quotes removed). Any
    non-empty author, even whitespace, disables the " - " split.
    """
    explicit_author = bool(author)
    author = (author or "").strip()
    log.info(f"Input details: {query!r} by {author!r}")

    if _is_quoted(query.strip()):
        title = query.strip()[1:-1]
        log.info(f"Quoted title taken verbatim: {title!r}")
        return NormalizedQuery(title=title, author=author)

    title = query
    if not explicit_author and AUTHOR_SEPARATOR in query:
        head, _, rest = query.partition(AUTHOR_SEPARATOR)
        author = head.strip()
        title = rest.strip()

    title = title.strip()
    if _is_quoted(title):
        title = title[1:-1]
    else:
        title = clean_title(title)

    log.info(f"Extracted author: {author!r}, title: {title!r}")
    return NormalizedQuery(title=title, author=author)
