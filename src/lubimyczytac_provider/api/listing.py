"""Parse catalog search listing pages into candidates."""

import re

from bs4 import BeautifulSoup
from loguru import logger

from ..models import BASE_URL, SOURCE, BookType, Candidate

log = logger.bind(stage="listing")

_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")


def decode_unicode(text: str) -> str:
    """Decode literal \\uXXXX escape sequences left in page text."""
    return _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)


def parse_listing(html: str, book_type: BookType, base_url: str = BASE_URL) -> list[Candidate]:
    """Extract candidates from a listing page, in document order.

    Entries without a title or a link are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    candidates = []

    for entry in soup.select(".authorAllBooks__single"):
        info = entry.select_one(".authorAllBooks__singleText")
        if info is None:
            continue
        title_link = info.select_one(".authorAllBooks__singleTextTitle")
        if title_link is None:
            continue

        title = title_link.get_text().strip()
        href = title_link.get("href") or ""
        if not title or not href:
            log.debug(f"Skipping entry: title={title!r} href={href!r}")
            continue

        authors = tuple(
            decode_unicode(a.get_text().strip())
            for a in info.select('a[href*="/autor/"]')
        )
        candidates.append(
            Candidate(
                id=href.rstrip("/").split("/")[-1],
                title=decode_unicode(title),
                authors=authors,
                url=f"{base_url.rstrip('/')}{href}",
                type=book_type,
                source=SOURCE,
            )
        )

    log.debug(f"Parsed {len(candidates)} {book_type} candidates")
    return candidates
