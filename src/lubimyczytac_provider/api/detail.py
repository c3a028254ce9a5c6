"""Detail page enrichment for ranked candidates.

Each metadata field is described in FIELD_STRATEGIES as an ordered list of
extraction strategies; the first one that yields a non-empty value wins.
Raw values are then converted (dates, numbers, language codes) and folded
into an EnrichedRecord. Conversion failures leave the field empty; fetch
or page failures leave the candidate unenriched. Nothing here raises to
the caller of DetailEnricher.enrich().
"""

import html as html_lib
import re
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import fields
from datetime import date
from typing import Any

from bs4 import BeautifulSoup, Tag
from loguru import logger

from ..errors import FetchError, ParseError
from ..models import MAX_MATCHES, EnrichedRecord, Identifiers, RankedCandidate
from .catalog import CatalogClient
from .listing import decode_unicode

log = logger.bind(stage="detail")

Strategy = Callable[[BeautifulSoup], Any]

LANGUAGE_CODES: dict[str, str] = {
    "polski": "pol",
    "angielski": "eng",
    "niemiecki": "deu",
    "francuski": "fra",
    "hiszpański": "spa",
    "rosyjski": "rus",
    "włoski": "ita",
    "polish": "pol",
    "english": "eng",
}

NO_DESCRIPTION = "Ta książka nie posiada jeszcze opisu."
NO_DESCRIPTION_REPLACEMENT = "Brak opisu."

_SERIES_INDEX = re.compile(r"\(tom (\d+)")
_SERIES_SUFFIX = re.compile(r"\s*\(tom \d+.*?\)\s*$")
_PAGES = re.compile(r"(\d+)\s*str")
_DURATION = re.compile(r"(\d+)\s*godz.*?(\d+)?\s*min", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*(\d+)")
_LEADING_FLOAT = re.compile(r"^\s*(\d+(?:\.\d+)?)")
_TAG = re.compile(r"<[^>]*>")


# -- Strategy builders --


def _text(selector: str) -> Strategy:
    def strategy(soup: BeautifulSoup) -> str | None:
        el = soup.select_one(selector)
        return el.get_text().strip() if el else None

    return strategy


def _all_texts(selector: str) -> Strategy:
    def strategy(soup: BeautifulSoup) -> tuple[str, ...]:
        return tuple(el.get_text().strip() for el in soup.select(selector))

    return strategy


def _attr(selector: str, attr: str) -> Strategy:
    def strategy(soup: BeautifulSoup) -> str | None:
        el = soup.select_one(selector)
        return el.get(attr) if el else None

    return strategy


def _inner_html(selector: str) -> Strategy:
    def strategy(soup: BeautifulSoup) -> str | None:
        el = soup.select_one(selector)
        return el.decode_contents() if el else None

    return strategy


def _next_dd(dt: Tag | None) -> Tag | None:
    """The definition element directly following a <dt>, if any."""
    if dt is None:
        return None
    for sibling in dt.next_siblings:
        if isinstance(sibling, Tag):
            return sibling if sibling.name == "dd" else None
    return None


def _dd_text(label: str, inner: str = "") -> Strategy:
    """Text of the <dd> after the <dt> containing ``label``."""

    def strategy(soup: BeautifulSoup) -> str | None:
        dd = _next_dd(soup.select_one(f'dt:-soup-contains("{label}")'))
        if dd is not None and inner:
            dd = dd.select_one(inner)
        return dd.get_text().strip() if dd else None

    return strategy


def _dd_text_by_title(title: str) -> Strategy:
    """Like _dd_text, but finds the <dt> by its tooltip attribute."""

    def strategy(soup: BeautifulSoup) -> str | None:
        dd = _next_dd(soup.select_one(f'dt[data-original-title="{title}"]'))
        return dd.get_text().strip() if dd else None

    return strategy


def _pages_from_span(soup: BeautifulSoup) -> int | None:
    el = soup.select_one("span.book__pages.pr-2")
    if el is None:
        return None
    match = _PAGES.search(el.get_text())
    return int(match.group(1)) if match else None


def _pages_from_details(soup: BeautifulSoup) -> int | None:
    text = _dd_text("Liczba stron:")(soup)
    return _leading_int(text) if text else None


def _duration_from_spans(soup: BeautifulSoup) -> int | None:
    """book__hours holds an hours span and a minutes span, either may be missing."""
    el = soup.select_one("span.book__hours")
    if el is None:
        return None
    hours_el = el.select_one("span:first-child")
    minutes_el = el.select_one("span:nth-child(2)")
    hours = _leading_int(hours_el.get_text()) if hours_el else None
    minutes = _leading_int(minutes_el.get_text()) if minutes_el else None
    return (hours or 0) * 3600 + (minutes or 0) * 60


def _duration_from_details(soup: BeautifulSoup) -> int | None:
    text = _dd_text("Czas trwania:")(soup)
    if not text:
        return None
    return parse_duration(text)


_SERIES_SELECTOR = ", ".join(
    f'span.d-none.d-sm-block.mt-1:-soup-contains("{label}") a'
    for label in ("Cykl:", "Seria:")
)


FIELD_STRATEGIES: dict[str, tuple[Strategy, ...]] = {
    "cover": (
        _attr("img.img-fluid", "src"),
        _attr('meta[property="og:image"]', "content"),
    ),
    "publisher": (
        _text('span.book__txt a[href*="/wydawnictwo/"]'),
        _dd_text("Wydawnictwo:", "a"),
    ),
    "languages": (_dd_text("Język:"),),
    "description": (
        _inner_html(".collapse-content-js"),
        _inner_html(".book-description-container__description-text"),
        _attr('meta[property="og:description"]', "content"),
    ),
    "series": (_text(_SERIES_SELECTOR),),
    "genres": (_all_texts("a.book__category"),),
    "tags": (_all_texts('a[href*="/ksiazki/t/"]'),),
    "rating": (_text(".rating-value .big-number"),),
    "isbn": (
        _dd_text("ISBN:"),
        _attr('meta[property="books:isbn"]', "content"),
    ),
    "author": (_text("span.author a"),),
    "published_date": (
        _dd_text("Data wydania:"),
        _dd_text_by_title("Data pierwszego wydania polskiego"),
    ),
    "pages": (_pages_from_span, _pages_from_details),
    "translator": (_dd_text("Tłumacz:", "a"),),
    "narrator": (_dd_text("Lektor:"),),
    "duration": (_duration_from_spans, _duration_from_details),
}


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, tuple, list)) and not value)


def extract_field(soup: BeautifulSoup, name: str) -> Any:
    """Try each strategy for ``name`` in order; None if all come up empty."""
    for strategy in FIELD_STRATEGIES[name]:
        value = strategy(soup)
        if not _is_empty(value):
            return value
    return None


# -- Converters --


def _leading_int(text: str) -> int | None:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def language_code(name: str) -> str:
    """Map a language name to its ISO 639-2 code; unknown names pass through."""
    return LANGUAGE_CODES.get(name.lower(), name)


def parse_languages(text: str) -> tuple[str, ...]:
    return tuple(language_code(token.strip()) for token in text.split(", ") if token.strip())


def parse_rating(text: str) -> float | None:
    """Convert a 0-10 catalog rating ("8,5") to a 0-5 scale.

    Raises ParseError for non-numeric text or a value above 10. Zero means
    "not rated".
    """
    match = _LEADING_FLOAT.match(text.replace(",", ".", 1))
    if not match:
        raise ParseError("rating", text)
    value = float(match.group(1))
    if value > 10:
        raise ParseError("rating", text)
    if not value:
        return None
    return value * 5 / 10


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text.strip()[:10])
    except ValueError as e:
        raise ParseError("published_date", text) from e


def parse_duration(text: str) -> int | None:
    """Seconds from "<N> godz. <M> min." text, None if it does not match."""
    match = _DURATION.search(text)
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    return (hours * 60 + minutes) * 60


def split_series(text: str) -> tuple[str, int | None]:
    """Split "Wiedźmin (tom 2)" into ("Wiedźmin", 2)."""
    match = _SERIES_INDEX.search(text)
    index = int(match.group(1)) if match else None
    name = _SERIES_SUFFIX.sub("", text).strip()
    return name, index


def parse_genres(values: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(
        genre.strip()
        for value in values
        for genre in value.split(",")
        if genre.strip()
    )


def strip_html(text: str) -> str:
    """Strip HTML tags and decode entities."""
    return html_lib.unescape(_TAG.sub("", text)).strip()


def enrich_description(
    description: str,
    pages: int | None = None,
    published_date: date | None = None,
    translator: str | None = None,
) -> str:
    """Clean the description and append page count, first edition and translator."""
    text = strip_html(description or "")
    if text == NO_DESCRIPTION:
        text = NO_DESCRIPTION_REPLACEMENT

    if pages:
        text += f"\n\nKsiążka ma {pages} stron."
    if published_date:
        text += f"\n\nData pierwszego wydania: {published_date.strftime('%d.%m.%Y')}"
    if translator:
        text += f"\n\nTłumacz: {translator}"
    return text


def _convert(parser: Callable[[Any], Any], raw: Any, title: str) -> Any:
    """Run a converter, turning ParseError into an empty field."""
    if _is_empty(raw):
        return None
    try:
        return parser(raw)
    except ParseError as e:
        log.warning(f"{title!r}: {e}")
        return None


def parse_detail(html: str, candidate: RankedCandidate) -> EnrichedRecord:
    """Build an EnrichedRecord from a detail page."""
    soup = BeautifulSoup(html, "html.parser")

    authors = candidate.authors
    if not authors:
        fallback = extract_field(soup, "author")
        if fallback:
            authors = (decode_unicode(fallback),)

    series_text = extract_field(soup, "series")
    series, series_index = split_series(series_text) if series_text else (None, None)

    published_date = _convert(parse_date, extract_field(soup, "published_date"), candidate.title)
    pages = extract_field(soup, "pages")
    translator = extract_field(soup, "translator")

    base = {f.name: getattr(candidate, f.name) for f in fields(RankedCandidate)}
    base["authors"] = authors

    return EnrichedRecord(
        **base,
        cover=extract_field(soup, "cover") or "",
        description=enrich_description(
            extract_field(soup, "description") or "",
            pages,
            published_date,
            translator,
        ),
        languages=parse_languages(extract_field(soup, "languages") or ""),
        publisher=extract_field(soup, "publisher") or "",
        published_date=published_date,
        rating=_convert(parse_rating, extract_field(soup, "rating"), candidate.title),
        series=series or None,
        series_index=series_index,
        genres=parse_genres(extract_field(soup, "genres") or ()),
        tags=extract_field(soup, "tags") or (),
        narrator=extract_field(soup, "narrator"),
        duration=extract_field(soup, "duration"),
        pages=pages,
        translator=translator,
        identifiers=Identifiers(
            isbn=extract_field(soup, "isbn") or "",
            catalog_id=candidate.id,
        ),
    )


class DetailEnricher:
    """Fetch and parse detail pages, degrading to the bare candidate on failure."""

    def __init__(self, client: CatalogClient, max_workers: int = MAX_MATCHES) -> None:
        self.client = client
        self.max_workers = max_workers

    def enrich(self, candidate: RankedCandidate) -> RankedCandidate:
        try:
            page = self.client.fetch(candidate.url)
        except FetchError as e:
            log.warning(f"Error fetching full metadata for {candidate.title!r}: {e}")
            return candidate

        try:
            return parse_detail(page, candidate)
        except Exception as e:
            log.error(f"Error parsing full metadata for {candidate.title!r}: {e}")
            return candidate

    def enrich_all(self, candidates: list[RankedCandidate]) -> list[RankedCandidate]:
        """Enrich concurrently, keeping the input order."""
        if not candidates:
            return []
        workers = max(1, min(self.max_workers, len(candidates)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.enrich, candidates))
