"""Tests for api/detail.py -- detail page extraction and enrichment."""

import dataclasses
from datetime import date
from unittest.mock import MagicMock

import httpx
import pytest
from bs4 import BeautifulSoup

from lubimyczytac_provider.api.catalog import CatalogClient
from lubimyczytac_provider.api.detail import (
    FIELD_STRATEGIES,
    DetailEnricher,
    enrich_description,
    extract_field,
    language_code,
    parse_date,
    parse_detail,
    parse_duration,
    parse_languages,
    parse_rating,
    split_series,
    strip_html,
)
from lubimyczytac_provider.errors import FetchError, ParseError
from lubimyczytac_provider.models import BookType, EnrichedRecord, RankedCandidate

DETAIL_PAGE = """
<html>
<head>
  <meta property="og:image" content="https://s.lubimyczytac.pl/og.jpg">
  <meta property="og:description" content="Opis z meta">
  <meta property="books:isbn" content="9788375780635">
</head>
<body>
  <img class="img-fluid" src="https://s.lubimyczytac.pl/cover.jpg">
  <span class="author"><a href="/autor/1/andrzej-sapkowski">Andrzej Sapkowski</a></span>
  <span class="d-none d-sm-block mt-1">Cykl: <a href="/cykl/1">Wiedźmin (tom 1)</a></span>
  <span class="book__txt">Wydawnictwo: <a href="/wydawnictwo/1/supernowa">SuperNowa</a></span>
  <a class="book__category" href="/kategoria/fantasy">fantasy, science fiction</a>
  <a href="/ksiazki/t/wiedzmin">wiedźmin</a>
  <a href="/ksiazki/t/magia">magia</a>
  <div class="rating-value"><span class="big-number">8,5</span></div>
  <span class="book__pages pr-2">332 str.</span>
  <span class="book__hours"><span>1 godz.</span><span>30 min.</span></span>
  <div class="collapse-content-js"><p>Geralt z <b>Rivii</b> &amp; inni.</p></div>
  <dl>
    <dt>Data wydania:</dt>
    <dd>2014-09-24</dd>
    <dt>ISBN:</dt>
    <dd>9788375780635</dd>
    <dt>Język:</dt>
    <dd>polski, angielski, klingoński</dd>
    <dt>Tłumacz:</dt>
    <dd><a href="/tlumacz/1">Jan Kowalski</a></dd>
    <dt>Lektor:</dt>
    <dd>Krzysztof Gosztyła</dd>
  </dl>
</body>
</html>
"""


def _candidate(authors: tuple[str, ...] = ("Andrzej Sapkowski",)) -> RankedCandidate:
    return RankedCandidate(
        id="ostatnie-zyczenie",
        title="Ostatnie życzenie",
        authors=authors,
        url="https://lubimyczytac.pl/ksiazka/4817/ostatnie-zyczenie",
        type=BookType.AUDIOBOOK,
        similarity=0.9,
    )


def _soup(body: str) -> BeautifulSoup:
    return BeautifulSoup(f"<html><head></head><body>{body}</body></html>", "html.parser")


class TestParseDetail:
    def test_full_page(self):
        record = parse_detail(DETAIL_PAGE, _candidate())

        assert isinstance(record, EnrichedRecord)
        assert record.cover == "https://s.lubimyczytac.pl/cover.jpg"
        assert record.publisher == "SuperNowa"
        assert record.languages == ("pol", "eng", "klingoński")
        assert record.published_date == date(2014, 9, 24)
        assert record.rating == 4.25
        assert record.series == "Wiedźmin"
        assert record.series_index == 1
        assert record.genres == ("fantasy", "science fiction")
        assert record.tags == ("wiedźmin", "magia")
        assert record.narrator == "Krzysztof Gosztyła"
        assert record.duration == 5400
        assert record.pages == 332
        assert record.translator == "Jan Kowalski"
        assert record.identifiers.isbn == "9788375780635"
        assert record.identifiers.catalog_id == "ostatnie-zyczenie"

    def test_description_enriched(self):
        record = parse_detail(DETAIL_PAGE, _candidate())
        assert record.description == (
            "Geralt z Rivii & inni."
            "\n\nKsiążka ma 332 stron."
            "\n\nData pierwszego wydania: 24.09.2014"
            "\n\nTłumacz: Jan Kowalski"
        )

    def test_keeps_ranked_fields(self):
        candidate = _candidate()
        record = parse_detail(DETAIL_PAGE, candidate)
        assert record.id == candidate.id
        assert record.title == candidate.title
        assert record.url == candidate.url
        assert record.type == candidate.type
        assert record.similarity == candidate.similarity
        assert record.source == candidate.source

    def test_author_fallback_when_candidate_has_none(self):
        record = parse_detail(DETAIL_PAGE, _candidate(authors=()))
        assert record.authors == ("Andrzej Sapkowski",)

    def test_candidate_authors_kept(self):
        record = parse_detail(DETAIL_PAGE, _candidate(authors=("A. Sapkowski",)))
        assert record.authors == ("A. Sapkowski",)

    def test_empty_page(self):
        record = parse_detail("<html></html>", _candidate())
        assert record.cover == ""
        assert record.publisher == ""
        assert record.languages == ()
        assert record.description == ""
        assert record.published_date is None
        assert record.rating is None
        assert record.series is None
        assert record.series_index is None
        assert record.genres == ()
        assert record.tags == ()
        assert record.narrator is None
        assert record.duration is None
        assert record.pages is None
        assert record.identifiers.isbn == ""

    def test_bad_date_leaves_field_empty(self):
        page = "<dl><dt>Data wydania:</dt><dd>wkrótce</dd></dl>"
        record = parse_detail(page, _candidate())
        assert record.published_date is None

    def test_first_polish_edition_date_fallback(self):
        page = (
            '<dl><dt data-original-title="Data pierwszego wydania polskiego">'
            "Data 1. wyd. pol.:</dt><dd>1993-01-01</dd></dl>"
        )
        record = parse_detail(page, _candidate())
        assert record.published_date == date(1993, 1, 1)

    def test_non_numeric_rating_is_none(self):
        page = '<div class="rating-value"><span class="big-number">brak</span></div>'
        assert parse_detail(page, _candidate()).rating is None


class TestFieldFallbacks:
    def test_strategy_table_covers_fields(self):
        assert {
            "cover", "publisher", "languages", "description", "series",
            "genres", "tags", "rating", "isbn", "author", "published_date",
            "pages", "translator", "narrator", "duration",
        } == set(FIELD_STRATEGIES)

    def test_cover_falls_back_to_og_image(self):
        soup = BeautifulSoup(
            '<html><head><meta property="og:image" content="og.jpg"></head></html>',
            "html.parser",
        )
        assert extract_field(soup, "cover") == "og.jpg"

    def test_cover_missing(self):
        assert extract_field(_soup(""), "cover") is None

    def test_publisher_from_definition_list(self):
        soup = _soup('<dl><dt>Wydawnictwo:</dt><dd><a href="/w/1">Znak</a></dd></dl>')
        assert extract_field(soup, "publisher") == "Znak"

    def test_description_container_fallback(self):
        soup = _soup('<div class="book-description-container__description-text">Tekst</div>')
        assert extract_field(soup, "description") == "Tekst"

    def test_description_meta_fallback(self):
        soup = BeautifulSoup(
            '<html><head><meta property="og:description" content="Z meta"></head></html>',
            "html.parser",
        )
        assert extract_field(soup, "description") == "Z meta"

    def test_isbn_meta_fallback(self):
        soup = BeautifulSoup(
            '<html><head><meta property="books:isbn" content="123"></head></html>',
            "html.parser",
        )
        assert extract_field(soup, "isbn") == "123"

    def test_series_label_seria(self):
        soup = _soup('<span class="d-none d-sm-block mt-1">Seria: <a href="/s/1">Kanon</a></span>')
        assert extract_field(soup, "series") == "Kanon"

    def test_pages_from_definition_list(self):
        soup = _soup("<dl><dt>Liczba stron:</dt><dd>412</dd></dl>")
        assert extract_field(soup, "pages") == 412

    def test_pages_span_without_number_falls_back(self):
        soup = _soup(
            '<span class="book__pages pr-2">brak</span>'
            "<dl><dt>Liczba stron:</dt><dd>99</dd></dl>"
        )
        assert extract_field(soup, "pages") == 99

    def test_dd_must_follow_dt(self):
        soup = _soup("<dl><dt>Lektor:</dt><dt>Inne:</dt><dd>Ktoś</dd></dl>")
        assert extract_field(soup, "narrator") is None


class TestDuration:
    def test_hours_and_minutes_spans(self):
        soup = _soup('<span class="book__hours"><span>1 godz.</span><span>30 min.</span></span>')
        assert extract_field(soup, "duration") == 5400

    def test_hours_only_span(self):
        soup = _soup('<span class="book__hours"><span>2 godz.</span></span>')
        assert extract_field(soup, "duration") == 7200

    def test_definition_list_fallback(self):
        soup = _soup("<dl><dt>Czas trwania:</dt><dd>10 godz. 5 min.</dd></dl>")
        assert extract_field(soup, "duration") == 36300

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1 godz. 30 min", 5400),
            ("12 godz. 0 min", 43200),
            ("3 godz. min", 10800),
            ("45 min", None),
            ("", None),
        ],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == expected


class TestConverters:
    def test_rating_comma_decimal(self):
        assert parse_rating("8,5") == 4.25

    def test_rating_dot_decimal(self):
        assert parse_rating("7.0") == 3.5

    def test_rating_zero_is_none(self):
        assert parse_rating("0") is None

    def test_rating_non_numeric(self):
        with pytest.raises(ParseError):
            parse_rating("n/a")

    def test_rating_above_scale(self):
        with pytest.raises(ParseError):
            parse_rating("12")

    def test_rating_top_of_scale(self):
        assert parse_rating("10") == 5.0

    def test_language_polski(self):
        assert language_code("polski") == "pol"

    def test_language_case_insensitive(self):
        assert language_code("Angielski") == "eng"

    def test_language_unknown_passthrough(self):
        assert language_code("esperanto") == "esperanto"

    def test_parse_languages_skips_blanks(self):
        assert parse_languages("") == ()
        assert parse_languages("polski") == ("pol",)

    def test_parse_date(self):
        assert parse_date("2020-05-12") == date(2020, 5, 12)

    def test_parse_date_invalid(self):
        with pytest.raises(ParseError) as exc_info:
            parse_date("12 maja 2020")
        assert exc_info.value.field == "published_date"

    def test_split_series(self):
        assert split_series("Wiedźmin (tom 2)") == ("Wiedźmin", 2)
        assert split_series("Wiedźmin (tom 2 z 8)") == ("Wiedźmin", 2)
        assert split_series("Saga") == ("Saga", None)


class TestDescription:
    def test_strip_html(self):
        assert strip_html("<p>Ala <i>ma</i> kota</p>") == "Ala ma kota"

    def test_no_description_phrase_replaced(self):
        assert enrich_description("Ta książka nie posiada jeszcze opisu.") == "Brak opisu."

    def test_appends_in_order(self):
        text = enrich_description("Opis", pages=100, published_date=date(2001, 2, 3), translator="X")
        assert text == (
            "Opis\n\nKsiążka ma 100 stron."
            "\n\nData pierwszego wydania: 03.02.2001"
            "\n\nTłumacz: X"
        )

    def test_nothing_to_append(self):
        assert enrich_description("Opis") == "Opis"


class TestDetailEnricher:
    def test_fetch_failure_returns_candidate(self):
        client = MagicMock()
        client.fetch.side_effect = FetchError("https://x", "boom")
        candidate = _candidate()

        result = DetailEnricher(client).enrich(candidate)

        assert result is candidate
        assert not isinstance(result, EnrichedRecord)

    def test_malformed_url_returns_candidate(self):
        client = CatalogClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        candidate = dataclasses.replace(_candidate(), url="https://lubimyczytac.pl:abc/ksiazka/1")

        assert DetailEnricher(client).enrich(candidate) is candidate
        client.close()

    def test_parse_failure_returns_candidate(self, monkeypatch):
        client = MagicMock()
        client.fetch.return_value = DETAIL_PAGE
        monkeypatch.setattr(
            "lubimyczytac_provider.api.detail.parse_detail",
            MagicMock(side_effect=RuntimeError("broken page")),
        )
        candidate = _candidate()
        assert DetailEnricher(client).enrich(candidate) is candidate

    def test_success(self):
        client = MagicMock()
        client.fetch.return_value = DETAIL_PAGE
        result = DetailEnricher(client).enrich(_candidate())
        assert isinstance(result, EnrichedRecord)
        client.fetch.assert_called_once_with(_candidate().url)

    def test_enrich_all_partial_failure(self):
        candidates = [
            RankedCandidate(
                id=str(i),
                title=f"Book {i}",
                authors=("Autor",),
                url=f"https://lubimyczytac.pl/ksiazka/{i}",
                type=BookType.BOOK,
                similarity=1.0 - i / 100,
            )
            for i in range(20)
        ]
        failing_url = candidates[7].url

        def fetch(url):
            if url == failing_url:
                raise FetchError(url, "timeout")
            return DETAIL_PAGE

        client = MagicMock()
        client.fetch.side_effect = fetch

        results = DetailEnricher(client, max_workers=8).enrich_all(candidates)

        assert len(results) == 20
        assert [r.id for r in results] == [c.id for c in candidates]
        assert results[7] is candidates[7]
        enriched = [r for i, r in enumerate(results) if i != 7]
        assert all(isinstance(r, EnrichedRecord) for r in enriched)
        assert all(r.publisher == "SuperNowa" for r in enriched)

    def test_enrich_all_empty(self):
        assert DetailEnricher(MagicMock()).enrich_all([]) == []
